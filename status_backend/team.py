"""
Team member offboarding and removal.

Both operations keep the rule that no task may reference a member who has
been deleted: offboarding moves the member's tasks elsewhere before marking
them not-working, and removal is refused while any task still references the
member. The storage clients run each operation as one atomic unit.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from status_backend.db import DEFAULT_ORG, UNASSIGNED, DbClient, TeamMemberRecord
from status_backend.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def invite_member(
    db: DbClient,
    username: Optional[str],
    email: Optional[str],
    org: Optional[str] = None,
) -> TeamMemberRecord:
    if not username or not email or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Invalid username or email")
    member = db.create_member(username, email, org or DEFAULT_ORG)
    logger.info("Invited team member %s (%s)", member.username, member.id)
    return member


def offboard(db: DbClient, member_id: int, reassign_to: Optional[str] = None) -> int:
    """
    Mark a member not-working after reassigning their tasks.

    Tasks go to ``reassign_to`` when given, otherwise to the shared "team"
    assignee. Returns the number of tasks that were reassigned.
    """
    target = reassign_to or UNASSIGNED
    member = db.get_member(member_id)
    if member and member.username == target:
        logger.warning(
            "Offboarding %s with tasks reassigned to themselves; tasks stay with an inactive member",
            member.username,
        )
    reassigned = db.offboard_member(member_id, target)
    if reassigned is None:
        raise NotFoundError("Team member not found")
    logger.info(
        "Offboarded member %s, reassigned %d tasks to %s", member_id, reassigned, target
    )
    return reassigned


def remove_member(db: DbClient, member_id: int) -> None:
    """Delete a member, refusing while any task still references them."""
    assigned = db.delete_member_if_unassigned(member_id)
    if assigned is None:
        raise NotFoundError("Team member not found")
    if assigned:
        raise ConflictError("Cannot delete: member is assigned to tasks")
    logger.info("Removed team member %s", member_id)
