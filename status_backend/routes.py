"""
HTTP routes for the status tracker API.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import APIRouter, Body, Depends, Query

from status_backend import team
from status_backend.db import DbClient
from status_backend.dependencies import get_db_client
from status_backend.errors import NotFoundError, ValidationError
from status_backend.schemas import (
    CreatedResponse,
    DeletedResponse,
    ErrorResponse,
    InviteRequest,
    InviteResponse,
    JoinResponse,
    LatestSnapshotResponse,
    OffboardRequest,
    OffboardResponse,
    ProjectPayload,
    ProjectResponse,
    SnapshotRequest,
    SnapshotSavedResponse,
    SuccessResponse,
    TaskPayload,
    TaskResponse,
    TeamMemberResponse,
    UpdatedResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)


# --- Phases (tasks) ---


@router.get("/phases", response_model=list[TaskResponse])
def list_phases(db: DbClient = Depends(get_db_client)):
    return [task.as_dict() for task in db.list_tasks()]


@router.post("/phases", response_model=CreatedResponse)
def create_phase(payload: TaskPayload, db: DbClient = Depends(get_db_client)):
    task = db.create_task(payload.model_dump(exclude_none=True))
    return CreatedResponse(id=task.id)


@router.put("/phases/{task_id}", response_model=UpdatedResponse)
def update_phase(
    task_id: int, payload: TaskPayload, db: DbClient = Depends(get_db_client)
):
    updated = db.update_task(task_id, payload.model_dump(exclude_none=True))
    return UpdatedResponse(updated=bool(updated))


@router.delete(
    "/phases/{task_id}",
    response_model=DeletedResponse,
    responses={404: {"model": ErrorResponse}},
)
def delete_phase(task_id: int, db: DbClient = Depends(get_db_client)):
    if not db.delete_task(task_id):
        raise NotFoundError("Task not found")
    return DeletedResponse(deleted=True)


# --- Team ---


@router.get("/team", response_model=list[TeamMemberResponse])
def list_team(db: DbClient = Depends(get_db_client)):
    return [member.as_dict() for member in db.list_members()]


@router.post("/invite", response_model=InviteResponse)
def invite(payload: InviteRequest, db: DbClient = Depends(get_db_client)):
    member = team.invite_member(db, payload.username, payload.email, payload.org)
    return InviteResponse(message="User added", username=member.username, id=member.id)


@router.patch(
    "/team/{member_id}/not-working",
    response_model=OffboardResponse,
    responses={404: {"model": ErrorResponse}},
)
def mark_not_working(
    member_id: int,
    payload: Optional[OffboardRequest] = None,
    db: DbClient = Depends(get_db_client),
):
    """
    Reassign the member's tasks (to ``reassign_to`` or the whole team) and
    mark them as no longer working on the project.
    """
    reassign_to = payload.reassign_to if payload else None
    reassigned = team.offboard(db, member_id, reassign_to)
    return OffboardResponse(updated=True, reassigned=reassigned)


@router.delete(
    "/team/{member_id}",
    response_model=DeletedResponse,
    responses={404: {"model": ErrorResponse}},
)
def delete_member(member_id: int, db: DbClient = Depends(get_db_client)):
    team.remove_member(db, member_id)
    return DeletedResponse(deleted=True)


@router.get("/join", response_model=JoinResponse)
def join(invite: Optional[str] = Query(None)):
    # Invite links are not tracked yet; every join is accepted.
    logger.info("Join requested with invite %s", invite)
    return JoinResponse(message="Joined successfully")


# --- Project ---


@router.get("/project", response_model=ProjectResponse)
def get_project(db: DbClient = Depends(get_db_client)):
    return ProjectResponse(name=db.get_project_name() or "")


@router.post("/project", response_model=SuccessResponse)
def save_project(payload: ProjectPayload, db: DbClient = Depends(get_db_client)):
    db.save_project_name(payload.name or "")
    return SuccessResponse(success=True)


# --- Whiteboard ---


@router.get("/whiteboard")
def get_whiteboard(db: DbClient = Depends(get_db_client)) -> Any:
    state = db.get_whiteboard_state()
    return state if state is not None else {}


@router.post("/whiteboard", response_model=SuccessResponse)
def save_whiteboard(
    state: Union[dict, list] = Body(...),
    db: DbClient = Depends(get_db_client),
):
    db.save_whiteboard_state(state)
    return SuccessResponse(success=True)


@router.post("/whiteboard/save", response_model=SnapshotSavedResponse)
def save_whiteboard_snapshot(
    payload: SnapshotRequest, db: DbClient = Depends(get_db_client)
):
    if not payload.canvas_image or payload.sticky_notes is None:
        raise ValidationError("Missing canvasImage or stickyNotes")
    snapshot = db.create_snapshot(payload.canvas_image, payload.sticky_notes)
    logger.info("Saved whiteboard snapshot %s", snapshot.id)
    return SnapshotSavedResponse(saved=True, id=snapshot.id)


@router.get("/whiteboard/latest", response_model=LatestSnapshotResponse)
def latest_whiteboard_snapshot(db: DbClient = Depends(get_db_client)):
    snapshot = db.get_latest_snapshot()
    if not snapshot:
        return LatestSnapshotResponse()
    return LatestSnapshotResponse(
        canvas_image=snapshot.canvas_image, sticky_notes=snapshot.sticky_notes
    )
