"""
Pydantic schemas for the status tracker API.

Field names on the wire match what the frontend sends (``commentArea``,
``canvasImage``, ``stickyNotes``); Python attributes are snake_case.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TaskPayload(BaseModel):
    # Numbers sent for text fields are stored as their string form.
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    phase: Optional[str] = None
    goal: Optional[str] = None
    need: Optional[str] = None
    comments: Optional[str] = None
    execute: Optional[str] = None
    stage: Optional[str] = None
    comment_area: Optional[str] = Field(default=None, alias="commentArea")
    assigned_to: Optional[str] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    phase: str
    goal: str
    need: str
    comments: str
    execute: str
    stage: str
    comment_area: str = Field(alias="commentArea")
    assigned_to: str
    assignee_id: Optional[int] = None


class CreatedResponse(BaseModel):
    id: int


class UpdatedResponse(BaseModel):
    updated: bool


class DeletedResponse(BaseModel):
    deleted: bool


class TeamMemberResponse(BaseModel):
    id: int
    username: str
    email: str
    org: str
    not_working: bool


class InviteRequest(BaseModel):
    # Checked by the invite handler so bad payloads get the usual 400 message.
    username: Optional[str] = None
    email: Optional[str] = None
    org: Optional[str] = None


class InviteResponse(BaseModel):
    message: str
    username: str
    id: int


class OffboardRequest(BaseModel):
    reassign_to: Optional[str] = None


class OffboardResponse(BaseModel):
    updated: bool
    reassigned: int


class ProjectPayload(BaseModel):
    name: Optional[str] = None


class ProjectResponse(BaseModel):
    name: str


class SuccessResponse(BaseModel):
    success: bool


class SnapshotRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    canvas_image: Optional[str] = Field(default=None, alias="canvasImage")
    sticky_notes: Optional[list[Any]] = Field(default=None, alias="stickyNotes")


class SnapshotSavedResponse(BaseModel):
    saved: bool
    id: int


class LatestSnapshotResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    canvas_image: Optional[str] = Field(default=None, alias="canvasImage")
    sticky_notes: list[Any] = Field(default_factory=list, alias="stickyNotes")


class JoinResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
