"""Pydantic schemas for file event API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tagkeep.db.models import ChangeStatus, ChangeType


class PathChange(BaseModel):
    """A move or copy from one path to another."""

    old_path: str
    new_path: str


class PathChangeBatch(BaseModel):
    """Several moves or copies reported together."""

    items: list[PathChange] = Field(..., min_length=1)


class RenameRequest(BaseModel):
    """A rename within the same folder."""

    old_path: str
    new_name: str = Field(..., min_length=1)


class DeleteBatch(BaseModel):
    """Several deletes reported together."""

    paths: list[str] = Field(..., min_length=1)


class RenameResponse(BaseModel):
    """Response after a rename."""

    moved: int


class FileChangeResponse(BaseModel):
    """One change log entry."""

    model_config = {"from_attributes": True}

    id: int
    file_id: Optional[int] = None
    old_path: Optional[str] = None
    new_path: Optional[str] = None
    change_type: ChangeType
    status: ChangeStatus
    affected: int
    error: Optional[str] = None
    detected_at: datetime
    processed_at: Optional[datetime] = None
