"""Pydantic schemas for Tag API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from tagkeep.core.patch import UNSET
from tagkeep.db.models import DEFAULT_COLOR, DEFAULT_FONT_COLOR

# #RGB, #RRGGBB or #RRGGBBAA
HEX_COLOR = r"^#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$"


class TagResponse(BaseModel):
    """Tag response schema."""

    model_config = {"from_attributes": True}

    id: int
    name: str
    color: Optional[str] = None
    font_color: Optional[str] = None
    parent_id: Optional[int] = None
    usage_count: int
    created_at: datetime
    updated_at: datetime


class TagListResponse(BaseModel):
    """List of tags response."""

    items: list[TagResponse]
    total: int


class TagCreate(BaseModel):
    """Schema for creating a tag."""

    name: str = Field(..., max_length=255)
    color: Optional[str] = Field(DEFAULT_COLOR, pattern=HEX_COLOR)
    font_color: Optional[str] = Field(DEFAULT_FONT_COLOR, pattern=HEX_COLOR)
    parent_id: Optional[int] = Field(None, ge=1)


class TagUpdate(BaseModel):
    """Schema for updating a tag.

    A field left out of the body is not changed; a field sent as null is
    cleared.
    """

    name: Optional[str] = Field(None, max_length=255)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    font_color: Optional[str] = Field(None, pattern=HEX_COLOR)
    parent_id: Optional[int] = Field(None, ge=1)

    def to_patch(self) -> dict[str, Any]:
        """Get keyword arguments for ``TagStore.modify``."""
        return {
            name: getattr(self, name) if name in self.model_fields_set else UNSET
            for name in ("name", "color", "font_color", "parent_id")
        }


class TagDeleteResponse(BaseModel):
    """Response after deleting a tag."""

    deleted_ids: list[int]
