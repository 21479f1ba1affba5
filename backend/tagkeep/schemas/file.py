"""Pydantic schemas for File API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from tagkeep.db.models import FileType, MatchLogic
from tagkeep.services.search import FileWithTags, Page


class FileTagResponse(BaseModel):
    """A tag as attached to one file."""

    id: int
    name: str
    color: Optional[str] = None
    font_color: Optional[str] = None
    parent_id: Optional[int] = None
    confidence: float


class FileRecordResponse(BaseModel):
    """File record response schema."""

    model_config = {"from_attributes": True}

    id: int
    current_path: str
    name: str
    file_type: FileType
    size: Optional[int] = None
    fingerprint_data: Optional[dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime


class FileWithTagsResponse(FileRecordResponse):
    """File record with its active tags."""

    tags: list[FileTagResponse] = []

    @classmethod
    def from_item(cls, item: FileWithTags) -> FileWithTagsResponse:
        base = FileRecordResponse.model_validate(item.record)
        return cls(
            **base.model_dump(),
            tags=[
                FileTagResponse(
                    id=tag.id,
                    name=tag.name,
                    color=tag.color,
                    font_color=tag.font_color,
                    parent_id=tag.parent_id,
                    confidence=confidence,
                )
                for tag, confidence in item.tags
            ],
        )


class FileListResponse(BaseModel):
    """Paginated file list response."""

    items: list[FileWithTagsResponse]
    total: int
    page: int
    page_size: int
    has_more: bool

    @classmethod
    def from_page(cls, page: Page[FileWithTags]) -> FileListResponse:
        return cls(
            items=[FileWithTagsResponse.from_item(item) for item in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            has_more=page.has_more,
        )


class TagGroupRequest(BaseModel):
    """Tag ids combined with AND or OR."""

    tag_ids: list[int] = Field(default_factory=list)
    logic: MatchLogic = MatchLogic.AND


class SearchByTagsRequest(BaseModel):
    """Boolean combination of tag groups."""

    tag_groups: list[TagGroupRequest] = Field(default_factory=list)
    group_logic: MatchLogic = MatchLogic.AND


class TagFilesRequest(BaseModel):
    """Request to attach a tag to several paths."""

    paths: list[str] = Field(..., min_length=1)
    tag_id: int
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    file_type: Optional[FileType] = None


class UntagFilesRequest(BaseModel):
    """Request to detach a tag from several paths."""

    paths: list[str] = Field(..., min_length=1)
    tag_id: int
