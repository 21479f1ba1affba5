"""File API endpoints: listing, tag search and bulk tagging."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.api.deps import get_dialect, get_tracker
from tagkeep.db import SqlDialect, get_db
from tagkeep.db.models import FileSortKey, FileType, MatchLogic
from tagkeep.schemas.common import BatchResultResponse
from tagkeep.schemas.file import (
    FileRecordResponse,
    FileListResponse,
    SearchByTagsRequest,
    TagFilesRequest,
    UntagFilesRequest,
)
from tagkeep.schemas.tag import TagListResponse, TagResponse
from tagkeep.services.associations import AssociationStore, TagGroup
from tagkeep.services.search import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, FileQuery, SearchEngine
from tagkeep.services.tracking import FileTracker

router = APIRouter(prefix="/files", tags=["files"])


@router.get("", response_model=FileListResponse)
async def list_files(
    tag_ids: list[int] = Query([], description="Only files carrying these tags"),
    tag_logic: MatchLogic = Query(MatchLogic.AND),
    q: str | None = Query(None, description="Substring of the path"),
    file_type: FileType | None = Query(None),
    size_min: int | None = Query(None, ge=0),
    size_max: int | None = Query(None, ge=0),
    created_after: datetime | None = Query(None),
    created_before: datetime | None = Query(None),
    modified_after: datetime | None = Query(None),
    modified_before: datetime | None = Query(None),
    sort: FileSortKey = Query(FileSortKey.NAME),
    descending: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> FileListResponse:
    """List live files with optional filters, sorting and paging."""
    query = FileQuery(
        tag_ids=tag_ids,
        tag_logic=tag_logic,
        text=q,
        file_type=file_type,
        size_min=size_min,
        size_max=size_max,
        created_after=created_after,
        created_before=created_before,
        modified_after=modified_after,
        modified_before=modified_before,
        sort=sort,
        descending=descending,
        page=page,
        page_size=page_size,
    )
    result = await SearchEngine(db, dialect).list_files(query)
    return FileListResponse.from_page(result)


@router.post("/search-by-tags", response_model=list[FileRecordResponse])
async def search_by_tags(
    request: SearchByTagsRequest,
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> list[FileRecordResponse]:
    """Find files matching a boolean combination of tag groups."""
    groups = [TagGroup(tag_ids=group.tag_ids, logic=group.logic) for group in request.tag_groups]
    records = await AssociationStore(db, dialect).search_files_by_tags(groups, request.group_logic)
    return [FileRecordResponse.model_validate(record) for record in records]


@router.get("/tags", response_model=TagListResponse)
async def get_file_tags(
    path: str = Query(..., min_length=1),
    tracker: FileTracker = Depends(get_tracker),
) -> TagListResponse:
    """Get the active tags of the file at a path."""
    tags = await tracker.tags_for_path(path)
    return TagListResponse(
        items=[TagResponse.model_validate(tag) for tag in tags],
        total=len(tags),
    )


@router.post("/tag", response_model=BatchResultResponse)
async def tag_files(
    request: TagFilesRequest,
    tracker: FileTracker = Depends(get_tracker),
) -> BatchResultResponse:
    """Attach a tag to several paths."""
    batch = await tracker.tag_files(
        request.paths, request.tag_id, request.confidence, file_type=request.file_type
    )
    return BatchResultResponse.from_batch(batch)


@router.post("/untag", response_model=BatchResultResponse)
async def untag_files(
    request: UntagFilesRequest,
    tracker: FileTracker = Depends(get_tracker),
) -> BatchResultResponse:
    """Detach a tag from several paths."""
    batch = await tracker.untag_files(request.paths, request.tag_id)
    return BatchResultResponse.from_batch(batch)
