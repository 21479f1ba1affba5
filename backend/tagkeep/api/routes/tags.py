"""Tag API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.api.deps import get_dialect
from tagkeep.core.logging import get_logger
from tagkeep.db import SqlDialect, get_db
from tagkeep.db.models import TagListMode
from tagkeep.schemas.file import FileListResponse
from tagkeep.schemas.tag import (
    TagCreate,
    TagDeleteResponse,
    TagListResponse,
    TagResponse,
    TagUpdate,
)
from tagkeep.services.search import MAX_PAGE_SIZE, SearchEngine
from tagkeep.services.tags import TagStore

logger = get_logger(__name__)

router = APIRouter(prefix="/tags", tags=["tags"])


def _list_response(tags) -> TagListResponse:
    return TagListResponse(
        items=[TagResponse.model_validate(tag) for tag in tags],
        total=len(tags),
    )


# =============================================================================
# Tag Endpoints
# =============================================================================


@router.get("", response_model=TagListResponse)
async def list_tags(
    mode: TagListMode = Query(TagListMode.MOST_USED, description="Ordering mode"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagListResponse:
    """List live tags by usage count or by last use."""
    tags = await TagStore(db, dialect).list(mode, limit)
    return _list_response(tags)


@router.get("/search", response_model=TagListResponse)
async def search_tags(
    keyword: str = Query("", description="Case-insensitive name fragment"),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagListResponse:
    """Find tags whose name matches a keyword."""
    tags = await TagStore(db, dialect).search(keyword, limit)
    return _list_response(tags)


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    request: TagCreate,
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagResponse:
    """Create a tag, optionally under a parent."""
    tag = await TagStore(db, dialect).create(
        request.name,
        color=request.color,
        font_color=request.font_color,
        parent_id=request.parent_id,
    )
    await db.commit()
    return TagResponse.model_validate(tag)


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: int,
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagResponse:
    """Get a single tag."""
    tag = await TagStore(db, dialect).get(tag_id)
    return TagResponse.model_validate(tag)


@router.patch("/{tag_id}", response_model=TagResponse)
async def modify_tag(
    tag_id: int,
    request: TagUpdate,
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagResponse:
    """Change some fields of a tag; omitted fields are left alone."""
    tag = await TagStore(db, dialect).modify(tag_id, **request.to_patch())
    await db.commit()
    return TagResponse.model_validate(tag)


@router.delete("/{tag_id}", response_model=TagDeleteResponse)
async def delete_tag(
    tag_id: int,
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagDeleteResponse:
    """Delete a tag and its descendants, detaching them from every file."""
    deleted_ids = await TagStore(db, dialect).delete(tag_id)
    await db.commit()
    return TagDeleteResponse(deleted_ids=deleted_ids)


@router.get("/{tag_id}/children", response_model=TagListResponse)
async def list_children(
    tag_id: int,
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> TagListResponse:
    """List the direct children of a tag."""
    tags = await TagStore(db, dialect).children(tag_id)
    return _list_response(tags)


@router.get("/{tag_id}/files", response_model=FileListResponse)
async def list_tag_files(
    tag_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    dialect: SqlDialect = Depends(get_dialect),
) -> FileListResponse:
    """List the live files carrying a tag."""
    result = await SearchEngine(db, dialect).files_by_tag(tag_id, page, page_size)
    return FileListResponse.from_page(result)
