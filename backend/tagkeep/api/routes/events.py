"""File event endpoints: the host reports moves, copies and deletes here."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.api.deps import get_tracker
from tagkeep.db import get_db
from tagkeep.db.models import ChangeStatus, ChangeType
from tagkeep.schemas.common import BatchResultResponse
from tagkeep.schemas.events import (
    DeleteBatch,
    FileChangeResponse,
    PathChangeBatch,
    RenameRequest,
    RenameResponse,
)
from tagkeep.services.history import ChangeHistoryStore
from tagkeep.services.tracking import FileTracker

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/moved", response_model=BatchResultResponse)
async def files_moved(
    request: PathChangeBatch,
    tracker: FileTracker = Depends(get_tracker),
) -> BatchResultResponse:
    """Report moved files or folders."""
    batch = await tracker.moved_many((item.old_path, item.new_path) for item in request.items)
    return BatchResultResponse.from_batch(batch)


@router.post("/renamed", response_model=RenameResponse)
async def file_renamed(
    request: RenameRequest,
    tracker: FileTracker = Depends(get_tracker),
) -> RenameResponse:
    """Report a rename within the same folder."""
    moved = await tracker.on_renamed(request.old_path, request.new_name)
    return RenameResponse(moved=moved)


@router.post("/copied", response_model=BatchResultResponse)
async def files_copied(
    request: PathChangeBatch,
    tracker: FileTracker = Depends(get_tracker),
) -> BatchResultResponse:
    """Report copied files or folders."""
    batch = await tracker.copied_many((item.old_path, item.new_path) for item in request.items)
    return BatchResultResponse.from_batch(batch)


@router.post("/deleted", response_model=BatchResultResponse)
async def files_deleted(
    request: DeleteBatch,
    tracker: FileTracker = Depends(get_tracker),
) -> BatchResultResponse:
    """Report deleted files or folders."""
    batch = await tracker.deleted_many(request.paths)
    return BatchResultResponse.from_batch(batch)


@router.get("/history", response_model=list[FileChangeResponse])
async def change_history(
    limit: int = Query(50, ge=1, le=500),
    change_type: ChangeType | None = Query(None),
    status: ChangeStatus | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[FileChangeResponse]:
    """Get the most recent change log entries, newest first."""
    changes = await ChangeHistoryStore(db).recent(limit, change_type=change_type, status=status)
    return [FileChangeResponse.model_validate(change) for change in changes]
