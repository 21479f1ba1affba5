"""Change history: an append-only log of reported filesystem changes."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.core.logging import get_logger
from tagkeep.db.base import utcnow
from tagkeep.db.models import ChangeStatus, ChangeType, FileChange

logger = get_logger(__name__)

# Error text is truncated to the column width
MAX_ERROR_LENGTH = 1024


class ChangeHistoryStore:
    """Store for the file change log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        change_type: ChangeType,
        old_path: str | None,
        new_path: str | None = None,
        status: ChangeStatus = ChangeStatus.PROCESSED,
        file_id: int | None = None,
        affected: int = 0,
        error: str | None = None,
    ) -> FileChange:
        """Append one entry to the change log."""
        change = FileChange(
            change_type=change_type,
            old_path=old_path,
            new_path=new_path,
            status=status,
            file_id=file_id,
            affected=affected,
            error=error[:MAX_ERROR_LENGTH] if error else None,
            processed_at=utcnow(),
        )
        self.db.add(change)
        await self.db.flush()
        return change

    async def recent(
        self,
        limit: int = 50,
        change_type: ChangeType | None = None,
        status: ChangeStatus | None = None,
    ) -> list[FileChange]:
        """Get the newest log entries first."""
        stmt = select(FileChange)
        if change_type is not None:
            stmt = stmt.where(FileChange.change_type == change_type)
        if status is not None:
            stmt = stmt.where(FileChange.status == status)

        result = await self.db.execute(
            stmt.order_by(FileChange.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
