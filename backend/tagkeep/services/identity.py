"""Identity store: stable file records that follow their file across paths.

A file record is keyed by its current path while live. Moving a file
rewrites the path on the existing record so every tag stays attached to the
same id. Records for folders carry their descendants along: moving,
copying or deleting a folder applies to every live record beneath it.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.core.errors import ConstraintViolationError, NotFoundError
from tagkeep.core.logging import get_logger
from tagkeep.db.base import utcnow
from tagkeep.db.dialect import SqlDialect
from tagkeep.db.models import FileRecord, FileType
from tagkeep.services.associations import AssociationStore
from tagkeep.utils.paths import basename, child_prefix, is_descendant, normalize_path, rebase

logger = get_logger(__name__)


class IdentityStore:
    """Store for file records and their path history."""

    def __init__(
        self,
        db: AsyncSession,
        dialect: SqlDialect | None = None,
        associations: AssociationStore | None = None,
    ):
        """Initialize the identity store.

        Args:
            db: The database session.
            dialect: Backend adapter; derived from the session if omitted.
            associations: Association store sharing the same session.
        """
        self.db = db
        self.dialect = dialect or SqlDialect.for_session(db)
        self.associations = associations or AssociationStore(db, self.dialect)

    async def find_by_path(self, path: str) -> FileRecord | None:
        """Get the live record at a path, if any."""
        return await self._select_live(normalize_path(path))

    async def get(self, file_id: int) -> FileRecord:
        """Get a live record by id.

        Raises:
            NotFoundError: If no live record has this id.
        """
        result = await self.db.execute(
            select(FileRecord).where(
                FileRecord.id == file_id,
                FileRecord.deleted_at.is_(None),
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"File {file_id} not found")
        return record

    async def create_if_absent(
        self,
        path: str,
        file_type: FileType = FileType.FILE,
        size: int | None = None,
        fingerprint: dict[str, Any] | None = None,
    ) -> FileRecord:
        """Get the live record at a path, creating it if there is none.

        Two callers racing on the same path both end up with the one
        record: the loser's insert hits the live-path unique index and is
        skipped, and it re-reads the winner's row.
        """
        path = normalize_path(path)
        existing = await self.find_by_path(path)
        if existing is not None:
            return existing

        table = FileRecord.__table__
        stmt = (
            self.dialect.insert(table)
            .values(
                current_path=path,
                name=basename(path),
                file_type=FileType(file_type),
                size=size,
                fingerprint_data=fingerprint,
            )
            .on_conflict_do_nothing(
                index_elements=["current_path"],
                index_where=table.c.deleted_at.is_(None),
            )
            .returning(table.c.id)
        )
        result = await self.db.execute(stmt)
        new_id = result.scalar_one_or_none()

        if new_id is None:
            record = await self._select_live(path)
            if record is None:
                raise ConstraintViolationError(f"Could not create file record for {path}")
            logger.debug("file_record_race_resolved", path=path, file_id=record.id)
            return record

        record = await self.get(new_id)
        logger.info(
            "file_record_created",
            file_id=record.id,
            path=path,
            file_type=record.file_type.value,
        )
        return record

    async def move_record(self, old_path: str, new_path: str) -> int:
        """Repoint the record at ``old_path`` (and its descendants) to ``new_path``.

        A path nobody tagged moves nothing. A live record already sitting at
        a destination path was overwritten on disk and is soft-deleted,
        whether or not the source was tracked.

        Returns:
            Number of records moved.
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        if old_path == new_path:
            return 0

        records = await self._live_subtree(old_path)
        targets = {record.id: rebase(record.current_path, old_path, new_path) for record in records}
        await self._displace([new_path, *targets.values()], keep_ids=set(targets))
        if not records:
            logger.debug("move_untracked", old_path=old_path, new_path=new_path)
            return 0

        for record in records:
            record.current_path = targets[record.id]
            record.name = basename(record.current_path)
        await self.db.flush()

        logger.info(
            "file_record_moved",
            old_path=old_path,
            new_path=new_path,
            count=len(records),
        )
        return len(records)

    async def copy_record(self, old_path: str, new_path: str) -> FileRecord | None:
        """Give a copied file (and its tagged descendants) records of their own.

        Returns:
            The record created at ``new_path``, or None if the source itself
            was untracked or untagged.
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        for copy in await self.copy_subtree(old_path, new_path):
            if copy.current_path == new_path:
                return copy
        return None

    async def copy_subtree(self, old_path: str, new_path: str) -> list[FileRecord]:
        """Copy every tagged record at or below ``old_path`` to ``new_path``.

        Only sources that carry at least one active tag are duplicated; each
        copy gets a new id and the source's tags. Live records at the
        destination paths were overwritten on disk and are soft-deleted.

        Returns:
            The records created.
        """
        old_path = normalize_path(old_path)
        new_path = normalize_path(new_path)
        if old_path == new_path:
            return []

        sources = await self._live_subtree(old_path)
        targets = {source.id: rebase(source.current_path, old_path, new_path) for source in sources}
        await self._displace([new_path, *targets.values()], keep_ids=set(targets))

        copies: list[FileRecord] = []
        for source in sources:
            if await self.associations.count_for_file(source.id) == 0:
                continue

            target = await self.create_if_absent(
                targets[source.id],
                file_type=source.file_type,
                size=source.size,
                fingerprint=source.fingerprint_data,
            )
            await self.associations.copy_associations(source.id, target.id)
            copies.append(target)

        if copies:
            logger.info(
                "file_record_copied",
                old_path=old_path,
                new_path=new_path,
                count=len(copies),
            )
        return copies

    async def soft_delete(self, path: str) -> int:
        """Mark the record at ``path`` (and its descendants) as deleted.

        Associations are kept so a deleted record still shows up in history.

        Returns:
            Number of records deleted.
        """
        path = normalize_path(path)
        records = await self._live_subtree(path)
        if not records:
            return 0

        now = utcnow()
        for record in records:
            record.deleted_at = now
        await self.db.flush()

        logger.info("file_record_deleted", path=path, count=len(records))
        return len(records)

    async def _select_live(self, path: str) -> FileRecord | None:
        result = await self.db.execute(
            select(FileRecord).where(
                FileRecord.current_path == path,
                FileRecord.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def _live_subtree(self, path: str) -> list[FileRecord]:
        """Get the live record at ``path`` plus every live record below it."""
        prefix = child_prefix(path)
        result = await self.db.execute(
            select(FileRecord)
            .where(
                FileRecord.deleted_at.is_(None),
                or_(
                    FileRecord.current_path == path,
                    FileRecord.current_path.startswith(prefix, autoescape=True),
                ),
            )
            .order_by(FileRecord.id)
        )
        # LIKE is case-insensitive on SQLite; paths are not
        return [
            record
            for record in result.scalars().all()
            if record.current_path == path or is_descendant(record.current_path, path)
        ]

    async def _displace(self, paths: list[str], keep_ids: set[int]) -> None:
        """Soft-delete live records occupying ``paths``, except ``keep_ids``."""
        if not paths:
            return

        stmt = (
            update(FileRecord)
            .where(
                FileRecord.current_path.in_(paths),
                FileRecord.deleted_at.is_(None),
            )
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        if keep_ids:
            stmt = stmt.where(FileRecord.id.not_in(keep_ids))

        result = await self.db.execute(stmt)
        if result.rowcount:
            logger.info("file_record_overwritten", count=result.rowcount)
