"""File tracker: applies reported filesystem events to the stores.

Each event runs in its own transaction, so one failing path in a batch
never rolls back the others. Every event is written to the change log,
including the ones that failed; a failure entry is written in a separate
transaction after the failed one has rolled back.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from tagkeep.core.errors import TagKeepError
from tagkeep.core.logging import get_logger
from tagkeep.db.models import ChangeStatus, ChangeType, FileRecord, FileType, Tag
from tagkeep.db.session import Database
from tagkeep.services.associations import AssociationStore
from tagkeep.services.history import ChangeHistoryStore
from tagkeep.services.identity import IdentityStore
from tagkeep.services.tags import TagStore
from tagkeep.utils.paths import normalize_path, sibling

logger = get_logger(__name__)

# Errors a single batch item may fail with without aborting the batch
ITEM_ERRORS = (TagKeepError, ValueError)


@dataclass
class FailedItem:
    """A batch item that could not be applied."""

    path: str
    error: str
    code: str = "INVALID_INPUT"


@dataclass
class BatchResult:
    """Outcome of a batch: which paths were applied and which failed."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[FailedItem] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def add_failure(self, path: str, error: Exception) -> None:
        code = error.code if isinstance(error, TagKeepError) else "INVALID_INPUT"
        self.failed.append(FailedItem(path=path, error=str(error), code=code))


def probe_path(path: str) -> tuple[FileType, int | None]:
    """Get the type and size of a path from the local filesystem.

    Paths that do not exist locally are treated as plain files of unknown
    size.
    """
    try:
        target = Path(path)
        if target.is_dir():
            return FileType.FOLDER, None
        return FileType.FILE, target.stat().st_size
    except OSError:
        return FileType.FILE, None


class FileTracker:
    """Entry point for reported file events and bulk tagging."""

    def __init__(self, database: Database):
        self.database = database

    async def on_moved(self, old_path: str, new_path: str) -> int:
        """Handle a move or rename reported by the host.

        Returns:
            Number of records that followed the move.
        """
        try:
            async with self.database.transaction() as session:
                identity = IdentityStore(session, self.database.dialect)
                moved = await identity.move_record(old_path, new_path)
                await ChangeHistoryStore(session).record(
                    ChangeType.MOVED,
                    normalize_path(old_path),
                    normalize_path(new_path),
                    status=ChangeStatus.PROCESSED if moved else ChangeStatus.IGNORED,
                    affected=moved,
                )
            return moved
        except ITEM_ERRORS as e:
            await self._record_failure(ChangeType.MOVED, old_path, new_path, e)
            raise

    async def on_renamed(self, old_path: str, new_name: str) -> int:
        """Handle a rename within the same folder."""
        return await self.on_moved(old_path, sibling(old_path, new_name))

    async def on_copied(self, old_path: str, new_path: str) -> FileRecord | None:
        """Handle a copy reported by the host.

        Returns:
            The record created for the copy, if the source was tagged.
        """
        try:
            async with self.database.transaction() as session:
                identity = IdentityStore(session, self.database.dialect)
                copies = await identity.copy_subtree(old_path, new_path)
                target = normalize_path(new_path)
                record = next((c for c in copies if c.current_path == target), None)
                await ChangeHistoryStore(session).record(
                    ChangeType.COPIED,
                    normalize_path(old_path),
                    target,
                    status=ChangeStatus.PROCESSED if copies else ChangeStatus.IGNORED,
                    file_id=record.id if record else None,
                    affected=len(copies),
                )
            return record
        except ITEM_ERRORS as e:
            await self._record_failure(ChangeType.COPIED, old_path, new_path, e)
            raise

    async def on_deleted(self, path: str) -> int:
        """Handle a delete reported by the host.

        Returns:
            Number of records soft-deleted.
        """
        try:
            async with self.database.transaction() as session:
                identity = IdentityStore(session, self.database.dialect)
                deleted = await identity.soft_delete(path)
                await ChangeHistoryStore(session).record(
                    ChangeType.DELETED,
                    normalize_path(path),
                    status=ChangeStatus.PROCESSED if deleted else ChangeStatus.IGNORED,
                    affected=deleted,
                )
            return deleted
        except ITEM_ERRORS as e:
            await self._record_failure(ChangeType.DELETED, path, None, e)
            raise

    async def moved_many(self, moves: Iterable[tuple[str, str]]) -> BatchResult:
        """Apply several moves, each on its own."""
        batch = BatchResult()
        for old_path, new_path in moves:
            try:
                await self.on_moved(old_path, new_path)
                batch.succeeded.append(old_path)
            except ITEM_ERRORS as e:
                batch.add_failure(old_path, e)
        self._log_batch("moved", batch)
        return batch

    async def copied_many(self, copies: Iterable[tuple[str, str]]) -> BatchResult:
        """Apply several copies, each on its own."""
        batch = BatchResult()
        for old_path, new_path in copies:
            try:
                await self.on_copied(old_path, new_path)
                batch.succeeded.append(old_path)
            except ITEM_ERRORS as e:
                batch.add_failure(old_path, e)
        self._log_batch("copied", batch)
        return batch

    async def deleted_many(self, paths: Iterable[str]) -> BatchResult:
        """Apply several deletes, each on its own."""
        batch = BatchResult()
        for path in paths:
            try:
                await self.on_deleted(path)
                batch.succeeded.append(path)
            except ITEM_ERRORS as e:
                batch.add_failure(path, e)
        self._log_batch("deleted", batch)
        return batch

    async def tag_files(
        self,
        paths: Iterable[str],
        tag_id: int,
        confidence: float = 1.0,
        file_type: FileType | None = None,
    ) -> BatchResult:
        """Attach a tag to several paths, creating records as needed.

        New records take ``file_type`` when given; otherwise the type is
        probed from the local filesystem.

        Raises:
            NotFoundError: If the tag does not exist.
        """
        await self._require_tag(tag_id)

        batch = BatchResult()
        for path in paths:
            try:
                # Touch the filesystem before borrowing a connection
                probed_type, size = probe_path(path)
                async with self.database.transaction() as session:
                    associations = AssociationStore(session, self.database.dialect)
                    identity = IdentityStore(session, self.database.dialect, associations)
                    record = await identity.create_if_absent(
                        path, file_type=file_type or probed_type, size=size
                    )
                    await associations.attach(record.id, tag_id, confidence)
                batch.succeeded.append(path)
            except ITEM_ERRORS as e:
                batch.add_failure(path, e)
        self._log_batch("tagged", batch, tag_id=tag_id)
        return batch

    async def untag_files(self, paths: Iterable[str], tag_id: int) -> BatchResult:
        """Detach a tag from several paths; untracked paths are skipped."""
        batch = BatchResult()
        for path in paths:
            try:
                async with self.database.transaction() as session:
                    associations = AssociationStore(session, self.database.dialect)
                    record = await IdentityStore(
                        session, self.database.dialect, associations
                    ).find_by_path(path)
                    if record is not None:
                        await associations.detach(record.id, tag_id)
                batch.succeeded.append(path)
            except ITEM_ERRORS as e:
                batch.add_failure(path, e)
        self._log_batch("untagged", batch, tag_id=tag_id)
        return batch

    async def tags_for_path(self, path: str) -> list[Tag]:
        """Get the active tags of the live record at a path."""
        async with self.database.transaction() as session:
            associations = AssociationStore(session, self.database.dialect)
            record = await IdentityStore(
                session, self.database.dialect, associations
            ).find_by_path(path)
            if record is None:
                return []
            return await associations.list_for_file(record.id)

    async def _require_tag(self, tag_id: int) -> None:
        async with self.database.transaction() as session:
            await TagStore(session, self.database.dialect).get(tag_id)

    async def _record_failure(
        self,
        change_type: ChangeType,
        old_path: str | None,
        new_path: str | None,
        error: Exception,
    ) -> None:
        logger.warning(
            "file_event_failed",
            change_type=change_type.value,
            old_path=old_path,
            new_path=new_path,
            error=str(error),
        )
        try:
            async with self.database.transaction() as session:
                await ChangeHistoryStore(session).record(
                    change_type,
                    old_path,
                    new_path,
                    status=ChangeStatus.FAILED,
                    error=str(error),
                )
        except TagKeepError as e:
            logger.error("change_log_write_failed", error=str(e))

    @staticmethod
    def _log_batch(action: str, batch: BatchResult, **context) -> None:
        logger.info(
            f"batch_{action}",
            succeeded=len(batch.succeeded),
            failed=len(batch.failed),
            **context,
        )
