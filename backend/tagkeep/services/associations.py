"""Association store: file-tag links and the tag usage counters they drive.

Every insert or delete of a ``file_tags`` row adjusts the owning tag's
``usage_count`` in the same transaction, so the counter always equals the
number of association rows for that tag.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.core.errors import NotFoundError
from tagkeep.core.logging import get_logger
from tagkeep.db.dialect import SqlDialect
from tagkeep.db.models import FileRecord, FileTag, MatchLogic, Tag

logger = get_logger(__name__)


@dataclass
class TagGroup:
    """A set of tag ids combined with AND (all) or OR (any)."""

    tag_ids: list[int] = field(default_factory=list)
    logic: MatchLogic = MatchLogic.AND


def combine(sets: Sequence[set[int]], logic: MatchLogic) -> set[int]:
    """Intersect (AND) or union (OR) a sequence of id sets."""
    if not sets:
        return set()
    if MatchLogic(logic) is MatchLogic.AND:
        return set.intersection(*sets)
    return set.union(*sets)


class AssociationStore:
    """Store for file-tag associations and tag usage counters."""

    def __init__(self, db: AsyncSession, dialect: SqlDialect | None = None):
        """Initialize the association store.

        Args:
            db: The database session.
            dialect: Backend adapter; derived from the session if omitted.
        """
        self.db = db
        self.dialect = dialect or SqlDialect.for_session(db)

    async def attach(self, file_id: int, tag_id: int, confidence: float = 1.0) -> bool:
        """Link a tag to a file.

        Attaching a tag the file already carries changes nothing.

        Returns:
            True if a new association was created.

        Raises:
            NotFoundError: If the file or tag is missing or deleted.
            ValueError: If confidence is outside [0, 1].
        """
        if not 0.0 <= confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {confidence}")

        await self._require_file(file_id)
        await self._require_tag(tag_id)

        if not await self._insert_link(file_id, tag_id, confidence):
            logger.debug("tag_already_attached", file_id=file_id, tag_id=tag_id)
            return False

        await self._adjust_usage([tag_id], 1)
        logger.debug("tag_attached", file_id=file_id, tag_id=tag_id, confidence=confidence)
        return True

    async def detach(self, file_id: int, tag_id: int) -> bool:
        """Remove a tag from a file.

        Returns:
            True if an association was removed.
        """
        result = await self.db.execute(
            delete(FileTag).where(
                FileTag.file_id == file_id,
                FileTag.tag_id == tag_id,
            )
        )
        if not result.rowcount:
            return False

        await self._adjust_usage([tag_id], -1)
        logger.debug("tag_detached", file_id=file_id, tag_id=tag_id)
        return True

    async def copy_associations(self, from_file_id: int, to_file_id: int) -> int:
        """Duplicate every active association of one file onto another.

        Confidence is carried over unchanged and each copied link counts as
        a new use of its tag.

        Returns:
            Number of associations created on the target.
        """
        await self._require_file(to_file_id)

        result = await self.db.execute(
            select(FileTag.tag_id, FileTag.confidence)
            .join(Tag, Tag.id == FileTag.tag_id)
            .where(
                FileTag.file_id == from_file_id,
                Tag.deleted_at.is_(None),
            )
            .order_by(FileTag.tag_id)
        )

        copied: list[int] = []
        for tag_id, confidence in result.all():
            if await self._insert_link(to_file_id, tag_id, confidence):
                copied.append(tag_id)

        if copied:
            await self._adjust_usage(copied, 1)
            logger.debug(
                "associations_copied",
                from_file_id=from_file_id,
                to_file_id=to_file_id,
                count=len(copied),
            )
        return len(copied)

    async def list_for_file(self, file_id: int) -> list[Tag]:
        """Get the active tags attached to a file, ordered by name."""
        result = await self.db.execute(
            select(Tag)
            .join(FileTag, FileTag.tag_id == Tag.id)
            .where(
                FileTag.file_id == file_id,
                Tag.deleted_at.is_(None),
            )
            .order_by(Tag.name, Tag.id)
        )
        return list(result.scalars().all())

    async def tags_for_files(
        self, file_ids: Iterable[int]
    ) -> dict[int, list[tuple[Tag, float]]]:
        """Get active tags with confidence for several files at once."""
        ids = list(dict.fromkeys(file_ids))
        tags: dict[int, list[tuple[Tag, float]]] = {file_id: [] for file_id in ids}
        if not ids:
            return tags

        result = await self.db.execute(
            select(FileTag.file_id, FileTag.confidence, Tag)
            .join(Tag, Tag.id == FileTag.tag_id)
            .where(
                FileTag.file_id.in_(ids),
                Tag.deleted_at.is_(None),
            )
            .order_by(FileTag.file_id, Tag.name, Tag.id)
        )
        for file_id, confidence, tag in result.all():
            tags[file_id].append((tag, confidence))
        return tags

    async def count_for_file(self, file_id: int) -> int:
        """Count the active tags attached to a file."""
        result = await self.db.execute(
            select(func.count(FileTag.id))
            .join(Tag, Tag.id == FileTag.tag_id)
            .where(
                FileTag.file_id == file_id,
                Tag.deleted_at.is_(None),
            )
        )
        return result.scalar() or 0

    async def file_ids_for_tag(self, tag_id: int) -> set[int]:
        """Get ids of live files carrying a tag."""
        by_tag = await self.file_ids_by_tag([tag_id])
        return by_tag[tag_id]

    async def file_ids_by_tag(self, tag_ids: Iterable[int]) -> dict[int, set[int]]:
        """Get the live file ids carrying each tag, one set per tag."""
        ids = list(dict.fromkeys(tag_ids))
        by_tag: dict[int, set[int]] = {tag_id: set() for tag_id in ids}
        if not ids:
            return by_tag

        result = await self.db.execute(
            select(FileTag.tag_id, FileTag.file_id)
            .join(FileRecord, FileRecord.id == FileTag.file_id)
            .join(Tag, Tag.id == FileTag.tag_id)
            .where(
                FileTag.tag_id.in_(ids),
                FileRecord.deleted_at.is_(None),
                Tag.deleted_at.is_(None),
            )
        )
        for tag_id, file_id in result.all():
            by_tag[tag_id].add(file_id)
        return by_tag

    async def file_ids_matching(
        self, tag_ids: Sequence[int], logic: MatchLogic = MatchLogic.AND
    ) -> set[int]:
        """Get ids of live files carrying all (AND) or any (OR) of the tags."""
        by_tag = await self.file_ids_by_tag(tag_ids)
        return combine(list(by_tag.values()), logic)

    async def search_files_by_tags(
        self,
        tag_groups: Sequence[TagGroup],
        group_logic: MatchLogic = MatchLogic.AND,
    ) -> list[FileRecord]:
        """Find live files matching a boolean combination of tag groups.

        Each group resolves to a set of file ids using its own logic; the
        group results are then combined with ``group_logic``. Groups with no
        tags are ignored, and no groups at all means no results.

        Returns:
            Matching file records ordered by id.
        """
        groups = [group for group in tag_groups if group.tag_ids]
        if not groups:
            return []

        all_tag_ids = [tag_id for group in groups for tag_id in group.tag_ids]
        by_tag = await self.file_ids_by_tag(all_tag_ids)

        group_sets = [
            combine([by_tag[tag_id] for tag_id in dict.fromkeys(group.tag_ids)], group.logic)
            for group in groups
        ]
        file_ids = combine(group_sets, group_logic)
        if not file_ids:
            return []

        result = await self.db.execute(
            select(FileRecord)
            .where(
                FileRecord.id.in_(file_ids),
                FileRecord.deleted_at.is_(None),
            )
            .order_by(FileRecord.id)
        )
        return list(result.scalars().all())

    async def remove_for_tags(self, tag_ids: Sequence[int]) -> int:
        """Drop every association of the given tags and zero their counters.

        Returns:
            Number of associations removed.
        """
        if not tag_ids:
            return 0

        result = await self.db.execute(delete(FileTag).where(FileTag.tag_id.in_(tag_ids)))
        await self.db.execute(
            update(Tag).where(Tag.id.in_(tag_ids)).values(usage_count=0)
        )
        return result.rowcount or 0

    async def _insert_link(self, file_id: int, tag_id: int, confidence: float) -> bool:
        """Insert one association unless it already exists."""
        table = FileTag.__table__
        stmt = (
            self.dialect.insert(table)
            .values(file_id=file_id, tag_id=tag_id, confidence=confidence)
            .on_conflict_do_nothing(index_elements=["file_id", "tag_id"])
            .returning(table.c.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def _adjust_usage(self, tag_ids: Sequence[int], delta: int) -> None:
        """Shift usage counters, never below zero."""
        for tag_id, count in Counter(tag_ids).items():
            step = delta * count
            if step >= 0:
                new_value = Tag.usage_count + step
            else:
                new_value = case(
                    (Tag.usage_count + step > 0, Tag.usage_count + step),
                    else_=0,
                )
            await self.db.execute(
                update(Tag).where(Tag.id == tag_id).values(usage_count=new_value)
            )

    async def _require_file(self, file_id: int) -> None:
        result = await self.db.execute(
            select(FileRecord.id).where(
                FileRecord.id == file_id,
                FileRecord.deleted_at.is_(None),
            )
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(f"File {file_id} not found")

    async def _require_tag(self, tag_id: int) -> None:
        result = await self.db.execute(
            select(Tag.id).where(Tag.id == tag_id, Tag.deleted_at.is_(None))
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(f"Tag {tag_id} not found")
