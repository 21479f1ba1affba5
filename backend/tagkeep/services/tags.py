"""Tag store: the tag hierarchy and its lookups."""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.core.errors import CycleDetectedError, DuplicateTagError, EmptyNameError, NotFoundError
from tagkeep.core.logging import get_logger
from tagkeep.core.patch import UNSET, Patch, is_set
from tagkeep.db.base import utcnow
from tagkeep.db.dialect import SqlDialect
from tagkeep.db.models import DEFAULT_COLOR, DEFAULT_FONT_COLOR, Tag, TagListMode
from tagkeep.services.associations import AssociationStore

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50


class TagStore:
    """Store for tags and their parent/child hierarchy.

    Names are unique among live siblings: two live tags may share a name
    only if they have different parents. Usage counters are owned by the
    association store and never written here except when a delete zeroes
    them.
    """

    def __init__(
        self,
        db: AsyncSession,
        dialect: SqlDialect | None = None,
        associations: AssociationStore | None = None,
    ):
        """Initialize the tag store.

        Args:
            db: The database session.
            dialect: Backend adapter; derived from the session if omitted.
            associations: Association store sharing the same session.
        """
        self.db = db
        self.dialect = dialect or SqlDialect.for_session(db)
        self.associations = associations or AssociationStore(db, self.dialect)

    async def create(
        self,
        name: str,
        color: str | None = DEFAULT_COLOR,
        font_color: str | None = DEFAULT_FONT_COLOR,
        parent_id: int | None = None,
    ) -> Tag:
        """Create a tag.

        Raises:
            EmptyNameError: If the name is blank.
            NotFoundError: If the parent does not exist.
            DuplicateTagError: If a live sibling already has this name.
        """
        name = self._normalize_name(name)
        if parent_id is not None:
            await self.get(parent_id)

        if await self._find_sibling(name, parent_id) is not None:
            raise DuplicateTagError(name, parent_id)

        tag = Tag(
            name=name,
            color=color,
            font_color=font_color,
            parent_id=parent_id,
            usage_count=0,
        )
        self.db.add(tag)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateTagError(name, parent_id) from e

        logger.info("tag_created", tag_id=tag.id, name=name, parent_id=parent_id)
        return tag

    async def get(self, tag_id: int) -> Tag:
        """Get a live tag by id.

        Raises:
            NotFoundError: If no live tag has this id.
        """
        result = await self.db.execute(
            select(Tag)
            .where(Tag.id == tag_id, Tag.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
        tag = result.scalar_one_or_none()
        if tag is None:
            raise NotFoundError(f"Tag {tag_id} not found")
        return tag

    async def modify(
        self,
        tag_id: int,
        name: Patch[str] = UNSET,
        color: Patch[str] = UNSET,
        font_color: Patch[str] = UNSET,
        parent_id: Patch[int] = UNSET,
    ) -> Tag:
        """Change some fields of a tag.

        Each field is left alone when ``UNSET``, cleared when None and set
        otherwise. Clearing ``parent_id`` makes the tag a root; the name
        cannot be cleared.

        Raises:
            NotFoundError: If the tag or the new parent does not exist.
            EmptyNameError: If the new name is blank or None.
            CycleDetectedError: If the new parent is the tag or a descendant.
            DuplicateTagError: If the new name/parent pair is taken.
        """
        tag = await self.get(tag_id)
        new_name = tag.name
        new_parent = tag.parent_id

        if is_set(name):
            if name is None:
                raise EmptyNameError("Tag name cannot be cleared")
            new_name = self._normalize_name(name)

        if is_set(parent_id):
            new_parent = parent_id
            if parent_id is not None:
                await self.get(parent_id)
                await self._check_cycle(tag.id, parent_id)

        if (new_name, new_parent) != (tag.name, tag.parent_id):
            if await self._find_sibling(new_name, new_parent, exclude_id=tag.id) is not None:
                raise DuplicateTagError(new_name, new_parent)

        tag.name = new_name
        tag.parent_id = new_parent
        if is_set(color):
            tag.color = color
        if is_set(font_color):
            tag.font_color = font_color

        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateTagError(new_name, new_parent) from e

        logger.info("tag_modified", tag_id=tag.id, name=tag.name, parent_id=tag.parent_id)
        return tag

    async def search(self, keyword: str, limit: int = DEFAULT_LIST_LIMIT) -> list[Tag]:
        """Find live tags whose name matches a keyword.

        Matching is case-insensitive substring, plus trigram similarity
        where the backend has it. Results are ordered by usage, then id.
        """
        keyword = keyword.strip()
        if not keyword:
            return []

        result = await self.db.execute(
            select(Tag)
            .where(
                Tag.deleted_at.is_(None),
                self.dialect.text_match(Tag.name, keyword),
            )
            .order_by(Tag.usage_count.desc(), Tag.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list(
        self,
        mode: TagListMode = TagListMode.MOST_USED,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[Tag]:
        """List live tags by usage count or by last use."""
        if TagListMode(mode) is TagListMode.RECENT_USED:
            order = (Tag.updated_at.desc(), Tag.id.asc())
        else:
            order = (Tag.usage_count.desc(), Tag.id.asc())

        result = await self.db.execute(
            select(Tag).where(Tag.deleted_at.is_(None)).order_by(*order).limit(limit)
        )
        return list(result.scalars().all())

    async def children(self, tag_id: int) -> list[Tag]:
        """Get the live direct children of a tag, ordered by name.

        Raises:
            NotFoundError: If the tag does not exist.
        """
        await self.get(tag_id)
        result = await self.db.execute(
            select(Tag)
            .where(Tag.parent_id == tag_id, Tag.deleted_at.is_(None))
            .order_by(Tag.name, Tag.id)
        )
        return list(result.scalars().all())

    async def descendant_ids(self, tag_id: int) -> list[int]:
        """Get ids of every live tag below ``tag_id``, breadth first."""
        found: list[int] = []
        seen = {tag_id}
        frontier = [tag_id]

        while frontier:
            result = await self.db.execute(
                select(Tag.id)
                .where(Tag.parent_id.in_(frontier), Tag.deleted_at.is_(None))
                .order_by(Tag.id)
            )
            frontier = [child for child in result.scalars().all() if child not in seen]
            seen.update(frontier)
            found.extend(frontier)

        return found

    async def delete(self, tag_id: int) -> list[int]:
        """Delete a tag together with all of its descendants.

        The tags are soft-deleted, their associations removed and their
        usage counters zeroed.

        Returns:
            Ids of every tag deleted, starting with ``tag_id``.

        Raises:
            NotFoundError: If the tag does not exist.
        """
        tag = await self.get(tag_id)
        tag_ids = [tag.id, *await self.descendant_ids(tag.id)]

        removed = await self.associations.remove_for_tags(tag_ids)
        await self.db.execute(
            update(Tag).where(Tag.id.in_(tag_ids)).values(deleted_at=utcnow())
        )

        logger.info(
            "tag_deleted",
            tag_id=tag.id,
            name=tag.name,
            deleted_tags=len(tag_ids),
            removed_associations=removed,
        )
        return tag_ids

    async def _find_sibling(
        self,
        name: str,
        parent_id: int | None,
        exclude_id: int | None = None,
    ) -> Tag | None:
        """Find a live tag with this name under this parent."""
        parent_match = Tag.parent_id.is_(None) if parent_id is None else Tag.parent_id == parent_id
        stmt = select(Tag).where(Tag.name == name, parent_match, Tag.deleted_at.is_(None))
        if exclude_id is not None:
            stmt = stmt.where(Tag.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def _check_cycle(self, tag_id: int, new_parent_id: int) -> None:
        """Walk up from the proposed parent; meeting ``tag_id`` means a loop.

        The walk is bounded by the number of tags so a hierarchy that is
        already corrupt cannot spin forever.
        """
        total = (await self.db.execute(select(func.count(Tag.id)))).scalar() or 0

        current: int | None = new_parent_id
        steps = 0
        while current is not None:
            if current == tag_id or steps > total:
                raise CycleDetectedError(tag_id, new_parent_id)
            result = await self.db.execute(select(Tag.parent_id).where(Tag.id == current))
            current = result.scalar_one_or_none()
            steps += 1

    @staticmethod
    def _normalize_name(name: str) -> str:
        normalized = (name or "").strip()
        if not normalized:
            raise EmptyNameError()
        return normalized
