"""File search: filtered, sorted and paginated listings of live files."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tagkeep.core.logging import get_logger
from tagkeep.db.dialect import SqlDialect
from tagkeep.db.models import FileRecord, FileSortKey, FileType, MatchLogic, Tag
from tagkeep.services.associations import AssociationStore
from tagkeep.services.tags import TagStore

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500

SORT_COLUMNS = {
    FileSortKey.NAME: FileRecord.name,
    FileSortKey.SIZE: FileRecord.size,
    FileSortKey.MODIFIED: FileRecord.updated_at,
    FileSortKey.CREATED: FileRecord.created_at,
}


@dataclass
class Page(Generic[T]):
    """One page of results plus the total across all pages."""

    items: list[T]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


@dataclass
class FileWithTags:
    """A file record and its active tags with confidence."""

    record: FileRecord
    tags: list[tuple[Tag, float]] = field(default_factory=list)


@dataclass
class FileQuery:
    """Filters, ordering and paging for a file listing.

    Every filter is optional; unset filters match everything.
    """

    tag_ids: list[int] = field(default_factory=list)
    tag_logic: MatchLogic = MatchLogic.AND
    text: str | None = None
    file_type: FileType | None = None
    size_min: int | None = None
    size_max: int | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None
    modified_after: datetime | None = None
    modified_before: datetime | None = None
    sort: FileSortKey = FileSortKey.NAME
    descending: bool = False
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be 1 or greater")
        if not 1 <= self.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class SearchEngine:
    """Read-only queries over live files and their tags."""

    def __init__(
        self,
        db: AsyncSession,
        dialect: SqlDialect | None = None,
        associations: AssociationStore | None = None,
    ):
        self.db = db
        self.dialect = dialect or SqlDialect.for_session(db)
        self.associations = associations or AssociationStore(db, self.dialect)

    async def list_files(self, query: FileQuery) -> Page[FileWithTags]:
        """List live files matching a query.

        Ordering always ends with the record id, so a page boundary never
        splits or repeats files with equal sort keys.
        """
        conditions = [FileRecord.deleted_at.is_(None)]

        if query.tag_ids:
            file_ids = await self.associations.file_ids_matching(query.tag_ids, query.tag_logic)
            if not file_ids:
                return Page(items=[], total=0, page=query.page, page_size=query.page_size)
            conditions.append(FileRecord.id.in_(file_ids))

        if query.text and query.text.strip():
            conditions.append(self.dialect.text_match(FileRecord.current_path, query.text.strip()))
        if query.file_type is not None:
            conditions.append(FileRecord.file_type == query.file_type)
        if query.size_min is not None:
            conditions.append(FileRecord.size >= query.size_min)
        if query.size_max is not None:
            conditions.append(FileRecord.size <= query.size_max)
        if query.created_after is not None:
            conditions.append(FileRecord.created_at >= query.created_after)
        if query.created_before is not None:
            conditions.append(FileRecord.created_at <= query.created_before)
        if query.modified_after is not None:
            conditions.append(FileRecord.updated_at >= query.modified_after)
        if query.modified_before is not None:
            conditions.append(FileRecord.updated_at <= query.modified_before)

        total_result = await self.db.execute(
            select(func.count(FileRecord.id)).where(*conditions)
        )
        total = total_result.scalar() or 0

        sort_column = SORT_COLUMNS[FileSortKey(query.sort)]
        order = sort_column.desc() if query.descending else sort_column.asc()

        result = await self.db.execute(
            select(FileRecord)
            .where(*conditions)
            .order_by(order.nulls_last(), FileRecord.id.asc())
            .offset(query.offset)
            .limit(query.page_size)
        )
        records = list(result.scalars().all())

        tags = await self.associations.tags_for_files(record.id for record in records)
        items = [FileWithTags(record=record, tags=tags[record.id]) for record in records]

        logger.debug(
            "files_listed",
            total=total,
            page=query.page,
            returned=len(items),
        )
        return Page(items=items, total=total, page=query.page, page_size=query.page_size)

    async def files_by_tag(
        self,
        tag_id: int,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[FileWithTags]:
        """List live files carrying one tag.

        Raises:
            NotFoundError: If the tag does not exist.
        """
        await TagStore(self.db, self.dialect, self.associations).get(tag_id)
        return await self.list_files(
            FileQuery(tag_ids=[tag_id], page=page, page_size=page_size)
        )
