"""Tag model: a named, colored, optionally hierarchical label."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagkeep.db.base import Base, utcnow

if TYPE_CHECKING:
    from tagkeep.db.models.file_tag import FileTag

DEFAULT_COLOR = "#FFFF00"
DEFAULT_FONT_COLOR = "#000000"


class Tag(Base):
    """A tag that can be applied to files and nested under another tag."""

    __tablename__ = "tags"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Tag data
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(9), nullable=True, default=DEFAULT_COLOR)
    font_color: Mapped[str | None] = mapped_column(
        String(9), nullable=True, default=DEFAULT_FONT_COLOR
    )

    # Hierarchy
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=True
    )

    # Maintained by the association store only
    usage_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    file_tags: Mapped[list[FileTag]] = relationship(
        "FileTag", back_populates="tag", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_tags_name", "name"),
        Index("ix_tags_parent_id", "parent_id"),
        Index("ix_tags_usage_count", "usage_count"),
    )

    def __repr__(self) -> str:
        return f"<Tag id={self.id} name={self.name!r} parent={self.parent_id}>"


# Root tags have parent_id NULL, which a plain unique index treats as distinct
Index(
    "uq_tags_name_parent_active",
    Tag.name,
    func.coalesce(Tag.parent_id, 0),
    unique=True,
    sqlite_where=Tag.deleted_at.is_(None),
    postgresql_where=Tag.deleted_at.is_(None),
)
