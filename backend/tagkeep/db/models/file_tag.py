"""FileTag model for file-tag associations."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagkeep.db.base import Base, utcnow

if TYPE_CHECKING:
    from tagkeep.db.models.file_record import FileRecord
    from tagkeep.db.models.tag import Tag


class FileTag(Base):
    """Association between a file record and a tag."""

    __tablename__ = "file_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tags.id", ondelete="CASCADE"), nullable=False
    )

    # 1.0 for explicit tags, lower for suggestions
    confidence: Mapped[float] = mapped_column(Float, default=1.0, server_default="1.0", nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    # Relationships
    file: Mapped[FileRecord] = relationship("FileRecord", back_populates="file_tags")
    tag: Mapped[Tag] = relationship("Tag", back_populates="file_tags")

    __table_args__ = (
        UniqueConstraint("file_id", "tag_id", name="uq_file_tags_file_id_tag_id"),
        Index("ix_file_tags_file_id", "file_id"),
        Index("ix_file_tags_tag_id", "tag_id"),
        Index("ix_file_tags_confidence", "confidence"),
    )
