"""FileRecord model: one tagged file or folder, keyed by its current path."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, BigInteger, DateTime, Enum, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tagkeep.db.base import Base, utcnow
from tagkeep.db.models.enums import FileType

if TYPE_CHECKING:
    from tagkeep.db.models.file_tag import FileTag


class FileRecord(Base):
    """A file or folder the user has tagged at least once."""

    __tablename__ = "files"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    current_path: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    file_type: Mapped[FileType] = mapped_column(
        Enum(
            FileType,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=FileType.FILE,
        nullable=False,
    )

    # Advisory metadata
    size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    fingerprint_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=True
    )

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
        "FileTag", back_populates="file", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_files_current_path", "current_path"),
        Index("ix_files_file_type", "file_type"),
        Index("ix_files_deleted_at", "deleted_at"),
    )

    def __repr__(self) -> str:
        return f"<FileRecord id={self.id} path={self.current_path!r}>"


# At most one live record per path
Index(
    "uq_files_current_path_active",
    FileRecord.current_path,
    unique=True,
    sqlite_where=FileRecord.deleted_at.is_(None),
    postgresql_where=FileRecord.deleted_at.is_(None),
)
