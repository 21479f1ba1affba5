"""FileChange model: append-only log of reported path changes."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tagkeep.db.base import Base, utcnow
from tagkeep.db.models.enums import ChangeStatus, ChangeType


class FileChange(Base):
    """One filesystem mutation the engine was told about."""

    __tablename__ = "file_changes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True
    )

    old_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    change_type: Mapped[ChangeType] = mapped_column(
        Enum(
            ChangeType,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    status: Mapped[ChangeStatus] = mapped_column(
        Enum(
            ChangeStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ChangeStatus.PROCESSED,
        nullable=False,
    )
    affected: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    error: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    detected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_file_changes_change_type", "change_type"),
        Index("ix_file_changes_status", "status"),
        Index("ix_file_changes_detected_at", "detected_at"),
    )
