"""Database models for tagkeep."""

from tagkeep.db.models.enums import (
    ChangeStatus,
    ChangeType,
    FileSortKey,
    FileType,
    MatchLogic,
    TagListMode,
)
from tagkeep.db.models.file_change import FileChange
from tagkeep.db.models.file_record import FileRecord
from tagkeep.db.models.file_tag import FileTag
from tagkeep.db.models.tag import DEFAULT_COLOR, DEFAULT_FONT_COLOR, Tag

__all__ = [
    # Models
    "FileChange",
    "FileRecord",
    "FileTag",
    "Tag",
    # Enums
    "ChangeStatus",
    "ChangeType",
    "FileSortKey",
    "FileType",
    "MatchLogic",
    "TagListMode",
    # Defaults
    "DEFAULT_COLOR",
    "DEFAULT_FONT_COLOR",
]
