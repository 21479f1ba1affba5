"""Enum types for database models."""

from __future__ import annotations

import enum


class FileType(str, enum.Enum):
    """Kind of filesystem entry a record tracks."""

    FILE = "file"
    FOLDER = "folder"


class ChangeType(str, enum.Enum):
    """Filesystem mutation reported to the engine."""

    MOVED = "moved"
    COPIED = "copied"
    DELETED = "deleted"


class ChangeStatus(str, enum.Enum):
    """Outcome of applying a reported change."""

    PROCESSED = "processed"
    IGNORED = "ignored"
    FAILED = "failed"


class TagListMode(str, enum.Enum):
    """Ordering for tag listings."""

    MOST_USED = "most_used"
    RECENT_USED = "recent_used"


class MatchLogic(str, enum.Enum):
    """How tag id sets are combined."""

    AND = "AND"
    OR = "OR"


class FileSortKey(str, enum.Enum):
    """Sort keys for file listings."""

    NAME = "name"
    SIZE = "size"
    MODIFIED = "modified"
    CREATED = "created"
