"""Exception taxonomy for the tag engine."""

from __future__ import annotations


class TagKeepError(Exception):
    """Base exception for all tag engine errors."""

    def __init__(self, message: str, code: str = "TAGKEEP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(TagKeepError):
    """Raised when an id or path has no matching active row."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "NOT_FOUND")


class DuplicateTagError(TagKeepError):
    """Raised when a tag name already exists under the same parent."""

    def __init__(self, name: str, parent_id: int | None = None):
        self.name = name
        self.parent_id = parent_id
        where = "at the root" if parent_id is None else f"under tag {parent_id}"
        super().__init__(f"Tag '{name}' already exists {where}", "DUPLICATE_TAG")


class EmptyNameError(TagKeepError):
    """Raised when a tag name is blank after trimming."""

    def __init__(self, message: str = "Tag name must not be empty"):
        super().__init__(message, "EMPTY_NAME")


class CycleDetectedError(TagKeepError):
    """Raised when reparenting a tag would create a loop."""

    def __init__(self, tag_id: int, parent_id: int):
        self.tag_id = tag_id
        self.parent_id = parent_id
        super().__init__(
            f"Tag {parent_id} is tag {tag_id} or one of its descendants",
            "CYCLE_DETECTED",
        )


class BackendConnectionError(TagKeepError):
    """Raised when the pool is exhausted or the backend is unreachable."""

    def __init__(self, message: str = "Database backend unavailable"):
        super().__init__(message, "CONNECTION_ERROR")


class ConfigError(TagKeepError):
    """Raised when the backend configuration is invalid."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message, "CONFIG_ERROR")


class ConstraintViolationError(TagKeepError):
    """Raised for backend integrity errors not otherwise classified."""

    def __init__(self, message: str = "Constraint violation"):
        super().__init__(message, "CONSTRAINT_VIOLATION")
