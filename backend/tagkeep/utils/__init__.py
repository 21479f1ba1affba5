"""Utility functions for tagkeep."""

from tagkeep.utils.paths import (
    basename,
    child_prefix,
    is_descendant,
    normalize_path,
    rebase,
    separator_for,
    sibling,
)

__all__ = [
    "basename",
    "child_prefix",
    "is_descendant",
    "normalize_path",
    "rebase",
    "separator_for",
    "sibling",
]
