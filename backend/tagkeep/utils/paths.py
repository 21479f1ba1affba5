"""Path string helpers.

Paths are opaque strings reported by the host; they are never resolved
against the local filesystem here. Windows-style paths (backslash
separators) and POSIX paths are both accepted, and prefix relations are
always computed case-sensitively.
"""

from __future__ import annotations

import re

_DRIVE_ROOT = re.compile(r"^[A-Za-z]:$")


def separator_for(path: str) -> str:
    """Get the separator a path uses: backslash for Windows-style paths."""
    if "\\" in path and "/" not in path:
        return "\\"
    return "/"


def normalize_path(path: str) -> str:
    """Strip trailing separators so a folder has one canonical spelling.

    Roots keep their separator (``/`` and ``C:\\``).

    Raises:
        ValueError: If the path is empty.
    """
    if not path or not path.strip():
        raise ValueError("Path must not be empty")

    sep = separator_for(path)
    stripped = path.rstrip("/\\")
    if not stripped:
        return sep
    if _DRIVE_ROOT.match(stripped):
        return stripped + sep
    return stripped


def child_prefix(path: str) -> str:
    """Get the prefix every descendant of ``path`` starts with."""
    path = normalize_path(path)
    sep = separator_for(path)
    return path if path.endswith(sep) else path + sep


def is_descendant(candidate: str, root: str) -> bool:
    """Check whether ``candidate`` lies strictly below ``root``."""
    return candidate.startswith(child_prefix(root))


def rebase(path: str, old_root: str, new_root: str) -> str:
    """Rewrite ``path`` from under ``old_root`` to under ``new_root``."""
    old_root = normalize_path(old_root)
    new_root = normalize_path(new_root)
    if path == old_root:
        return new_root

    old_prefix = child_prefix(old_root)
    if not path.startswith(old_prefix):
        raise ValueError(f"{path!r} is not under {old_root!r}")

    tail = path[len(old_prefix):]
    new_sep = separator_for(new_root)
    if new_sep != separator_for(old_root):
        tail = tail.replace(separator_for(old_root), new_sep)
    return child_prefix(new_root) + tail


def basename(path: str) -> str:
    """Get the final component of a path; roots are their own name."""
    path = normalize_path(path)
    name = re.split(r"[\\/]", path)[-1]
    return name or path


def sibling(path: str, new_name: str) -> str:
    """Get the path of ``new_name`` in the same folder as ``path``."""
    path = normalize_path(path)
    if not new_name or re.search(r"[\\/]", new_name):
        raise ValueError(f"Invalid file name: {new_name!r}")

    sep = separator_for(path)
    head, found, _ = path.rpartition(sep)
    if not found:
        return new_name
    if not head or _DRIVE_ROOT.match(head):
        head += sep
        return head + new_name
    return head + sep + new_name
