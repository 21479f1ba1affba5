"""Tri-state field values for partial updates.

A field passed as ``UNSET`` is left unchanged, ``None`` clears it, and any
other value sets it.
"""

from __future__ import annotations

from typing import Any, Final, TypeVar, Union

T = TypeVar("T")


class _Unset:
    """Marker type for a field the caller did not provide."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

Patch = Union[T, None, _Unset]


def is_set(value: Any) -> bool:
    """Check whether a patch value was provided (including an explicit None)."""
    return value is not UNSET
