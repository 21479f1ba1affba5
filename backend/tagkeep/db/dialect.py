"""Backend adapter: the one place that knows which SQL engine is active.

Stores ask the adapter for dialect-specific constructs (the ``ON CONFLICT``
capable insert and the text match predicate) instead of branching on the
backend themselves.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Table, func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

# pg_trgm similarity() threshold for fuzzy matches
SIMILARITY_THRESHOLD = 0.3


class BackendKind(str, enum.Enum):
    """Supported relational engines."""

    POSTGRES = "postgres"
    SQLITE = "sqlite"

    @classmethod
    def from_dialect_name(cls, name: str) -> BackendKind:
        if name == "postgresql":
            return cls.POSTGRES
        if name == "sqlite":
            return cls.SQLITE
        raise ValueError(f"Unsupported SQL dialect: {name}")


@dataclass(frozen=True)
class Capabilities:
    """Feature flags that differ between backends."""

    fuzzy_search: bool = False
    native_json: bool = False

    @classmethod
    def defaults_for(cls, kind: BackendKind) -> Capabilities:
        if kind is BackendKind.POSTGRES:
            return cls(fuzzy_search=False, native_json=True)
        return cls(fuzzy_search=False, native_json=False)


class SqlDialect:
    """Dialect-appropriate statement builders for the active backend."""

    def __init__(self, kind: BackendKind, capabilities: Capabilities | None = None):
        self.kind = kind
        self.capabilities = capabilities or Capabilities.defaults_for(kind)

    @classmethod
    def for_session(cls, session: AsyncSession) -> SqlDialect:
        """Build an adapter from the engine a session is bound to.

        Capabilities fall back to the backend defaults; the connection
        manager's probed adapter should be preferred when one is available.
        """
        bind = session.bind
        if bind is None:
            raise ValueError("Session is not bound to an engine")
        return cls(BackendKind.from_dialect_name(bind.dialect.name))

    def insert(self, table: Table | Any):
        """Get an INSERT construct that supports ``on_conflict_do_nothing``."""
        if self.kind is BackendKind.POSTGRES:
            return postgresql.insert(table)
        return sqlite.insert(table)

    def text_match(self, column: Any, keyword: str) -> ColumnElement[bool]:
        """Case-insensitive match of ``keyword`` against ``column``.

        Uses trigram similarity in addition to substring matching where the
        backend supports it; plain substring matching otherwise.
        """
        substring = column.icontains(keyword, autoescape=True)
        if self.capabilities.fuzzy_search:
            return or_(substring, func.similarity(column, keyword) > SIMILARITY_THRESHOLD)
        return substring

    def __repr__(self) -> str:
        return f"<SqlDialect {self.kind.value} {self.capabilities}>"
