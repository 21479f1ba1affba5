"""Database package for tagkeep."""

from tagkeep.db.base import Base
from tagkeep.db.dialect import BackendKind, Capabilities, SqlDialect
from tagkeep.db.session import (
    Database,
    close_database,
    get_database,
    get_db,
    init_database,
    set_database,
)

__all__ = [
    "BackendKind",
    "Base",
    "Capabilities",
    "Database",
    "SqlDialect",
    "close_database",
    "get_database",
    "get_db",
    "init_database",
    "set_database",
]
