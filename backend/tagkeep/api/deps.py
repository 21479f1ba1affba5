"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends

from tagkeep.db import Database, SqlDialect, get_database
from tagkeep.services.tracking import FileTracker


def get_dialect(database: Database = Depends(get_database)) -> SqlDialect:
    """Dependency for the probed backend adapter."""
    return database.dialect


def get_tracker(database: Database = Depends(get_database)) -> FileTracker:
    """Dependency for the file event tracker."""
    return FileTracker(database)
