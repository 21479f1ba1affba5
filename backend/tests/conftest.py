"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from tagkeep.core.config import Settings, set_settings
from tagkeep.db import Base, Database, set_database
from tagkeep.db.models import FileRecord, FileTag, FileType, Tag

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Isolate every test from the developer's environment and .env file."""
    for name in ("TAGKEEP_CONFIG_FILE", "TAGKEEP_DATABASE_URL", "TAGKEEP_DB_BACKEND"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None, sqlite_path=":memory:", auto_migrate=False)
    set_settings(settings)
    yield settings
    set_settings(None)


@pytest.fixture
async def database():
    """Create an in-memory database with all tables and register it."""
    db = Database.from_url(TEST_DB_URL)
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await db.init()
    set_database(db)
    yield db
    set_database(None)
    await db.close()


@pytest.fixture
async def db_session(database):
    """Create a test database session."""
    async with database.session_maker() as session:
        yield session


@pytest.fixture
async def client(database):
    """Create an async test client bound to the test database."""
    from tagkeep.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client


# =============================================================================
# Helpers
# =============================================================================


async def create_test_tag(
    session,
    name: str = "work",
    parent_id: int | None = None,
    usage_count: int = 0,
) -> Tag:
    """Create a tag row directly."""
    tag = Tag(name=name, parent_id=parent_id, usage_count=usage_count)
    session.add(tag)
    await session.flush()
    return tag


async def create_test_file(
    session,
    path: str = "/home/user/doc.txt",
    file_type: FileType = FileType.FILE,
    size: int | None = None,
) -> FileRecord:
    """Create a file record row directly."""
    record = FileRecord(
        current_path=path,
        name=path.rstrip("/\\").rsplit("/", 1)[-1],
        file_type=file_type,
        size=size,
    )
    session.add(record)
    await session.flush()
    return record


async def link(session, record: FileRecord, tag: Tag, confidence: float = 1.0) -> FileTag:
    """Attach a tag to a file without touching usage counters."""
    file_tag = FileTag(file_id=record.id, tag_id=tag.id, confidence=confidence)
    session.add(file_tag)
    await session.flush()
    return file_tag
