"""Database connection management.

One ``Database`` per process owns the pooled async engine for whichever
backend is configured. Callers borrow a session for one logical operation
through ``transaction()``; it commits on success, rolls back on error and
always returns the connection to the pool.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import event, select, text
from sqlalchemy.engine import Result
from sqlalchemy.exc import ArgumentError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from tagkeep.core.config import Settings, get_settings
from tagkeep.core.errors import (
    BackendConnectionError,
    ConfigError,
    ConstraintViolationError,
    TagKeepError,
)
from tagkeep.core.logging import get_logger
from tagkeep.db.dialect import BackendKind, Capabilities, SqlDialect

logger = get_logger(__name__)


def _enable_sqlite_pragmas(dbapi_connection, connection_record):
    """Enable foreign keys and WAL mode on each SQLite connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.close()


def create_engine_for(
    url: str,
    pool_size: int = 10,
    pool_timeout: int = 30,
    echo: bool = False,
) -> AsyncEngine:
    """Create an async engine with backend-appropriate pool and pragmas.

    Raises:
        ConfigError: If the URL names an unsupported backend.
    """
    kwargs: dict[str, Any] = {"echo": echo, "future": True, "pool_pre_ping": True}

    if url.startswith("sqlite"):
        if ":memory:" not in url:
            db_file = url.split(":///", 1)[-1]
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)
            kwargs.update(pool_size=pool_size, pool_timeout=pool_timeout)
        kwargs["connect_args"] = {"timeout": pool_timeout}
    elif url.startswith("postgresql"):
        kwargs.update(
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            connect_args={"timeout": pool_timeout},
        )
    else:
        raise ConfigError(f"Unsupported database URL: {url.split(':', 1)[0]}")

    try:
        engine = create_async_engine(url, **kwargs)
    except (ArgumentError, ImportError) as e:
        raise ConfigError(f"Cannot create database engine: {e}") from e

    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_pragmas)

    return engine


class Database:
    """Pooled handle to the active backend."""

    def __init__(self, engine: AsyncEngine, dialect: SqlDialect | None = None):
        self.engine = engine
        self.dialect = dialect or SqlDialect(
            BackendKind.from_dialect_name(engine.dialect.name)
        )
        self.session_maker = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        """Build a database handle from application settings."""
        engine = create_engine_for(
            settings.sqlalchemy_url,
            pool_size=settings.pool_size,
            pool_timeout=settings.pool_timeout,
            echo=settings.debug,
        )
        return cls(engine)

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> Database:
        """Build a database handle from a SQLAlchemy URL."""
        return cls(create_engine_for(url, **kwargs))

    @property
    def kind(self) -> BackendKind:
        return self.dialect.kind

    @property
    def capabilities(self) -> Capabilities:
        return self.dialect.capabilities

    async def init(self) -> None:
        """Verify connectivity and probe backend capabilities.

        Raises:
            BackendConnectionError: If the backend is unreachable.
        """
        async with self.connection_errors():
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        await self.probe_capabilities()

    async def probe_capabilities(self) -> Capabilities:
        """Detect optional backend features and rebuild the adapter.

        Run again after migrations, which may install extensions.
        """
        fuzzy = False
        if self.kind is BackendKind.POSTGRES:
            async with self.connection_errors():
                async with self.engine.connect() as conn:
                    result = await conn.execute(
                        text("SELECT 1 FROM pg_extension WHERE extname = 'pg_trgm'")
                    )
                    fuzzy = result.first() is not None

        self.dialect = SqlDialect(
            self.kind,
            Capabilities(
                fuzzy_search=fuzzy,
                native_json=self.kind is BackendKind.POSTGRES,
            ),
        )
        logger.info(
            "database_capabilities_probed",
            backend=self.kind.value,
            fuzzy_search=self.capabilities.fuzzy_search,
            native_json=self.capabilities.native_json,
        )
        return self.capabilities

    @asynccontextmanager
    async def connection_errors(self) -> AsyncIterator[None]:
        """Translate driver-level failures into engine errors."""
        try:
            yield
        except TagKeepError:
            raise
        except (OperationalError, InterfaceError, PoolTimeoutError, OSError) as e:
            logger.error("database_unavailable", error=str(e))
            raise BackendConnectionError(f"Database backend unavailable: {e}") from e
        except IntegrityError as e:
            raise ConstraintViolationError(f"Integrity error: {e.orig}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Borrow a session for one logical operation inside a transaction."""
        async with self.connection_errors():
            async with self.session_maker() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

    async def execute(self, statement: Any, params: dict[str, Any] | None = None) -> int:
        """Execute a write statement in its own transaction.

        Returns:
            Number of rows affected.
        """
        async with self.transaction() as session:
            result = await session.execute(statement, params or {})
            return result.rowcount

    async def query(self, statement: Any, params: dict[str, Any] | None = None) -> list[Any]:
        """Run a read statement and return all rows."""
        async with self.transaction() as session:
            result: Result = await session.execute(statement, params or {})
            return list(result.all())

    async def check_health(self) -> bool:
        """Check that a pooled connection can run a trivial query."""
        try:
            await self.query(select(1))
        except BackendConnectionError:
            return False
        return True

    async def close(self) -> None:
        """Dispose of the engine and its pool."""
        await self.engine.dispose()
        logger.info("database_closed", backend=self.kind.value)


_database: Database | None = None


async def init_database(settings: Settings | None = None) -> Database:
    """Create, verify and register the process-wide database handle.

    Raises:
        ConfigError: If the configuration cannot produce an engine.
        BackendConnectionError: If the backend is unreachable.
    """
    global _database
    settings = settings or get_settings()
    database = Database.from_settings(settings)
    try:
        await database.init()
    except BackendConnectionError:
        await database.close()
        raise
    _database = database
    return database


def set_database(database: Database | None) -> None:
    """Register an already-built database handle (tests, embedding hosts)."""
    global _database
    _database = database


def get_database() -> Database:
    """Get the process-wide database handle.

    Raises:
        BackendConnectionError: If ``init_database`` has not run yet.
    """
    if _database is None:
        raise BackendConnectionError("Database is not initialized")
    return _database


async def close_database() -> None:
    """Close the process-wide database handle, if any."""
    global _database
    if _database is not None:
        await _database.close()
        _database = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting a transactional database session.

    Yields:
        An async database session.
    """
    async with get_database().transaction() as session:
        yield session
