"""Schema migration runner.

Applies the numbered Alembic revisions in ``tagkeep/migrations`` against the
live engine. Alembic records applied versions in ``alembic_version``, so each
revision runs once. Revisions that need a backend feature (pg_trgm) check the
dialect themselves and do nothing elsewhere, which keeps the run green on
SQLite.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection

from tagkeep.core.config import load_settings
from tagkeep.core.logging import get_logger, setup_logging
from tagkeep.db.session import Database

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


def build_alembic_config(url: str | None = None) -> Config:
    """Build an Alembic config pointing at the bundled migration scripts."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    if url:
        # ConfigParser interpolation treats '%' specially
        cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


def head_revision() -> str | None:
    """Get the newest revision shipped with the package."""
    return ScriptDirectory.from_config(build_alembic_config()).get_current_head()


async def current_revision(database: Database) -> str | None:
    """Get the revision currently applied to the database."""

    def _current(connection: Connection) -> str | None:
        return MigrationContext.configure(connection).get_current_revision()

    async with database.connection_errors():
        async with database.engine.connect() as conn:
            return await conn.run_sync(_current)


async def run_migrations(database: Database, revision: str = "head") -> str | None:
    """Upgrade the database schema to ``revision``.

    Returns:
        The revision applied after the run.
    """
    cfg = build_alembic_config()
    before = await current_revision(database)

    def _upgrade(connection: Connection) -> None:
        cfg.attributes["connection"] = connection
        command.upgrade(cfg, revision)

    async with database.connection_errors():
        async with database.engine.begin() as conn:
            await conn.run_sync(_upgrade)

    after = await current_revision(database)
    await database.probe_capabilities()
    if before != after:
        logger.info(
            "migrations_applied",
            backend=database.kind.value,
            from_revision=before,
            to_revision=after,
        )
    else:
        logger.debug("migrations_up_to_date", revision=after)
    return after


async def _migrate(config_file: str | None, revision: str) -> None:
    settings = load_settings(config_file)
    setup_logging(settings)
    database = Database.from_settings(settings)
    try:
        await database.init()
        await run_migrations(database, revision)
    finally:
        await database.close()


def main() -> None:
    """Apply migrations from the command line."""
    parser = argparse.ArgumentParser(description="Apply tagkeep schema migrations")
    parser.add_argument("--config", help="Path to a TOML config file")
    parser.add_argument("--revision", default="head", help="Target revision")
    args = parser.parse_args()
    asyncio.run(_migrate(args.config, args.revision))


if __name__ == "__main__":
    main()
