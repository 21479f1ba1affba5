"""Application configuration using pydantic-settings.

Precedence, highest first: explicit TOML config file, environment variables
(``TAGKEEP_*`` and ``.env``), built-in defaults.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tagkeep.core.errors import ConfigError

CONFIG_FILE_ENV = "TAGKEEP_CONFIG_FILE"


class Settings(BaseSettings):
    """Application settings loaded from a config file and environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TAGKEEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "tagkeep"
    version: str = "0.3.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=7821, description="HTTP port for the UI bridge")

    # Database backend
    db_backend: Literal["postgres", "sqlite"] = Field(
        default="sqlite",
        description="Which relational engine to use",
    )
    database_url: str | None = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the per-backend fields below",
    )
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "file_manager"
    db_user: str = "postgres"
    db_password: str = ""
    sqlite_path: Path = Field(
        default=Path("./data/tagkeep.db"),
        description="SQLite database file (':memory:' for an in-memory store)",
    )

    # Pool
    pool_size: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum pooled connections",
    )
    pool_timeout: int = Field(
        default=30,
        ge=1,
        le=600,
        description="Seconds to wait for a pooled connection",
    )

    auto_migrate: bool = Field(
        default=True,
        description="Apply pending schema migrations at startup",
    )

    @model_validator(mode="after")
    def _check_backend_fields(self) -> Settings:
        if self.database_url is None and self.db_backend == "postgres" and not self.db_name:
            raise ValueError("db_name is required for the postgres backend")
        return self

    @property
    def sqlalchemy_url(self) -> str:
        """Get the async SQLAlchemy URL for the configured backend."""
        if self.database_url:
            return self.database_url
        if self.db_backend == "postgres":
            return (
                f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
                f"@{self.db_host}:{self.db_port}/{self.db_name}"
            )
        if str(self.sqlite_path) == ":memory:":
            return "sqlite+aiosqlite:///:memory:"
        return f"sqlite+aiosqlite:///{self.sqlite_path}"


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a TOML config file into a flat settings mapping.

    A ``[database]`` table is flattened onto the top level so both layouts
    are accepted.

    Raises:
        ConfigError: If the file is missing or is not valid TOML.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    database = data.pop("database", None)
    if isinstance(database, dict):
        for key, value in database.items():
            data.setdefault(key, value)

    return data


def load_settings(config_file: Path | str | None = None) -> Settings:
    """Load settings once at startup.

    Args:
        config_file: Optional explicit TOML file. Falls back to the
            ``TAGKEEP_CONFIG_FILE`` environment variable.

    Returns:
        Validated settings.

    Raises:
        ConfigError: If the file cannot be read or the values are invalid.
    """
    if config_file is None and (env_file := os.environ.get(CONFIG_FILE_ENV)):
        config_file = env_file

    file_values: dict[str, Any] = {}
    if config_file is not None:
        file_values = read_config_file(Path(config_file))

    try:
        # Init kwargs outrank environment sources in pydantic-settings
        return Settings(**file_values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(value: Settings | None) -> None:
    """Replace the process-wide settings (used at startup and in tests)."""
    global _settings
    _settings = value
