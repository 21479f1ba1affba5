"""FastAPI application entry point."""

from __future__ import annotations

import argparse
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tagkeep import __version__
from tagkeep.api.router import api_router
from tagkeep.core.config import get_settings, load_settings, set_settings
from tagkeep.core.errors import (
    BackendConnectionError,
    ConfigError,
    ConstraintViolationError,
    CycleDetectedError,
    DuplicateTagError,
    EmptyNameError,
    NotFoundError,
    TagKeepError,
)
from tagkeep.core.logging import get_logger, setup_logging
from tagkeep.db import close_database, init_database
from tagkeep.db.migrations import run_migrations

logger = get_logger(__name__)

ERROR_STATUS: dict[type[TagKeepError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateTagError: status.HTTP_409_CONFLICT,
    EmptyNameError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    CycleDetectedError: status.HTTP_409_CONFLICT,
    ConstraintViolationError: status.HTTP_409_CONFLICT,
    BackendConnectionError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ConfigError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: TagKeepError) -> int:
    """Get the HTTP status code for an engine error."""
    for error_type, code in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_tagkeep_error(request: Request, exc: TagKeepError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message, "code": exc.code})


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc), "code": "INVALID_INPUT"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events.

    A bad configuration or an unreachable backend stops startup.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "starting_application",
        version=__version__,
        backend=settings.db_backend,
        host=settings.host,
        port=settings.port,
    )

    database = await init_database(settings)
    if settings.auto_migrate:
        await run_migrations(database)

    yield

    await close_database()
    logger.info("shutting_down_application")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="tagkeep",
        description="Persistent hierarchical tags for files that survive moves, copies and deletes",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_exception_handler(TagKeepError, handle_tagkeep_error)
    app.add_exception_handler(ValueError, handle_value_error)

    # Include API routes
    app.include_router(api_router)

    return app


# Create the application instance
app = create_app()


def main() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    parser = argparse.ArgumentParser(description="Run the tagkeep service")
    parser.add_argument("--config", help="Path to a TOML config file")
    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e.message}") from e
    set_settings(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
