"""Health check endpoint."""

from fastapi import APIRouter

from tagkeep import __version__
from tagkeep.core.errors import BackendConnectionError
from tagkeep.db import get_database
from tagkeep.schemas.health import CapabilitiesResponse, HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check application health.

    Returns:
        Health status, application version and backend details.
    """
    try:
        database = get_database()
    except BackendConnectionError:
        return HealthResponse(status="degraded", version=__version__, database="disconnected")

    connected = await database.check_health()
    return HealthResponse(
        status="ok" if connected else "degraded",
        version=__version__,
        database="connected" if connected else "disconnected",
        backend=database.kind.value,
        capabilities=CapabilitiesResponse(
            fuzzy_search=database.capabilities.fuzzy_search,
            native_json=database.capabilities.native_json,
        ),
    )
