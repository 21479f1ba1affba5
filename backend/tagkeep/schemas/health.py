"""Health check schemas."""

from __future__ import annotations

from pydantic import BaseModel


class CapabilitiesResponse(BaseModel):
    """Backend feature flags."""

    fuzzy_search: bool
    native_json: bool


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    version: str
    database: str  # "connected" or "disconnected"
    backend: str | None = None
    capabilities: CapabilitiesResponse | None = None
