"""Health check response models."""

from enum import Enum

from pydantic import BaseModel


class ServiceStatus(str, Enum):
    """Availability status for dependencies."""

    available = "available"
    not_available = "not_available"


class Dependencies(BaseModel):
    """Reachability of the air-quality API and the result cache.

    ``cache`` is always available for the in-memory backend; for Redis it
    reflects a PING.
    """

    air_quality_api: ServiceStatus
    cache: ServiceStatus


class HealthResponse(BaseModel):
    """API health response payload.

    ``cache_backend`` names the configured result cache (``memory`` or
    ``redis``) so operators can tell whether readings survive a restart.
    """

    status: str
    cache_backend: str
    dependencies: Dependencies
