"""Health checks for the result cache and the air-quality API."""

import httpx

from app import config
from app.logging_config import logger
from app.models.health import ServiceStatus
from app.result_cache.cache import ResultCache


def is_cache_available(cache: ResultCache) -> ServiceStatus:
    """Check the result cache backend.

    Returns:
        ServiceStatus.available when the backend responds, else not_available.
    """
    if cache.ping():
        return ServiceStatus.available
    logger.error("CACHE UNAVAILABLE", backend=cache.backend)
    return ServiceStatus.not_available


async def is_air_quality_api_available() -> bool:
    """Check the external air-quality API for availability.

    Returns:
        True if the API responds with current air-quality data.
    """
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            response = await client.get(
                config.AIR_QUALITY_API_URL,
                params={"latitude": 51.5, "longitude": -0.12, "current": "us_aqi"},
            )
            return response.status_code == 200 and "current" in response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("AIR_QUALITY_API_UNAVAILABLE", error=str(exc))
        return False
