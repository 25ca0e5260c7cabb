"""Open-Meteo geocoding, air-quality and forecast clients."""

import httpx
from pydantic import ValidationError

from app import config
from app.errors import UpstreamError
from app.logging_config import logger
from app.models.location import GeoLocation
from app.models.open_meteo import AIR_QUALITY_FIELDS, AirQuality, CurrentWeather


def _get_json(
    *,
    url: str,
    params: dict,
    event_prefix: str,
    log_context: dict,
    error_message: str,
) -> dict:
    """Execute a single HTTP GET and decode the JSON body.

    Args:
        url: The URL to call.
        params: Query parameters to include in the request.
        event_prefix: Log event prefix for consistent names.
        log_context: Extra log fields for all events.
        error_message: Error message to wrap in UpstreamError.

    Returns:
        The decoded JSON object.

    Raises:
        UpstreamError: On network failure, non-2xx status, or a body that is
            not a JSON object.
    """
    try:
        response = httpx.get(url, params=params)
        logger.info(
            f"{event_prefix}_RESPONSE", **log_context, status=response.status_code
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            f"{event_prefix}_BAD_STATUS",
            **log_context,
            status=exc.response.status_code,
            body=exc.response.text,
        )
        raise UpstreamError(error_message) from exc
    except httpx.RequestError as exc:
        logger.error(f"{event_prefix}_REQUEST_FAILED", **log_context, error=str(exc))
        raise UpstreamError(error_message) from exc

    try:
        data = response.json()
    except ValueError as exc:
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error=str(exc))
        raise UpstreamError(error_message) from exc
    if not isinstance(data, dict):
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error="not an object")
        raise UpstreamError(error_message)
    return data


def geocode(name: str, count: int = 1) -> list[GeoLocation]:
    """Resolve a place name to candidate locations.

    Args:
        name: Place name to search for.
        count: Maximum number of results to request.

    Returns:
        Matching locations, best first. Empty when nothing matched.

    Raises:
        UpstreamError: If the request fails or a result is malformed.
    """
    data = _get_json(
        url=config.GEOCODING_API_URL,
        params={"name": name, "count": count, "language": "en", "format": "json"},
        event_prefix="GEOCODING",
        log_context={"query": name},
        error_message="City lookup failed",
    )
    results = data.get("results") or []
    logger.info("GEOCODING_RESULTS", query=name, count=len(results))
    try:
        return [GeoLocation.model_validate(result) for result in results]
    except (TypeError, ValidationError) as exc:
        logger.error("GEOCODING_BAD_PAYLOAD", query=name, error=str(exc))
        raise UpstreamError("City lookup failed") from exc


def _current_block(data: dict, event_prefix: str, log_context: dict, error_message: str):
    current = data.get("current")
    if not isinstance(current, dict):
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error="missing current")
        raise UpstreamError(error_message)
    return current


def get_air_quality(latitude: float, longitude: float) -> AirQuality:
    """Fetch current pollutant concentrations and US AQI for a coordinate.

    Raises:
        UpstreamError: If the request fails or the payload is malformed.
    """
    log_context = {"latitude": latitude, "longitude": longitude}
    data = _get_json(
        url=config.AIR_QUALITY_API_URL,
        params={
            "latitude": latitude,
            "longitude": longitude,
            "current": ",".join(AIR_QUALITY_FIELDS),
        },
        event_prefix="AIR_QUALITY",
        log_context=log_context,
        error_message="Air quality lookup failed",
    )
    current = _current_block(data, "AIR_QUALITY", log_context, "Air quality lookup failed")
    try:
        return AirQuality.model_validate(current)
    except ValidationError as exc:
        logger.error("AIR_QUALITY_BAD_PAYLOAD", **log_context, error=str(exc))
        raise UpstreamError("Air quality lookup failed") from exc


def get_current_weather(latitude: float, longitude: float) -> CurrentWeather:
    """Fetch the current 2m temperature for a coordinate.

    Raises:
        UpstreamError: If the request fails or the payload is malformed.
    """
    log_context = {"latitude": latitude, "longitude": longitude}
    data = _get_json(
        url=config.WEATHER_API_URL,
        params={"latitude": latitude, "longitude": longitude, "current": "temperature_2m"},
        event_prefix="WEATHER",
        log_context=log_context,
        error_message="Weather lookup failed",
    )
    current = _current_block(data, "WEATHER", log_context, "Weather lookup failed")
    try:
        return CurrentWeather.model_validate(current)
    except ValidationError as exc:
        logger.error("WEATHER_BAD_PAYLOAD", **log_context, error=str(exc))
        raise UpstreamError("Weather lookup failed") from exc
