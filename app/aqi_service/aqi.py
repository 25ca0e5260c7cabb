"""City AQI lookup: cache, geocoding, and Open-Meteo readings."""

from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable

from prometheus_client import Counter
from pydantic import ValidationError

from app.errors import CityNotFoundError, UpstreamError
from app.logging_config import logger
from app.models.reading import AqiReading
from app.open_meteo import api
from app.result_cache.cache import ResultCache, build_result_cache, normalize_cache_key

CACHE_LOOKUPS = Counter(
    "aqi_cache_lookups_total", "AQI result cache lookups", ["result"]
)


def geocoding_query(city_input: str) -> str:
    """Strip region and country suffixes from a city string.

    "Ahmedabad, Gujarat, India" and "Ahmedabad (Gujarat), India" both become
    "Ahmedabad".

    Args:
        city_input: City string exactly as the caller sent it.

    Returns:
        The text before the first comma, then before the first parenthesis,
        stripped.
    """
    name = city_input.split(",", 1)[0].strip()
    return name.split("(", 1)[0].strip()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AqiService:
    """Looks up current AQI readings for free-text city names.

    The cache key is the normalized raw input, while geocoding uses the
    truncated name, so "Paris" and "Paris, France" are cached separately.
    """

    def __init__(
        self,
        cache: ResultCache,
        geocode: Callable = api.geocode,
        get_air_quality: Callable = api.get_air_quality,
        get_current_weather: Callable = api.get_current_weather,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.cache = cache
        self._geocode = geocode
        self._get_air_quality = get_air_quality
        self._get_current_weather = get_current_weather
        self._now = now

    def lookup(self, city_input: str) -> AqiReading:
        """Return the current reading for a city, from cache or upstream.

        Args:
            city_input: City string exactly as the caller sent it.

        Returns:
            An AqiReading tagged ``source="cache"`` or ``source="api"``.

        Raises:
            CityNotFoundError: If geocoding returns no results.
            UpstreamError: If any upstream call fails.
        """
        key = normalize_cache_key(city_input)
        if (cached := self.cache.get(key)) is not None:
            CACHE_LOOKUPS.labels(result="hit").inc()
            logger.info("AQI_CACHE_HIT", city=city_input, key=key)
            return cached.tagged("cache")
        CACHE_LOOKUPS.labels(result="miss").inc()

        query = geocoding_query(city_input)
        logger.info("AQI_CACHE_MISS", city=city_input, key=key, query=query)

        locations = self._geocode(query, count=1)
        if not locations:
            logger.error("CITY_NOT_FOUND", city=city_input, query=query)
            raise CityNotFoundError("City not found")
        location = locations[0]
        logger.info(
            "CITY_RESOLVED",
            name=location.name,
            country=location.country,
            latitude=location.latitude,
            longitude=location.longitude,
        )

        air_quality = self._get_air_quality(location.latitude, location.longitude)
        weather = self._get_current_weather(location.latitude, location.longitude)

        try:
            reading = AqiReading.from_upstream(location, air_quality, weather, self._now())
        except ValidationError as exc:
            logger.error("AQI_MERGE_FAILED", city=city_input, error=str(exc))
            raise UpstreamError("Failed to fetch AQI data") from exc

        self.cache.set(key, reading)
        logger.info("AQI_FETCHED", city=city_input, aqi=reading.aqi)
        return reading.tagged("api")


@lru_cache(maxsize=1)
def get_aqi_service() -> AqiService:
    """Return the process-wide AqiService built from configuration."""
    return AqiService(cache=build_result_cache())
