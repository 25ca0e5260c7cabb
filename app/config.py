"""Environment-driven settings for the AQI proxy."""

import os

GEOCODING_API_URL = os.getenv(
    "GEOCODING_API_URL", "https://geocoding-api.open-meteo.com/v1/search"
)
AIR_QUALITY_API_URL = os.getenv(
    "AIR_QUALITY_API_URL", "https://air-quality-api.open-meteo.com/v1/air-quality"
)
WEATHER_API_URL = os.getenv("WEATHER_API_URL", "https://api.open-meteo.com/v1/forecast")

CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory").lower()
CACHE_TTL_S = int(os.getenv("CACHE_TTL_S", "3600"))

REDIS_HOST = os.getenv("REDIS_HOST", "redis")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")
    if origin.strip()
]
