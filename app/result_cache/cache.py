"""Result caches for assembled AQI readings."""

import threading
import time
from typing import Callable, Optional, Protocol

from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from app import config
from app.logging_config import logger
from app.models.reading import AqiReading


def normalize_cache_key(city_input: str) -> str:
    """Normalize raw user input into a cache key.

    Args:
        city_input: City string exactly as the caller sent it.

    Returns:
        The lower-cased, trimmed input.
    """
    return city_input.lower().strip()


class ResultCache(Protocol):
    backend: str

    def get(self, key: str) -> Optional[AqiReading]: ...

    def set(self, key: str, reading: AqiReading) -> None: ...

    def clear(self) -> None: ...

    def ping(self) -> bool: ...


class InMemoryResultCache:
    """Process-local cache with a fixed per-entry TTL.

    Entries expire ``ttl_s`` seconds after they are written and are dropped on
    the first read past that point.
    """

    backend = "memory"

    def __init__(self, ttl_s: int = config.CACHE_TTL_S, clock: Callable[[], float] = time.monotonic):
        self.ttl_s = ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, AqiReading]] = {}

    def get(self, key: str) -> Optional[AqiReading]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, reading = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return reading

    def set(self, key: str, reading: AqiReading) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_s, reading.tagged(None))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisResultCache:
    """Cache wrapper storing AqiReading JSON in Redis with an expiry."""

    backend = "redis"

    def __init__(self, client, ttl_s: int = config.CACHE_TTL_S):
        self.redis_client: Redis = client
        self.ttl_s = ttl_s

    @staticmethod
    def _redis_key(key: str) -> str:
        return f"aqi:{key}"

    def get(self, key: str) -> Optional[AqiReading]:
        """Get a reading from Redis.

        Args:
            key: Normalized city key.

        Returns:
            The cached reading, or None on a miss or a Redis failure.
        """
        try:
            raw = self.redis_client.get(self._redis_key(key))
        except RedisError as exc:
            logger.error("REDIS_GET_READING_FAILED", key=key, error=str(exc))
            return None
        if not raw:
            return None
        try:
            return AqiReading.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("REDIS_READING_CORRUPT", key=key, error=str(exc))
            return None

    def set(self, key: str, reading: AqiReading) -> None:
        """Save a reading to Redis, expiring after ``ttl_s`` seconds.

        Args:
            key: Normalized city key.
            reading: Reading to serialize; its source tag is not stored.
        """
        try:
            self.redis_client.set(
                self._redis_key(key),
                reading.model_dump_json(exclude={"source"}),
                ex=self.ttl_s,
            )
        except RedisError as exc:
            logger.error("REDIS_SAVE_READING_FAILED", key=key, error=str(exc))

    def clear(self) -> None:
        try:
            keys = list(self.redis_client.scan_iter(match=self._redis_key("*")))
            if keys:
                self.redis_client.delete(*keys)
        except RedisError as exc:
            logger.error("REDIS_CLEAR_FAILED", error=str(exc))

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except RedisError as exc:
            logger.error("REDIS UNAVAILABLE", error=str(exc))
            return False


def build_result_cache(backend: Optional[str] = None) -> ResultCache:
    """Build the configured result cache.

    Args:
        backend: ``memory`` or ``redis``; defaults to ``CACHE_BACKEND``.

    Returns:
        A cache instance using ``CACHE_TTL_S`` as its TTL.
    """
    backend = backend or config.CACHE_BACKEND
    if backend == "memory":
        return InMemoryResultCache(ttl_s=config.CACHE_TTL_S)
    if backend == "redis":
        client = Redis(
            host=config.REDIS_HOST,
            port=config.REDIS_PORT,
            db=config.REDIS_DB,
            decode_responses=True,
        )
        return RedisResultCache(client, ttl_s=config.CACHE_TTL_S)
    raise ValueError(f"Unknown cache backend: {backend}")
