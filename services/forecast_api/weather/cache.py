"""
Weather cache — two tiers behind one get / set / exists interface.

Tier 1: in-process ``cachetools.TLRUCache`` (1000 entries) — absorbs bursts
        for the same city without a network hop. Each entry expires at
        min(requested ttl, 60 s), so it never outlives its Redis copy.
        With no Redis the requested ttl applies uncapped.
Tier 2: Redis — shared across workers; entries expire via SET ... EX.

Redis key format:  weather:{city_key}
Value:             ForecastResult JSON (``list`` alias for entries)

Callers pass an already canonical (lower-case) city key. Reads check tier 1
first, then Redis, promoting Redis hits into tier 1. Read failures against
Redis degrade to a miss with a warning. Writes go to both tiers; a Redis
write failure raises CacheWriteError so the orchestrator can log it.

A ``None`` Redis client makes the store local-only.
Entries promoted from a Redis read get the local bound (remaining Redis TTL
is not fetched).
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from cachetools import TLRUCache

from services.forecast_api.weather.errors import CacheWriteError
from services.forecast_api.weather.models import ForecastResult, dump_forecast, load_forecast

logger = logging.getLogger(__name__)

_LOCAL_MAXSIZE = 1000
_LOCAL_TTL_SECONDS = 60


def _redis_key(key: str) -> str:
    return f"weather:{key}"


def _entry_expiry(key: str, entry: tuple[ForecastResult, float], now: float) -> float:
    return now + entry[1]


class CacheStore:
    """
    Usage:
        store = CacheStore(redis_client)
        if await store.exists("chicago"):
            result = await store.get("chicago")
        await store.set("chicago", result, ttl_seconds=600)
    """

    def __init__(
        self,
        redis: Any,
        local_maxsize: int = _LOCAL_MAXSIZE,
        local_ttl_seconds: int = _LOCAL_TTL_SECONDS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            redis: An async Redis client (redis.asyncio compatible).
                   May be None — the store then serves from tier 1 only.
            local_maxsize: Max entries held in the in-process tier.
            local_ttl_seconds: Upper bound on an in-process entry's lifetime
                   while Redis is configured.
            timer: Clock for in-process expiry.
        """
        self._redis = redis
        self._local_ttl_seconds = local_ttl_seconds
        # value is (result, ttl_seconds); expiry is computed per entry
        self._local: TLRUCache[str, tuple[ForecastResult, float]] = TLRUCache(
            maxsize=local_maxsize, ttu=_entry_expiry, timer=timer
        )

    def _local_ttl(self, ttl_seconds: float) -> float:
        if self._redis is None:
            return ttl_seconds
        return min(ttl_seconds, self._local_ttl_seconds)

    async def exists(self, key: str) -> bool:
        if key in self._local:
            return True
        if self._redis is None:
            return False

        try:
            return bool(await self._redis.exists(_redis_key(key)))
        except Exception:
            logger.warning("Weather cache EXISTS failed for key=%s", key, exc_info=True)
            return False

    async def get(self, key: str) -> ForecastResult | None:
        """Return the cached ForecastResult for ``key``, or None on miss / unavailable."""
        hit = self._local.get(key)
        if hit is not None:
            logger.debug("Weather cache local hit: %s", key)
            return hit[0]

        if self._redis is None:
            return None

        try:
            raw = await self._redis.get(_redis_key(key))
        except Exception:
            logger.warning("Weather cache GET failed for key=%s", key, exc_info=True)
            return None

        if raw is None:
            logger.debug("Weather cache miss: %s", key)
            return None

        try:
            result = load_forecast(raw)
        except ValueError:
            logger.warning("Weather cache entry for key=%s is not a valid forecast, ignoring", key)
            return None

        self._local[key] = (result, self._local_ttl_seconds)
        logger.debug("Weather cache hit: %s", key)
        return result

    async def set(self, key: str, value: ForecastResult, ttl_seconds: int) -> None:
        """Write ``value`` to both tiers. Raises CacheWriteError if Redis rejects it."""
        self._local[key] = (value, self._local_ttl(ttl_seconds))

        if self._redis is None:
            return

        try:
            await self._redis.set(_redis_key(key), dump_forecast(value), ex=ttl_seconds)
        except Exception as exc:
            raise CacheWriteError(key, exc) from exc
        logger.debug("Weather cached: key=%s ttl=%ds", key, ttl_seconds)
