"""
CacheOrchestrator — cache-aside around ResolutionPipeline.

    get_or_resolve(key)
        exists(key) ?  read_cached(key)
                    :  resolve_and_cache(key)

Existence is a routing hint only: an entry can expire between exists() and
the read, in which case read_cached() raises CacheMissError.

resolve_and_cache() never re-checks the cache after resolving. Two requests
that miss on the same key at the same time both resolve and both write;
the last write wins and the data is equivalent.

Write-back is fire-and-forget by default: the write is scheduled as an
asyncio task and the freshly resolved result is returned immediately. A
failed write is logged inside the write-back task and never reaches the
caller. ``drain()`` waits for outstanding writes (shutdown, tests).
"""

from __future__ import annotations

import asyncio
import logging

from services.forecast_api.weather.cache import CacheStore
from services.forecast_api.weather.errors import CacheMissError
from services.forecast_api.weather.models import ForecastResult
from services.forecast_api.weather.pipeline import ResolutionPipeline

logger = logging.getLogger(__name__)

# Redis TTL for a resolved forecast
_CACHE_TTL_SECONDS = 600


class CacheOrchestrator:
    """
    Usage:
        orchestrator = CacheOrchestrator(pipeline, store)
        result = await orchestrator.get_or_resolve("chicago")
        ...
        await orchestrator.drain()   # on shutdown
    """

    def __init__(
        self,
        pipeline: ResolutionPipeline,
        store: CacheStore,
        ttl_seconds: int = _CACHE_TTL_SECONDS,
        background_write_back: bool = True,
    ) -> None:
        self._pipeline = pipeline
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._background_write_back = background_write_back
        # Strong refs so pending write-backs are not garbage collected mid-flight
        self._pending: set[asyncio.Task] = set()

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Cache-aside operations
    # ------------------------------------------------------------------

    async def exists(self, key: str) -> bool:
        return await self._store.exists(key)

    async def read_cached(self, key: str) -> ForecastResult:
        result = await self._store.get(key)
        if result is None:
            logger.info("Weather cache miss on read: key=%s", key)
            raise CacheMissError(key)
        return result

    async def resolve_and_cache(self, key: str) -> ForecastResult:
        """Resolve ``key`` upstream, schedule the cache write, return the result.

        ResolutionError propagates and nothing is written.
        """
        result = await self._pipeline.resolve(key)

        if self._background_write_back:
            task = asyncio.create_task(self._write_back(key, result))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        else:
            await self._write_back(key, result)

        return result

    async def get_or_resolve(self, key: str) -> ForecastResult:
        if await self.exists(key):
            logger.debug("Serving weather from cache: key=%s", key)
            return await self.read_cached(key)
        return await self.resolve_and_cache(key)

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    async def _write_back(self, key: str, result: ForecastResult) -> None:
        try:
            await self._store.set(key, result, self._ttl_seconds)
        except Exception:
            logger.warning("Weather cache write-back failed: key=%s", key, exc_info=True)
            return
        logger.info("Added city weather to cache: key=%s ttl=%ds", key, self._ttl_seconds)

    async def drain(self) -> None:
        """Wait for every outstanding write-back to finish."""
        if not self._pending:
            return
        pending = list(self._pending)
        logger.debug("Draining %d pending weather cache writes", len(pending))
        await asyncio.gather(*pending, return_exceptions=True)
