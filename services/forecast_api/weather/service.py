"""
LookupService — the single entry point the HTTP layer calls.

    lookup(city)              cache-aside: cached forecast, or resolve + cache
    lookup_cached_only(city)  cache only: CacheMissError when absent

City names are canonicalized (trimmed, lower-cased) before touching the cache
or the pipeline, so "Chicago", "CHICAGO" and " chicago " share one key.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from services.forecast_api.config import Settings
from services.forecast_api.weather.cache import CacheStore
from services.forecast_api.weather.errors import (
    CacheMissError,
    ErrorKind,
    ResolutionError,
    Stage,
)
from services.forecast_api.weather.models import ForecastResult
from services.forecast_api.weather.orchestrator import CacheOrchestrator
from services.forecast_api.weather.pipeline import ResolutionPipeline
from services.forecast_api.weather.source import WeatherSource

logger = logging.getLogger(__name__)


def canonicalize(city_raw: str) -> str:
    """'  New York ' -> 'new york'"""
    return city_raw.strip().lower()


class LookupService:
    """
    Usage:
        service = LookupService(orchestrator)
        result = await service.lookup("Chicago")
    """

    def __init__(self, orchestrator: CacheOrchestrator) -> None:
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> CacheOrchestrator:
        return self._orchestrator

    def _key(self, city_raw: str) -> str:
        key = canonicalize(city_raw)
        if not key:
            raise ResolutionError("City name is required", ErrorKind.NOT_FOUND, Stage.GEOCODE)
        return key

    async def lookup(self, city_raw: str) -> ForecastResult:
        """Return the forecast for ``city_raw``, resolving upstream on a cache miss.

        An entry that expires between the existence check and the read is
        resolved like any other miss.

        Raises:
            ResolutionError: geocoding or forecasting failed.
        """
        key = self._key(city_raw)
        try:
            return await self._orchestrator.get_or_resolve(key)
        except CacheMissError:
            logger.info("Weather cache entry expired before read, resolving: key=%s", key)
            return await self._orchestrator.resolve_and_cache(key)

    async def lookup_cached_only(self, city_raw: str) -> ForecastResult:
        """Return the cached forecast for ``city_raw`` without ever calling upstream.

        Raises:
            CacheMissError: nothing cached for this city.
        """
        return await self._orchestrator.read_cached(self._key(city_raw))


def build_lookup_service(
    settings: Settings,
    redis: Any,
    http_client: httpx.AsyncClient,
) -> LookupService:
    """Wire WeatherSource -> pipeline -> cache -> orchestrator from settings.

    ``redis`` may be None (local-only cache). The http client and redis
    connection stay owned by the caller.
    """
    if not settings.openweathermap_api_key:
        logger.warning("OPENWEATHERMAP_API_KEY not set; upstream lookups will be rejected")

    source = WeatherSource(
        client=http_client,
        base_url=settings.openweathermap_base_url,
        timeout_s=settings.weather_api_timeout_s,
    )
    pipeline = ResolutionPipeline(
        source,
        api_key=settings.openweathermap_api_key,
        units=settings.openweathermap_units,
    )
    store = CacheStore(
        redis,
        local_maxsize=settings.local_cache_size,
        local_ttl_seconds=settings.local_cache_ttl_seconds,
    )
    orchestrator = CacheOrchestrator(
        pipeline,
        store,
        ttl_seconds=settings.cache_ttl_seconds,
        background_write_back=settings.cache_write_back_background,
    )
    return LookupService(orchestrator)
