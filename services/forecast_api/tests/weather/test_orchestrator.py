"""
Tests for CacheOrchestrator — cache-aside routing and write-back.

All tests run against FakeRedis + FakeWeatherSource.
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from services.forecast_api.tests.helpers.fakes import FakeRedis, FakeWeatherSource
from services.forecast_api.weather.cache import CacheStore
from services.forecast_api.weather.errors import CacheMissError, ErrorKind, ResolutionError
from services.forecast_api.weather.models import ForecastEntry, ForecastResult, dump_forecast
from services.forecast_api.weather.orchestrator import CacheOrchestrator
from services.forecast_api.weather.pipeline import ResolutionPipeline
from services.forecast_api.weather.source import WeatherSourceError

pytestmark = pytest.mark.asyncio

CHICAGO = ForecastResult(city={"name": "chicago"}, entries=[ForecastEntry(dt=123)])


def _orchestrator(source: FakeWeatherSource, redis=None, **kwargs) -> CacheOrchestrator:
    pipeline = ResolutionPipeline(source, api_key="k")
    return CacheOrchestrator(pipeline, CacheStore(redis), **kwargs)


# ---------------------------------------------------------------------------
# read_cached
# ---------------------------------------------------------------------------

class TestReadCached:
    async def test_hit(self, orchestrator, fake_redis, fake_source):
        await fake_redis.set("weather:chicago", dump_forecast(CHICAGO))

        assert await orchestrator.read_cached("chicago") == CHICAGO
        assert fake_source.calls == []

    async def test_miss_raises_cache_miss(self, orchestrator, fake_source):
        with pytest.raises(CacheMissError) as exc_info:
            await orchestrator.read_cached("chicago")

        assert exc_info.value.kind is ErrorKind.CACHE_MISS
        assert exc_info.value.message == "Could not find city in cache: chicago"
        assert fake_source.calls == []


# ---------------------------------------------------------------------------
# resolve_and_cache
# ---------------------------------------------------------------------------

class TestResolveAndCache:
    async def test_returns_resolved_value_and_writes_once(self, orchestrator, fake_redis):
        result = await orchestrator.resolve_and_cache("chicago")
        await orchestrator.drain()

        assert result == CHICAGO
        assert fake_redis.set_calls == [("weather:chicago", dump_forecast(CHICAGO), 600)]

    async def test_written_value_reads_back(self, orchestrator):
        await orchestrator.resolve_and_cache("chicago")
        await orchestrator.drain()

        assert await orchestrator.exists("chicago")
        assert await orchestrator.read_cached("chicago") == CHICAGO

    async def test_write_back_is_scheduled_not_awaited(self, fake_source):
        gate = asyncio.Event()
        redis = FakeRedis()
        original_set = redis.set

        async def slow_set(*args, **kwargs):
            await gate.wait()
            return await original_set(*args, **kwargs)

        redis.set = slow_set
        orchestrator = _orchestrator(fake_source, redis)

        result = await orchestrator.resolve_and_cache("chicago")

        assert result == CHICAGO
        assert orchestrator.pending_writes == 1
        assert redis.set_calls == []

        gate.set()
        await orchestrator.drain()
        assert orchestrator.pending_writes == 0
        assert len(redis.set_calls) == 1

    async def test_inline_write_back(self, fake_source):
        redis = FakeRedis()
        orchestrator = _orchestrator(fake_source, redis, background_write_back=False)

        await orchestrator.resolve_and_cache("chicago")

        assert orchestrator.pending_writes == 0
        assert len(redis.set_calls) == 1

    async def test_custom_ttl(self, fake_source):
        redis = FakeRedis()
        orchestrator = _orchestrator(fake_source, redis, ttl_seconds=30)

        await orchestrator.resolve_and_cache("chicago")
        await orchestrator.drain()

        assert redis.ttls["weather:chicago"] == 30

    async def test_resolution_failure_writes_nothing(self, fake_redis):
        source = FakeWeatherSource(forecast=WeatherSourceError("boom"))
        orchestrator = _orchestrator(source, fake_redis)

        with pytest.raises(ResolutionError):
            await orchestrator.resolve_and_cache("chicago")
        await orchestrator.drain()

        assert fake_redis.set_calls == []
        assert await orchestrator.exists("chicago") is False

    async def test_empty_geocode_writes_nothing(self, fake_redis):
        source = FakeWeatherSource(geocode=[])
        orchestrator = _orchestrator(source, fake_redis)

        with pytest.raises(ResolutionError) as exc_info:
            await orchestrator.resolve_and_cache("unknowncity")
        await orchestrator.drain()

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert source.forecast_calls == []
        assert fake_redis.set_calls == []

    async def test_write_failure_does_not_fail_resolution(self, fake_source, caplog):
        redis = FakeRedis()
        redis.set = AsyncMock(side_effect=ConnectionError("redis down"))
        orchestrator = _orchestrator(fake_source, redis)

        with caplog.at_level(logging.WARNING):
            result = await orchestrator.resolve_and_cache("chicago")
            await orchestrator.drain()

        assert result == CHICAGO
        assert "write-back failed" in caplog.text

    async def test_inline_write_failure_does_not_fail_resolution(self, fake_source):
        redis = FakeRedis()
        redis.set = AsyncMock(side_effect=ConnectionError("redis down"))
        orchestrator = _orchestrator(fake_source, redis, background_write_back=False)

        assert await orchestrator.resolve_and_cache("chicago") == CHICAGO


# ---------------------------------------------------------------------------
# get_or_resolve
# ---------------------------------------------------------------------------

class TestGetOrResolve:
    async def test_hit_makes_no_source_calls(self, orchestrator, fake_redis, fake_source):
        await fake_redis.set("weather:chicago", dump_forecast(CHICAGO))
        fake_redis.set_calls.clear()

        result = await orchestrator.get_or_resolve("chicago")

        assert result == CHICAGO
        assert fake_source.calls == []
        assert fake_redis.set_calls == []

    async def test_miss_resolves_then_serves_from_cache(self, orchestrator, fake_source):
        first = await orchestrator.get_or_resolve("chicago")
        await orchestrator.drain()
        second = await orchestrator.get_or_resolve("chicago")

        assert first == second == CHICAGO
        assert len(fake_source.geocode_calls) == 1
        assert len(fake_source.forecast_calls) == 1

    async def test_expiry_between_exists_and_read_raises_cache_miss(self, orchestrator, fake_source):
        orchestrator.exists = AsyncMock(return_value=True)

        with pytest.raises(CacheMissError):
            await orchestrator.get_or_resolve("chicago")

        assert fake_source.calls == []

    async def test_concurrent_misses_both_resolve(self, orchestrator, fake_redis, fake_source):
        results = await asyncio.gather(
            orchestrator.get_or_resolve("chicago"),
            orchestrator.get_or_resolve("chicago"),
        )
        await orchestrator.drain()

        assert results[0] == results[1] == CHICAGO
        assert len(fake_source.forecast_calls) == 2
        assert len(fake_redis.set_calls) == 2


# ---------------------------------------------------------------------------
# drain
# ---------------------------------------------------------------------------

class TestDrain:
    async def test_noop_when_idle(self, orchestrator):
        await orchestrator.drain()
        assert orchestrator.pending_writes == 0

    async def test_completes_after_failed_write(self, fake_source):
        redis = FakeRedis()
        redis.set = AsyncMock(side_effect=ConnectionError("redis down"))
        orchestrator = _orchestrator(fake_source, redis)

        await orchestrator.resolve_and_cache("chicago")

        await orchestrator.drain()
        assert orchestrator.pending_writes == 0
