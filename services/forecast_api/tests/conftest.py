"""
Shared test fixtures for the forecast-api test suite.

Provides:
- FakeRedis / FakeWeatherSource backed lookup stack (no network, no Redis)
- async FastAPI test client with the stack injected into app.state
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_URL", "redis://localhost:26379/0")
os.environ.setdefault("OPENWEATHERMAP_API_KEY", "test-key")
os.environ.setdefault("SENTRY_DSN", "")

from services.forecast_api.tests.helpers.fakes import FakeRedis, FakeWeatherSource  # noqa: E402
from services.forecast_api.weather.cache import CacheStore  # noqa: E402
from services.forecast_api.weather.orchestrator import CacheOrchestrator  # noqa: E402
from services.forecast_api.weather.pipeline import ResolutionPipeline  # noqa: E402
from services.forecast_api.weather.service import LookupService  # noqa: E402

TEST_API_KEY = "test-key"


# ---------------------------------------------------------------------------
# Lookup stack
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_source() -> FakeWeatherSource:
    return FakeWeatherSource()


@pytest.fixture
def store(fake_redis) -> CacheStore:
    return CacheStore(fake_redis)


@pytest.fixture
def pipeline(fake_source) -> ResolutionPipeline:
    return ResolutionPipeline(fake_source, api_key=TEST_API_KEY)


@pytest.fixture
def orchestrator(pipeline, store) -> CacheOrchestrator:
    return CacheOrchestrator(pipeline, store, ttl_seconds=600)


@pytest.fixture
def lookup_service(orchestrator) -> LookupService:
    return LookupService(orchestrator)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
async def app(fake_redis, lookup_service):
    """The FastAPI app with the fake lookup stack in app.state (lifespan not run)."""
    from services.forecast_api.config import settings
    from services.forecast_api.main import app as _app

    _app.state.redis = fake_redis
    _app.state.settings = settings
    _app.state.lookup = lookup_service
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
