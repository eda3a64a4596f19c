"""
Forecast FastAPI service — cache-aside weather lookups by city name.

Entrypoint: uvicorn services.forecast_api.main:app --host 0.0.0.0 --port 8080
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from services.forecast_api.config import settings
from services.forecast_api.middleware.cors import setup_cors
from services.forecast_api.middleware.sentry import setup_sentry
from services.forecast_api.routers import health, weather
from services.forecast_api.weather.errors import ErrorKind, WeatherLookupError
from services.forecast_api.weather.service import build_lookup_service

logger = logging.getLogger(__name__)

# Every lookup failure the caller can correct (different city, valid key,
# resolve first) is a 400; the code field tells them apart.
_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UPSTREAM_UNAVAILABLE: 400,
    ErrorKind.NOT_FOUND: 400,
    ErrorKind.INVALID_CREDENTIALS: 400,
    ErrorKind.CACHE_MISS: 400,
}


def setup_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_logging()
    setup_sentry()

    # Redis (shared cache tier)
    redis_client = None
    if settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception:
            # Cache degrades to the in-process tier only
            logger.warning("Redis unavailable at %s; using in-process cache only", settings.redis_url, exc_info=True)
            redis_client = None

    # One pooled client for every OpenWeatherMap call
    http_client = httpx.AsyncClient()

    app.state.redis = redis_client
    app.state.settings = settings
    app.state.http_client = http_client
    app.state.lookup = build_lookup_service(settings, redis_client, http_client)
    logger.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)

    yield

    # Let fire-and-forget cache writes land before the pool goes away
    await app.state.lookup.orchestrator.drain()
    await http_client.aclose()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Forecast API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

app.include_router(health.router)
app.include_router(weather.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection + access log
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    logger.info(
        "%s %s -> %d (%.1fms) request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    response.headers["X-Request-ID"] = request_id
    return response


# -- Exception Handlers --

def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(WeatherLookupError)
async def weather_lookup_error_handler(request: Request, exc: WeatherLookupError) -> JSONResponse:
    status_code = _STATUS_BY_KIND.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("Unexpected weather lookup failure: kind=%s %s", exc.kind.value, exc.message)
        return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
    return _error_response(request, status_code, exc.kind.value, exc.message)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 404, "NOT_FOUND", "Resource not found.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(request, 422, "VALIDATION_ERROR", str(exc.errors()))


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
