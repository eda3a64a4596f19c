"""
WeatherSource — thin OpenWeatherMap HTTP client.

Callers describe a request as a RequestConfig (path + ordered query pairs)
and name the type the JSON body should decode into. Every failure — DNS,
timeout, non-2xx status, malformed JSON, schema mismatch — surfaces as a
single WeatherSourceError. The HTTP status (if there was a response) is kept
on the error so the pipeline can tell a rejected API key apart from an
outage.

The httpx.AsyncClient is owned by the application lifespan and shared across
requests; WeatherSource never opens or closes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://api.openweathermap.org"

# HTTP timeout for OpenWeatherMap calls
_API_TIMEOUT_S = 8.0


class WeatherSourceError(Exception):
    """Opaque transport / decode failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RequestConfig:
    path: str
    query: list[tuple[str, str]] = field(default_factory=list)

    def redacted_query(self) -> list[tuple[str, str]]:
        """Query pairs safe to log (API key masked)."""
        return [(k, "***" if k == "appid" else v) for k, v in self.query]


@lru_cache(maxsize=32)
def _adapter(response_type: Any) -> TypeAdapter:
    return TypeAdapter(response_type)


class WeatherSource:
    """
    Usage:
        source = WeatherSource(client=httpx.AsyncClient())
        coords = await source.make_request(config, list[Coordinates])
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = _API_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    async def make_request(self, config: RequestConfig, response_type: type[T] | Any) -> T:
        """GET ``config.path`` and decode the JSON body into ``response_type``."""
        url = f"{self._base_url}{config.path}"
        logger.debug("OpenWeatherMap request: %s params=%s", config.path, config.redacted_query())

        try:
            resp = await self._client.get(
                url,
                params=config.query,
                headers={"Accept": "application/json"},
                timeout=self._timeout_s,
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning(
                "OpenWeatherMap returned %d for %s: %s",
                status,
                config.path,
                exc.response.text[:200],
            )
            raise WeatherSourceError(
                f"OpenWeatherMap returned {status} for {config.path}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("OpenWeatherMap request failed for %s: %s", config.path, exc)
            raise WeatherSourceError(f"Error requesting {config.path}: {exc}") from exc
        except ValueError as exc:
            raise WeatherSourceError(f"Error decoding weather data: {exc}") from exc

        try:
            return _adapter(response_type).validate_python(payload)
        except ValueError as exc:
            # pydantic.ValidationError subclasses ValueError
            raise WeatherSourceError(f"Error decoding weather data: {exc}") from exc
