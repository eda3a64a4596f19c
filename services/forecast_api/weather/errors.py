"""
Error taxonomy for weather lookups.

Every error the lookup path can raise derives from WeatherLookupError and
carries an ErrorKind. The HTTP layer maps kinds to status codes; nothing
below it knows about HTTP.

    UPSTREAM_UNAVAILABLE  transport / decode failure talking to OpenWeatherMap
    NOT_FOUND             geocoding returned no candidates
    INVALID_CREDENTIALS   OpenWeatherMap rejected the API key (HTTP 401)
    CACHE_MISS            key absent from the cache on a cache-only read
    CACHE_WRITE_FAILED    write-back failed; logged, never surfaced
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    CACHE_MISS = "CACHE_MISS"
    CACHE_WRITE_FAILED = "CACHE_WRITE_FAILED"


class Stage(str, Enum):
    """Which half of the resolution pipeline failed."""

    GEOCODE = "geocode"
    FORECAST = "forecast"


class WeatherLookupError(Exception):
    """Base class for all lookup failures."""

    def __init__(self, message: str, kind: ErrorKind) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind


class ResolutionError(WeatherLookupError):
    """The geocode -> forecast pipeline failed at ``stage``."""

    def __init__(self, message: str, kind: ErrorKind, stage: Stage) -> None:
        super().__init__(message, kind)
        self.stage = stage


class CacheMissError(WeatherLookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Could not find city in cache: {key}", ErrorKind.CACHE_MISS)
        self.key = key


class CacheWriteError(WeatherLookupError):
    def __init__(self, key: str, cause: Exception | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Failed to write weather for {key!r} to cache{detail}",
            ErrorKind.CACHE_WRITE_FAILED,
        )
        self.key = key
        self.cause = cause
