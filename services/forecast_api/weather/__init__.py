"""
Weather lookup package.

City name -> forecast, served cache-aside from a two-tier cache
(in-process TLRUCache + Redis) with OpenWeatherMap geocoding + forecast
as the fallback.
"""

from services.forecast_api.weather.cache import CacheStore
from services.forecast_api.weather.errors import (
    CacheMissError,
    CacheWriteError,
    ErrorKind,
    ResolutionError,
    Stage,
    WeatherLookupError,
)
from services.forecast_api.weather.models import Coordinates, ForecastEntry, ForecastResult
from services.forecast_api.weather.orchestrator import CacheOrchestrator
from services.forecast_api.weather.pipeline import ResolutionPipeline
from services.forecast_api.weather.service import LookupService, canonicalize
from services.forecast_api.weather.source import RequestConfig, WeatherSource, WeatherSourceError

__all__ = [
    "CacheMissError",
    "CacheOrchestrator",
    "CacheStore",
    "CacheWriteError",
    "Coordinates",
    "ErrorKind",
    "ForecastEntry",
    "ForecastResult",
    "LookupService",
    "RequestConfig",
    "ResolutionError",
    "ResolutionPipeline",
    "Stage",
    "WeatherLookupError",
    "WeatherSource",
    "WeatherSourceError",
    "canonicalize",
]
