"""
ResolutionPipeline — city name -> ForecastResult via two OpenWeatherMap calls.

    geocode   GET /geo/1.0/direct?q={city}&appid={key}
    forecast  GET /data/2.5/forecast?lat={lat:%f}&lon={lon:%f}&appid={key}

Geocoding must succeed with at least one candidate before the forecast call
is made. Only the first candidate is used (source order, no ranking).
Either stage failing raises ResolutionError tagged with that stage; no
partial result is ever returned.

Coordinates are rendered with six fractional digits ("%f") so the forecast
request for a given candidate is always byte-identical.

No cache involvement here — see CacheOrchestrator.
"""

from __future__ import annotations

import logging

from services.forecast_api.weather.errors import ErrorKind, ResolutionError, Stage
from services.forecast_api.weather.models import Coordinates, ForecastResult
from services.forecast_api.weather.source import RequestConfig, WeatherSource, WeatherSourceError

logger = logging.getLogger(__name__)

GEOCODE_PATH = "/geo/1.0/direct"
FORECAST_PATH = "/data/2.5/forecast"

QUERY_PARAM_Q = "q"
QUERY_PARAM_LAT = "lat"
QUERY_PARAM_LON = "lon"
QUERY_PARAM_UNITS = "units"
APP_ID_KEY = "appid"

_HTTP_UNAUTHORIZED = 401


def _failure_kind(exc: WeatherSourceError) -> ErrorKind:
    if exc.status_code == _HTTP_UNAUTHORIZED:
        return ErrorKind.INVALID_CREDENTIALS
    return ErrorKind.UPSTREAM_UNAVAILABLE


class ResolutionPipeline:
    """
    Usage:
        pipeline = ResolutionPipeline(source, api_key="...")
        result = await pipeline.resolve("chicago")
    """

    def __init__(
        self,
        source: WeatherSource,
        api_key: str,
        units: str = "",
    ) -> None:
        self._source = source
        self._api_key = api_key
        self._units = units

    # ------------------------------------------------------------------
    # Request builders
    # ------------------------------------------------------------------

    def build_geocode_request(self, city: str) -> RequestConfig:
        return RequestConfig(
            path=GEOCODE_PATH,
            query=[
                (QUERY_PARAM_Q, city),
                (APP_ID_KEY, self._api_key),
            ],
        )

    def build_forecast_request(self, coordinates: Coordinates) -> RequestConfig:
        query = [
            (QUERY_PARAM_LAT, "%f" % coordinates.lat),
            (QUERY_PARAM_LON, "%f" % coordinates.lon),
            (APP_ID_KEY, self._api_key),
        ]
        if self._units:
            query.append((QUERY_PARAM_UNITS, self._units))
        return RequestConfig(path=FORECAST_PATH, query=query)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def resolve_coordinates(self, city: str) -> Coordinates:
        """Geocode ``city`` and return the first candidate."""
        try:
            candidates = await self._source.make_request(
                self.build_geocode_request(city), list[Coordinates]
            )
        except WeatherSourceError as exc:
            kind = _failure_kind(exc)
            message = (
                "Error fetching coordinates. Check if API key is valid."
                if kind is ErrorKind.INVALID_CREDENTIALS
                else f"Error fetching city coordinates by name: {exc}"
            )
            raise ResolutionError(message, kind, Stage.GEOCODE) from exc

        if not candidates:
            logger.info("Geocoding returned no candidates for city=%r", city)
            raise ResolutionError(
                f"Error fetching city coordinates by name: {city}",
                ErrorKind.NOT_FOUND,
                Stage.GEOCODE,
            )

        if len(candidates) > 1:
            logger.debug("Geocoding returned %d candidates for city=%r, using first", len(candidates), city)
        return candidates[0]

    async def resolve_forecast(self, coordinates: Coordinates) -> ForecastResult:
        """Fetch the forecast for ``coordinates``. The full entry sequence is kept."""
        try:
            return await self._source.make_request(
                self.build_forecast_request(coordinates), ForecastResult
            )
        except WeatherSourceError as exc:
            raise ResolutionError(
                f"Error fetching city by coordinates: {exc}",
                _failure_kind(exc),
                Stage.FORECAST,
            ) from exc

    async def resolve(self, city: str) -> ForecastResult:
        """Geocode then forecast. Raises ResolutionError from whichever stage failed."""
        coordinates = await self.resolve_coordinates(city)
        result = await self.resolve_forecast(coordinates)
        logger.info(
            "Resolved weather for city=%r (%s, %s) entries=%d",
            city,
            coordinates.name or "?",
            coordinates.country or "?",
            len(result.entries),
        )
        return result
