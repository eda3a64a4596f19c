"""
Weather endpoints.

GET /api/weather?city=...         cached forecast, or resolve via OpenWeatherMap and cache
GET /api/weather/cached?city=...  cached forecast only; 400 CACHE_MISS when absent

Lookup failures are raised as WeatherLookupError and rendered by the
app-level exception handler (see main.py).
"""

from fastapi import APIRouter, Query, Request

from services.forecast_api.weather.models import ForecastResult

router = APIRouter(prefix="/api", tags=["weather"])


def _envelope(request: Request, result: ForecastResult) -> dict:
    return {
        "success": True,
        "data": result.model_dump(by_alias=True),
        "requestId": request.state.request_id,
    }


@router.get("/weather")
async def get_weather(
    request: Request,
    city: str = Query(..., min_length=1, max_length=100, description="City name (case-insensitive)"),
) -> dict:
    result = await request.app.state.lookup.lookup(city)
    return _envelope(request, result)


@router.get("/weather/cached")
async def get_cached_weather(
    request: Request,
    city: str = Query(..., min_length=1, max_length=100, description="City name (case-insensitive)"),
) -> dict:
    result = await request.app.state.lookup.lookup_cached_only(city)
    return _envelope(request, result)
