"""
Typed shapes for the OpenWeatherMap geocoding and forecast payloads.

Geocoding  (/geo/1.0/direct)     -> list[Coordinates]
Forecast   (/data/2.5/forecast)  -> ForecastResult

Every field defaults to its zero value, so ``ForecastResult()`` is the empty
result and partially populated upstream payloads still decode. Unknown
upstream fields (``local_names``, ``rain``, ``snow`` ...) are ignored.

ForecastResult is also the cache payload: it is stored in Redis as the JSON
produced by ``dump_forecast`` and read back with ``load_forecast``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """One geocoding candidate. Ephemeral, never cached."""

    name: str = ""
    lat: float = 0.0
    lon: float = 0.0
    country: str = ""
    state: str = ""


class Coord(BaseModel):
    lat: float = 0.0
    lon: float = 0.0


class City(BaseModel):
    id: int = 0
    name: str = ""
    coord: Coord = Field(default_factory=Coord)
    country: str = ""
    population: int = 0
    timezone: int = 0
    sunrise: int = 0
    sunset: int = 0


class Main(BaseModel):
    temp: float = 0.0
    feels_like: float = 0.0
    temp_min: float = 0.0
    temp_max: float = 0.0
    pressure: int = 0
    sea_level: int = 0
    grnd_level: int = 0
    humidity: int = 0
    temp_kf: float = 0.0


class WeatherCondition(BaseModel):
    id: int = 0
    main: str = ""
    description: str = ""
    icon: str = ""


class Clouds(BaseModel):
    all: int = 0


class Wind(BaseModel):
    speed: float = 0.0
    deg: float = 0.0
    gust: float = 0.0


class Sys(BaseModel):
    pod: str = ""


class ForecastEntry(BaseModel):
    """A single 3-hour forecast step."""

    dt: int = 0
    main: Main = Field(default_factory=Main)
    weather: list[WeatherCondition] = Field(default_factory=list)
    clouds: Clouds = Field(default_factory=Clouds)
    wind: Wind = Field(default_factory=Wind)
    visibility: int = 0
    pop: float = 0.0
    sys: Sys = Field(default_factory=Sys)
    dt_txt: str = ""


class ForecastResult(BaseModel):
    """City metadata plus the ordered forecast entries.

    The entry sequence is exposed as ``entries`` in Python and serialized as
    ``list`` to match the upstream payload.
    """

    model_config = ConfigDict(populate_by_name=True)

    city: City = Field(default_factory=City)
    entries: list[ForecastEntry] = Field(default_factory=list, alias="list")


def dump_forecast(result: ForecastResult) -> str:
    """Serialize a ForecastResult for the cache / HTTP body."""
    return result.model_dump_json(by_alias=True)


def load_forecast(raw: str | bytes) -> ForecastResult:
    return ForecastResult.model_validate_json(raw)
