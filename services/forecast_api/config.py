"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # App
    app_name: str = "forecast-api"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Redis (shared cache tier)
    redis_url: str = Field(default="redis://localhost:6379/0")

    # CORS
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Weather (OpenWeatherMap)
    # Geocoding + 5 day / 3 hour forecast. Key is injected into WeatherSource once.
    openweathermap_api_key: str = ""
    openweathermap_base_url: str = "https://api.openweathermap.org"
    openweathermap_units: str = Field(default="", pattern=r"^(|standard|metric|imperial)$")
    weather_api_timeout_s: float = 8.0

    # Cache
    cache_ttl_seconds: int = Field(default=600, ge=1)  # 10 min in Redis
    local_cache_size: int = Field(default=1000, ge=1)
    local_cache_ttl_seconds: int = Field(default=60, ge=1)  # in-process cap while Redis is configured
    cache_write_back_background: bool = True

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
