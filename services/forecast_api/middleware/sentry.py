"""
Sentry instrumentation for the FastAPI service.
Server-side only. Masks the OpenWeatherMap API key (``appid``) wherever it
can leak into an event: outbound HTTP breadcrumbs and the request query string.
"""

import re
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.forecast_api.config import settings

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}

_APPID_RE = re.compile(r"(appid=)[^&\s]*", re.IGNORECASE)


def _mask_appid(value: Any) -> Any:
    if isinstance(value, str):
        return _APPID_RE.sub(r"\1[FILTERED]", value)
    return value


def _filter_headers(headers: Any) -> None:
    if isinstance(headers, dict):
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = "[FILTERED]"


def _strip_sensitive_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: mask API keys in breadcrumb URLs and strip auth headers."""
    if "breadcrumbs" in event:
        for breadcrumb in event["breadcrumbs"].get("values", []):
            data = breadcrumb.get("data", {})
            if isinstance(data, dict):
                for field in ("url", "http.query"):
                    if field in data:
                        data[field] = _mask_appid(data[field])
                _filter_headers(data.get("headers"))

    request = event.get("request", {})
    if isinstance(request, dict):
        _filter_headers(request.get("headers"))
        if "query_string" in request:
            request["query_string"] = _mask_appid(request["query_string"])
        if "url" in request:
            request["url"] = _mask_appid(request["url"])
    return event


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_sensitive_data,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
