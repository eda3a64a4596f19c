"""
Health endpoint — GET /health

Reports service version and whether the shared Redis cache tier is reachable.
The service stays healthy without Redis (the in-process tier keeps serving).
"""

import logging

from fastapi import APIRouter, Request

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _redis_status(redis) -> str:
    if redis is None:
        return "disabled"
    try:
        await redis.ping()
        return "ok"
    except Exception:
        logger.warning("Redis ping failed during health check", exc_info=True)
        return "unavailable"


@router.get("/health")
async def health(request: Request) -> dict:
    settings = request.app.state.settings
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "version": settings.app_version,
            "redis": await _redis_status(getattr(request.app.state, "redis", None)),
        },
        "requestId": request.state.request_id,
    }
