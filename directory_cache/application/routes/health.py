"""
Health and Metrics Routes

- GET /health: tier availability. Always 200 while the process can serve
  pages; a missing Redis makes the service "degraded", not unhealthy,
  because every read still falls through to the store.
- GET /metrics: Prometheus text exposition (cache hits/misses, source
  queries, read-through latency).
"""

from typing import Any

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from directory_cache.application.dependencies import CacheManagerDep, SettingsDep

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(cache: CacheManagerDep, settings: SettingsDep) -> dict[str, Any]:
    cache_health = await cache.health_check()
    return {
        "status": cache_health["status"],
        "version": settings.app.APP_VERSION,
        "environment": settings.app.ENVIRONMENT,
        "cache": cache_health,
    }


@router.get("/metrics")
async def metrics() -> Response:
    """Expose metrics in Prometheus text format for scraping."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
