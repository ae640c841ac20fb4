"""
Health Check Routes
===================

Liveness for load balancers, plus a summary of the cache store so an
operator can tell at a glance whether expiry sweeps are running.

Returns 200 while the process is serving. A closed store (no cleanup task)
reports ``degraded``: entries still serve, but expired ones are only removed
when read.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from guidance_cache.application.api.dependencies import CacheStoreDep, SettingsDep

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    status: str  # "healthy" or "degraded"
    timestamp: str  # ISO 8601
    version: str
    components: dict | None = None


@router.get("", response_model=HealthResponse)
async def health_check(store: CacheStoreDep, settings: SettingsDep):
    cache_status = "healthy" if store.is_open else "degraded"
    return HealthResponse(
        status=cache_status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app.APP_VERSION,
        components={
            "cache": {
                "status": cache_status,
                "entries": len(store),
                "max_size": store.max_size,
            }
        },
    )
