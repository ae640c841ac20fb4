"""
Admin Routes
============

Operational endpoints for inspecting and managing the cache.

| Method | Path                  | Purpose                                   |
|--------|-----------------------|-------------------------------------------|
| GET    | /admin/cache/stats    | Entry-set snapshot                        |
| GET    | /admin/cache/metrics  | Trailing-window hit rate and latency      |
| GET    | /admin/cache/logs     | Most recent operation log records         |
| DELETE | /admin/cache/logs     | Empty the operation log                   |
| POST   | /admin/cache/invalidate | Delete entries by key or glob pattern   |
| POST   | /admin/cache/warm     | Warm for a user or a page route           |
| DELETE | /admin/cache          | Remove every entry                        |
| GET    | /admin/cache/events   | Live operation log as server-sent events  |
| GET    | /admin/metrics        | Prometheus scrape endpoint                |

SECURITY:
---------
When ADMIN_API_KEY is configured every route requires a matching
X-Admin-Key header. Without it the routes are open, which is only
appropriate when the service is not publicly reachable.
"""

import secrets

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from fastapi.responses import StreamingResponse

from guidance_cache.application.api.dependencies import (
    CacheStoreDep,
    EventStreamDep,
    WarmingServiceDep,
)
from guidance_cache.application.api.models.admin import (
    CacheLogRecord,
    CacheLogsResponse,
    CacheStatsResponse,
    ClearResponse,
    InvalidateRequest,
    InvalidateResponse,
    PerformanceMetricsResponse,
    WarmRequest,
    WarmResponse,
)
from guidance_cache.core.config.constants import HEADER_ADMIN_KEY, SSE_HEARTBEAT_SECONDS
from guidance_cache.core.config.settings import get_settings
from guidance_cache.core.logging import get_logger
from guidance_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


async def verify_admin_access(x_admin_key: str | None = Header(default=None, alias=HEADER_ADMIN_KEY)) -> None:
    """
    Raises:
        HTTPException: 403 if a key is configured and the header does not match
    """
    expected = get_settings().app.ADMIN_API_KEY
    if not expected:
        return
    if x_admin_key is None or not secrets.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")


router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(verify_admin_access)])


# ============================================================================
# INSPECTION
# ============================================================================


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(store: CacheStoreDep):
    return CacheStatsResponse.model_validate(store.get_stats())


@router.get("/cache/metrics", response_model=PerformanceMetricsResponse)
async def get_cache_metrics(store: CacheStoreDep):
    return PerformanceMetricsResponse.model_validate(store.get_performance_metrics())


@router.get("/cache/logs", response_model=CacheLogsResponse)
async def get_cache_logs(store: CacheStoreDep, limit: int = Query(100, ge=1, le=10_000)):
    """Most recent operation log records, oldest first."""
    logs = [CacheLogRecord.model_validate(entry.to_dict()) for entry in store.get_system_logs(limit)]
    return CacheLogsResponse(count=len(logs), logs=logs)


@router.delete("/cache/logs", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cache_logs(store: CacheStoreDep):
    store.clear_system_logs()
    logger.info("Cache operation log cleared via admin API")


# ============================================================================
# MANAGEMENT
# ============================================================================


@router.post("/cache/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(body: InvalidateRequest, store: CacheStoreDep):
    invalidated = store.invalidate(body.patterns)
    logger.info("Cache invalidated via admin API", patterns=body.patterns, invalidated=invalidated)
    return InvalidateResponse(invalidated=invalidated, patterns=body.patterns)


@router.post("/cache/warm", response_model=WarmResponse)
async def warm_cache(body: WarmRequest, warming: WarmingServiceDep):
    """
    Warm the cache.

    With ``route`` only that page's data is warmed; otherwise the full data
    set for ``user_id``. Individual fetch failures are reported in the
    result, not as an error status.
    """
    if body.route:
        warmed = await warming.warm_cache_for_route(body.route)
        return WarmResponse(warmed=warmed, status=warming.get_status())

    if not body.user_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Either user_id or route is required",
        )

    result = await warming.warm_cache(body.user_id)
    return WarmResponse(warmed=result is not None, result=result, status=warming.get_status())


@router.delete("/cache", response_model=ClearResponse)
async def clear_cache(store: CacheStoreDep):
    cleared = len(store)
    store.clear()
    return ClearResponse(cleared=cleared)


# ============================================================================
# STREAMING & METRICS
# ============================================================================


@router.get("/cache/events")
async def stream_cache_events(events: EventStreamDep):
    """Push every cache operation to the client as a ``cache-log`` SSE event."""
    return StreamingResponse(
        events.iter_sse(heartbeat_interval=SSE_HEARTBEAT_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/metrics")
async def get_prometheus_metrics():
    """Expose metrics in Prometheus text format for scraping."""
    metrics_collector = get_metrics_collector()
    return Response(
        content=metrics_collector.get_prometheus_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
