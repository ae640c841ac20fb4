from guidance_cache.application.api.models.admin import (
    CacheLogRecord,
    CacheLogsResponse,
    CacheStatsResponse,
    ClearResponse,
    InvalidateRequest,
    InvalidateResponse,
    MostAccessedKey,
    PerformanceMetricsResponse,
    WarmRequest,
    WarmResponse,
)

__all__ = [
    "CacheLogRecord",
    "CacheLogsResponse",
    "CacheStatsResponse",
    "ClearResponse",
    "InvalidateRequest",
    "InvalidateResponse",
    "MostAccessedKey",
    "PerformanceMetricsResponse",
    "WarmRequest",
    "WarmResponse",
]
