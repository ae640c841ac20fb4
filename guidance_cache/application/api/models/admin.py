"""
Admin API Models
================

Request and response bodies for the cache administration endpoints.

Field names mirror the dictionaries returned by the cache store, so route
handlers can validate store output directly with ``model_validate``.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from guidance_cache.core.config.constants import CacheLogType


# ============================================================================
# STATISTICS
# ============================================================================


class MostAccessedKey(BaseModel):
    key: str
    count: int = Field(..., ge=0)


class CacheStatsResponse(BaseModel):
    """Point-in-time snapshot of the entry set."""

    total_entries: int = Field(..., ge=0, description="Entries physically present, expired included")
    valid_entries: int = Field(..., ge=0)
    expired_entries: int = Field(..., ge=0)
    memory_usage: int = Field(..., ge=0, description="Estimated bytes")
    most_accessed: list[MostAccessedKey] = Field(default_factory=list)
    oldest_entry: float | None = Field(None, description="Epoch ms of the oldest write")
    newest_entry: float | None = Field(None, description="Epoch ms of the newest write")


class PerformanceMetricsResponse(BaseModel):
    """Trailing-window metrics derived from the operation log."""

    hit_rate: float = Field(..., ge=0, le=100, description="Percentage, two decimals")
    total_operations: int = Field(..., ge=0)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    sets: int = Field(..., ge=0)
    avg_processing_time: float = Field(..., ge=0, description="Milliseconds")
    cache_size: int = Field(..., ge=0)
    memory_usage: int = Field(..., ge=0)


# ============================================================================
# OPERATION LOG
# ============================================================================


class CacheLogRecord(BaseModel):
    timestamp: float
    type: CacheLogType
    key: str
    ttl: float | None = None
    size: int | None = None
    processing_time: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class CacheLogsResponse(BaseModel):
    count: int
    logs: list[CacheLogRecord]


# ============================================================================
# MUTATIONS
# ============================================================================


class InvalidateRequest(BaseModel):
    """One pattern or a list of patterns; ``*`` is the only wildcard."""

    patterns: list[str] = Field(..., min_length=1)

    @field_validator("patterns", mode="before")
    @classmethod
    def accept_single_pattern(cls, v):
        if isinstance(v, str):
            return [v]
        return v


class InvalidateResponse(BaseModel):
    invalidated: int = Field(..., ge=0)
    patterns: list[str]


class WarmRequest(BaseModel):
    """Warm everything for a user, or only what one page needs."""

    user_id: str | None = Field(None, description="User to warm the full data set for")
    route: str | None = Field(None, description="Page route, e.g. /meditation or /dashboard")


class WarmResponse(BaseModel):
    warmed: bool
    result: dict[str, Any] | None = None
    status: dict[str, Any]


class ClearResponse(BaseModel):
    cleared: int = Field(..., ge=0, description="Entries removed")
