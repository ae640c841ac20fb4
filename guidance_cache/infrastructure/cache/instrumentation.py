"""
Cache Instrumentation

Responsibility: Record every cache operation in a bounded log, derive
hit-rate and latency metrics from it, and forward each record to the
registered event listeners.

Why a ring buffer?
- Memory stays bounded no matter how long the process runs
- Trailing-window metrics only need recent history
- deque(maxlen=N) drops the oldest record on append in O(1)

Observability is best-effort: a listener that raises is logged and skipped,
and never affects the cache operation that produced the record.
"""

import time
from collections import deque
from typing import Any

from guidance_cache.core.config.constants import CacheLogType
from guidance_cache.core.interfaces.cache import CacheEventListener, Clock
from guidance_cache.core.logging.logger import get_logger
from guidance_cache.infrastructure.cache.models import CacheEvent, CacheLogEntry

logger = get_logger(__name__)


def wall_clock_ms() -> float:
    """Current time in epoch milliseconds."""
    return time.time() * 1000


class CacheInstrumentation:
    """
    Append-only operation log with metrics and event fan-out.

    Usage:
        instrumentation = CacheInstrumentation(max_entries=1000)
        instrumentation.add_listener(metrics_collector)
        instrumentation.record(CacheLogType.HIT, "user:42:profile", processing_time=0.2)
        instrumentation.performance_metrics(cache_size=10, memory_usage=4096)
    """

    def __init__(
        self,
        max_entries: int = 1000,
        window_ms: float = 60 * 60 * 1000,
        enabled: bool = True,
        clock: Clock | None = None,
        listeners: list[CacheEventListener] | None = None,
    ):
        self._logs: deque[CacheLogEntry] = deque(maxlen=max_entries)
        self._window_ms = window_ms
        self._enabled = enabled
        self._clock = clock or wall_clock_ms
        self._listeners: list[CacheEventListener] = list(listeners or [])

    @property
    def max_entries(self) -> int:
        return self._logs.maxlen or 0

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: CacheEventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: CacheEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record(
        self,
        log_type: CacheLogType,
        key: str,
        ttl: float | None = None,
        size: int | None = None,
        processing_time: float | None = None,
        **metadata: Any,
    ) -> CacheLogEntry | None:
        """
        Append a record and forward it to listeners.

        Returns:
            The appended record, or None when system logs are disabled
        """
        if not self._enabled:
            return None

        entry = CacheLogEntry(
            timestamp=self._clock(),
            type=log_type,
            key=key,
            ttl=ttl,
            size=size,
            processing_time=processing_time,
            metadata=metadata,
        )
        self._logs.append(entry)
        self._dispatch(entry)
        return entry

    def _dispatch(self, entry: CacheLogEntry) -> None:
        if not self._listeners:
            return

        try:
            event = CacheEvent.from_log_entry(entry)
        except Exception as e:
            logger.warning("Failed to build cache event", error=str(e), key=entry.key)
            return

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "Failed to send cache log to listener",
                    listener=getattr(listener, "__name__", type(listener).__name__),
                    error=str(e),
                    error_type=type(e).__name__,
                )

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def get_logs(self, limit: int = 100) -> list[CacheLogEntry]:
        """Most recent ``limit`` records, oldest first."""
        if limit <= 0:
            return []
        logs = list(self._logs)
        return logs[-limit:]

    def clear(self) -> None:
        self._logs.clear()

    def __len__(self) -> int:
        return len(self._logs)

    def performance_metrics(self, cache_size: int = 0, memory_usage: int = 0) -> dict[str, Any]:
        """
        Summarize the trailing window.

        hit_rate is hits / (hits + misses) * 100, or 0 when neither occurred.
        avg_processing_time only averages records that carried a timing.
        """
        try:
            since = self._clock() - self._window_ms
            recent = [entry for entry in self._logs if entry.timestamp > since]

            hits = sum(1 for entry in recent if entry.type is CacheLogType.HIT)
            misses = sum(1 for entry in recent if entry.type is CacheLogType.MISS)
            sets = sum(1 for entry in recent if entry.type is CacheLogType.SET)

            hit_rate = hits / (hits + misses) * 100 if hits + misses > 0 else 0.0

            timings = [entry.processing_time for entry in recent if entry.processing_time is not None]
            avg_processing_time = sum(timings) / len(timings) if timings else 0.0

            return {
                "hit_rate": round(hit_rate, 2),
                "total_operations": len(recent),
                "hits": hits,
                "misses": misses,
                "sets": sets,
                "avg_processing_time": round(avg_processing_time, 2),
                "cache_size": cache_size,
                "memory_usage": memory_usage,
            }
        except Exception as e:
            logger.warning("Failed to get cache performance metrics", error=str(e))
            return {
                "hit_rate": 0.0,
                "total_operations": 0,
                "hits": 0,
                "misses": 0,
                "sets": 0,
                "avg_processing_time": 0.0,
                "cache_size": 0,
                "memory_usage": 0,
            }
