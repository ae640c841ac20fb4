#!/usr/bin/env python3
"""
Cache Metrics Collector with Prometheus Integration

A cache event listener that turns every cache log record into Prometheus
counters, plus gauges sampled from the store at scrape time.

Architectural Decision: prometheus-client for industry-standard metrics
- Compatible with Grafana dashboards
- Histogram buckets for lookup latency percentiles
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

from guidance_cache.core.config.constants import CacheLogType
from guidance_cache.core.config.settings import get_settings
from guidance_cache.core.logging.logger import get_logger
from guidance_cache.infrastructure.cache.cache_store import CacheStore
from guidance_cache.infrastructure.cache.models import CacheEvent

logger = get_logger(__name__)


# ============================================================================
# Metric Definitions
# ============================================================================

CACHE_OPERATIONS = Counter(
    'guidance_cache_operations_total',
    'Total cache operations by type',
    ['type']  # HIT, MISS, SET, INVALIDATE, EVICT, CLEANUP
)

CACHE_MISSES = Counter(
    'guidance_cache_misses_total',
    'Total cache misses by reason',
    ['reason']
)

CACHE_HIT_LATENCY = Histogram(
    'guidance_cache_hit_latency_ms',
    'Cache hit lookup time in milliseconds',
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

CACHE_ENTRIES = Gauge(
    'guidance_cache_entries',
    'Number of entries currently stored'
)

CACHE_MEMORY_BYTES = Gauge(
    'guidance_cache_memory_bytes',
    'Estimated memory used by cache entries'
)

APP_INFO = Info(
    'guidance_cache_app',
    'Application information'
)


class CacheMetricsCollector:
    """
    Cache event listener backed by Prometheus metrics.

    STAGE-M: Metrics collection

    Usage:
        collector = CacheMetricsCollector()
        collector.bind_store(store)
        store.instrumentation.add_listener(collector)

        output = collector.get_prometheus_metrics()
    """

    def __init__(self):
        settings = get_settings()

        APP_INFO.info({
            'version': settings.app.APP_VERSION,
            'environment': settings.app.ENVIRONMENT,
            'app_name': settings.app.APP_NAME
        })

        logger.info("Metrics collector initialized", stage="M.0")

    def __call__(self, event: CacheEvent) -> None:
        """Record one cache event."""
        log_type = event.metadata.get("type")
        CACHE_OPERATIONS.labels(type=log_type).inc()

        if log_type == CacheLogType.MISS.value:
            CACHE_MISSES.labels(reason=event.metadata.get("reason", "unknown")).inc()
        elif log_type == CacheLogType.HIT.value:
            processing_time = event.metadata.get("processing_time")
            if processing_time is not None:
                CACHE_HIT_LATENCY.observe(processing_time)

    def bind_store(self, store: CacheStore) -> None:
        """Sample entry count and memory estimate from ``store`` on scrape."""
        CACHE_ENTRIES.set_function(lambda: len(store))
        CACHE_MEMORY_BYTES.set_function(lambda: store.get_stats()["memory_usage"])

    # =========================================================================
    # Export
    # =========================================================================

    def get_prometheus_metrics(self) -> bytes:
        """
        Get Prometheus metrics output.

        Returns:
            bytes: Prometheus text format metrics
        """
        return generate_latest(REGISTRY)

    def get_content_type(self) -> str:
        """Get Prometheus content type."""
        return CONTENT_TYPE_LATEST


# Global metrics collector
_metrics: CacheMetricsCollector | None = None


def get_metrics_collector() -> CacheMetricsCollector:
    """Get global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = CacheMetricsCollector()
    return _metrics
