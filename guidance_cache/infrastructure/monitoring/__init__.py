"""
Monitoring Module

Cache event listeners: Prometheus metrics and the live SSE event stream.
"""

from .event_stream import CacheEventStream, SSEEvent
from .metrics_collector import CacheMetricsCollector, get_metrics_collector

__all__ = [
    "CacheEventStream",
    "CacheMetricsCollector",
    "SSEEvent",
    "get_metrics_collector",
]
