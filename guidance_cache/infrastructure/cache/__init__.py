"""
Cache Module

In-process cache store with TTL, versioning, wildcard invalidation,
instrumentation and warming.
"""

from .cache_store import CacheStore, close_cache, estimate_size, get_cache_store, init_cache
from .cache_warmer import CacheWarmer, order_by_priority
from .instrumentation import CacheInstrumentation
from .models import CacheEntry, CacheEvent, CacheLogEntry, WarmupTask
from .patterns import KeyPattern, glob_to_regex, normalize_key

__all__ = [
    "CacheStore",
    "CacheWarmer",
    "CacheInstrumentation",
    "CacheEntry",
    "CacheEvent",
    "CacheLogEntry",
    "WarmupTask",
    "KeyPattern",
    "glob_to_regex",
    "normalize_key",
    "estimate_size",
    "order_by_priority",
    "get_cache_store",
    "init_cache",
    "close_cache",
]
