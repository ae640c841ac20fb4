"""
Cache-Related Exceptions

The cache store absorbs its own failures, so these are raised only at
lifecycle and validation seams, never from get/set/invalidate.
"""

from guidance_cache.core.exceptions.base import GuidanceCacheError


class CacheError(GuidanceCacheError):
    """Base exception for cache-related errors."""
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache key or pattern cannot be used.

    Common causes:
    - Key is not a string and cannot be coerced
    - Key is empty after normalization
    """
    pass


class CacheLifecycleError(CacheError):
    """
    Raised when the store is opened outside a running event loop.
    """
    pass
