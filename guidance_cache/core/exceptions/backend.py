"""
Backend API Exceptions

Raised by the backend REST client. These are what cache fetch functions
raise, and the cache store propagates them to callers unchanged.
"""

from guidance_cache.core.exceptions.base import GuidanceCacheError


class BackendAPIError(GuidanceCacheError):
    """
    Raised when a backend request fails.

    Common causes:
    - Backend is unreachable or timed out
    - Non-2xx response status
    - Response body is not valid JSON
    """
    pass


class BackendAuthenticationError(BackendAPIError):
    """
    Raised when the backend rejects the bearer token (401/403).
    """
    pass
