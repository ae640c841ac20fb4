"""
Shared plumbing for cache-first backend services.

Each domain service reads through the cache store and invalidates the
affected key families after a mutation succeeds. Mutations never touch the
cache when the backend call fails.
"""

from typing import Any

from guidance_cache.core.config.constants import ANONYMOUS_USER_ID
from guidance_cache.core.exceptions import BackendAPIError
from guidance_cache.infrastructure.cache.cache_store import CacheStore
from guidance_cache.infrastructure.http.backend_client import BackendClient


def unwrap(payload: Any, field: str | None = None) -> Any:
    """
    Extract the resource from a backend envelope.

    Backend responses look like ``{"success": true, "data": {...}}``; the
    resource sits under ``data`` and, for most endpoints, one more named
    field.

    Raises:
        BackendAPIError: If the envelope does not have the expected shape
    """
    if not isinstance(payload, dict) or "data" not in payload:
        raise BackendAPIError("Unexpected backend response shape", details={"field": field})

    data = payload["data"]
    if field is None:
        return data
    if not isinstance(data, dict) or field not in data:
        raise BackendAPIError("Backend response is missing a field", details={"field": field})
    return data[field]


class CachedBackendService:
    """Base for services that read backend resources through the cache."""

    def __init__(self, store: CacheStore, client: BackendClient, user_id: str | None = None):
        self.store = store
        self.client = client
        self.user_id = user_id or ANONYMOUS_USER_ID

    def get_cache_stats(self) -> dict[str, Any]:
        return self.store.get_stats()
