"""
Cache Collaborator Protocols

This module defines the callable shapes the cache store depends on, so the
store has no compile-time dependency on any transport, UI or metrics
framework.

Architectural Decision: Protocol-based abstraction
- Fetch functions are any zero-argument coroutine function
- Event listeners are plain callables registered on the instrumentation
- The clock is injectable so tests can move time deterministically
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from guidance_cache.infrastructure.cache.models import CacheEvent

T = TypeVar("T")

# Zero-argument async producer of the authoritative value on a miss
FetchFunction = Callable[[], Awaitable[T]]

# Returns the current time in epoch milliseconds
Clock = Callable[[], float]

# Returns an opaque bearer token, or None when signed out
TokenProvider = Callable[[], Awaitable[str | None]]


@runtime_checkable
class CacheEventListener(Protocol):
    """
    Receives every cache log event.

    Implementations:
    - CacheMetricsCollector: Prometheus counters
    - CacheEventStream: server-sent events for the admin surface

    Listeners are called synchronously from cache operations and must not
    block. Exceptions they raise are caught by the instrumentation.
    """

    def __call__(self, event: "CacheEvent") -> Any:
        ...
