"""
Cache Data Model

Plain dataclasses for the three records the cache deals in: stored entries,
operation log records, and warm-up tasks. Plus the event envelope forwarded
to listeners.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from guidance_cache.core.config.constants import (
    CACHE_EVENT_CATEGORY,
    CACHE_EVENT_NAME,
    CacheLogType,
)
from guidance_cache.core.interfaces.cache import FetchFunction


@dataclass
class CacheEntry:
    """
    A stored value with its expiry and version tag.

    Valid iff ``now - timestamp < ttl``. A request for ``version >= N``
    rejects entries whose stored version is lower.
    """

    data: Any
    timestamp: float
    ttl: float
    version: int = 1

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl

    def satisfies(self, version: int) -> bool:
        return self.version >= version


@dataclass(frozen=True)
class CacheLogEntry:
    """One record in the instrumentation ring buffer."""

    timestamp: float
    type: CacheLogType
    key: str
    ttl: float | None = None
    size: int | None = None
    processing_time: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "key": self.key,
            "ttl": self.ttl,
            "size": self.size,
            "processing_time": self.processing_time,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class CacheEvent:
    """
    Application-level event published for every log record.

    Shape: event name, ISO timestamp, severity, category, message and the
    full record metadata.
    """

    event: str
    timestamp: str
    level: str
    category: str
    message: str
    metadata: dict[str, Any]

    @classmethod
    def from_log_entry(cls, entry: CacheLogEntry, level: str = "info") -> "CacheEvent":
        metadata = {
            "type": entry.type.value,
            "key": entry.key,
            "ttl": entry.ttl,
            "size": entry.size,
            "processing_time": entry.processing_time,
            **entry.metadata,
        }
        return cls(
            event=CACHE_EVENT_NAME,
            timestamp=datetime.fromtimestamp(entry.timestamp / 1000, tz=timezone.utc).isoformat(),
            level=level,
            category=CACHE_EVENT_CATEGORY,
            message=f"Cache {entry.type.value}: {entry.key}",
            metadata=metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "timestamp": self.timestamp,
            "level": self.level,
            "category": self.category,
            "message": self.message,
            "metadata": dict(self.metadata),
        }


@dataclass
class WarmupTask:
    """
    A single key to populate during a warming pass.

    Higher ``priority`` runs first; ties keep their original order.
    """

    key: str
    fetch_function: FetchFunction
    ttl: float | None = None
    priority: int = 0
    description: str | None = None
