#!/usr/bin/env python3
"""
In-Process Cache Store with TTL, Versioning and Wildcard Invalidation

Architecture:
    CacheStore (Public API)
        ├── entries: dict[normalized key → CacheEntry]
        ├── CacheInstrumentation (operation log, metrics, listeners)
        ├── in-flight fetch table (single-flight)
        └── cleanup task (periodic expiry sweep)

Concurrency Model:
    Everything runs on one asyncio event loop. set, invalidate, clear and
    get_stats never await, so each completes atomically with respect to
    other cache operations. The only suspension point is the fetch on a
    miss inside get(). No locks are needed.

Failure Model:
    Only fetch-function failures escape, and only from get(). Malformed
    keys, unserializable values and listener errors are logged and
    absorbed. A cache problem makes the application slower, never broken.
"""

import asyncio
import time
from collections import Counter
from collections.abc import Iterable
from typing import Any, TypeVar

import orjson

from guidance_cache.core.config.constants import (
    CHAR_WIDTH_BYTES,
    ENTRY_OVERHEAD_BYTES,
    MOST_ACCESSED_LIMIT,
    CacheLogType,
    CacheStage,
    MissReason,
)
from guidance_cache.core.config.settings import Settings, get_settings
from guidance_cache.core.exceptions import CacheKeyError, CacheLifecycleError
from guidance_cache.core.interfaces.cache import Clock, FetchFunction
from guidance_cache.core.logging.logger import get_logger, log_stage
from guidance_cache.infrastructure.cache.cache_warmer import CacheWarmer
from guidance_cache.infrastructure.cache.instrumentation import CacheInstrumentation, wall_clock_ms
from guidance_cache.infrastructure.cache.models import CacheEntry, CacheLogEntry, WarmupTask
from guidance_cache.infrastructure.cache.patterns import KeyPattern, normalize_key

logger = get_logger(__name__)

T = TypeVar("T")


def estimate_size(data: Any) -> int:
    """
    Estimated serialized size of a value in bytes.

    Two bytes per character of the JSON form. Values orjson cannot encode
    count as zero.
    """
    try:
        return len(orjson.dumps(data, default=str).decode("utf-8")) * CHAR_WIDTH_BYTES
    except (TypeError, ValueError):
        return 0


def _retrieve_outcome(task: asyncio.Task) -> None:
    # Shared fetches whose callers were all cancelled still settle; mark the
    # failure retrieved so asyncio does not report it as never retrieved.
    if not task.cancelled():
        task.exception()


class CacheStore:
    """
    Time-bounded, versioned key/value store with get-or-fetch semantics.

    Usage:
        store = CacheStore(default_ttl=5 * 60 * 1000, max_size=2000)
        await store.open()

        profile = await store.get("user:42:profile", fetch_profile, ttl=15 * 60 * 1000)
        store.invalidate("user:42:*")

        await store.close()
    """

    def __init__(
        self,
        default_ttl: float = 5 * 60 * 1000,
        max_size: int = 1000,
        cleanup_interval: float = 60 * 1000,
        single_flight: bool = True,
        instrumentation: CacheInstrumentation | None = None,
        clock: Clock | None = None,
    ):
        """
        Args:
            default_ttl: TTL in milliseconds when a call does not give one
            max_size: Maximum number of live entries
            cleanup_interval: Milliseconds between expiry sweeps
            single_flight: Share one fetch between concurrent misses of a key
            instrumentation: Operation log; one is created when omitted
            clock: Epoch-milliseconds time source
        """
        self._default_ttl = default_ttl
        self._max_size = max(1, int(max_size))
        self._cleanup_interval = cleanup_interval
        self._single_flight = single_flight
        self._clock = clock or wall_clock_ms
        self._instrumentation = instrumentation or CacheInstrumentation(clock=self._clock)

        self._entries: dict[str, CacheEntry] = {}
        self._access_counts: Counter[str] = Counter()
        self._inflight: dict[str, asyncio.Task] = {}
        self._cleanup_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "CacheStore":
        """Build a store from the cache section of the settings."""
        cache_settings = (settings or get_settings()).cache
        clock = overrides.pop("clock", None) or wall_clock_ms
        instrumentation = overrides.pop("instrumentation", None) or CacheInstrumentation(
            max_entries=cache_settings.CACHE_LOG_MAX_ENTRIES,
            window_ms=cache_settings.CACHE_METRICS_WINDOW_MS,
            enabled=cache_settings.CACHE_ENABLE_SYSTEM_LOGS,
            clock=clock,
        )
        options = {
            "default_ttl": cache_settings.CACHE_DEFAULT_TTL_MS,
            "max_size": cache_settings.CACHE_MAX_SIZE,
            "cleanup_interval": cache_settings.CACHE_CLEANUP_INTERVAL_MS,
            "single_flight": cache_settings.CACHE_SINGLE_FLIGHT,
            **overrides,
        }
        return cls(instrumentation=instrumentation, clock=clock, **options)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def open(self) -> None:
        """
        Start the periodic cleanup task.

        STAGE-2.0: Cache store startup

        Raises:
            CacheLifecycleError: If called outside a running event loop
        """
        if self.is_open:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise CacheLifecycleError.from_exception(e, "Cache store must be opened inside an event loop")

        self._cleanup_task = loop.create_task(self._cleanup_loop(), name="cache-store-cleanup")
        log_stage(
            logger,
            CacheStage.INIT,
            "Cache store opened",
            max_size=self._max_size,
            default_ttl_ms=self._default_ttl,
            cleanup_interval_ms=self._cleanup_interval,
        )

    async def close(self) -> None:
        """Cancel the cleanup task. Entries are kept."""
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        log_stage(logger, CacheStage.INIT, "Cache store closed", entries=len(self._entries))

    @property
    def is_open(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    async def __aenter__(self) -> "CacheStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _cleanup_loop(self) -> None:
        interval = self._cleanup_interval / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                self.cleanup()
            except Exception as e:
                logger.warning("Cache cleanup sweep failed", error=str(e), error_type=type(e).__name__)

    # -------------------------------------------------------------------------
    # Core Cache Operations
    # -------------------------------------------------------------------------

    async def get(
        self,
        key: str,
        fetch_function: FetchFunction[T],
        ttl: float | None = None,
        force_refresh: bool = False,
        version: int = 1,
    ) -> T:
        """
        Return the cached value for ``key``, fetching and storing it on a miss.

        STAGE-2.1: Hit
        STAGE-2.2: Miss and fetch

        Args:
            key: Cache key (normalized before use)
            fetch_function: Zero-argument coroutine function; never called on a hit
            ttl: Entry lifetime in milliseconds (default: store default)
            force_refresh: Skip the lookup and always fetch
            version: Minimum acceptable entry version

        Returns:
            Cached or freshly fetched value

        Raises:
            Whatever ``fetch_function`` raises, unchanged. Nothing is cached
            and nothing is retried.
        """
        try:
            cache_key = normalize_key(key)
        except CacheKeyError as e:
            logger.warning("Bypassing cache for unusable key", key=repr(key), error=e.message)
            return await fetch_function()

        ttl = self._resolve_ttl(ttl)
        version = self._resolve_version(version)
        self._access_counts[cache_key] += 1

        if force_refresh:
            log_stage(logger, CacheStage.MISS, "Cache force refresh", level="debug", cache_key=cache_key)
            self._instrumentation.record(
                CacheLogType.MISS, cache_key, ttl=ttl, reason=MissReason.FORCE_REFRESH.value
            )
            return await self._fetch_and_store(cache_key, fetch_function, ttl, version)

        started = time.perf_counter()
        entry = self._entries.get(cache_key)

        if entry is not None:
            now = self._clock()
            if entry.is_valid(now) and entry.satisfies(version):
                processing_time = (time.perf_counter() - started) * 1000
                log_stage(logger, CacheStage.HIT, "Cache hit", level="debug", cache_key=cache_key)
                self._instrumentation.record(
                    CacheLogType.HIT,
                    cache_key,
                    ttl=entry.ttl,
                    processing_time=processing_time,
                    age=entry.age(now),
                )
                return entry.data

            reason = MissReason.OUTDATED_VERSION if entry.is_valid(now) else MissReason.EXPIRED
            del self._entries[cache_key]
            stale_ttl = entry.ttl
        else:
            reason = MissReason.NOT_FOUND
            stale_ttl = ttl

        pending = self._inflight.get(cache_key) if self._single_flight else None
        if pending is not None:
            log_stage(logger, CacheStage.MISS, "Cache miss joined in-flight fetch", level="debug", cache_key=cache_key)
            self._instrumentation.record(CacheLogType.MISS, cache_key, ttl=ttl, reason=MissReason.IN_FLIGHT.value)
            return await asyncio.shield(pending)

        log_stage(logger, CacheStage.MISS, "Cache miss", level="debug", cache_key=cache_key, reason=reason.value)
        self._instrumentation.record(CacheLogType.MISS, cache_key, ttl=stale_ttl, reason=reason.value)

        if not self._single_flight:
            return await self._fetch_and_store(cache_key, fetch_function, ttl, version)
        return await self._fetch_shared(cache_key, fetch_function, ttl, version)

    def set(self, key: str, data: Any, ttl: float | None = None, version: int = 1) -> None:
        """
        Store ``data`` under ``key``, overwriting any previous entry.

        STAGE-2.3: Cache population

        When the store is full and ``key`` is new, the oldest entry is
        evicted first.
        """
        try:
            cache_key = normalize_key(key)
        except CacheKeyError as e:
            logger.warning("Ignoring cache set for unusable key", key=repr(key), error=e.message)
            return

        self._store(cache_key, data, self._resolve_ttl(ttl), self._resolve_version(version))

    def invalidate(self, patterns: str | Iterable[str]) -> int:
        """
        Delete every entry matching one or more patterns.

        STAGE-2.4: Cache invalidation

        A pattern containing ``*`` is a glob over normalized keys; any other
        pattern is an exact key. Invalidating an absent key is a no-op.

        Returns:
            Number of entries removed
        """
        if isinstance(patterns, str):
            patterns = [patterns]
        elif not isinstance(patterns, Iterable):
            logger.warning("Ignoring invalidation with unusable pattern", pattern=repr(patterns))
            return 0

        sources: list[str] = []
        invalidated = 0

        for raw in patterns:
            try:
                pattern = KeyPattern.parse(raw)
            except CacheKeyError as e:
                logger.warning("Skipping unusable invalidation pattern", pattern=repr(raw), error=e.message)
                continue

            sources.append(pattern.source)
            match_type = "wildcard" if pattern.is_wildcard else "exact"
            matched = [key for key in self._entries if pattern.matches(key)]

            for key in matched:
                del self._entries[key]
                invalidated += 1
                self._instrumentation.record(
                    CacheLogType.INVALIDATE, key, pattern=pattern.source, match=match_type
                )

            # Detached fetches still answer their callers but no longer populate the store
            for key in [key for key in self._inflight if pattern.matches(key)]:
                del self._inflight[key]

        if invalidated > 0:
            log_stage(logger, CacheStage.INVALIDATE, "Cache invalidated", count=invalidated, patterns=sources)
            self._instrumentation.record(
                CacheLogType.INVALIDATE, ", ".join(sources), count=invalidated, patterns=sources
            )

        return invalidated

    def clear(self) -> None:
        """Remove every entry and reset access statistics."""
        size = len(self._entries)
        self._entries.clear()
        self._access_counts.clear()
        self._inflight.clear()
        logger.info("Cache cleared", entries_removed=size)

    def cleanup(self) -> int:
        """
        Delete every expired entry.

        STAGE-2.6: Expiry sweep

        Returns:
            Number of entries removed
        """
        before = len(self._entries)
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now)]

        for key in expired:
            del self._entries[key]
            self._instrumentation.record(CacheLogType.CLEANUP, key, reason=MissReason.EXPIRED.value)

        if expired:
            log_stage(logger, CacheStage.CLEANUP, "Cache cleanup", removed=len(expired))
            self._instrumentation.record(
                CacheLogType.CLEANUP, "batch", count=len(expired), before=before, after=len(self._entries)
            )

        return len(expired)

    async def warm_cache(self, tasks: Iterable[WarmupTask]) -> dict[str, Any]:
        """Populate the store from warm-up tasks. Never raises for task failures."""
        return await CacheWarmer(self).warm(tasks)

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """
        Point-in-time snapshot of the entry set.

        Returns zeros and None on an empty store, and on internal failure.
        """
        try:
            now = self._clock()
            entries = list(self._entries.values())
            valid = sum(1 for entry in entries if entry.is_valid(now))
            timestamps = [entry.timestamp for entry in entries]

            return {
                "total_entries": len(entries),
                "valid_entries": valid,
                "expired_entries": len(entries) - valid,
                "memory_usage": self._memory_usage(),
                "most_accessed": [
                    {"key": key, "count": count}
                    for key, count in self._access_counts.most_common(MOST_ACCESSED_LIMIT)
                ],
                "oldest_entry": min(timestamps) if timestamps else None,
                "newest_entry": max(timestamps) if timestamps else None,
            }
        except Exception as e:
            logger.warning("Failed to get cache stats", error=str(e))
            return {
                "total_entries": 0,
                "valid_entries": 0,
                "expired_entries": 0,
                "memory_usage": 0,
                "most_accessed": [],
                "oldest_entry": None,
                "newest_entry": None,
            }

    def get_performance_metrics(self) -> dict[str, Any]:
        """Trailing-window hit rate and latency, with current size and memory."""
        try:
            memory_usage = self._memory_usage()
        except Exception as e:
            logger.warning("Failed to estimate cache memory usage", error=str(e))
            memory_usage = 0
        return self._instrumentation.performance_metrics(
            cache_size=len(self._entries), memory_usage=memory_usage
        )

    def get_system_logs(self, limit: int = 100) -> list[CacheLogEntry]:
        return self._instrumentation.get_logs(limit)

    def clear_system_logs(self) -> None:
        self._instrumentation.clear()

    @property
    def instrumentation(self) -> CacheInstrumentation:
        return self._instrumentation

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def keys(self) -> list[str]:
        """Normalized keys physically present, expired or not."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        try:
            return normalize_key(key) in self._entries
        except CacheKeyError:
            return False

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _fetch(self, cache_key: str, fetch_function: FetchFunction[T]) -> T:
        try:
            return await fetch_function()
        except Exception as e:
            log_stage(
                logger,
                CacheStage.MISS,
                "Cache fetch failed",
                level="debug",
                cache_key=cache_key,
                error_type=type(e).__name__,
            )
            raise

    async def _fetch_and_store(self, cache_key: str, fetch_function: FetchFunction[T], ttl: float, version: int) -> T:
        data = await self._fetch(cache_key, fetch_function)
        self._store(cache_key, data, ttl, version)
        return data

    async def _fetch_shared(self, cache_key: str, fetch_function: FetchFunction[T], ttl: float, version: int) -> T:
        """
        Start the fetch as its own task and wait on it like any joiner.

        Every caller, the first one included, awaits the task through
        ``asyncio.shield``, so cancelling one caller never cancels the fetch
        the others are waiting on.
        """
        task = asyncio.get_running_loop().create_task(
            self._run_shared(cache_key, fetch_function, ttl, version),
            name=f"cache-fetch:{cache_key}",
        )
        task.add_done_callback(_retrieve_outcome)
        self._inflight[cache_key] = task
        return await asyncio.shield(task)

    async def _run_shared(self, cache_key: str, fetch_function: FetchFunction[T], ttl: float, version: int) -> T:
        """
        Body of a shared fetch.

        The task is removed from the in-flight map once it settles, or
        earlier when the key is invalidated or the store cleared. A task
        removed early still answers its callers but does not write its result.
        """
        task = asyncio.current_task()
        try:
            data = await self._fetch(cache_key, fetch_function)
            if self._inflight.get(cache_key) is task:
                self._store(cache_key, data, ttl, version)
            else:
                log_stage(logger, CacheStage.MISS, "Discarding detached fetch result", level="debug", cache_key=cache_key)
            return data
        finally:
            if self._inflight.get(cache_key) is task:
                del self._inflight[cache_key]

    def _store(self, cache_key: str, data: Any, ttl: float, version: int) -> None:
        if cache_key not in self._entries and len(self._entries) >= self._max_size:
            self._evict_oldest()

        self._entries[cache_key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl, version=version)

        log_stage(logger, CacheStage.SET, "Cache set", level="debug", cache_key=cache_key)
        self._instrumentation.record(
            CacheLogType.SET, cache_key, ttl=ttl, size=estimate_size(data), version=version
        )

    def _evict_oldest(self) -> None:
        if not self._entries:
            return

        oldest_key, oldest = min(self._entries.items(), key=lambda item: item[1].timestamp)
        del self._entries[oldest_key]

        log_stage(logger, CacheStage.EVICT, "Cache evicted oldest entry", level="debug", cache_key=oldest_key)
        self._instrumentation.record(
            CacheLogType.EVICT, oldest_key, ttl=oldest.ttl, reason="capacity", max_size=self._max_size
        )

    def _memory_usage(self) -> int:
        size = 0
        for key, entry in self._entries.items():
            size += len(key) * CHAR_WIDTH_BYTES
            size += estimate_size(entry.data)
            size += ENTRY_OVERHEAD_BYTES
        return size

    def _resolve_ttl(self, ttl: Any) -> float:
        if ttl is None:
            return self._default_ttl
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or ttl <= 0:
            logger.warning("Using default TTL for unusable value", ttl=repr(ttl))
            return self._default_ttl
        return ttl

    def _resolve_version(self, version: Any) -> int:
        try:
            return int(version)
        except (TypeError, ValueError):
            logger.warning("Using version 1 for unusable value", version=repr(version))
            return 1


# =============================================================================
# GLOBAL INSTANCE
# Used only by the application wiring; libraries and tests construct
# their own stores.
# =============================================================================

_cache_store: CacheStore | None = None


def get_cache_store() -> CacheStore:
    """
    Get the process-wide cache store.

    Returns:
        CacheStore: Global cache store instance
    """
    global _cache_store

    if _cache_store is None:
        _cache_store = CacheStore.from_settings()

    return _cache_store


async def init_cache() -> CacheStore:
    """Create (if needed) and open the process-wide cache store."""
    store = get_cache_store()
    await store.open()
    return store


async def close_cache() -> None:
    """Close and drop the process-wide cache store."""
    global _cache_store

    if _cache_store:
        await _cache_store.close()
        _cache_store = None
