"""
Cache Warmer

Responsibility: Populate the store ahead of user need from a prioritized
list of warm-up tasks.

Why Cache Warming?
- Removes visible fetch latency on first real use (e.g. right after login)
- Known access patterns make the keys predictable

Algorithm:
1. Stable sort by priority, highest first
2. Start every task's get() concurrently (wall time ≈ slowest fetch)
3. Catch and log each task's failure on its own
4. Return once every task has settled
"""

import asyncio
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from guidance_cache.core.config.constants import CacheStage
from guidance_cache.core.logging.logger import get_logger, log_stage
from guidance_cache.infrastructure.cache.models import WarmupTask

if TYPE_CHECKING:
    from guidance_cache.infrastructure.cache.cache_store import CacheStore

logger = get_logger(__name__)


def _priority(task: WarmupTask) -> float:
    if task.priority is None or isinstance(task.priority, bool):
        return 0
    try:
        return float(task.priority)
    except (TypeError, ValueError):
        logger.warning("Using priority 0 for unusable value", cache_key=task.key, priority=repr(task.priority))
        return 0


def order_by_priority(tasks: Iterable[WarmupTask]) -> list[WarmupTask]:
    """Highest priority first; ties keep their original order."""
    return sorted(tasks, key=_priority, reverse=True)


class CacheWarmer:
    """
    Runs warm-up tasks against a cache store.

    Usage:
        warmer = CacheWarmer(store)
        results = await warmer.warm([
            WarmupTask("meditation:types:all", fetch_types, priority=10),
            WarmupTask("meditation:sounds:all", fetch_sounds, priority=9),
        ])
    """

    def __init__(self, store: "CacheStore"):
        self._store = store

    async def warm(self, tasks: Iterable[WarmupTask]) -> dict[str, Any]:
        """
        Warm the store. Never raises for task failures.

        Returns:
            Summary with counts of warmed and failed keys
        """
        ordered = order_by_priority(tasks)
        if not ordered:
            return {"total": 0, "warmed": [], "failed": []}

        started = time.perf_counter()
        log_stage(logger, CacheStage.WARMING, "Starting cache warmup", level="debug", tasks=len(ordered))

        outcomes = await asyncio.gather(*(self._run(task) for task in ordered))

        warmed = [task.key for task, ok in zip(ordered, outcomes) if ok]
        failed = [task.key for task, ok in zip(ordered, outcomes) if not ok]

        log_stage(
            logger,
            CacheStage.WARMING,
            "Cache warmup completed",
            total=len(ordered),
            warmed=len(warmed),
            failed=len(failed),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return {"total": len(ordered), "warmed": warmed, "failed": failed}

    async def _run(self, task: WarmupTask) -> bool:
        try:
            await self._store.get(task.key, task.fetch_function, ttl=task.ttl)
        except Exception as e:
            logger.error(
                "Failed to warm cache",
                stage=CacheStage.WARMING.value,
                cache_key=task.key,
                description=task.description,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        log_stage(logger, CacheStage.WARMING, "Cache warmed", level="debug", cache_key=task.key)
        return True
