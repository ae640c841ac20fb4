"""
Cache Warming Service

Preloads the data a signed-in user is about to need, so the first screens
after login are served from the cache.

WHAT GETS WARMED:
-----------------
| Domain     | Key                                        | Priority |
|------------|--------------------------------------------|----------|
| meditation | meditation:types:all                       | 10       |
| meditation | meditation:sounds:all                      | 9        |
| meditation | meditation:schedules:{user}:true           | 8        |
| meditation | meditation:stats:{user}                    | 7        |
| meditation | meditation:sessions:{user}:limit:20        | 6        |
| chat       | chat:user:{user}:conversations:limit:10    | 8        |
| chat       | chat:user:{user}:conversations:limit:5     | 7        |
| user       | user:{user}:profile                        | 6        |
| system     | system:health:status                       | 3        |

Domains warm concurrently; a failing domain never stops the others. Only
one full warming pass runs at a time; a second caller joins the pass that
is already running.
"""

import asyncio
import time
from typing import Any

from guidance_cache.core.config.constants import CacheStage, CacheTTL
from guidance_cache.core.logging import get_logger, log_stage
from guidance_cache.infrastructure.cache.cache_store import CacheStore
from guidance_cache.infrastructure.cache.models import WarmupTask
from guidance_cache.infrastructure.http.backend_client import BackendClient
from guidance_cache.application.services.chat_service import ChatService
from guidance_cache.application.services.meditation_service import (
    SOUNDS_KEY,
    TYPES_KEY,
    MeditationService,
)
from guidance_cache.application.services.user_service import UserService

logger = get_logger(__name__)

HEALTH_PATH = "/api/v1/health"
HEALTH_KEY = "system:health:status"
RECENT_SESSIONS_LIMIT = 20

_EMPTY_SUMMARY: dict[str, Any] = {"total": 0, "warmed": [], "failed": []}


class CacheWarmingService:
    """
    Orchestrates warm-up passes and periodic refresh of critical data.

    Usage:
        warming = CacheWarmingService(store, client)
        await warming.warm_cache(user_id="u1")
        warming.start_periodic_refresh()
        ...
        await warming.stop_periodic_refresh()
    """

    def __init__(self, store: CacheStore, client: BackendClient, refresh_interval_ms: float = 5 * 60 * 1000):
        self.store = store
        self.client = client
        self._refresh_interval_ms = refresh_interval_ms
        self._warming_task: asyncio.Task | None = None
        self._refresh_task: asyncio.Task | None = None
        self._last_user_id: str | None = None

    @property
    def is_warming(self) -> bool:
        return self._warming_task is not None and not self._warming_task.done()

    # -------------------------------------------------------------------------
    # Full pass
    # -------------------------------------------------------------------------

    async def warm_cache(self, user_id: str | None = None) -> dict[str, Any] | None:
        """
        Warm every domain for ``user_id``.

        STAGE-2.warming: Full warming pass

        Returns:
            Per-domain summaries, or None when there is no user
        """
        if not user_id:
            logger.debug("Skipping cache warming without a user")
            return None

        if self.is_warming:
            log_stage(logger, CacheStage.WARMING, "Joining warming pass in progress", level="debug", user_id=user_id)
            return await asyncio.shield(self._warming_task)

        self._last_user_id = user_id
        self._warming_task = asyncio.create_task(self._perform_warming(user_id), name="cache-warming")
        try:
            return await asyncio.shield(self._warming_task)
        finally:
            if self._warming_task is not None and self._warming_task.done():
                self._warming_task = None

    async def _perform_warming(self, user_id: str) -> dict[str, Any]:
        started = time.perf_counter()
        domains = ("meditation", "chat", "user", "system")

        outcomes = await asyncio.gather(
            self.warm_meditation_cache(user_id),
            self.warm_chat_cache(user_id),
            self.warm_user_cache(user_id),
            self.warm_system_cache(),
            return_exceptions=True,
        )

        results: dict[str, Any] = {}
        for domain, outcome in zip(domains, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Cache warming domain failed",
                    stage=CacheStage.WARMING.value,
                    domain=domain,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                results[domain] = {"error": str(outcome) or type(outcome).__name__}
            else:
                results[domain] = outcome

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        log_stage(
            logger,
            CacheStage.WARMING,
            "Cache warming completed",
            user_id=user_id,
            duration_ms=duration_ms,
            entries=self.store.get_stats()["total_entries"],
        )
        return {"user_id": user_id, "duration_ms": duration_ms, "domains": results}

    # -------------------------------------------------------------------------
    # Domain warmers
    # -------------------------------------------------------------------------

    async def warm_meditation_cache(self, user_id: str | None = None) -> dict[str, Any]:
        meditation = MeditationService(self.store, self.client, user_id or self._last_user_id)
        return await self.store.warm_cache([
            WarmupTask(TYPES_KEY, meditation.fetch_types, CacheTTL.MEDITATION_TYPES, 10, "Meditation types"),
            WarmupTask(SOUNDS_KEY, meditation.fetch_sounds, CacheTTL.MEDITATION_SOUNDS, 9, "Meditation sounds"),
            WarmupTask(
                meditation.schedules_key(active_only=True),
                lambda: meditation.fetch_schedules(active_only=True),
                CacheTTL.MEDITATION_SCHEDULES,
                8,
                "Active meditation schedules",
            ),
            WarmupTask(meditation.stats_key, meditation.fetch_stats, CacheTTL.MEDITATION_STATS, 7, "Meditation statistics"),
            WarmupTask(
                meditation.sessions_key(RECENT_SESSIONS_LIMIT),
                lambda: meditation.fetch_sessions(RECENT_SESSIONS_LIMIT),
                CacheTTL.MEDITATION_SESSIONS,
                6,
                "Recent meditation sessions",
            ),
        ])

    async def warm_chat_cache(self, user_id: str | None = None) -> dict[str, Any]:
        user_id = user_id or self._last_user_id
        if not user_id:
            return dict(_EMPTY_SUMMARY)

        chat = ChatService(self.store, self.client, user_id)
        return await self.store.warm_cache([
            WarmupTask(
                chat.conversations_key(10),
                lambda: chat.fetch_conversations(10),
                CacheTTL.CONVERSATIONS,
                8,
                "Recent conversations",
            ),
            WarmupTask(
                chat.conversations_key(5),
                lambda: chat.fetch_conversations(5),
                CacheTTL.CONVERSATIONS,
                7,
                "Top conversations",
            ),
        ])

    async def warm_user_cache(self, user_id: str | None = None) -> dict[str, Any]:
        user_id = user_id or self._last_user_id
        if not user_id:
            return dict(_EMPTY_SUMMARY)

        users = UserService(self.store, self.client, user_id)
        return await self.store.warm_cache([
            WarmupTask(users.profile_key, users.fetch_profile, CacheTTL.USER_PROFILE, 6, "User profile"),
        ])

    async def warm_system_cache(self) -> dict[str, Any]:
        async def fetch_health():
            return await self.client.get(HEALTH_PATH)

        return await self.store.warm_cache([
            WarmupTask(HEALTH_KEY, fetch_health, CacheTTL.HEALTH_STATUS, 3, "System health status"),
        ])

    # -------------------------------------------------------------------------
    # Targeted warming
    # -------------------------------------------------------------------------

    async def warm_cache_for_route(self, route: str) -> bool:
        """
        Warm the data a page needs.

        Returns:
            False when the route has no warming plan
        """
        if route == "/meditation":
            await self.warm_meditation_cache()
        elif route == "/chat":
            await self.warm_chat_cache()
        elif route == "/dashboard":
            await asyncio.gather(
                self.warm_meditation_cache(),
                self.warm_chat_cache(),
                self.warm_user_cache(),
            )
        else:
            logger.debug("No cache warming for route", route=route)
            return False
        return True

    async def preload_for_user_action(self, action: str, context: dict[str, Any] | None = None) -> bool:
        """
        Load what an upcoming user action will read.

        Returns:
            False when the action has no preload plan
        """
        meditation = MeditationService(self.store, self.client, self._last_user_id)

        if action in ("start_meditation", "create_schedule"):
            outcomes = await asyncio.gather(meditation.get_types(), meditation.get_sounds(), return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    logger.warning("Preload failed", action=action, error=str(outcome))
        elif action == "view_chat_history":
            await self.warm_chat_cache()
        else:
            logger.debug("No preloading for action", action=action, context=context)
            return False
        return True

    # -------------------------------------------------------------------------
    # Status and reset
    # -------------------------------------------------------------------------

    def get_status(self) -> dict[str, Any]:
        return {
            "is_warming": self.is_warming,
            "periodic_refresh": self._refresh_task is not None and not self._refresh_task.done(),
            "last_user_id": self._last_user_id,
            "cache_stats": self.store.get_stats(),
        }

    async def reset_cache(self, re_warm: bool = True) -> dict[str, Any] | None:
        """Clear the store and, optionally, warm it again for the last user."""
        self.store.clear()
        logger.info("Cache reset", re_warm=re_warm)
        if re_warm:
            return await self.warm_cache(self._last_user_id)
        return None

    # -------------------------------------------------------------------------
    # Periodic refresh
    # -------------------------------------------------------------------------

    def start_periodic_refresh(self, user_id: str | None = None) -> bool:
        """
        Refresh the most volatile data (stats and active schedules) on an
        interval until stopped.

        Returns:
            False when there is no user to refresh for, or refresh is
            already running
        """
        user_id = user_id or self._last_user_id
        if not user_id:
            logger.debug("Skipping periodic refresh without a user")
            return False
        if self._refresh_task is not None and not self._refresh_task.done():
            return False

        self._refresh_task = asyncio.create_task(self._refresh_loop(user_id), name="cache-periodic-refresh")
        logger.info("Periodic cache refresh started", user_id=user_id, interval_ms=self._refresh_interval_ms)
        return True

    async def stop_periodic_refresh(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Periodic cache refresh stopped")

    async def _refresh_loop(self, user_id: str) -> None:
        meditation = MeditationService(self.store, self.client, user_id)
        while True:
            await asyncio.sleep(self._refresh_interval_ms / 1000)
            outcomes = await asyncio.gather(
                meditation.get_stats(force_refresh=True),
                meditation.get_schedules(active_only=True, force_refresh=True),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    logger.warning("Periodic cache refresh failed", error=str(outcome), error_type=type(outcome).__name__)
