"""
Meditation Service

Cache-first access to meditation schedules, sessions, stats, types and
sounds.

KEYS:
-----
- meditation:schedules:{user}:{active_only}
- meditation:sessions:{user}:limit:{limit}
- meditation:stats:{user}
- meditation:types:all
- meditation:sounds:all

Schedule mutations drop the user's schedule lists and stats; session
mutations drop the session lists (and stats when a session completes).

Each resource has a key builder and an uncached fetcher, so warm-up tasks
populate exactly the keys the read methods look up.
"""

import asyncio
from typing import Any

from guidance_cache.core.config.constants import CachePatterns, CacheTTL
from guidance_cache.core.logging import get_logger
from guidance_cache.application.services.base import CachedBackendService, unwrap

logger = get_logger(__name__)

SCHEDULES_PATH = "/api/v1/meditation/schedules"
SESSIONS_PATH = "/api/v1/meditation/sessions"
TYPES_PATH = "/api/v1/meditation/types"
SOUNDS_PATH = "/api/v1/meditation/sounds"
STATS_PATH = "/api/v1/meditation/stats"

TYPES_KEY = "meditation:types:all"
SOUNDS_KEY = "meditation:sounds:all"

DEFAULT_SESSION_LIMIT = 50


class MeditationService(CachedBackendService):
    """
    Meditation data for one signed-in user.

    Usage:
        service = MeditationService(store, client, user_id="u1")
        schedules = await service.get_schedules(active_only=True)
        await service.create_schedule({"title": "Morning", ...})
    """

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def schedules_key(self, active_only: bool = False) -> str:
        return f"meditation:schedules:{self.user_id}:{str(bool(active_only)).lower()}"

    def sessions_key(self, limit: int = DEFAULT_SESSION_LIMIT) -> str:
        return f"meditation:sessions:{self.user_id}:limit:{limit}"

    @property
    def stats_key(self) -> str:
        return CachePatterns.meditation_stats(self.user_id)

    # -------------------------------------------------------------------------
    # Uncached fetchers
    # -------------------------------------------------------------------------

    async def fetch_schedules(self, active_only: bool = False) -> list[dict[str, Any]]:
        payload = await self.client.get(SCHEDULES_PATH, params={"active_only": str(bool(active_only)).lower()})
        return unwrap(payload, "schedules")

    async def fetch_sessions(self, limit: int = DEFAULT_SESSION_LIMIT) -> list[dict[str, Any]]:
        return unwrap(await self.client.get(SESSIONS_PATH, params={"limit": limit}), "sessions")

    async def fetch_types(self) -> list[dict[str, Any]]:
        return unwrap(await self.client.get(TYPES_PATH), "types")

    async def fetch_sounds(self) -> list[dict[str, Any]]:
        return unwrap(await self.client.get(SOUNDS_PATH), "sounds")

    async def fetch_stats(self) -> dict[str, Any]:
        return unwrap(await self.client.get(STATS_PATH), "stats")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_schedules(self, active_only: bool = False, force_refresh: bool = False) -> list[dict[str, Any]]:
        return await self.store.get(
            self.schedules_key(active_only),
            lambda: self.fetch_schedules(active_only),
            ttl=CacheTTL.MEDITATION_SCHEDULES,
            force_refresh=force_refresh,
        )

    async def get_sessions(self, limit: int = DEFAULT_SESSION_LIMIT, force_refresh: bool = False) -> list[dict[str, Any]]:
        return await self.store.get(
            self.sessions_key(limit),
            lambda: self.fetch_sessions(limit),
            ttl=CacheTTL.MEDITATION_SESSIONS,
            force_refresh=force_refresh,
        )

    async def get_types(self, force_refresh: bool = False) -> list[dict[str, Any]]:
        return await self.store.get(
            TYPES_KEY, self.fetch_types, ttl=CacheTTL.MEDITATION_TYPES, force_refresh=force_refresh
        )

    async def get_sounds(self, force_refresh: bool = False) -> list[dict[str, Any]]:
        return await self.store.get(
            SOUNDS_KEY, self.fetch_sounds, ttl=CacheTTL.MEDITATION_SOUNDS, force_refresh=force_refresh
        )

    async def get_stats(self, force_refresh: bool = False) -> dict[str, Any]:
        return await self.store.get(
            self.stats_key, self.fetch_stats, ttl=CacheTTL.MEDITATION_STATS, force_refresh=force_refresh
        )

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create_schedule(self, data: dict[str, Any]) -> dict[str, Any]:
        result = unwrap(await self.client.post(SCHEDULES_PATH, json=data))
        self._invalidate_schedules()
        return {
            "schedule": result.get("schedule"),
            "email_status": result.get("emailStatus") or "pending",
            "email_error": result.get("emailError"),
        }

    async def update_schedule(self, schedule_id: str, data: dict[str, Any]) -> dict[str, Any]:
        schedule = unwrap(await self.client.put(f"{SCHEDULES_PATH}/{schedule_id}", json=data), "schedule")
        self._invalidate_schedules()
        return schedule

    async def delete_schedule(self, schedule_id: str) -> None:
        await self.client.delete(f"{SCHEDULES_PATH}/{schedule_id}")
        self._invalidate_schedules()

    async def start_session(self, data: dict[str, Any]) -> dict[str, Any]:
        session = unwrap(await self.client.post(SESSIONS_PATH, json=data), "session")
        self.store.invalidate(CachePatterns.meditation_sessions(self.user_id))
        return session

    async def complete_session(self, session_id: str, data: dict[str, Any]) -> dict[str, Any]:
        session = unwrap(await self.client.put(f"{SESSIONS_PATH}/{session_id}/complete", json=data), "session")
        self.store.invalidate([
            CachePatterns.meditation_sessions(self.user_id),
            CachePatterns.meditation_stats(self.user_id),
        ])
        return session

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------

    async def refresh_all_data(self) -> None:
        """
        Re-fetch every meditation resource, bypassing the cache.

        Raises the first backend failure; the other fetches keep running.
        """
        await asyncio.gather(
            self.get_schedules(active_only=False, force_refresh=True),
            self.get_schedules(active_only=True, force_refresh=True),
            self.get_sessions(DEFAULT_SESSION_LIMIT, force_refresh=True),
            self.get_stats(force_refresh=True),
            self.get_types(force_refresh=True),
            self.get_sounds(force_refresh=True),
        )
        logger.info("Meditation data refreshed", user_id=self.user_id)

    def clear_cache(self) -> int:
        return self.store.invalidate([
            CachePatterns.meditation_user(self.user_id),
            CachePatterns.MEDITATION_TYPES,
            CachePatterns.MEDITATION_SOUNDS,
        ])

    def _invalidate_schedules(self) -> int:
        return self.store.invalidate([
            CachePatterns.meditation_schedules(self.user_id),
            CachePatterns.meditation_stats(self.user_id),
        ])
