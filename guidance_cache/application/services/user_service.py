"""
User Service

Cache-first access to the signed-in user's profile.
"""

from typing import Any

from guidance_cache.core.config.constants import CachePatterns, CacheTTL
from guidance_cache.application.services.base import CachedBackendService, unwrap

PROFILE_PATH = "/api/v1/user/profile"


class UserService(CachedBackendService):

    @property
    def profile_key(self) -> str:
        return f"user:{self.user_id}:profile"

    async def fetch_profile(self) -> dict[str, Any]:
        return unwrap(await self.client.get(PROFILE_PATH), "user")

    async def get_profile(self, force_refresh: bool = False) -> dict[str, Any]:
        return await self.store.get(
            self.profile_key, self.fetch_profile, ttl=CacheTTL.USER_PROFILE, force_refresh=force_refresh
        )

    async def update_profile(self, data: dict[str, Any]) -> dict[str, Any]:
        user = unwrap(await self.client.put(PROFILE_PATH, json=data), "user")
        self.store.invalidate(CachePatterns.user_data(self.user_id))
        return user
