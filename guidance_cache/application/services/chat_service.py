"""
Chat Service

Cache-first access to a user's conversation history.
"""

from typing import Any

from guidance_cache.core.config.constants import CachePatterns, CacheTTL
from guidance_cache.core.logging import get_logger
from guidance_cache.application.services.base import CachedBackendService, unwrap

logger = get_logger(__name__)

CONVERSATIONS_PATH = "/api/v1/chat/conversations"


class ChatService(CachedBackendService):
    """Conversation lists and details for one signed-in user."""

    def conversations_key(self, limit: int = 10) -> str:
        return f"chat:user:{self.user_id}:conversations:limit:{limit}"

    @staticmethod
    def conversation_key(conversation_id: str) -> str:
        return f"chat:conversation:{conversation_id}:details"

    async def fetch_conversations(self, limit: int = 10) -> list[dict[str, Any]]:
        payload = await self.client.get(CONVERSATIONS_PATH, params={"limit": limit})
        return unwrap(payload, "conversations")

    async def fetch_conversation(self, conversation_id: str) -> dict[str, Any]:
        """Conversation with its messages."""
        return unwrap(await self.client.get(f"{CONVERSATIONS_PATH}/{conversation_id}/details"))

    async def get_conversations(self, limit: int = 10, force_refresh: bool = False) -> list[dict[str, Any]]:
        return await self.store.get(
            self.conversations_key(limit),
            lambda: self.fetch_conversations(limit),
            ttl=CacheTTL.CONVERSATIONS,
            force_refresh=force_refresh,
        )

    async def get_conversation(self, conversation_id: str, force_refresh: bool = False) -> dict[str, Any]:
        return await self.store.get(
            self.conversation_key(conversation_id),
            lambda: self.fetch_conversation(conversation_id),
            ttl=CacheTTL.CHAT_HISTORY,
            force_refresh=force_refresh,
        )

    async def delete_conversation(self, conversation_id: str) -> int:
        """
        Delete a conversation and drop every cached list and detail that
        could still show it.

        Returns:
            Number of cache entries removed
        """
        await self.client.delete(f"{CONVERSATIONS_PATH}/{conversation_id}")
        removed = self.store.invalidate([
            CachePatterns.chat_conversations(self.user_id),
            CachePatterns.chat_conversation(conversation_id),
        ])
        logger.info("Conversation deleted", conversation_id=conversation_id, cache_entries_removed=removed)
        return removed
