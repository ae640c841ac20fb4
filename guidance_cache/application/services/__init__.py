"""
Application Services Package
=============================

Cache-first access to the backend, one service per domain, plus the
warming service that preloads them.

Routes and background jobs call services; services call the cache store
and the backend client.
"""

from guidance_cache.application.services.chat_service import ChatService
from guidance_cache.application.services.meditation_service import MeditationService
from guidance_cache.application.services.user_service import UserService
from guidance_cache.application.services.warming_service import CacheWarmingService

__all__ = [
    "CacheWarmingService",
    "ChatService",
    "MeditationService",
    "UserService",
]
