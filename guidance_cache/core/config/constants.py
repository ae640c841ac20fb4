"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the guidance cache service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for TTLs and key patterns
- Type-safe enums for operation types
- Easy to update and track changes
"""

from enum import Enum

# ============================================================================
# Cache Operation Types
# ============================================================================


class CacheLogType(str, Enum):
    """
    Operation types recorded by the cache instrumentation log.
    """

    HIT = "HIT"
    MISS = "MISS"
    SET = "SET"
    INVALIDATE = "INVALIDATE"
    EVICT = "EVICT"
    CLEANUP = "CLEANUP"


class MissReason(str, Enum):
    """Why a lookup did not produce a hit."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    OUTDATED_VERSION = "outdated_version"
    FORCE_REFRESH = "force_refresh"
    IN_FLIGHT = "in_flight"


# ============================================================================
# Logging Stage Identifiers
# ============================================================================


class CacheStage(str, Enum):
    """
    Stage identifiers used with log_stage() for cache operations.
    """

    INIT = "2.0"
    HIT = "2.1"
    MISS = "2.2"
    SET = "2.3"
    INVALIDATE = "2.4"
    EVICT = "2.5"
    CLEANUP = "2.6"
    WARMING = "2.warming"


# ============================================================================
# Event Dispatch
# ============================================================================

CACHE_EVENT_NAME = "cache-log"
CACHE_EVENT_CATEGORY = "cache"

# Memory estimation: two bytes per character plus fixed per-entry overhead
CHAR_WIDTH_BYTES = 2
ENTRY_OVERHEAD_BYTES = 32

MOST_ACCESSED_LIMIT = 5
WILDCARD = "*"


# ============================================================================
# Per-Domain TTLs (milliseconds)
# ============================================================================

_MINUTE = 60 * 1000
_HOUR = 60 * _MINUTE


class CacheTTL:
    """Time-to-live for each kind of cached backend resource."""

    # Meditation data
    MEDITATION_SCHEDULES = 10 * _MINUTE
    MEDITATION_SESSIONS = 30 * _MINUTE
    MEDITATION_STATS = 5 * _MINUTE
    MEDITATION_TYPES = 24 * _HOUR  # rarely changes
    MEDITATION_SOUNDS = 24 * _HOUR  # rarely changes

    # User data
    USER_PROFILE = 15 * _MINUTE

    # Chat data
    CHAT_HISTORY = 5 * _MINUTE  # conversation details with messages
    CONVERSATIONS = 10 * _MINUTE

    # System data
    HEALTH_STATUS = 2 * _MINUTE


# ============================================================================
# Cache Key Patterns
# ============================================================================


class CachePatterns:
    """
    Key and invalidation-pattern builders.

    Keys follow "<domain>:<scope>:<id>:<qualifier>". Patterns ending in "*"
    cover every qualifier of a resource family.
    """

    @staticmethod
    def meditation_user(user_id: str) -> str:
        return f"meditation:*:{user_id}*"

    @staticmethod
    def meditation_schedules(user_id: str) -> str:
        return f"meditation:schedules:{user_id}*"

    @staticmethod
    def meditation_sessions(user_id: str) -> str:
        return f"meditation:sessions:{user_id}:*"

    @staticmethod
    def meditation_stats(user_id: str) -> str:
        return f"meditation:stats:{user_id}"

    @staticmethod
    def user_data(user_id: str) -> str:
        return f"user:{user_id}:*"

    @staticmethod
    def chat_conversations(user_id: str) -> str:
        return f"chat:user:{user_id}:conversations:*"

    @staticmethod
    def chat_conversation(conversation_id: str) -> str:
        return f"chat:conversation:{conversation_id}:*"

    MEDITATION_TYPES = "meditation:types:*"
    MEDITATION_SOUNDS = "meditation:sounds:*"


ANONYMOUS_USER_ID = "anonymous"


# ============================================================================
# HTTP Surface
# ============================================================================

API_BASE_PATH = "/api/v1"
HEADER_ADMIN_KEY = "X-Admin-Key"
SSE_HEARTBEAT_SECONDS = 15.0
