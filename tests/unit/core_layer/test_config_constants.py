"""
Unit Tests for Configuration Constants

Tests TTL values, key pattern builders and enumerations.
"""

import pytest

from guidance_cache.core.config.constants import (
    CacheLogType,
    CachePatterns,
    CacheTTL,
    MissReason,
)
from guidance_cache.infrastructure.cache.patterns import KeyPattern

MINUTE = 60 * 1000


@pytest.mark.unit
class TestCacheTTL:
    """Test per-domain TTLs (milliseconds)."""

    def test_meditation_ttls(self):
        assert CacheTTL.MEDITATION_SCHEDULES == 10 * MINUTE
        assert CacheTTL.MEDITATION_SESSIONS == 30 * MINUTE
        assert CacheTTL.MEDITATION_STATS == 5 * MINUTE
        assert CacheTTL.MEDITATION_TYPES == 24 * 60 * MINUTE
        assert CacheTTL.MEDITATION_SOUNDS == 24 * 60 * MINUTE

    def test_user_chat_and_system_ttls(self):
        assert CacheTTL.USER_PROFILE == 15 * MINUTE
        assert CacheTTL.CHAT_HISTORY == 5 * MINUTE
        assert CacheTTL.CONVERSATIONS == 10 * MINUTE
        assert CacheTTL.HEALTH_STATUS == 2 * MINUTE


@pytest.mark.unit
class TestCachePatterns:
    """Test key pattern builders against the keys services produce."""

    @pytest.mark.parametrize(
        "pattern, key, expected",
        [
            (CachePatterns.meditation_user("u1"), "meditation:stats:u1", True),
            (CachePatterns.meditation_user("u1"), "meditation:sessions:u1:limit:20", True),
            (CachePatterns.meditation_user("u1"), "meditation:stats:u2", False),
            (CachePatterns.meditation_schedules("u1"), "meditation:schedules:u1:true", True),
            (CachePatterns.meditation_sessions("u1"), "meditation:sessions:u1:limit:50", True),
            (CachePatterns.meditation_sessions("u1"), "meditation:schedules:u1:true", False),
            (CachePatterns.meditation_stats("u1"), "meditation:stats:u1", True),
            (CachePatterns.user_data("u1"), "user:u1:profile", True),
            (CachePatterns.chat_conversations("u1"), "chat:user:u1:conversations:limit:10", True),
            (CachePatterns.chat_conversations("u1"), "chat:user:u1:conversations:limit:5", True),
            (CachePatterns.chat_conversation("c9"), "chat:conversation:c9:details", True),
            (CachePatterns.chat_conversation("c9"), "chat:conversation:c1:details", False),
            (CachePatterns.MEDITATION_TYPES, "meditation:types:all", True),
            (CachePatterns.MEDITATION_SOUNDS, "meditation:sounds:all", True),
        ],
    )
    def test_pattern_matches(self, pattern, key, expected):
        assert KeyPattern.parse(pattern).matches(key) is expected


@pytest.mark.unit
class TestEnumerations:

    def test_log_types(self):
        assert {t.value for t in CacheLogType} == {"HIT", "MISS", "SET", "INVALIDATE", "EVICT", "CLEANUP"}

    def test_enums_compare_to_strings(self):
        assert CacheLogType.HIT == "HIT"
        assert MissReason.EXPIRED == "expired"
