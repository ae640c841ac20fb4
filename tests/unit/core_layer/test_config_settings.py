"""
Unit Tests for Configuration Settings

Tests the settings loading, validation, and default values.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from guidance_cache.core.config.settings import (
    CacheSettings,
    Settings,
    get_settings,
    reload_settings,
)


@pytest.mark.unit
class TestSettingsInitialization:
    """Test Settings class initialization and validation."""

    def test_settings_has_section_views(self):
        settings = Settings()

        assert settings.cache.CACHE_MAX_SIZE == settings.CACHE_MAX_SIZE
        assert settings.backend.BACKEND_BASE_URL == settings.BACKEND_BASE_URL
        assert settings.logging.LOG_LEVEL == settings.LOG_LEVEL
        assert settings.app.APP_NAME == settings.APP_NAME

    def test_cache_defaults(self):
        cache = Settings().cache

        assert cache.CACHE_DEFAULT_TTL_MS == 5 * 60 * 1000
        assert cache.CACHE_CLEANUP_INTERVAL_MS == 60 * 1000
        assert cache.CACHE_LOG_MAX_ENTRIES == 1000
        assert cache.CACHE_METRICS_WINDOW_MS == 60 * 60 * 1000
        assert cache.CACHE_SINGLE_FLIGHT is True

    def test_backend_defaults(self):
        backend = Settings().backend

        assert backend.BACKEND_TIMEOUT > 0
        assert backend.BACKEND_MAX_RETRIES >= 1
        assert backend.BACKEND_RETRY_BASE_DELAY <= backend.BACKEND_RETRY_MAX_DELAY

    def test_admin_key_disabled_by_default(self, monkeypatch):
        monkeypatch.delenv("ADMIN_API_KEY", raising=False)
        assert Settings(_env_file=None).app.ADMIN_API_KEY is None


@pytest.mark.unit
class TestEnvironmentOverrides:

    def test_environment_variables_override_defaults(self):
        with patch.dict("os.environ", {"CACHE_MAX_SIZE": "50", "BACKEND_BASE_URL": "http://api.test"}):
            settings = Settings(_env_file=None)

        assert settings.cache.CACHE_MAX_SIZE == 50
        assert settings.backend.BACKEND_BASE_URL == "http://api.test"

    def test_log_level_is_normalized(self):
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(LOG_LEVEL="CHATTY")

    @pytest.mark.parametrize("field", ["CACHE_MAX_SIZE", "CACHE_DEFAULT_TTL_MS", "CACHE_LOG_MAX_ENTRIES"])
    def test_cache_sizes_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            CacheSettings(**{field: 0})


@pytest.mark.unit
class TestSettingsSingleton:

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reload_settings_replaces_instance(self):
        before = get_settings()
        after = reload_settings()

        assert after is not before
        assert get_settings() is after
