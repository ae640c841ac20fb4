#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
guidance cache service. All configuration is centralized here so the cache
store, the warming service and the HTTP surface read the same values.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Easy testing with override mechanisms

All durations are expressed in milliseconds, matching the cache entry model.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """
    In-process cache configuration.

    STAGE-2: Cache store and instrumentation configuration
    """

    CACHE_DEFAULT_TTL_MS: int = Field(default=5 * 60 * 1000, description="Default entry TTL (5 minutes)")
    CACHE_MAX_SIZE: int = Field(default=2000, description="Maximum number of live entries")
    CACHE_CLEANUP_INTERVAL_MS: int = Field(default=60 * 1000, description="Expiry sweep interval")
    CACHE_LOG_MAX_ENTRIES: int = Field(default=1000, description="Operation log ring buffer size")
    CACHE_METRICS_WINDOW_MS: int = Field(default=60 * 60 * 1000, description="Trailing window for metrics")
    CACHE_ENABLE_SYSTEM_LOGS: bool = Field(default=True, description="Record operations in the log")
    CACHE_SINGLE_FLIGHT: bool = Field(default=True, description="Share one fetch across concurrent misses")
    CACHE_REFRESH_INTERVAL_MS: int = Field(default=5 * 60 * 1000, description="Periodic refresh interval")

    @field_validator("CACHE_MAX_SIZE", "CACHE_LOG_MAX_ENTRIES", "CACHE_DEFAULT_TTL_MS", "CACHE_CLEANUP_INTERVAL_MS")
    @classmethod
    def validate_positive(cls, v):
        """Sizes and intervals must be positive."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class BackendSettings(BaseSettings):
    """
    Backend REST API configuration.

    STAGE-0.2: Backend client configuration
    """

    BACKEND_BASE_URL: str = Field(default="http://localhost:3001", description="Backend API base URL")
    BACKEND_TIMEOUT: float = Field(default=10.0, description="Backend request timeout in seconds")
    BACKEND_MAX_RETRIES: int = Field(default=3, description="Attempts for idempotent requests")
    BACKEND_RETRY_BASE_DELAY: float = Field(default=0.5, description="Initial retry backoff in seconds")
    BACKEND_RETRY_MAX_DELAY: float = Field(default=4.0, description="Maximum retry backoff in seconds")
    BACKEND_SERVICE_TOKEN: str | None = Field(default=None, description="Bearer token for backend calls made by the service itself")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Guidance Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    ADMIN_API_KEY: str | None = Field(default=None, description="Required X-Admin-Key for /admin routes when set")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    Usage:
        from guidance_cache.core.config.settings import get_settings

        settings = get_settings()
        max_size = settings.cache.CACHE_MAX_SIZE
        base_url = settings.backend.BACKEND_BASE_URL
    """

    # Cache settings
    CACHE_DEFAULT_TTL_MS: int = Field(default=5 * 60 * 1000, description="Default entry TTL (5 minutes)")
    CACHE_MAX_SIZE: int = Field(default=2000, description="Maximum number of live entries")
    CACHE_CLEANUP_INTERVAL_MS: int = Field(default=60 * 1000, description="Expiry sweep interval")
    CACHE_LOG_MAX_ENTRIES: int = Field(default=1000, description="Operation log ring buffer size")
    CACHE_METRICS_WINDOW_MS: int = Field(default=60 * 60 * 1000, description="Trailing window for metrics")
    CACHE_ENABLE_SYSTEM_LOGS: bool = Field(default=True, description="Record operations in the log")
    CACHE_SINGLE_FLIGHT: bool = Field(default=True, description="Share one fetch across concurrent misses")
    CACHE_REFRESH_INTERVAL_MS: int = Field(default=5 * 60 * 1000, description="Periodic refresh interval")

    # Backend settings
    BACKEND_BASE_URL: str = Field(default="http://localhost:3001", description="Backend API base URL")
    BACKEND_TIMEOUT: float = Field(default=10.0, description="Backend request timeout in seconds")
    BACKEND_MAX_RETRIES: int = Field(default=3, description="Attempts for idempotent requests")
    BACKEND_RETRY_BASE_DELAY: float = Field(default=0.5, description="Initial retry backoff in seconds")
    BACKEND_RETRY_MAX_DELAY: float = Field(default=4.0, description="Maximum retry backoff in seconds")
    BACKEND_SERVICE_TOKEN: str | None = Field(default=None, description="Bearer token for backend calls made by the service itself")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    DEBUG: bool = Field(default=False, description="Debug mode")
    APP_NAME: str = Field(default="Guidance Cache Service", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_HOST: str = Field(default="0.0.0.0", description="API host")
    API_PORT: int = Field(default=8000, description="API port")
    ADMIN_API_KEY: str | None = Field(default=None, description="Required X-Admin-Key for /admin routes when set")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @property
    def cache(self) -> 'CacheSettings':
        """Get cache settings."""
        return CacheSettings(
            CACHE_DEFAULT_TTL_MS=self.CACHE_DEFAULT_TTL_MS,
            CACHE_MAX_SIZE=self.CACHE_MAX_SIZE,
            CACHE_CLEANUP_INTERVAL_MS=self.CACHE_CLEANUP_INTERVAL_MS,
            CACHE_LOG_MAX_ENTRIES=self.CACHE_LOG_MAX_ENTRIES,
            CACHE_METRICS_WINDOW_MS=self.CACHE_METRICS_WINDOW_MS,
            CACHE_ENABLE_SYSTEM_LOGS=self.CACHE_ENABLE_SYSTEM_LOGS,
            CACHE_SINGLE_FLIGHT=self.CACHE_SINGLE_FLIGHT,
            CACHE_REFRESH_INTERVAL_MS=self.CACHE_REFRESH_INTERVAL_MS,
        )

    @property
    def backend(self) -> 'BackendSettings':
        """Get backend API settings."""
        return BackendSettings(
            BACKEND_BASE_URL=self.BACKEND_BASE_URL,
            BACKEND_TIMEOUT=self.BACKEND_TIMEOUT,
            BACKEND_MAX_RETRIES=self.BACKEND_MAX_RETRIES,
            BACKEND_RETRY_BASE_DELAY=self.BACKEND_RETRY_BASE_DELAY,
            BACKEND_RETRY_MAX_DELAY=self.BACKEND_RETRY_MAX_DELAY,
            BACKEND_SERVICE_TOKEN=self.BACKEND_SERVICE_TOKEN,
        )

    @property
    def logging(self) -> 'LoggingSettings':
        """Get logging settings."""
        return LoggingSettings(
            LOG_LEVEL=self.LOG_LEVEL,
            LOG_FORMAT=self.LOG_FORMAT,
        )

    @property
    def app(self) -> 'ApplicationSettings':
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            DEBUG=self.DEBUG,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_HOST=self.API_HOST,
            API_PORT=self.API_PORT,
            ADMIN_API_KEY=self.ADMIN_API_KEY,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
