"""
Pytest Configuration and Shared Test Fixtures

This module provides reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from guidance_cache.core.config.settings import BackendSettings  # noqa: E402
from guidance_cache.infrastructure.cache.cache_store import CacheStore  # noqa: E402
from guidance_cache.infrastructure.cache.instrumentation import CacheInstrumentation  # noqa: E402
from guidance_cache.infrastructure.http.backend_client import BackendClient  # noqa: E402


# ============================================================================
# Time
# ============================================================================


class FakeClock:
    """Epoch-milliseconds clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def instrumentation(clock):
    return CacheInstrumentation(max_entries=1000, clock=clock)


@pytest.fixture
def store(clock, instrumentation):
    """
    Unopened store with a fake clock.

    Tests drive expiry with ``clock.advance`` and call ``cleanup()``
    directly instead of waiting on the background task.
    """
    return CacheStore(
        default_ttl=60_000,
        max_size=100,
        cleanup_interval=60_000,
        instrumentation=instrumentation,
        clock=clock,
    )


@pytest.fixture
def make_fetch():
    """Factory for counting fetch functions returning a fixed value."""

    def _make(value=None, side_effect=None):
        return AsyncMock(return_value=value, side_effect=side_effect)

    return _make


# ============================================================================
# Backend Fixtures
# ============================================================================


@pytest.fixture
def backend_settings():
    return BackendSettings(
        BACKEND_BASE_URL="http://backend.test",
        BACKEND_TIMEOUT=1.0,
        BACKEND_MAX_RETRIES=2,
        BACKEND_RETRY_BASE_DELAY=0.0,
        BACKEND_RETRY_MAX_DELAY=0.0,
    )


class BackendStub:
    """
    Routes (method, path) to canned JSON bodies and records every request.

    Unknown routes answer 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], tuple[int, object]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, body: object = None, status_code: int = 200) -> None:
        self.routes[(method.upper(), path)] = (status_code, body)

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method.upper() and r.url.path == path)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, body = self.routes.get((request.method, request.url.path), (404, {"error": "not found"}))
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)


@pytest.fixture
def backend():
    return BackendStub()


@pytest.fixture
def client(backend, backend_settings):
    """Backend client wired to the stub; opened by the test with ``async with``."""
    return BackendClient(backend_settings, transport=httpx.MockTransport(backend))


@pytest.fixture
def envelope():
    """Builder for the backend success envelope."""

    def _envelope(**data) -> dict:
        return {"success": True, "data": data}

    return _envelope


# ============================================================================
# Mock Configuration Fixtures
# ============================================================================


@pytest.fixture
def mock_settings():
    """
    Mock application settings for testing.

    Returns a MagicMock with common settings attributes.
    """
    from guidance_cache.core.config.settings import Settings

    settings = MagicMock(spec=Settings)

    settings.cache.CACHE_DEFAULT_TTL_MS = 60_000
    settings.cache.CACHE_MAX_SIZE = 3
    settings.cache.CACHE_CLEANUP_INTERVAL_MS = 10
    settings.cache.CACHE_LOG_MAX_ENTRIES = 50
    settings.cache.CACHE_METRICS_WINDOW_MS = 3_600_000
    settings.cache.CACHE_ENABLE_SYSTEM_LOGS = True
    settings.cache.CACHE_SINGLE_FLIGHT = True
    settings.cache.CACHE_REFRESH_INTERVAL_MS = 10

    settings.app.ENVIRONMENT = "development"
    settings.app.APP_VERSION = "1.0.0-test"
    settings.app.APP_NAME = "Guidance Cache Test"
    settings.app.ADMIN_API_KEY = None

    return settings
