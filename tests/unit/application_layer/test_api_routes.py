"""
Unit Tests for API Routes

Tests FastAPI routes with TestClient. Each client runs the lifespan, so
every test starts with a fresh, open cache store.
"""

from functools import partial
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from guidance_cache.application.api.dependencies import get_warming_service
from guidance_cache.application.app import create_app
from guidance_cache.core.config.settings import Settings
from guidance_cache.infrastructure.http.backend_client import BackendClient


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def api(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def store(app, api):
    """The store created by the application lifespan."""
    return app.state.cache_store


@pytest.mark.unit
class TestHealthRoutes:
    """Test suite for health check routes."""

    def test_health_endpoint_returns_200(self, api):
        response = api.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "version" in data
        assert data["components"]["cache"]["entries"] == 0

    def test_root_lists_entry_points(self, api):
        data = api.get("/").json()

        assert data["health"] == "/api/v1/health"
        assert data["docs"] == "/docs"


@pytest.mark.unit
class TestCacheInspectionRoutes:

    def test_stats(self, api, store):
        store.set("user:u1:profile", {"name": "Asha"})

        data = api.get("/admin/cache/stats").json()

        assert data["total_entries"] == 1
        assert data["valid_entries"] == 1
        assert data["memory_usage"] > 0

    def test_metrics(self, api, store):
        store.set("k", 1)

        data = api.get("/admin/cache/metrics").json()

        assert data["sets"] == 1
        assert data["cache_size"] == 1
        assert data["hit_rate"] == 0

    def test_logs_and_clear_logs(self, api, store):
        store.set("a", 1)
        store.set("b", 2)

        data = api.get("/admin/cache/logs", params={"limit": 1}).json()
        assert data["count"] == 1
        assert data["logs"][0]["key"] == "b"
        assert data["logs"][0]["type"] == "SET"

        assert api.delete("/admin/cache/logs").status_code == 204
        assert api.get("/admin/cache/logs").json()["count"] == 0

    def test_logs_limit_validated(self, api):
        assert api.get("/admin/cache/logs", params={"limit": 0}).status_code == 422

    def test_prometheus_metrics(self, api, store):
        store.set("k", 1)

        response = api.get("/admin/metrics")

        assert response.status_code == 200
        assert "guidance_cache_operations_total" in response.text


@pytest.mark.unit
class TestCacheManagementRoutes:

    def test_invalidate_pattern(self, api, store):
        store.set("meditation:stats:u1", 1)
        store.set("meditation:sessions:u1:limit:20", [])
        store.set("user:u1:profile", {})

        response = api.post("/admin/cache/invalidate", json={"patterns": "meditation:*"})

        assert response.json() == {"invalidated": 2, "patterns": ["meditation:*"]}
        assert store.keys() == ["user:u1:profile"]

    def test_invalidate_requires_patterns(self, api):
        assert api.post("/admin/cache/invalidate", json={"patterns": []}).status_code == 422

    def test_clear(self, api, store):
        store.set("a", 1)
        store.set("b", 2)

        assert api.delete("/admin/cache").json() == {"cleared": 2}
        assert len(store) == 0


@pytest.mark.unit
class TestWarmRoute:

    @pytest.fixture
    def warming(self, app):
        service = MagicMock()
        service.warm_cache = AsyncMock(return_value={"user_id": "u1", "duration_ms": 1.0, "domains": {}})
        service.warm_cache_for_route = AsyncMock(return_value=True)
        service.get_status.return_value = {"is_warming": False}
        app.dependency_overrides[get_warming_service] = lambda: service
        yield service
        app.dependency_overrides.clear()

    def test_warm_for_user(self, api, warming):
        data = api.post("/admin/cache/warm", json={"user_id": "u1"}).json()

        assert data["warmed"] is True
        assert data["result"]["user_id"] == "u1"
        warming.warm_cache.assert_awaited_once_with("u1")

    def test_warm_for_route(self, api, warming):
        data = api.post("/admin/cache/warm", json={"route": "/dashboard"}).json()

        assert data == {"warmed": True, "result": None, "status": {"is_warming": False}}
        warming.warm_cache_for_route.assert_awaited_once_with("/dashboard")

    def test_warm_needs_user_or_route(self, api, warming):
        assert api.post("/admin/cache/warm", json={}).status_code == 422
        warming.warm_cache.assert_not_awaited()

    def test_warm_calls_backend_with_service_token(self, backend, envelope):
        backend.add("GET", "/api/v1/meditation/types", envelope(types=[{"id": "breath"}]))
        backend.add("GET", "/api/v1/meditation/sounds", envelope(sounds=[]))
        settings = Settings(
            BACKEND_BASE_URL="http://backend.test",
            BACKEND_SERVICE_TOKEN="svc-token",
            BACKEND_MAX_RETRIES=1,
        )
        stub_client = partial(BackendClient, transport=httpx.MockTransport(backend))

        with patch("guidance_cache.application.app.get_settings", return_value=settings), \
                patch("guidance_cache.application.app.BackendClient", stub_client):
            with TestClient(create_app()) as test_client:
                data = test_client.post("/admin/cache/warm", json={"user_id": "u1"}).json()

        assert data["warmed"] is True
        assert "meditation:types:all" in data["result"]["domains"]["meditation"]["warmed"]
        assert backend.requests
        assert {r.headers["Authorization"] for r in backend.requests} == {"Bearer svc-token"}


@pytest.mark.unit
class TestAdminAccess:

    @pytest.fixture
    def protected(self, mock_settings):
        mock_settings.app.ADMIN_API_KEY = "s3cret"
        with patch("guidance_cache.application.api.routes.admin.get_settings", return_value=mock_settings):
            yield

    def test_missing_key_forbidden(self, api, protected):
        assert api.get("/admin/cache/stats").status_code == 403

    def test_wrong_key_forbidden(self, api, protected):
        assert api.get("/admin/cache/stats", headers={"X-Admin-Key": "nope"}).status_code == 403

    def test_matching_key_allowed(self, api, protected):
        assert api.get("/admin/cache/stats", headers={"X-Admin-Key": "s3cret"}).status_code == 200

    def test_health_is_public(self, api, protected):
        assert api.get("/api/v1/health").status_code == 200
