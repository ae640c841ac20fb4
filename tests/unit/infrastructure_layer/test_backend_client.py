"""
Unit Tests for BackendClient

Requests go through httpx.MockTransport; nothing touches the network.
"""

import httpx
import pytest

from guidance_cache.core.exceptions import BackendAPIError, BackendAuthenticationError
from guidance_cache.infrastructure.http.backend_client import BackendClient


@pytest.mark.unit
class TestBackendClient:

    @pytest.mark.asyncio
    async def test_get_returns_json(self, client, backend):
        backend.add("GET", "/api/v1/meditation/types", {"success": True, "data": {"types": ["breath"]}})

        async with client:
            body = await client.get("/api/v1/meditation/types")

        assert body["data"]["types"] == ["breath"]

    @pytest.mark.asyncio
    async def test_query_params_are_sent(self, client, backend):
        backend.add("GET", "/api/v1/chat/conversations", {"data": {"conversations": []}})

        async with client:
            await client.get("/api/v1/chat/conversations", params={"limit": 5})

        assert backend.requests[0].url.params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_bearer_token_from_provider(self, backend, backend_settings):
        backend.add("GET", "/api/v1/user/profile", {"data": {"user": {}}})

        async def token():
            return "tok-123"

        async with BackendClient(backend_settings, token, httpx.MockTransport(backend)) as client:
            await client.get("/api/v1/user/profile")

        assert backend.requests[0].headers["Authorization"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_missing_token_sends_no_header(self, backend, backend_settings):
        backend.add("GET", "/api/v1/health", {"status": "ok"})

        async def no_token():
            return None

        async with BackendClient(backend_settings, no_token, httpx.MockTransport(backend)) as client:
            await client.get("/api/v1/health")

        assert "Authorization" not in backend.requests[0].headers

    @pytest.mark.asyncio
    async def test_service_token_used_without_provider(self, backend, backend_settings):
        backend.add("GET", "/api/v1/health", {"status": "ok"})
        config = backend_settings.model_copy(update={"BACKEND_SERVICE_TOKEN": "svc-token"})

        async with BackendClient(config, transport=httpx.MockTransport(backend)) as client:
            await client.get("/api/v1/health")

        assert backend.requests[0].headers["Authorization"] == "Bearer svc-token"

    @pytest.mark.asyncio
    async def test_injected_provider_overrides_service_token(self, backend, backend_settings):
        backend.add("GET", "/api/v1/health", {"status": "ok"})
        config = backend_settings.model_copy(update={"BACKEND_SERVICE_TOKEN": "svc-token"})

        async def user_token():
            return "user-token"

        async with BackendClient(config, user_token, httpx.MockTransport(backend)) as client:
            await client.get("/api/v1/health")

        assert backend.requests[0].headers["Authorization"] == "Bearer user-token"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_failures(self, client, backend, status_code):
        backend.add("GET", "/api/v1/user/profile", {"error": "nope"}, status_code=status_code)

        async with client:
            with pytest.raises(BackendAuthenticationError) as exc_info:
                await client.get("/api/v1/user/profile")

        assert exc_info.value.details["status_code"] == status_code

    @pytest.mark.asyncio
    async def test_server_error_is_backend_error(self, client, backend):
        backend.add("GET", "/api/v1/meditation/stats", {"error": "boom"}, status_code=500)

        async with client:
            with pytest.raises(BackendAPIError) as exc_info:
                await client.get("/api/v1/meditation/stats")

        assert not isinstance(exc_info.value, BackendAuthenticationError)
        assert exc_info.value.details["path"] == "/api/v1/meditation/stats"

    @pytest.mark.asyncio
    async def test_get_retries_connect_errors(self, backend_settings):
        attempts = 0

        def handler(request):
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("refused", request=request)

        async with BackendClient(backend_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(BackendAPIError):
                await client.get("/api/v1/health")

        assert attempts == backend_settings.BACKEND_MAX_RETRIES

    @pytest.mark.asyncio
    async def test_get_recovers_after_transient_error(self, backend_settings):
        attempts = 0

        def handler(request):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise httpx.ConnectTimeout("slow", request=request)
            return httpx.Response(200, json={"status": "ok"})

        async with BackendClient(backend_settings, transport=httpx.MockTransport(handler)) as client:
            assert await client.get("/api/v1/health") == {"status": "ok"}

        assert attempts == 2

    @pytest.mark.asyncio
    async def test_mutations_are_not_retried(self, backend_settings):
        attempts = 0

        def handler(request):
            nonlocal attempts
            attempts += 1
            raise httpx.ConnectError("refused", request=request)

        async with BackendClient(backend_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(BackendAPIError):
                await client.post("/api/v1/meditation/sessions", json={})

        assert attempts == 1

    @pytest.mark.asyncio
    async def test_empty_response_returns_none(self, client, backend):
        backend.add("DELETE", "/api/v1/chat/conversations/c1", None, status_code=204)

        async with client:
            assert await client.delete("/api/v1/chat/conversations/c1") is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_backend_error(self, backend_settings):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        async with BackendClient(backend_settings, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(BackendAPIError, match="invalid JSON"):
                await client.get("/api/v1/health")

    @pytest.mark.asyncio
    async def test_unopened_client_raises(self, client):
        with pytest.raises(BackendAPIError, match="not initialized"):
            await client.get("/api/v1/health")
