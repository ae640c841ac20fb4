"""
Backend REST Client

Asynchronous HTTP client for the application backend
(`/api/v1/meditation/...`, `/api/v1/chat/...`, `/api/v1/user/...`).
Its methods are what cache fetch functions wrap.

RESILIENCE:
-----------
- Connection pooling through one shared httpx.AsyncClient
- GET requests retried with exponential backoff and jitter on transient
  transport errors (connect failures, timeouts)
- Mutations are never retried
- Every failure is raised as BackendAPIError with context; the cache store
  propagates it to the caller unchanged

AUTHENTICATION:
---------------
The bearer token comes from an async token provider. When none is injected
the client falls back to BACKEND_SERVICE_TOKEN, the credential the service
uses for its own calls (warming, periodic refresh). The token is opaque here.

Usage:
    async with BackendClient(token_provider=get_token) as client:
        schedules = await client.get("/api/v1/meditation/schedules", params={"active_only": True})
"""

from __future__ import annotations

from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from guidance_cache.core.config.settings import BackendSettings, get_settings
from guidance_cache.core.exceptions import BackendAPIError, BackendAuthenticationError
from guidance_cache.core.interfaces.cache import TokenProvider
from guidance_cache.core.logging import get_logger

logger = get_logger(__name__)

_TRANSIENT_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


def service_token_provider(token: str | None) -> TokenProvider | None:
    """Wrap a fixed service token as a token provider; None when unset."""
    if not token:
        return None

    async def _provide() -> str:
        return token

    return _provide


class BackendClient:
    """
    Async client for the backend REST API.

    The client must be used as an async context manager (or explicitly
    opened and closed) so connections are released.
    """

    def __init__(
        self,
        config: BackendSettings | None = None,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Backend settings (default: from global settings)
            token_provider: Async callable returning a bearer token or None
                (default: the configured service token, if any)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.config = config or get_settings().backend
        self._token_provider = token_provider or service_token_provider(self.config.BACKEND_SERVICE_TOKEN)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self.config.BACKEND_BASE_URL,
            timeout=httpx.Timeout(self.config.BACKEND_TIMEOUT),
            transport=self._transport,
        )
        logger.debug("Backend client opened", base_url=self.config.BACKEND_BASE_URL)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            logger.debug("Backend client closed")
        self._client = None

    async def __aenter__(self) -> BackendClient:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def set_token_provider(self, token_provider: TokenProvider | None) -> None:
        self._token_provider = token_provider or service_token_provider(self.config.BACKEND_SERVICE_TOKEN)

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET with retries on transient transport errors."""

        @retry(
            stop=stop_after_attempt(max(1, self.config.BACKEND_MAX_RETRIES)),
            wait=wait_exponential_jitter(
                initial=self.config.BACKEND_RETRY_BASE_DELAY,
                max=self.config.BACKEND_RETRY_MAX_DELAY,
                jitter=self.config.BACKEND_RETRY_BASE_DELAY,
            ),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        )
        async def _do_request() -> Any:
            return await self._send("GET", path, params=params)

        return await self._translate(path, _do_request)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self._translate(path, lambda: self._send("POST", path, json=json))

    async def put(self, path: str, json: Any = None) -> Any:
        return await self._translate(path, lambda: self._send("PUT", path, json=json))

    async def delete(self, path: str) -> Any:
        return await self._translate(path, lambda: self._send("DELETE", path))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _headers(self) -> dict[str, str]:
        if self._token_provider is None:
            return {}
        token = await self._token_provider()
        if not token:
            logger.debug("No auth token available for backend request")
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        if self._client is None:
            raise BackendAPIError(
                "BackendClient not initialized. Use 'async with BackendClient() as client:'",
                details={"path": path},
            )

        response = await self._client.request(method, path, headers=await self._headers(), **kwargs)
        response.raise_for_status()

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def _translate(self, path: str, call) -> Any:
        try:
            return await call()

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_cls = BackendAuthenticationError if status_code in (401, 403) else BackendAPIError
            raise error_cls(
                f"Backend returned HTTP {status_code}",
                details={
                    "path": path,
                    "status_code": status_code,
                    "response_text": e.response.text[:500] if e.response.text else None,
                },
            ) from e

        except httpx.TimeoutException as e:
            raise BackendAPIError(
                f"Backend request timed out after {self.config.BACKEND_TIMEOUT}s",
                details={"path": path, "timeout": self.config.BACKEND_TIMEOUT},
            ) from e

        except httpx.HTTPError as e:
            raise BackendAPIError.from_exception(e, f"Backend request failed: {path}", path=path) from e

        except ValueError as e:
            raise BackendAPIError.from_exception(e, "Backend returned invalid JSON", path=path) from e
