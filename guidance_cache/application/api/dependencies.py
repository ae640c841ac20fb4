"""
FastAPI Dependency Injection
============================

Providers for the application singletons created in the lifespan manager
and stored on ``app.state``: the cache store, the backend client, the live
event stream and the warming service.

When the lifespan has not run (for example a TestClient used without a
``with`` block) each provider falls back to a lazily created instance and
stores it on ``app.state`` so later requests share it.
"""

from typing import Annotated

from fastapi import Depends, Request

from guidance_cache.core.config.settings import Settings, get_settings
from guidance_cache.infrastructure.cache.cache_store import CacheStore, get_cache_store
from guidance_cache.infrastructure.http.backend_client import BackendClient
from guidance_cache.infrastructure.monitoring.event_stream import CacheEventStream
from guidance_cache.application.services.warming_service import CacheWarmingService


def get_store(request: Request) -> CacheStore:
    """Retrieve the cache store from application state."""
    if not hasattr(request.app.state, "cache_store"):
        request.app.state.cache_store = get_cache_store()
    return request.app.state.cache_store


def get_backend_client(request: Request) -> BackendClient:
    if not hasattr(request.app.state, "backend_client"):
        request.app.state.backend_client = BackendClient(get_settings().backend)
    return request.app.state.backend_client


def get_event_stream(request: Request) -> CacheEventStream:
    """
    Retrieve the live cache event stream, registering a fallback stream on
    the store when the lifespan did not.
    """
    if not hasattr(request.app.state, "event_stream"):
        stream = CacheEventStream()
        get_store(request).instrumentation.add_listener(stream)
        request.app.state.event_stream = stream
    return request.app.state.event_stream


def get_warming_service(request: Request) -> CacheWarmingService:
    if not hasattr(request.app.state, "warming_service"):
        settings = get_settings()
        request.app.state.warming_service = CacheWarmingService(
            get_store(request),
            get_backend_client(request),
            refresh_interval_ms=settings.cache.CACHE_REFRESH_INTERVAL_MS,
        )
    return request.app.state.warming_service


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings)]
CacheStoreDep = Annotated[CacheStore, Depends(get_store)]
EventStreamDep = Annotated[CacheEventStream, Depends(get_event_stream)]
WarmingServiceDep = Annotated[CacheWarmingService, Depends(get_warming_service)]
