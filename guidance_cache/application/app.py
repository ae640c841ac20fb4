"""
FastAPI Application Entry Point

Operational HTTP surface of the guidance cache service: health, cache
administration, the live cache event stream and Prometheus metrics.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from guidance_cache.application.api.routes.admin import router as admin_router
from guidance_cache.application.api.routes.health import router as health_router
from guidance_cache.application.services.warming_service import CacheWarmingService
from guidance_cache.core.config.constants import API_BASE_PATH
from guidance_cache.core.config.settings import get_settings
from guidance_cache.core.exceptions import BackendAPIError, BackendAuthenticationError, GuidanceCacheError
from guidance_cache.core.logging.logger import get_logger, setup_logging
from guidance_cache.infrastructure.cache.cache_store import close_cache, init_cache
from guidance_cache.infrastructure.http.backend_client import BackendClient
from guidance_cache.infrastructure.monitoring.event_stream import CacheEventStream
from guidance_cache.infrastructure.monitoring.metrics_collector import get_metrics_collector

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Startup: logging, cache store (with its cleanup task), event listeners,
    backend client, warming service. Shutdown runs in reverse.
    """
    settings = get_settings()

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting Guidance Cache Service",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    backend_client = BackendClient(settings.backend)
    logger.info(
        "Backend client configured",
        base_url=settings.backend.BACKEND_BASE_URL,
        service_token=settings.backend.BACKEND_SERVICE_TOKEN is not None,
    )
    warming_service: CacheWarmingService | None = None

    try:
        store = await init_cache()
        logger.info("Cache store initialized", max_size=store.max_size)

        metrics = get_metrics_collector()
        metrics.bind_store(store)
        store.instrumentation.add_listener(metrics)

        event_stream = CacheEventStream()
        store.instrumentation.add_listener(event_stream)

        await backend_client.open()

        warming_service = CacheWarmingService(
            store,
            backend_client,
            refresh_interval_ms=settings.cache.CACHE_REFRESH_INTERVAL_MS,
        )

        app.state.cache_store = store
        app.state.event_stream = event_stream
        app.state.backend_client = backend_client
        app.state.warming_service = warming_service

        logger.info("Application startup complete")

        yield

    finally:
        logger.info("Shutting down application")

        if warming_service is not None:
            await warming_service.stop_periodic_refresh()
        await backend_client.close()
        await close_cache()

        logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="In-process cache with TTL, versioning and wildcard invalidation",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.include_router(health_router, prefix=API_BASE_PATH)
    app.include_router(admin_router)

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": f"{API_BASE_PATH}/health",
        }

    @app.exception_handler(GuidanceCacheError)
    async def guidance_cache_exception_handler(request: Request, exc: GuidanceCacheError):
        if isinstance(exc, BackendAuthenticationError):
            status_code = 401
        elif isinstance(exc, BackendAPIError):
            status_code = 502
        else:
            status_code = 500

        logger.error(
            f"Request failed: {exc.message}",
            error_type=type(exc).__name__,
            path=request.url.path,
            status_code=status_code,
        )
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "guidance_cache.application.app:app",
        host=settings.app.API_HOST,
        port=settings.app.API_PORT,
        reload=settings.app.ENVIRONMENT == "development",
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
