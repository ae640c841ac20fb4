from guidance_cache.application.api.routes.admin import router as admin_router
from guidance_cache.application.api.routes.health import router as health_router

__all__ = ["admin_router", "health_router"]
