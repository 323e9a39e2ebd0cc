"""Route handlers for Web API."""

from remaimber.web.routes.banks import router as banks_router
from remaimber.web.routes.health import router as health_router
from remaimber.web.routes.hierarchy import router as hierarchy_router
from remaimber.web.routes.sessions import router as sessions_router

__all__ = [
    "banks_router",
    "health_router",
    "hierarchy_router",
    "sessions_router",
]
