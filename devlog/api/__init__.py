"""API routers."""

from devlog.api.health import router as health_router
from devlog.api.summaries import router as summaries_router

__all__ = [
    "health_router",
    "summaries_router",
]
