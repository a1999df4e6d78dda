"""API route modules."""

from lanpaste.api.routes.pastes import router as pastes_router
from lanpaste.api.routes.health import router as health_router

__all__ = ["pastes_router", "health_router"]
