"""API routes."""

from reconciliation_engine.api.routes.automation import router as automation_router
from reconciliation_engine.api.routes.health import router as health_router

__all__ = ["automation_router", "health_router"]
