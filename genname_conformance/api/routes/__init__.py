"""API route modules."""

from genname_conformance.api.routes.health import router as health_router
from genname_conformance.api.routes.scenarios import router as scenarios_router

__all__ = ["health_router", "scenarios_router"]
