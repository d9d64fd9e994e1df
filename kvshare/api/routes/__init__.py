"""API route modules."""

from kvshare.api.routes.health import router as health_router
from kvshare.api.routes.records import router as records_router

__all__ = ["health_router", "records_router"]
