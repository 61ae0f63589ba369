"""HTTP routers."""

from .health import router as health_router
from .intake import router as intake_router
from .projects import router as projects_router

__all__ = ["health_router", "intake_router", "projects_router"]
