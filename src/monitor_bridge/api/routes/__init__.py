"""
API route modules.
"""
from .admin import router as admin_router
from .bridge import router as bridge_router
from .health import router as health_router

__all__ = ["admin_router", "bridge_router", "health_router"]
