"""
API router configuration.
"""
from fastapi import APIRouter

from .routes import admin_router, bridge_router, health_router

# Bridge routes are served at the root so existing clients keep working
router = APIRouter()

router.include_router(bridge_router)
router.include_router(health_router)
router.include_router(admin_router)
