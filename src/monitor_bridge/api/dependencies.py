"""
FastAPI dependencies.
"""
from fastapi import HTTPException, Request, status

from ..services.bridge import MonitorBridge


def get_bridge(request: Request) -> MonitorBridge:
    """The MonitorBridge created by the application lifespan."""
    bridge = getattr(request.app.state, "bridge", None)
    if bridge is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Bridge not initialized",
        )
    return bridge
