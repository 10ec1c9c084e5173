from fastapi import APIRouter, Depends

from ...models.schemas import HealthResponse
from ...services.bridge import MonitorBridge
from ..dependencies import get_bridge

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(bridge: MonitorBridge = Depends(get_bridge)) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status and how many registered connections are ready.
    """
    connections = bridge.describe_connections()
    ready = sum(1 for c in connections if c["state"] == "ready" and c["connected"])
    return HealthResponse(
        status="healthy" if ready == len(connections) else "degraded",
        connections=len(connections),
        ready=ready,
    )
