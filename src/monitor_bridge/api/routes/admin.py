from fastapi import APIRouter, Depends

from ...models.schemas import ConnectionListResponse
from ...services.bridge import MonitorBridge
from ..dependencies import get_bridge

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/connections", response_model=ConnectionListResponse)
async def list_connections(bridge: MonitorBridge = Depends(get_bridge)) -> ConnectionListResponse:
    """
    List all registered Socket.IO connections.

    Note: This endpoint should be protected in production.
    """
    connections = bridge.describe_connections()
    return ConnectionListResponse(count=len(connections), connections=connections)
