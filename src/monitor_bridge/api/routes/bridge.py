"""
Bridge endpoints: emit with acknowledgement, list monitors, list groups.

Errors raised by the bridge (BridgeError) are turned into JSON responses by
the application's exception handlers.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...models.schemas import (
    AckPayload,
    ConnectionRequest,
    EmitRequest,
    ErrorResponse,
    GroupSummary,
)
from ...services.bridge import MonitorBridge
from ..dependencies import get_bridge

router = APIRouter(tags=["Bridge"])
logger = logging.getLogger(__name__)

ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing fields or remote rejection"},
    503: {"model": ErrorResponse, "description": "Socket.IO disconnected"},
}


@router.post(
    "/emit",
    responses={
        200: {"model": AckPayload},
        504: {"model": ErrorResponse, "description": "ACK timeout"},
        **ERROR_RESPONSES,
    },
)
async def emit_event(
    request: EmitRequest,
    bridge: MonitorBridge = Depends(get_bridge),
) -> JSONResponse:
    """
    Emit an event on the destination's Socket.IO connection and return the
    server's acknowledgement unchanged.

    A rejected acknowledgement (``ok`` false) is returned verbatim with
    status 400.
    """
    ack = await bridge.emit(
        destination=request.destination,
        credentials=request.credentials,
        event_name=request.event_name,
        payload=request.payload,
        timeout_ms=request.timeout_ms,
    )
    return JSONResponse(content=ack)


@router.post("/monitors", response_model=List[Dict[str, Any]], responses=ERROR_RESPONSES)
async def list_monitors(
    request: ConnectionRequest,
    bridge: MonitorBridge = Depends(get_bridge),
) -> List[Dict[str, Any]]:
    """List all monitors pushed by the destination server."""
    return await bridge.list_monitors(request.destination, request.credentials)


@router.post("/groups", response_model=List[GroupSummary], responses=ERROR_RESPONSES)
async def list_groups(
    request: ConnectionRequest,
    bridge: MonitorBridge = Depends(get_bridge),
) -> List[Dict[str, Any]]:
    """List group monitors as ``{id, name}`` pairs."""
    return await bridge.list_groups(request.destination, request.credentials)
