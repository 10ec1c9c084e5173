"""
API models for the monitor bridge.
"""
from .schemas import (
    BaseDTO,
    ConnectionRequest,
    EmitRequest,
    AckPayload,
    GroupSummary,
    ErrorResponse,
    HealthResponse,
    ConnectionInfo,
    ConnectionListResponse,
)

__all__ = [
    "BaseDTO",
    "ConnectionRequest",
    "EmitRequest",
    "AckPayload",
    "GroupSummary",
    "ErrorResponse",
    "HealthResponse",
    "ConnectionInfo",
    "ConnectionListResponse",
]
