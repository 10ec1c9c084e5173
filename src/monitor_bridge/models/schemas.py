"""
Request/response models for the bridge API.

Field names are camelCase on the wire. The field names of earlier bridge
clients (``uri``, ``event``, ``timeout``) are accepted as aliases.
"""
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class BaseDTO(BaseModel):
    """
    Base configuration for all DTOs.

    - Aliases are generated in camelCase for JSON serialization.
    - Allows population by field name (snake_case) in Python code.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ConnectionRequest(BaseDTO):
    """Identifies the server to talk to and how to log in to it."""
    destination: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("destination", "uri"),
        description="Socket.IO server URI, e.g. ws://localhost:3001",
    )
    credentials: Dict[str, Any] = Field(
        ...,
        description="Login payload (usually username/password), used only when connecting.",
    )


class EmitRequest(ConnectionRequest):
    """Emit an event and wait for its acknowledgement."""
    event_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("eventName", "event_name", "event"),
        description="Socket.IO event to emit.",
    )
    payload: Any = Field(..., description="Event payload, forwarded as-is.")
    timeout_ms: Optional[int] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("timeoutMs", "timeout_ms", "timeout"),
        description="Acknowledgement deadline in milliseconds (default 5000).",
    )

    @field_validator("payload")
    @classmethod
    def payload_not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("payload is required")
        return v


class AckPayload(BaseModel):
    """Acknowledgement sent back by the server; extra fields are event specific."""
    model_config = ConfigDict(extra="allow")

    ok: bool = Field(..., description="Whether the server accepted the event.")


class GroupSummary(BaseModel):
    """A group monitor projected to its identity."""
    id: Any = Field(..., description="Monitor ID")
    name: Any = Field(default=None, description="Group name")


class ErrorResponse(BaseModel):
    """Error body returned for every failure."""
    model_config = ConfigDict(extra="allow")

    error: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    connections: int = Field(..., description="Number of registered connections")
    ready: int = Field(..., description="Number of connections ready for requests")


class ConnectionInfo(BaseModel):
    """Admin view of one registered connection."""
    destination: str
    state: str
    connected: bool
    sid: Optional[str] = None
    monitors: int


class ConnectionListResponse(BaseModel):
    count: int
    connections: List[ConnectionInfo]
