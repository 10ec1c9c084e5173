"""
Error taxonomy for the bridge.

Every error knows the HTTP status it maps to and the JSON body returned to
the caller, so routes only need to let them propagate.
"""
from typing import Any, Dict


class BridgeError(Exception):
    """Base class for errors surfaced to HTTP callers."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> Dict[str, Any]:
        """Structured body for the HTTP response."""
        return {"error": self.message}


class ValidationError(BridgeError):
    """Required request fields are missing or malformed."""

    status_code = 400


class TransportUnavailableError(BridgeError):
    """The connection exists but is not currently connected."""

    status_code = 503

    def __init__(self, message: str = "Socket.IO disconnected"):
        super().__init__(message)


class AuthenticationError(BridgeError):
    """The server rejected the login challenge response."""

    status_code = 401

    def __init__(self, message: str = "Login failed"):
        super().__init__(message)


class TransportError(BridgeError):
    """The transport closed or failed before the connection became ready."""

    status_code = 502

    def __init__(self, reason: str):
        super().__init__(f"Socket.IO connection failed: {reason}")
        self.reason = reason

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.message, "reason": self.reason}


class AckTimeoutError(BridgeError):
    """No acknowledgement arrived within the deadline."""

    status_code = 504

    def __init__(self, event_name: str):
        super().__init__("ACK timeout")
        self.event_name = event_name

    def to_response(self) -> Dict[str, Any]:
        return {"error": self.message, "eventName": self.event_name}


class RemoteRejectedError(BridgeError):
    """The server acknowledged the event but reported failure."""

    status_code = 400

    def __init__(self, payload: Dict[str, Any]):
        super().__init__(str(payload.get("msg") or "Remote rejected the event"))
        self.payload = payload

    def to_response(self) -> Dict[str, Any]:
        # Passed through verbatim
        return self.payload
