"""
Core configuration and error types for the monitor bridge.
"""

from .config import settings, Settings
from .errors import (
    BridgeError,
    ValidationError,
    TransportUnavailableError,
    AuthenticationError,
    TransportError,
    AckTimeoutError,
    RemoteRejectedError,
)

__all__ = [
    # Config
    "settings",
    "Settings",
    # Errors
    "BridgeError",
    "ValidationError",
    "TransportUnavailableError",
    "AuthenticationError",
    "TransportError",
    "AckTimeoutError",
    "RemoteRejectedError",
]
