"""
Service layer for the monitor bridge.
"""
from .ack import PendingAck, emit_with_ack, request_ack
from .bridge import MonitorBridge
from .establisher import ConnectionEstablisher
from .monitor_cache import MonitorCache
from .registry import ConnectionEntry, ConnectionRegistry, ConnectionState

__all__ = [
    "MonitorBridge",
    "ConnectionRegistry",
    "ConnectionEntry",
    "ConnectionState",
    "ConnectionEstablisher",
    "MonitorCache",
    "PendingAck",
    "emit_with_ack",
    "request_ack",
]
