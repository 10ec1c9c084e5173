"""
Stream transports

This package provides the transport interface used by the bridge and its
Socket.IO implementation.
"""
from .base import StreamTransport, TransportFactory
from .socketio_transport import SocketIOTransport

__all__ = [
    "StreamTransport",
    "TransportFactory",
    "SocketIOTransport",
]
