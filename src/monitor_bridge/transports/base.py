"""
Base transport interface for real-time stream connections.

A transport owns one socket to one destination, including its reconnection
policy. The bridge only needs a small surface: register event listeners,
connect, emit with an optional acknowledgement callback, and disconnect.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

# Listener for a server-pushed event; may be a plain function or a coroutine function
EventListener = Callable[..., Any]

# Called with the acknowledgement arguments sent back by the server
AckCallback = Callable[..., None]

# Builds a transport for a destination URI
TransportFactory = Callable[[str], "StreamTransport"]

# Disconnect reasons after which the transport will not reconnect on its own
CLIENT_DISCONNECT = "client disconnect"
SERVER_DISCONNECT = "server disconnect"
TERMINAL_DISCONNECT_REASONS = frozenset({
    CLIENT_DISCONNECT,
    SERVER_DISCONNECT,
    "io client disconnect",
    "io server disconnect",
})


class StreamTransport(ABC):
    """
    Abstract base class for stream transports.

    Implementations deliver server events to listeners in the order the
    server sent them.
    """

    def __init__(self, destination: str):
        self.destination = destination

    @abstractmethod
    def on(self, event: str, listener: EventListener) -> None:
        """
        Register a listener for a server-pushed event.

        Listeners must be registered before connect() so that events sent
        during the handshake are not missed.
        """
        pass

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            ConnectionError: If the transport could not reach the destination
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection and stop any reconnection attempts."""
        pass

    @abstractmethod
    async def emit(
        self,
        event: str,
        data: Any = None,
        callback: Optional[AckCallback] = None,
    ) -> None:
        """
        Send an event to the server.

        Args:
            event: Event name
            data: JSON-serializable payload
            callback: Invoked with the server's acknowledgement, if any
        """
        pass

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the transport is currently connected."""
        pass

    @property
    def sid(self) -> Optional[str]:
        """Session id assigned by the server, when connected."""
        return None

    @property
    def reconnects(self) -> bool:
        """Whether the transport reconnects by itself after an unexpected drop."""
        return False

    @property
    def name(self) -> str:
        """Return the transport name for logging."""
        return self.__class__.__name__
