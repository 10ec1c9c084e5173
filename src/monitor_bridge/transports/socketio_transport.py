"""
Socket.IO transport.

Implements StreamTransport on top of python-socketio's asyncio client. The
client's built-in reconnection policy handles transient drops; the bridge
only observes the resulting connect/disconnect events.
"""
import logging
from typing import Any, Iterable, Optional

import socketio
from socketio import exceptions as sio_exceptions

from .base import AckCallback, EventListener, StreamTransport

logger = logging.getLogger(__name__)


class SocketIOTransport(StreamTransport):
    """
    Socket.IO client connection to a single destination.

    Features:
    - websocket-only transport by default
    - automatic reconnection with configurable attempts and delay
    - acknowledgement callbacks on emit
    """

    def __init__(
        self,
        destination: str,
        transports: Iterable[str] = ("websocket",),
        reconnection: bool = True,
        reconnection_attempts: int = 0,
        reconnection_delay: float = 1.0,
        wait_timeout: float = 10.0,
    ):
        """
        Initialize the Socket.IO transport.

        Args:
            destination: Server URI (e.g., "ws://localhost:3001")
            transports: Engine.IO transports to allow
            reconnection: Whether to reconnect automatically after a drop
            reconnection_attempts: Max reconnection attempts (0 for infinite)
            reconnection_delay: Initial delay between reconnection attempts (seconds)
            wait_timeout: How long connect() waits for the namespace handshake (seconds)
        """
        super().__init__(destination)
        self._transports = list(transports)
        self._reconnection = reconnection
        self._wait_timeout = wait_timeout
        self._client = socketio.AsyncClient(
            reconnection=reconnection,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            logger=False,
            engineio_logger=False,
        )

    def on(self, event: str, listener: EventListener) -> None:
        self._client.on(event, listener)

    async def connect(self) -> None:
        """Connect to the Socket.IO server."""
        logger.info(f"Connecting to Socket.IO server at {self.destination}")

        try:
            await self._client.connect(
                self.destination,
                transports=self._transports,
                wait_timeout=self._wait_timeout,
            )
        except sio_exceptions.ConnectionError as e:
            logger.error(f"Failed to connect to {self.destination}: {e}")
            raise ConnectionError(f"Failed to connect to {self.destination}: {e}") from e

    async def disconnect(self) -> None:
        """Gracefully disconnect from the server."""
        logger.info(f"Disconnecting from {self.destination}")
        await self._client.disconnect()

    async def emit(
        self,
        event: str,
        data: Any = None,
        callback: Optional[AckCallback] = None,
    ) -> None:
        # Emits are accepted once the namespace is up, before `connected` is set
        try:
            await self._client.emit(event, data, callback=callback)
            logger.debug(f"Emitted {event} to {self.destination}")
        except sio_exceptions.SocketIOError as e:
            raise ConnectionError(f"Failed to emit {event} to {self.destination}: {e}") from e

    @property
    def connected(self) -> bool:
        return self._client.connected

    @property
    def sid(self) -> Optional[str]:
        return self._client.sid

    @property
    def reconnects(self) -> bool:
        return self._reconnection
