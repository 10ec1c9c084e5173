"""
Connection registry: one live connection per destination.

Establishment is single-flight per destination: the first caller starts it
and concurrent callers for the same destination await the same task.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..transports.base import StreamTransport
from .monitor_cache import MonitorCache

if TYPE_CHECKING:
    from .establisher import ConnectionEstablisher

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle of a connection entry."""
    CONNECTING = "connecting"
    READY = "ready"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


@dataclass
class ConnectionEntry:
    """An established connection and the monitors pushed over it."""

    destination: str
    transport: StreamTransport
    credentials: Dict[str, Any]
    monitors: MonitorCache = field(default_factory=MonitorCache)
    state: ConnectionState = ConnectionState.CONNECTING
    login_task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def is_ready(self) -> bool:
        """Ready for requests: handshake done and socket currently connected."""
        return self.state is ConnectionState.READY and self.transport.connected

    async def close(self) -> None:
        """Mark the entry closed and disconnect its transport."""
        self.state = ConnectionState.CLOSED
        task = self.login_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        try:
            await self.transport.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting {self.destination}: {e}")

    def describe(self) -> Dict[str, Any]:
        return {
            "destination": self.destination,
            "state": self.state.value,
            "connected": self.transport.connected,
            "sid": self.transport.sid,
            "monitors": len(self.monitors),
        }


class ConnectionRegistry:
    """
    Maps destinations to established connections.

    Entries live until their transport is closed; a closed entry is dropped
    and replaced by a fresh connection on the next request.
    """

    def __init__(self, establisher: "ConnectionEstablisher"):
        self._establisher = establisher
        self._entries: Dict[str, ConnectionEntry] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, destination: str) -> Optional[ConnectionEntry]:
        return self._entries.get(destination)

    async def get_or_create(
        self,
        destination: str,
        credentials: Dict[str, Any],
    ) -> ConnectionEntry:
        """
        Return the connection for a destination, establishing it if needed.

        Args:
            destination: Server URI, used as the registry key
            credentials: Login credentials; only used when a new connection is made

        Returns:
            The connection entry for ``destination``

        Raises:
            BridgeError: If a new connection could not be established. No
                entry is stored in that case, so a later call retries.
        """
        entry = self._entries.get(destination)
        if entry is not None:
            if entry.state is not ConnectionState.CLOSED:
                return entry
            logger.info(f"Dropping closed connection for {destination}")
            del self._entries[destination]

        task = self._in_flight.get(destination)
        if task is None:
            task = asyncio.create_task(self._establish(destination, credentials))
            task.add_done_callback(self._log_failure)
            self._in_flight[destination] = task
        else:
            logger.debug(f"Joining in-flight connection attempt for {destination}")

        # Shielded so that one cancelled caller does not abort the attempt for the others
        return await asyncio.shield(task)

    async def _establish(
        self,
        destination: str,
        credentials: Dict[str, Any],
    ) -> ConnectionEntry:
        try:
            entry = await self._establisher.establish(destination, credentials)
            self._entries[destination] = entry
            return entry
        finally:
            self._in_flight.pop(destination, None)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        # Also marks the exception as retrieved when every waiter was cancelled
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Connection attempt failed: {exc}")

    def describe(self) -> List[Dict[str, Any]]:
        """Snapshot of all registered connections."""
        return [entry.describe() for entry in self._entries.values()]

    async def close_all(self) -> None:
        """Close every connection and forget them."""
        pending = list(self._in_flight.values())
        for task in pending:
            task.cancel()
        # Cancelled attempts disconnect their own transports
        await asyncio.gather(*pending, return_exceptions=True)

        for destination in list(self._entries.keys()):
            entry = self._entries.pop(destination)
            await entry.close()

        logger.info("All connections closed")
