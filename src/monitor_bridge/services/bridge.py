"""
MonitorBridge - request/response operations over pooled stream connections.

One instance is created per application and owns the connection registry.
"""
import logging
from typing import Any, Dict, List, Optional

from ..core.config import Settings, settings as default_settings
from ..core.errors import TransportUnavailableError
from ..transports.base import TransportFactory
from ..transports.socketio_transport import SocketIOTransport
from .ack import emit_with_ack
from .establisher import ConnectionEstablisher
from .registry import ConnectionEntry, ConnectionRegistry

logger = logging.getLogger(__name__)


def socketio_transport_factory(config: Settings) -> TransportFactory:
    """Factory building Socket.IO transports from configuration."""

    def factory(destination: str) -> SocketIOTransport:
        return SocketIOTransport(
            destination,
            transports=config.SOCKETIO_TRANSPORTS,
            reconnection=config.SOCKETIO_RECONNECTION,
            reconnection_attempts=config.SOCKETIO_RECONNECTION_ATTEMPTS,
            reconnection_delay=config.SOCKETIO_RECONNECTION_DELAY,
            wait_timeout=config.CONNECT_TIMEOUT_SECONDS,
        )

    return factory


class MonitorBridge:
    """
    Bridges HTTP-style request/response calls onto Socket.IO connections.

    - emit(): send an event and wait for its acknowledgement
    - list_monitors() / list_groups(): read the server-pushed monitor cache
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport_factory: Optional[TransportFactory] = None,
    ):
        self.config = config or default_settings
        establisher = ConnectionEstablisher(
            transport_factory or socketio_transport_factory(self.config),
            login_timeout_ms=self.config.LOGIN_TIMEOUT_MS,
            login_grace_ms=self.config.LOGIN_GRACE_MS,
            connect_timeout=self.config.CONNECT_TIMEOUT_SECONDS,
        )
        self.registry = ConnectionRegistry(establisher)

    async def _connected_entry(
        self,
        destination: str,
        credentials: Dict[str, Any],
    ) -> ConnectionEntry:
        entry = await self.registry.get_or_create(destination, credentials)
        if not entry.is_ready:
            raise TransportUnavailableError()
        return entry

    async def emit(
        self,
        destination: str,
        credentials: Dict[str, Any],
        event_name: str,
        payload: Any,
        timeout_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Emit an event and return the server's acknowledgement.

        Args:
            destination: Server URI
            credentials: Login credentials for a new connection
            event_name: Event to emit
            payload: Event payload
            timeout_ms: Acknowledgement deadline (defaults to ACK_TIMEOUT_MS)

        Returns:
            The ack payload, unchanged
        """
        entry = await self._connected_entry(destination, credentials)
        return await emit_with_ack(
            entry.transport,
            event_name,
            payload,
            timeout_ms=timeout_ms,
            default_timeout_ms=self.config.ACK_TIMEOUT_MS,
        )

    async def list_monitors(
        self,
        destination: str,
        credentials: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """All cached monitors for a destination, in no particular order."""
        logger.info(f"Listing monitors for {destination}")
        entry = await self._connected_entry(destination, credentials)
        return entry.monitors.values()

    async def list_groups(
        self,
        destination: str,
        credentials: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Cached group monitors for a destination as ``{id, name}`` items."""
        logger.info(f"Listing groups for {destination}")
        entry = await self._connected_entry(destination, credentials)
        return entry.monitors.groups()

    def describe_connections(self) -> List[Dict[str, Any]]:
        return self.registry.describe()

    async def close(self) -> None:
        """Close all connections."""
        await self.registry.close_all()
