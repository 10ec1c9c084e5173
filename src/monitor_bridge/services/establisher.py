"""
Authenticated connection establishment.

Drives the connect -> (optional) login -> ready handshake for one destination
and wires the listeners that live for the whole connection: monitor cache
synchronization, re-login on reconnection and state tracking.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from ..core.errors import AuthenticationError, BridgeError, TransportError
from ..transports.base import TERMINAL_DISCONNECT_REASONS, TransportFactory
from .ack import request_ack
from .registry import ConnectionEntry, ConnectionState

logger = logging.getLogger(__name__)

# Server -> client events
CONNECT_EVENT = "connect"
DISCONNECT_EVENT = "disconnect"
CONNECT_ERROR_EVENT = "connect_error"
LOGIN_REQUIRED_EVENT = "loginRequired"
MONITOR_LIST_EVENT = "monitorList"
MONITOR_UPDATE_EVENT = "updateMonitorIntoList"
MONITOR_DELETE_EVENT = "deleteMonitorFromList"

# Client -> server events
LOGIN_EVENT = "login"


class _ConnectionListeners:
    """
    Event listeners bound to one connection entry.

    ``ready`` is resolved once, by the first of: login accepted, login
    rejected, disconnect, or the grace period passing without a login
    challenge. Later events only update the entry's state.

    The server may deliver ``loginRequired`` before ``connect``. The login is
    sent once both have been seen since the last disconnect, and the grace
    timer only runs while no challenge has arrived.
    """

    def __init__(
        self,
        entry: ConnectionEntry,
        ready: asyncio.Future,
        login_timeout: float,
        login_grace: float,
    ):
        self.entry = entry
        self.ready = ready
        self.login_timeout = login_timeout
        self.login_grace = login_grace
        self._grace_handle: Optional[asyncio.TimerHandle] = None
        self._namespace_open = False
        self._challenged = False

    def bind(self) -> None:
        transport = self.entry.transport
        transport.on(CONNECT_EVENT, self.on_connect)
        transport.on(DISCONNECT_EVENT, self.on_disconnect)
        transport.on(CONNECT_ERROR_EVENT, self.on_connect_error)
        transport.on(LOGIN_REQUIRED_EVENT, self.on_login_required)
        transport.on(MONITOR_LIST_EVENT, self.entry.monitors.replace_all)
        transport.on(MONITOR_UPDATE_EVENT, self.entry.monitors.upsert)
        transport.on(MONITOR_DELETE_EVENT, self.entry.monitors.delete)

    def cancel_grace(self) -> None:
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None

    @property
    def abandoned(self) -> bool:
        """The entry is closed or its handshake already failed."""
        if self.entry.state is ConnectionState.CLOSED:
            return True
        return self.ready.done() and (
            self.ready.cancelled() or self.ready.exception() is not None
        )

    def on_connect(self) -> None:
        transport = self.entry.transport
        logger.info(f"Connected to {self.entry.destination} (sid: {transport.sid})")
        self._namespace_open = True

        if self.abandoned:
            logger.debug(f"Ignoring connect for abandoned connection to {self.entry.destination}")
            return

        if self._challenged:
            self._start_login()
            return

        if self.ready.done():
            logger.info(f"Reconnected to {self.entry.destination}")
            if self.entry.login_task is None:
                self.entry.state = ConnectionState.READY
                return
            # Previously logged in; not usable until re-login or the grace period passes
            self.entry.state = ConnectionState.CONNECTING

        loop = asyncio.get_running_loop()
        self._grace_handle = loop.call_later(self.login_grace, self._ready_without_login)

    def _ready_without_login(self) -> None:
        self._grace_handle = None
        if not self.ready.done():
            logger.info(f"No login challenge from {self.entry.destination}, connection ready")
            self.ready.set_result(None)
        elif self.entry.state is ConnectionState.CONNECTING:
            self.entry.state = ConnectionState.READY

    def on_disconnect(self, reason: Optional[str] = None) -> None:
        reason = reason or "transport close"
        logger.warning(f"Disconnected from {self.entry.destination}: {reason}")
        self.cancel_grace()
        self._namespace_open = False
        self._challenged = False

        if self.entry.state is not ConnectionState.CLOSED:
            if reason in TERMINAL_DISCONNECT_REASONS or not self.entry.transport.reconnects:
                self.entry.state = ConnectionState.CLOSED
            else:
                self.entry.state = ConnectionState.DISCONNECTED

        if not self.ready.done():
            self.ready.set_exception(TransportError(reason))

    def on_connect_error(self, data: Any = None) -> None:
        logger.warning(f"Connection error from {self.entry.destination}: {data}")

    def on_login_required(self) -> None:
        logger.info(f"Login required by {self.entry.destination}")
        self.cancel_grace()
        self._challenged = True

        if self.abandoned:
            return
        if not self._namespace_open:
            logger.debug("Login deferred until the namespace is connected")
            return
        self._start_login()

    def _start_login(self) -> None:
        if self.entry.login_task is not None and not self.entry.login_task.done():
            logger.debug("Login already in progress")
            return
        self.entry.login_task = asyncio.create_task(self._login())

    async def _login(self) -> None:
        error: Optional[BridgeError] = None
        try:
            ack = await request_ack(
                self.entry.transport,
                LOGIN_EVENT,
                self.entry.credentials,
                self.login_timeout,
            )
            if not isinstance(ack, dict) or not ack.get("ok"):
                msg = ack.get("msg") if isinstance(ack, dict) else None
                error = AuthenticationError(msg or "Login failed")
        except BridgeError as e:
            error = e

        if error is None:
            logger.info(f"Login successful for {self.entry.destination}")
            if not self.ready.done():
                self.ready.set_result(None)
            elif self.entry.state is not ConnectionState.CLOSED:
                self.entry.state = ConnectionState.READY
            return

        logger.warning(f"Login failed for {self.entry.destination}: {error.message}")
        if not self.ready.done():
            self.ready.set_exception(error)
        elif self.entry.state is not ConnectionState.CLOSED:
            # Rejected on a later challenge; stop using this connection
            await self.entry.close()


class ConnectionEstablisher:
    """
    Creates ready-to-use connections.

    A connection is ready when the transport is connected and either the
    server's login challenge was answered successfully, or no challenge
    arrived within the login grace period.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        login_timeout_ms: int = 5000,
        login_grace_ms: int = 500,
        connect_timeout: float = 10.0,
    ):
        """
        Initialize the establisher.

        Args:
            transport_factory: Builds a transport for a destination
            login_timeout_ms: Deadline for the login acknowledgement
            login_grace_ms: Wait for a login challenge before assuming none is needed
            connect_timeout: Deadline for the whole handshake (seconds)
        """
        self._transport_factory = transport_factory
        self._login_timeout = login_timeout_ms / 1000
        self._login_grace = login_grace_ms / 1000
        self._connect_timeout = connect_timeout

    async def establish(
        self,
        destination: str,
        credentials: Dict[str, Any],
    ) -> ConnectionEntry:
        """
        Connect to a destination and wait until it is ready.

        Args:
            destination: Server URI
            credentials: Sent as the login payload if the server asks for it

        Returns:
            A ready connection entry

        Raises:
            TransportError: Connect failed, disconnected before ready, or timed out
            AuthenticationError: The server rejected the credentials
            AckTimeoutError: The server never acknowledged the login
        """
        transport = self._transport_factory(destination)
        entry = ConnectionEntry(
            destination=destination,
            transport=transport,
            credentials=credentials,
        )
        ready = asyncio.get_running_loop().create_future()
        listeners = _ConnectionListeners(entry, ready, self._login_timeout, self._login_grace)
        listeners.bind()

        try:
            await transport.connect()
            await asyncio.wait_for(ready, timeout=self._connect_timeout)
        except ConnectionError as e:
            await self._abandon(entry, listeners)
            raise TransportError(str(e)) from e
        except asyncio.TimeoutError:
            await self._abandon(entry, listeners)
            raise TransportError(
                f"not ready after {self._connect_timeout}s"
            ) from None
        except (BridgeError, asyncio.CancelledError):
            await self._abandon(entry, listeners)
            raise

        if entry.state is ConnectionState.CONNECTING:
            entry.state = ConnectionState.READY
        logger.info(f"Connection to {destination} ready")
        return entry

    @staticmethod
    async def _abandon(entry: ConnectionEntry, listeners: _ConnectionListeners) -> None:
        listeners.cancel_grace()
        ready = listeners.ready
        if ready.done():
            if not ready.cancelled():
                ready.exception()
        else:
            ready.cancel()
        await entry.close()
