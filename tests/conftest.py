"""
Pytest configuration for Monitor Bridge tests.

The Socket.IO server is replaced by FakeServer/FakeTransport: a scripted
stand-in that records emits, answers login and configured events with
acknowledgements, and lets tests push server events.
"""
import asyncio
import inspect
from typing import Any, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from monitor_bridge.core.config import Settings
from monitor_bridge.main import create_app
from monitor_bridge.services.establisher import ConnectionEstablisher
from monitor_bridge.services.registry import ConnectionRegistry
from monitor_bridge.transports.base import AckCallback, EventListener, StreamTransport


class FakeServer:
    """Behaviour of the remote server shared by all transports it creates."""

    def __init__(self):
        self.login_required = False
        # Deliver loginRequired before the connect event, as the client may
        # when it handles packets concurrently
        self.challenge_first = False
        self.accept_login = True
        self.refuse_connect = False
        self.disconnect_reason: Optional[str] = None
        # event name -> ack payload; events not listed are never acknowledged
        self.acks: Dict[str, Any] = {}
        self.ack_delay = 0.0
        self.connect_count = 0
        self.transports: List["FakeTransport"] = []

    def factory(self, destination: str) -> "FakeTransport":
        transport = FakeTransport(destination, self)
        self.transports.append(transport)
        return transport

    def transport_for(self, destination: str) -> "FakeTransport":
        return [t for t in self.transports if t.destination == destination][-1]


class FakeTransport(StreamTransport):
    """
    Scripted transport following the python-socketio client's ordering:
    emits work once the namespace is open, but ``connected`` only turns
    true after connect() (or a reconnection) has returned.
    """

    def __init__(self, destination: str, server: FakeServer):
        super().__init__(destination)
        self.server = server
        self.listeners: Dict[str, EventListener] = {}
        self.emitted: List[tuple] = []
        self._namespace_open = False
        self._connected = False

    def on(self, event: str, listener: EventListener) -> None:
        self.listeners[event] = listener

    async def fire(self, event: str, *args: Any) -> None:
        """Deliver a server event to the registered listener."""
        listener = self.listeners.get(event)
        if listener is None:
            return
        result = listener(*args)
        if inspect.isawaitable(result):
            await result

    async def connect(self) -> None:
        self.server.connect_count += 1
        await asyncio.sleep(0)
        if self.server.refuse_connect:
            raise ConnectionError("connection refused")
        await self._open()

    async def _open(self) -> None:
        if self.server.login_required and self.server.challenge_first:
            await self.fire("loginRequired")

        self._namespace_open = True
        await self.fire("connect")
        if self.server.disconnect_reason:
            self._namespace_open = False
            await self.fire("disconnect", self.server.disconnect_reason)
            return
        if self.server.login_required and not self.server.challenge_first:
            await self.fire("loginRequired")

        self._connected = self._namespace_open

    async def disconnect(self) -> None:
        if not self._namespace_open:
            return
        self._namespace_open = False
        self._connected = False
        await self.fire("disconnect", "client disconnect")

    async def emit(
        self,
        event: str,
        data: Any = None,
        callback: Optional[AckCallback] = None,
    ) -> None:
        if not self._namespace_open:
            raise ConnectionError("not connected")
        self.emitted.append((event, data))

        if event == "login":
            if self.server.accept_login:
                ack = {"ok": True, "token": "session-token"}
            else:
                ack = {"ok": False, "msg": "Incorrect username or password."}
        elif event in self.server.acks:
            ack = self.server.acks[event]
        else:
            return

        if callback is not None:
            asyncio.get_running_loop().call_later(self.server.ack_delay, callback, ack)

    async def drop(self, reason: str = "transport close") -> None:
        """Simulate the server or network dropping the connection."""
        self._namespace_open = False
        self._connected = False
        await self.fire("disconnect", reason)

    async def restore(self) -> None:
        """Simulate an automatic reconnection."""
        await self._open()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def sid(self) -> Optional[str]:
        return "fake-sid" if self._namespace_open else None

    @property
    def reconnects(self) -> bool:
        return True


DESTINATION = "ws://h:1"
CREDENTIALS = {"username": "admin", "password": "secret"}


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        ACK_TIMEOUT_MS=200,
        LOGIN_TIMEOUT_MS=200,
        LOGIN_GRACE_MS=10,
        CONNECT_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def registry(server, test_settings) -> ConnectionRegistry:
    establisher = ConnectionEstablisher(
        server.factory,
        login_timeout_ms=test_settings.LOGIN_TIMEOUT_MS,
        login_grace_ms=test_settings.LOGIN_GRACE_MS,
        connect_timeout=test_settings.CONNECT_TIMEOUT_SECONDS,
    )
    return ConnectionRegistry(establisher)


@pytest.fixture
async def app(server, test_settings):
    """Application wired to the fake server, with its lifespan running."""
    application = create_app(config=test_settings, transport_factory=server.factory)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def async_client(app):
    """Create an async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
