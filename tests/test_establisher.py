"""
Tests for the connect -> login -> ready handshake.
"""
import asyncio

import pytest

from monitor_bridge.core.errors import AckTimeoutError, AuthenticationError, TransportError
from monitor_bridge.services.establisher import ConnectionEstablisher, _ConnectionListeners
from monitor_bridge.services.registry import ConnectionEntry, ConnectionState

DESTINATION = "ws://h:1"
CREDENTIALS = {"username": "admin", "password": "secret"}


@pytest.fixture
def establisher(server):
    return ConnectionEstablisher(
        server.factory,
        login_timeout_ms=200,
        login_grace_ms=10,
        connect_timeout=1.0,
    )


class TestEstablish:
    """Tests for ConnectionEstablisher.establish()."""

    @pytest.mark.asyncio
    async def test_ready_without_login_challenge(self, server, establisher):
        entry = await establisher.establish(DESTINATION, CREDENTIALS)

        assert entry.state is ConnectionState.READY
        assert entry.is_ready
        assert entry.destination == DESTINATION
        assert server.transport_for(DESTINATION).emitted == []

    @pytest.mark.asyncio
    async def test_login_with_credentials(self, server, establisher):
        server.login_required = True

        entry = await establisher.establish(DESTINATION, CREDENTIALS)

        assert entry.is_ready
        assert server.transport_for(DESTINATION).emitted == [("login", CREDENTIALS)]

    @pytest.mark.asyncio
    async def test_login_rejected(self, server, establisher):
        server.login_required = True
        server.accept_login = False

        with pytest.raises(AuthenticationError) as exc_info:
            await establisher.establish(DESTINATION, CREDENTIALS)

        assert exc_info.value.message == "Incorrect username or password."
        assert not server.transport_for(DESTINATION).connected

    @pytest.mark.asyncio
    async def test_login_never_acknowledged(self, server, establisher):
        server.login_required = True
        server.accept_login = True
        server.ack_delay = 5.0

        with pytest.raises(AckTimeoutError) as exc_info:
            await establisher.establish(DESTINATION, CREDENTIALS)

        assert exc_info.value.event_name == "login"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("challenge_first", [False, True])
    async def test_slow_login_is_awaited_past_the_grace_period(self, server, challenge_first):
        server.login_required = True
        server.challenge_first = challenge_first
        server.ack_delay = 0.1
        establisher = ConnectionEstablisher(
            server.factory,
            login_timeout_ms=1000,
            login_grace_ms=10,
            connect_timeout=1.0,
        )

        entry = await establisher.establish(DESTINATION, CREDENTIALS)

        assert entry.login_task.done()
        assert entry.is_ready
        assert server.transport_for(DESTINATION).emitted == [("login", CREDENTIALS)]

    @pytest.mark.asyncio
    async def test_disconnected_before_ready(self, server, establisher):
        server.disconnect_reason = "transport error"

        with pytest.raises(TransportError) as exc_info:
            await establisher.establish(DESTINATION, CREDENTIALS)

        assert exc_info.value.reason == "transport error"

    @pytest.mark.asyncio
    async def test_connect_refused(self, server, establisher):
        server.refuse_connect = True

        with pytest.raises(TransportError) as exc_info:
            await establisher.establish(DESTINATION, CREDENTIALS)

        assert "connection refused" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_handshake_deadline(self, server):
        establisher = ConnectionEstablisher(
            server.factory,
            login_grace_ms=5000,
            connect_timeout=0.05,
        )

        with pytest.raises(TransportError):
            await establisher.establish(DESTINATION, CREDENTIALS)

        assert not server.transport_for(DESTINATION).connected


class TestConnectionListeners:
    """Listeners that stay active after the handshake."""

    @pytest.mark.asyncio
    async def test_pushes_feed_the_monitor_cache(self, server, establisher):
        entry = await establisher.establish(DESTINATION, CREDENTIALS)
        transport = server.transport_for(DESTINATION)

        await transport.fire("monitorList", {"1": {"id": 1, "type": "group", "name": "G"}})
        await transport.fire("updateMonitorIntoList", {"x": {"id": 1, "type": "group", "name": "G2"}})
        assert entry.monitors.get(1)["name"] == "G2"

        await transport.fire("deleteMonitorFromList", 1)
        assert entry.monitors.values() == []

    @pytest.mark.asyncio
    async def test_transient_drop_and_reconnect(self, server, establisher):
        entry = await establisher.establish(DESTINATION, CREDENTIALS)
        transport = server.transport_for(DESTINATION)

        await transport.drop("transport close")
        assert entry.state is ConnectionState.DISCONNECTED
        assert not entry.is_ready

        await transport.restore()
        assert entry.state is ConnectionState.READY
        assert entry.is_ready

    @pytest.mark.asyncio
    async def test_server_disconnect_closes_entry(self, server, establisher):
        entry = await establisher.establish(DESTINATION, CREDENTIALS)

        await server.transport_for(DESTINATION).drop("server disconnect")

        assert entry.state is ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_relogin_on_reconnect(self, server, establisher):
        server.login_required = True
        entry = await establisher.establish(DESTINATION, CREDENTIALS)
        transport = server.transport_for(DESTINATION)

        await transport.drop("ping timeout")
        await transport.restore()
        await asyncio.sleep(0.05)

        assert [e for e, _ in transport.emitted] == ["login", "login"]
        assert entry.state is ConnectionState.READY

    @pytest.mark.asyncio
    async def test_rejected_relogin_closes_entry(self, server, establisher):
        server.login_required = True
        entry = await establisher.establish(DESTINATION, CREDENTIALS)
        transport = server.transport_for(DESTINATION)

        server.accept_login = False
        await transport.fire("loginRequired")
        await asyncio.sleep(0.05)

        assert entry.state is ConnectionState.CLOSED
        assert not transport.connected

    @pytest.mark.asyncio
    async def test_relogin_when_challenge_precedes_connect(self, server, establisher):
        server.login_required = True
        server.challenge_first = True
        entry = await establisher.establish(DESTINATION, CREDENTIALS)
        transport = server.transport_for(DESTINATION)

        server.ack_delay = 0.02
        await transport.drop("ping timeout")
        await transport.restore()
        assert entry.state is not ConnectionState.READY

        await asyncio.sleep(0.1)
        assert [e for e, _ in transport.emitted] == ["login", "login"]
        assert entry.state is ConnectionState.READY
        assert entry.is_ready

    @pytest.mark.asyncio
    async def test_reconnect_waits_for_relogin(self, server, establisher):
        server.login_required = True
        entry = await establisher.establish(DESTINATION, CREDENTIALS)
        transport = server.transport_for(DESTINATION)

        server.ack_delay = 0.05
        await transport.drop("ping timeout")
        await transport.restore()
        await asyncio.sleep(0.02)
        assert not entry.is_ready

        await asyncio.sleep(0.1)
        assert entry.is_ready


class TestAbandonedHandshake:
    """Events arriving after the handshake has failed leave the entry alone."""

    @pytest.fixture
    async def failed_listeners(self, server):
        transport = server.factory(DESTINATION)
        entry = ConnectionEntry(destination=DESTINATION, transport=transport, credentials=CREDENTIALS)
        ready = asyncio.get_running_loop().create_future()
        ready.set_exception(AuthenticationError())
        ready.exception()
        listeners = _ConnectionListeners(entry, ready, login_timeout=0.2, login_grace=0.01)
        listeners.bind()
        return listeners

    @pytest.mark.asyncio
    async def test_late_connect_is_ignored(self, failed_listeners):
        failed_listeners.on_connect()
        await asyncio.sleep(0.03)

        assert failed_listeners.entry.state is ConnectionState.CONNECTING
        assert failed_listeners.entry.login_task is None

    @pytest.mark.asyncio
    async def test_late_challenge_is_ignored(self, failed_listeners):
        failed_listeners.on_connect()
        failed_listeners.on_login_required()

        assert failed_listeners.entry.login_task is None
        assert failed_listeners.entry.transport.emitted == []
