"""
Request/acknowledgement bridging.

An emitted event is paired with a PendingAck: a one-shot future that is
resolved by whichever comes first, the server's acknowledgement or the
deadline. Anything arriving after that is ignored.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from ..core.errors import AckTimeoutError, RemoteRejectedError, TransportUnavailableError
from ..transports.base import StreamTransport

logger = logging.getLogger(__name__)


class PendingAck:
    """
    A single in-flight acknowledgement.

    resolve() is safe to call any number of times; only the first call before
    the deadline has an effect.
    """

    def __init__(self, event_name: str):
        self.event_name = event_name
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        """Whether an outcome (ack or timeout) has already been decided."""
        return self._future.done()

    def resolve(self, *args: Any) -> bool:
        """
        Acknowledgement callback handed to the transport.

        Returns:
            True if this call decided the outcome, False if it was late
        """
        if self._future.done():
            logger.debug(f"Ignoring late acknowledgement for {self.event_name}")
            return False

        if not args:
            ack = None
        elif len(args) == 1:
            ack = args[0]
        else:
            ack = list(args)
        self._future.set_result(ack)
        return True

    async def wait(self, timeout: float) -> Any:
        """
        Wait for the acknowledgement.

        Raises:
            AckTimeoutError: If nothing arrived within ``timeout`` seconds
        """
        try:
            return await asyncio.wait_for(self._future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"ACK timeout for {self.event_name} after {timeout}s")
            raise AckTimeoutError(self.event_name) from None


async def request_ack(
    transport: StreamTransport,
    event_name: str,
    payload: Any,
    timeout: float,
) -> Any:
    """
    Emit an event and wait for its raw acknowledgement.

    Args:
        transport: Connected transport to emit on
        event_name: Event to emit
        payload: Event payload
        timeout: Deadline in seconds

    Returns:
        Whatever the server passed to its acknowledgement callback

    Raises:
        TransportUnavailableError: If the emit could not be sent
        AckTimeoutError: If no acknowledgement arrived in time
    """
    pending = PendingAck(event_name)
    try:
        await transport.emit(event_name, payload, callback=pending.resolve)
    except ConnectionError as e:
        raise TransportUnavailableError(str(e)) from e
    return await pending.wait(timeout)


def check_ack(ack: Any) -> Dict[str, Any]:
    """
    Validate an acknowledgement against its ``ok`` discriminant.

    Raises:
        RemoteRejectedError: If ``ok`` is missing or false, or the ack is not an object
    """
    if not isinstance(ack, dict):
        raise RemoteRejectedError({"ok": False, "error": "Invalid acknowledgement", "ack": ack})
    if not ack.get("ok"):
        raise RemoteRejectedError(ack)
    return ack


async def emit_with_ack(
    transport: StreamTransport,
    event_name: str,
    payload: Any,
    timeout_ms: Optional[int] = None,
    default_timeout_ms: int = 5000,
) -> Dict[str, Any]:
    """
    Emit an event on a connected transport and return the successful ack.

    Args:
        transport: Transport to emit on; must be connected
        event_name: Event to emit
        payload: Event payload (``None`` is sent as an empty object)
        timeout_ms: Acknowledgement deadline in milliseconds
        default_timeout_ms: Deadline used when ``timeout_ms`` is not given

    Returns:
        The ack payload, unchanged

    Raises:
        TransportUnavailableError: If the transport is not connected
        AckTimeoutError: If the server did not acknowledge in time
        RemoteRejectedError: If the server acknowledged with ``ok`` false
    """
    if not transport.connected:
        raise TransportUnavailableError()

    if timeout_ms is None:
        timeout_ms = default_timeout_ms

    logger.info(f"Emitting event {event_name} to {transport.destination}")
    ack = await request_ack(
        transport,
        event_name,
        payload if payload is not None else {},
        timeout_ms / 1000,
    )
    return check_ack(ack)
