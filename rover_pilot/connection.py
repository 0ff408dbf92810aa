"""Link lifecycle management for the rover radio.

This module owns the connection state machine and the single outbound
channel to the vehicle:

- discovery and handshake, with typed failures
- cancellation of an in-flight connect attempt
- one teardown path shared by explicit disconnect and unsolicited link loss
- serialized, best-effort command writes
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, List, Optional

from .codec import WireCodec
from .commands import Motion
from .core import RadioTransport
from .errors import (
    DeviceNotFoundError,
    LinkCancelledError,
    LinkError,
    LinkEstablishError,
    LinkStateError,
    WriteFailedError,
)

LOGGER = logging.getLogger(__name__)


class LinkState(str, Enum):
    """Current state of the radio link."""

    DISCONNECTED = "disconnected"
    """No transport handle is open."""

    CONNECTING = "connecting"
    """Discovery or handshake in progress."""

    ACTIVE = "active"
    """Commands can be written."""


class SendOutcome(str, Enum):
    """Result of a single send request."""

    SENT = "sent"
    NOT_CONNECTED = "not_connected"
    WRITE_FAILED = "write_failed"


_TRANSITIONS = {
    LinkState.DISCONNECTED: {LinkState.CONNECTING},
    LinkState.CONNECTING: {LinkState.ACTIVE, LinkState.DISCONNECTED},
    LinkState.ACTIVE: {LinkState.DISCONNECTED},
}

StateListener = Callable[[LinkState, LinkState], None]


class LinkSession:
    """Owns the connection state machine and the outbound channel.

    Writes and teardown serialize on one FIFO lock, so commands go out in
    arrival order and nothing is written once teardown has begun. Failed
    writes are dropped, never retried; the next accepted command supersedes
    them.
    """

    def __init__(
        self,
        transport: RadioTransport,
        *,
        codec: Optional[WireCodec] = None,
        clock: Optional[Callable[[], float]] = None,
        connect_timeout: Optional[float] = None,
    ) -> None:
        self._transport = transport
        self._codec = codec or WireCodec()
        self._clock = clock or time.monotonic
        self._connect_timeout = connect_timeout

        self._state = LinkState.DISCONNECTED
        self._send_lock = asyncio.Lock()
        self._attempt: Optional[asyncio.Future[str]] = None
        self._cancel_requested = False
        self._lost_during_connect = False
        self._teardown_task: Optional[asyncio.Task[None]] = None
        self._listeners: List[StateListener] = []

        self._connected_since: Optional[float] = None
        self._device_name: Optional[str] = None
        self._last_notification: Optional[str] = None

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is LinkState.ACTIVE

    @property
    def connected_since(self) -> Optional[float]:
        """Clock reading taken when the link became active."""
        return self._connected_since

    @property
    def device_name(self) -> Optional[str]:
        return self._device_name

    @property
    def last_notification(self) -> Optional[str]:
        return self._last_notification

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback invoked synchronously on every transition."""
        self._listeners.append(listener)

    async def connect(self) -> None:
        """Discover the rover and bring the link up.

        Raises:
            DeviceNotFoundError: No matching device was found.
            LinkEstablishError: The handshake failed or the link dropped mid-handshake.
            LinkCancelledError: ``disconnect()`` was called while connecting.
        """
        if self._state is not LinkState.DISCONNECTED:
            LOGGER.warning("Connect requested while %s; ignoring", self._state.value)
            return

        self._cancel_requested = False
        self._lost_during_connect = False
        self._transition(LinkState.CONNECTING)
        attempt = asyncio.ensure_future(self._establish())
        self._attempt = attempt

        try:
            device_name = await attempt
        except asyncio.CancelledError:
            await self._abandon_attempt()
            if not self._cancel_requested:
                raise
            raise LinkCancelledError("Connect attempt cancelled") from None
        except LinkError as exc:
            LOGGER.error("Connection failed: %s", exc)
            await self._abandon_attempt()
            raise
        finally:
            self._attempt = None

        if self._cancel_requested:
            # Handshake finished after the operator gave up on it
            await self._abandon_attempt()
            raise LinkCancelledError("Connect attempt cancelled")

        if self._lost_during_connect:
            LOGGER.error("Link to %s dropped during handshake", device_name)
            await self._abandon_attempt()
            raise LinkEstablishError("Link lost during handshake")

        self._device_name = device_name
        self._connected_since = self._clock()
        self._transition(LinkState.ACTIVE)
        LOGGER.info("Connected to %s", device_name)

    async def disconnect(self) -> None:
        """Bring the link down, or withdraw a pending connect attempt."""
        if self._state is LinkState.CONNECTING:
            if self._attempt is not None and not self._cancel_requested:
                LOGGER.info("Cancelling pending connect attempt")
                self._cancel_requested = True
                self._attempt.cancel()
            return

        await self._teardown("operator request")

    async def send(self, payload: bytes) -> SendOutcome:
        """Write one payload to the rover. Never raises for link failures."""
        if self._state is not LinkState.ACTIVE:
            LOGGER.debug("Not connected; dropping %r", payload)
            return SendOutcome.NOT_CONNECTED

        async with self._send_lock:
            if self._state is not LinkState.ACTIVE:
                LOGGER.debug("Not connected; dropping %r", payload)
                return SendOutcome.NOT_CONNECTED
            try:
                await self._transport.write(payload)
            except WriteFailedError as exc:
                LOGGER.warning("Send of %r failed: %s", payload, exc)
                return SendOutcome.WRITE_FAILED

        LOGGER.debug("Sent %r", payload)
        return SendOutcome.SENT

    async def wait_closed(self) -> None:
        """Wait for a teardown triggered by link loss to finish."""
        task = self._teardown_task
        if task is not None:
            await asyncio.shield(task)

    async def _establish(self) -> str:
        try:
            device = await self._transport.discover()
        except LinkError:
            raise
        except Exception as exc:
            raise DeviceNotFoundError(f"Device discovery failed: {exc}") from exc

        if device is None:
            raise DeviceNotFoundError("No matching rover found")

        try:
            return await asyncio.wait_for(
                self._transport.open(
                    device,
                    on_disconnect=self._handle_transport_lost,
                    on_notification=self._handle_notification,
                ),
                timeout=self._connect_timeout,
            )
        except LinkError:
            raise
        except asyncio.TimeoutError as exc:
            raise LinkEstablishError("Timed out establishing link") from exc
        except Exception as exc:
            raise LinkEstablishError(f"Link setup failed: {exc}") from exc

    async def _abandon_attempt(self) -> None:
        await self._close_transport()
        if self._state is LinkState.CONNECTING:
            self._transition(LinkState.DISCONNECTED)

    async def _teardown(self, reason: str) -> None:
        async with self._send_lock:
            if self._state is not LinkState.ACTIVE:
                return

            LOGGER.info("Closing link to %s (%s)", self._device_name, reason)
            try:
                await self._transport.write(self._codec.encode(Motion.STOP))
            except Exception as exc:
                # The link may already be gone
                LOGGER.debug("Final stop not delivered: %s", exc)

            await self._close_transport()
            self._connected_since = None
            self._device_name = None
            self._transition(LinkState.DISCONNECTED)

    async def _close_transport(self) -> None:
        try:
            await self._transport.close()
        except Exception:
            LOGGER.debug("Transport close failed", exc_info=True)

    def _handle_transport_lost(self) -> None:
        if self._state is LinkState.CONNECTING:
            # connect() discards the handle once the attempt finishes
            self._lost_during_connect = True
            return
        if self._state is not LinkState.ACTIVE:
            return
        LOGGER.warning("Link to %s lost unexpectedly", self._device_name)
        self._teardown_task = asyncio.ensure_future(self._teardown("link lost"))

    def _handle_notification(self, payload: bytes) -> None:
        text = self._codec.decode_notification(payload)
        self._last_notification = text
        LOGGER.info("Received from rover: %s", text)

    def _transition(self, target: LinkState) -> None:
        previous = self._state
        if target not in _TRANSITIONS[previous]:
            raise LinkStateError(
                f"Illegal link transition {previous.value} -> {target.value}"
            )

        self._state = target
        LOGGER.debug("Link state %s -> %s", previous.value, target.value)

        for listener in list(self._listeners):
            try:
                listener(previous, target)
            except Exception:
                LOGGER.warning("Link state listener failed", exc_info=True)
