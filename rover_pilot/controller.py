"""Session orchestration: input events in, throttled commands out."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .codec import WireCodec
from .commands import Command, Motion, SpeedSet, percent_to_speed
from .connection import LinkSession, LinkState, SendOutcome
from .constants import DEFAULT_SPEED_PERCENT
from .joystick import JoystickVector, VectorMapper, VectorMapping
from .throttle import CommandThrottler

LOGGER = logging.getLogger(__name__)


class DispatchStatus(str, Enum):
    """What happened to a command produced by an input event."""

    SENT = "sent"
    THROTTLED = "throttled"
    NOT_CONNECTED = "not_connected"
    WRITE_FAILED = "write_failed"


_STATUS_BY_OUTCOME = {
    SendOutcome.SENT: DispatchStatus.SENT,
    SendOutcome.NOT_CONNECTED: DispatchStatus.NOT_CONNECTED,
    SendOutcome.WRITE_FAILED: DispatchStatus.WRITE_FAILED,
}


@dataclass(frozen=True)
class InputResult:
    command: Command
    status: DispatchStatus
    mapping: Optional[VectorMapping] = None

    @property
    def sent(self) -> bool:
        return self.status is DispatchStatus.SENT


@dataclass
class SessionStats:
    command_count: int = 0
    connected_since: Optional[float] = None
    direction: str = Motion.STOP.label
    speed_percent: int = DEFAULT_SPEED_PERCENT


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time view of the session for the presentation layer."""

    connected: bool
    state: LinkState
    direction: str
    command_count: int
    elapsed_seconds: int
    speed_percent: int
    device_name: Optional[str] = None
    last_notification: Optional[str] = None

    @property
    def elapsed(self) -> str:
        return format_elapsed(self.elapsed_seconds)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "connected": self.connected,
            "state": self.state.value,
            "direction": self.direction,
            "commandCount": self.command_count,
            "elapsed": self.elapsed,
            "speedPercent": self.speed_percent,
            "deviceName": self.device_name,
        }
        if self.last_notification is not None:
            payload["lastNotification"] = self.last_notification
        return payload


def elapsed(now: float, connected_since: Optional[float]) -> int:
    """Whole seconds connected, or 0 when not connected."""
    if connected_since is None:
        return 0
    return max(0, int(now - connected_since))


def format_elapsed(seconds: int) -> str:
    """Format a duration as ``M:SS``."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{remainder:02d}"


SnapshotListener = Callable[[SessionSnapshot], None]


class SessionController:
    """Top-level orchestrator for one driving session.

    Input methods map raw events to commands, pass them through the
    throttler and hand accepted commands to the link. Nothing is dispatched
    unless the link is active. Statistics reset whenever the link goes down
    and whenever it comes up.
    """

    def __init__(
        self,
        link: LinkSession,
        *,
        mapper: Optional[VectorMapper] = None,
        throttler: Optional[CommandThrottler] = None,
        codec: Optional[WireCodec] = None,
        clock: Optional[Callable[[], float]] = None,
        speed_percent: int = DEFAULT_SPEED_PERCENT,
    ) -> None:
        self._link = link
        self._mapper = mapper or VectorMapper()
        self._throttler = throttler or CommandThrottler()
        self._codec = codec or WireCodec()
        self._clock = clock or time.monotonic
        self._stats = SessionStats(speed_percent=speed_percent)
        self._listeners: List[SnapshotListener] = []

        link.add_state_listener(self._on_link_state)

    @property
    def link(self) -> LinkSession:
        return self._link

    @property
    def stats(self) -> SessionStats:
        return self._stats

    def add_listener(self, listener: SnapshotListener) -> None:
        """Subscribe to snapshots pushed after every change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def connect(self) -> None:
        """Connect the link. Link errors propagate to the caller."""
        await self._link.connect()

    async def disconnect(self) -> None:
        await self._link.disconnect()

    async def on_directional_input(self, vector: JoystickVector) -> InputResult:
        mapping = self._mapper.map(vector)
        status = await self._dispatch(mapping.direction)
        return InputResult(command=mapping.direction, status=status, mapping=mapping)

    async def on_button_command(self, motion: Motion) -> InputResult:
        motion = Motion(motion)
        status = await self._dispatch(motion)
        return InputResult(command=motion, status=status)

    async def on_speed_change(self, percent: float) -> InputResult:
        self._stats.speed_percent = int(round(max(0.0, min(100.0, float(percent)))))
        command = SpeedSet(percent_to_speed(percent))
        status = await self._dispatch(command)
        if status is not DispatchStatus.SENT:
            self._notify()
        return InputResult(command=command, status=status)

    async def on_release(self) -> InputResult:
        """Joystick released: stop unconditionally."""
        status = await self._dispatch(Motion.STOP, throttled=False)
        return InputResult(command=Motion.STOP, status=status)

    async def emergency_stop(self) -> InputResult:
        LOGGER.warning("Emergency stop requested")
        status = await self._dispatch(Motion.STOP, throttled=False)
        return InputResult(command=Motion.STOP, status=status)

    def snapshot(self) -> SessionSnapshot:
        stats = self._stats
        return SessionSnapshot(
            connected=self._link.is_active,
            state=self._link.state,
            direction=stats.direction,
            command_count=stats.command_count,
            elapsed_seconds=elapsed(self._clock(), stats.connected_since),
            speed_percent=stats.speed_percent,
            device_name=self._link.device_name,
            last_notification=self._link.last_notification,
        )

    async def _dispatch(self, command: Command, *, throttled: bool = True) -> DispatchStatus:
        if not self._link.is_active:
            LOGGER.debug("Not connected; ignoring %r", command)
            return DispatchStatus.NOT_CONNECTED

        if throttled:
            decision = self._throttler.evaluate(command, self._clock())
            if not decision.accepted:
                return DispatchStatus.THROTTLED

        outcome = await self._link.send(self._codec.encode(command))
        if outcome is SendOutcome.SENT:
            self._stats.command_count += 1
            if isinstance(command, Motion):
                self._stats.direction = command.label
            self._notify()
        return _STATUS_BY_OUTCOME[outcome]

    def _on_link_state(self, previous: LinkState, current: LinkState) -> None:
        if current is LinkState.ACTIVE:
            self._stats.command_count = 0
            self._stats.connected_since = self._link.connected_since
        elif current is LinkState.DISCONNECTED:
            self._stats.command_count = 0
            self._stats.connected_since = None
            self._stats.direction = Motion.STOP.label
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                LOGGER.warning("Session listener failed", exc_info=True)
