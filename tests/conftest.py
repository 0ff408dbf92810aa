import asyncio
from typing import Callable, List, Optional

import pytest

from rover_pilot.errors import WriteFailedError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """In-memory radio transport recording every write."""

    def __init__(
        self,
        *,
        device: Optional[object] = "rover-device",
        name: str = "ESP32-Rover",
        open_error: Optional[BaseException] = None,
        discover_error: Optional[BaseException] = None,
    ) -> None:
        self.device = device
        self.name = name
        self.open_error = open_error
        self.discover_error = discover_error
        self.open_gate: Optional[asyncio.Event] = None
        self.on_open: Optional[Callable[[], None]] = None
        self.fail_writes = False
        self.write_delay = 0.0

        self.is_open = False
        self.writes: List[bytes] = []
        self.attempted_writes: List[bytes] = []
        self.discover_calls = 0
        self.open_calls = 0
        self.close_calls = 0
        self.on_disconnect: Optional[Callable[[], None]] = None
        self.on_notification: Optional[Callable[[bytes], None]] = None

    async def discover(self):
        self.discover_calls += 1
        if self.discover_error is not None:
            raise self.discover_error
        return self.device

    async def open(self, device, *, on_disconnect, on_notification) -> str:
        self.open_calls += 1
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.open_error is not None:
            raise self.open_error
        self.on_disconnect = on_disconnect
        self.on_notification = on_notification
        self.is_open = True
        if self.on_open is not None:
            self.on_open()
        return self.name

    async def write(self, payload: bytes) -> None:
        self.attempted_writes.append(bytes(payload))
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        else:
            await asyncio.sleep(0)
        if self.fail_writes or not self.is_open:
            raise WriteFailedError("write rejected")
        self.writes.append(bytes(payload))

    async def close(self) -> None:
        self.close_calls += 1
        self.is_open = False

    def drop_link(self) -> None:
        """Simulate the rover going out of range."""
        self.is_open = False
        if self.on_disconnect is not None:
            self.on_disconnect()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def transport_factory():
    """Build transports with scripted discovery or handshake behaviour."""

    def _create(**kwargs) -> FakeTransport:
        return FakeTransport(**kwargs)

    return _create
