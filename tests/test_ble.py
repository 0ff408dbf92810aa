"""Tests for the bleak transport using a stand-in GATT client."""

import asyncio
from types import SimpleNamespace
from typing import List, Optional

import pytest
from bleak.exc import BleakError

from rover_pilot.adapters import ble
from rover_pilot.adapters.ble import BleakTransport, matches_rover_name
from rover_pilot.config import LinkConfig
from rover_pilot.constants import DEFAULT_CHARACTERISTIC_UUID, DEFAULT_SERVICE_UUID
from rover_pilot.errors import LinkEstablishError, WriteFailedError


class FakeCharacteristic:
    def __init__(self, uuid: str, properties: List[str]):
        self.uuid = uuid
        self.properties = properties


class FakeService:
    def __init__(self, characteristic: Optional[FakeCharacteristic]):
        self._characteristic = characteristic

    def get_characteristic(self, uuid: str):
        if self._characteristic is not None and self._characteristic.uuid == uuid:
            return self._characteristic
        return None


class FakeServices:
    def __init__(self, service: Optional[FakeService]):
        self._service = service

    def get_service(self, uuid: str):
        return self._service if uuid == DEFAULT_SERVICE_UUID else None


class FakeBleakClient:
    """Stand-in for bleak.BleakClient with scripted behaviour."""

    instances: List["FakeBleakClient"] = []
    services_to_offer: Optional[FakeServices] = None
    connect_error: Optional[Exception] = None
    write_error: Optional[Exception] = None
    write_delay = 0.0

    def __init__(self, device, disconnected_callback=None, timeout=10.0):
        self.device = device
        self.disconnected_callback = disconnected_callback
        self.timeout = timeout
        self.services = type(self).services_to_offer
        self.notify_callback = None
        self.writes: list = []
        self.disconnect_calls = 0
        FakeBleakClient.instances.append(self)

    async def connect(self):
        if type(self).connect_error is not None:
            raise type(self).connect_error

    async def start_notify(self, characteristic, callback):
        self.notify_callback = callback

    async def write_gatt_char(self, characteristic, data, response=False):
        if type(self).write_delay:
            await asyncio.sleep(type(self).write_delay)
        if type(self).write_error is not None:
            raise type(self).write_error
        self.writes.append((bytes(data), response))

    async def disconnect(self):
        self.disconnect_calls += 1


@pytest.fixture
def fake_client(monkeypatch):
    FakeBleakClient.instances = []
    FakeBleakClient.services_to_offer = FakeServices(
        FakeService(
            FakeCharacteristic(DEFAULT_CHARACTERISTIC_UUID, ["write", "notify"])
        )
    )
    FakeBleakClient.connect_error = None
    FakeBleakClient.write_error = None
    FakeBleakClient.write_delay = 0.0
    monkeypatch.setattr(ble, "BleakClient", FakeBleakClient)
    return FakeBleakClient


@pytest.fixture
def device():
    return SimpleNamespace(name="ESP32-Rover", address="AA:BB:CC:DD:EE:FF")


def _noop(*args):
    return None


def test_matches_rover_name():
    assert matches_rover_name("ESP32-Rover", "ESP32-Rover", "ESP32") is True
    assert matches_rover_name("ESP32-Test", "ESP32-Rover", "ESP32") is True
    assert matches_rover_name("Rover", "ESP32-Rover", "ESP32") is False
    assert matches_rover_name(None, "ESP32-Rover", "ESP32") is False
    assert matches_rover_name("ESP32-Test", "ESP32-Rover", "") is False
    assert matches_rover_name("esp32-rover", "ESP32-Rover", "ESP32") is False


@pytest.mark.asyncio
async def test_open_resolves_characteristic_and_writes(fake_client, device):
    transport = BleakTransport(LinkConfig())

    name = await transport.open(device, on_disconnect=_noop, on_notification=_noop)
    await transport.write(b"F")

    client = fake_client.instances[0]
    assert name == "ESP32-Rover"
    assert client.notify_callback is not None
    assert client.writes == [(b"F", True)]


@pytest.mark.asyncio
async def test_missing_service_raises_and_disconnects(fake_client, device):
    fake_client.services_to_offer = FakeServices(None)
    transport = BleakTransport(LinkConfig())

    with pytest.raises(LinkEstablishError, match="Service"):
        await transport.open(device, on_disconnect=_noop, on_notification=_noop)

    assert fake_client.instances[0].disconnect_calls == 1


@pytest.mark.asyncio
async def test_missing_characteristic_raises(fake_client, device):
    fake_client.services_to_offer = FakeServices(FakeService(None))
    transport = BleakTransport(LinkConfig())

    with pytest.raises(LinkEstablishError, match="Characteristic"):
        await transport.open(device, on_disconnect=_noop, on_notification=_noop)


@pytest.mark.asyncio
async def test_bleak_connect_error_is_wrapped(fake_client, device):
    fake_client.connect_error = BleakError("le-connection-abort-by-local")
    transport = BleakTransport(LinkConfig())

    with pytest.raises(LinkEstablishError) as excinfo:
        await transport.open(device, on_disconnect=_noop, on_notification=_noop)

    assert isinstance(excinfo.value.__cause__, BleakError)


@pytest.mark.asyncio
async def test_write_without_connection_fails():
    transport = BleakTransport(LinkConfig())

    with pytest.raises(WriteFailedError):
        await transport.write(b"F")


@pytest.mark.asyncio
async def test_write_errors_become_write_failed(fake_client, device):
    transport = BleakTransport(LinkConfig())
    await transport.open(device, on_disconnect=_noop, on_notification=_noop)
    fake_client.write_error = BleakError("Not connected")

    with pytest.raises(WriteFailedError, match="Not connected"):
        await transport.write(b"F")


@pytest.mark.asyncio
async def test_write_timeout_becomes_write_failed(fake_client, device):
    transport = BleakTransport(LinkConfig(write_timeout_seconds=0.01))
    await transport.open(device, on_disconnect=_noop, on_notification=_noop)
    fake_client.write_delay = 0.5

    with pytest.raises(WriteFailedError, match="Timed out"):
        await transport.write(b"F")


@pytest.mark.asyncio
async def test_unsolicited_disconnect_and_notifications_are_forwarded(fake_client, device):
    transport = BleakTransport(LinkConfig())
    lost = asyncio.Event()
    received: list = []

    await transport.open(
        device, on_disconnect=lost.set, on_notification=received.append
    )
    client = fake_client.instances[0]

    client.notify_callback(None, bytearray(b"hello"))
    client.disconnected_callback(client)
    await asyncio.wait_for(lost.wait(), timeout=1.0)

    assert received == [b"hello"]


@pytest.mark.asyncio
async def test_close_ignores_callbacks_from_closed_client(fake_client, device):
    transport = BleakTransport(LinkConfig())
    calls: list = []

    await transport.open(
        device, on_disconnect=lambda: calls.append("lost"), on_notification=_noop
    )
    client = fake_client.instances[0]
    await transport.close()
    client.disconnected_callback(client)
    await asyncio.sleep(0)

    assert client.disconnect_calls == 1
    assert calls == []
