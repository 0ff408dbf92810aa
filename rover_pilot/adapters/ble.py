"""BLE adapter encapsulating bleak client usage."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from ..config import LinkConfig
from ..core import DisconnectCallback, NotificationCallback
from ..errors import LinkEstablishError, WriteFailedError

LOGGER = logging.getLogger(__name__)


def matches_rover_name(name: Optional[str], exact: str, prefix: str) -> bool:
    """Return True if an advertised name matches the rover filter."""
    if not name:
        return False
    if exact and name == exact:
        return True
    return bool(prefix) and name.startswith(prefix)


@dataclass(slots=True)
class DiscoveredDevice:
    name: str
    address: str
    rssi: Optional[int]


def _advertised_name(device: BLEDevice, advertisement: AdvertisementData) -> Optional[str]:
    return advertisement.local_name or device.name


class BleakTransport:
    """Async radio transport over a single GATT characteristic."""

    def __init__(self, config: LinkConfig) -> None:
        self.config = config

        self._client: Optional[BleakClient] = None
        self._characteristic: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_disconnect: Optional[DisconnectCallback] = None
        self._on_notification: Optional[NotificationCallback] = None

    def _matches(self, device: BLEDevice, advertisement: AdvertisementData) -> bool:
        return matches_rover_name(
            _advertised_name(device, advertisement),
            self.config.device_name,
            self.config.name_prefix,
        )

    async def discover(self) -> Optional[BLEDevice]:
        LOGGER.info(
            "Scanning for %s (prefix %s) for %.1fs",
            self.config.device_name,
            self.config.name_prefix,
            self.config.scan_timeout_seconds,
        )
        device = await BleakScanner.find_device_by_filter(
            self._matches, timeout=self.config.scan_timeout_seconds
        )
        if device is not None:
            LOGGER.info("Found %s (%s)", device.name, device.address)
        return device

    async def scan(self) -> List[DiscoveredDevice]:
        """List every advertising device that matches the rover filter."""
        found = await BleakScanner.discover(
            timeout=self.config.scan_timeout_seconds, return_adv=True
        )
        results: List[DiscoveredDevice] = []
        for device, advertisement in found.values():
            if not self._matches(device, advertisement):
                continue
            results.append(
                DiscoveredDevice(
                    name=_advertised_name(device, advertisement) or "",
                    address=device.address,
                    rssi=advertisement.rssi,
                )
            )
        return sorted(results, key=lambda item: item.name)

    async def open(
        self,
        device: BLEDevice,
        *,
        on_disconnect: DisconnectCallback,
        on_notification: NotificationCallback,
    ) -> str:
        if self._client is not None:
            await self.close()

        self._loop = asyncio.get_running_loop()
        self._on_disconnect = on_disconnect
        self._on_notification = on_notification

        client = BleakClient(
            device,
            disconnected_callback=self._handle_disconnect,
            timeout=self.config.connect_timeout_seconds,
        )
        self._client = client

        try:
            await client.connect()
            LOGGER.info("GATT server connected")

            service = client.services.get_service(self.config.service_uuid)
            if service is None:
                raise LinkEstablishError(
                    f"Service {self.config.service_uuid} not offered by {device.name}"
                )

            characteristic = service.get_characteristic(
                self.config.characteristic_uuid
            )
            if characteristic is None:
                raise LinkEstablishError(
                    f"Characteristic {self.config.characteristic_uuid} not found"
                )

            if "notify" in characteristic.properties:
                await client.start_notify(characteristic, self._handle_notification)
            else:
                LOGGER.debug("Characteristic does not notify; skipping subscription")
        except LinkEstablishError:
            await self.close()
            raise
        except (BleakError, OSError, asyncio.TimeoutError) as exc:
            await self.close()
            raise LinkEstablishError(f"GATT connection failed: {exc}") from exc

        self._characteristic = characteristic
        return device.name or device.address

    async def write(self, payload: bytes) -> None:
        client = self._client
        characteristic = self._characteristic
        if client is None or characteristic is None:
            raise WriteFailedError("No open GATT connection")

        try:
            await asyncio.wait_for(
                client.write_gatt_char(
                    characteristic,
                    payload,
                    response=self.config.write_with_response,
                ),
                timeout=self.config.write_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise WriteFailedError("Timed out writing to rover") from exc
        except (BleakError, OSError) as exc:
            raise WriteFailedError(str(exc)) from exc

    async def close(self) -> None:
        client = self._client
        self._client = None
        self._characteristic = None
        if client is None:
            return

        try:
            await client.disconnect()
        except (BleakError, OSError) as exc:
            LOGGER.debug("GATT disconnect failed: %s", exc)

    # ------------------------------------------------------------------
    # Internal callbacks bridging bleak callbacks into the session loop
    # ------------------------------------------------------------------
    def _handle_disconnect(self, client: BleakClient) -> None:
        if client is not self._client:
            return
        LOGGER.info("GATT server disconnected")
        handler = self._on_disconnect
        if handler is not None and self._loop is not None:
            self._loop.call_soon_threadsafe(handler)

    def _handle_notification(self, sender: Any, data: bytearray) -> None:
        handler = self._on_notification
        if handler is not None and self._loop is not None:
            self._loop.call_soon_threadsafe(handler, bytes(data))
