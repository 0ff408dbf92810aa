"""Protocol definitions for radio transports and callbacks."""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol


DisconnectCallback = Callable[[], None]
NotificationCallback = Callable[[bytes], None]


class RadioTransport(Protocol):
    """Minimal contract for components that carry bytes to the rover.

    A transport holds at most one open device handle at a time.
    """

    async def discover(self) -> Optional[Any]:
        """Scan for a matching device.

        Returns:
            An opaque device handle, or None when nothing matched in the scan window.
        """
        ...

    async def open(
        self,
        device: Any,
        *,
        on_disconnect: DisconnectCallback,
        on_notification: NotificationCallback,
    ) -> str:
        """Connect to the device and resolve the command characteristic.

        Returns:
            The device's advertised name.

        Raises:
            LinkEstablishError: If the handshake fails.
        """
        ...

    async def write(self, payload: bytes) -> None:
        """Write one payload to the command characteristic.

        Raises:
            WriteFailedError: If the write is rejected or times out.
        """
        ...

    async def close(self) -> None:
        """Release the device handle. Safe to call when nothing is open."""
        ...
