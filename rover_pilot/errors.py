"""Exception hierarchy for link and protocol failures."""

from __future__ import annotations


class LinkError(RuntimeError):
    """Base class for failures on the radio link."""

    guidance: str = ""


class DeviceNotFoundError(LinkError):
    """Raised when discovery finds no matching rover."""

    guidance = (
        "Make sure the rover is powered on, the BLE firmware is flashed "
        "and Bluetooth is enabled on this machine."
    )


class LinkEstablishError(LinkError):
    """Raised when the GATT connection, service or characteristic cannot be resolved."""

    guidance = (
        "The rover was found but the link could not be set up. Power-cycle "
        "the rover and try again."
    )


class LinkCancelledError(LinkError):
    """Raised by ``connect()`` when the attempt was withdrawn by ``disconnect()``."""


class WriteFailedError(LinkError):
    """Raised by transports when a characteristic write is rejected or times out."""


class LinkStateError(RuntimeError):
    """Raised on an illegal link state transition."""


class WireCodecError(ValueError):
    """Raised when a payload is not a well-formed command."""
