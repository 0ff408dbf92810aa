"""Adapter modules for external integrations."""

from .ble import BleakTransport, DiscoveredDevice, matches_rover_name

__all__ = [
    "BleakTransport",
    "DiscoveredDevice",
    "matches_rover_name",
]
