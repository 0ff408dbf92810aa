"""Core primitives for rover-pilot."""

from .protocols import DisconnectCallback, NotificationCallback, RadioTransport

__all__ = [
    "DisconnectCallback",
    "NotificationCallback",
    "RadioTransport",
]
