"""Constants used across the rover-pilot package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "rover-pilot"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / APP_NAME / DEFAULT_CONFIG_FILENAME

# Matches the firmware flashed on the ESP32 rover
DEFAULT_DEVICE_NAME = "ESP32-Rover"
DEFAULT_NAME_PREFIX = "ESP32"
DEFAULT_SERVICE_UUID = "0000ffe0-0000-1000-8000-00805f9b34fb"
DEFAULT_CHARACTERISTIC_UUID = "0000ffe1-0000-1000-8000-00805f9b34fb"

DEFAULT_MIN_INTERVAL_SECONDS = 0.1
DEFAULT_DEADZONE = 30.0
DEFAULT_MAX_RADIUS = 80.0
DEFAULT_SPEED_PERCENT = 50

DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8765
