from pathlib import Path

from rover_pilot import constants
from rover_pilot.config import load_config


def test_load_config_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "rover-pilot.cfg"
    config = load_config(config_path)

    assert config.path == config_path
    assert config.link.device_name == "ESP32-Rover"
    assert config.link.name_prefix == "ESP32"
    assert config.link.service_uuid == constants.DEFAULT_SERVICE_UUID
    assert config.link.characteristic_uuid == constants.DEFAULT_CHARACTERISTIC_UUID
    assert config.link.write_with_response is True
    assert config.control.min_interval_seconds == 0.1
    assert config.control.deadzone == 30.0
    assert config.control.max_radius == 80.0
    assert config.control.initial_speed_percent == 50
    assert config.server.enabled is True
    assert config.server.port == constants.DEFAULT_SERVER_PORT
    assert config.logging.level == "INFO"
    assert config.logging.path is None


def test_load_config_overrides_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "rover-pilot.cfg"
    config_file.write_text(
        """
[link]
device_name = Garage-Rover
name_prefix =
service_uuid = 0000FFE0-0000-1000-8000-00805F9B34FB
scan_timeout_seconds = 4
write_with_response = false

[control]
min_interval_ms = 250
max_radius = 120

[server]
host = 0.0.0.0
port = 9000

[logging]
level = DEBUG
path = ~/rover.log
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.link.device_name == "Garage-Rover"
    assert config.link.name_prefix == ""
    assert config.link.service_uuid == constants.DEFAULT_SERVICE_UUID
    assert config.link.scan_timeout_seconds == 4.0
    assert config.link.write_with_response is False
    assert config.control.min_interval_seconds == 0.25
    assert config.control.max_radius == 120.0
    assert config.server.host == "0.0.0.0"
    assert config.server.port == 9000
    assert config.logging.level == "DEBUG"
    assert config.logging.path == Path("~/rover.log").expanduser()


def test_load_config_clamps_out_of_range_values(tmp_path: Path) -> None:
    config_file = tmp_path / "rover-pilot.cfg"
    config_file.write_text(
        """
[link]
write_timeout_seconds = 0

[control]
min_interval_ms = -50
deadzone = -3
initial_speed_percent = 140
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.link.write_timeout_seconds == 0.1
    assert config.control.min_interval_seconds == 0.0
    assert config.control.deadzone == 0.0
    assert config.control.initial_speed_percent == 100


def test_load_config_ignores_invalid_interval(tmp_path: Path) -> None:
    config_file = tmp_path / "rover-pilot.cfg"
    config_file.write_text("[control]\nmin_interval_ms = fast\n", encoding="utf-8")

    config = load_config(config_file)

    assert config.control.min_interval_seconds == 0.1
