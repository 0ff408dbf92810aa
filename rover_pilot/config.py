"""Configuration loader for rover-pilot."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import constants


@dataclass(slots=True)
class LinkConfig:
    device_name: str = constants.DEFAULT_DEVICE_NAME
    name_prefix: str = constants.DEFAULT_NAME_PREFIX
    service_uuid: str = constants.DEFAULT_SERVICE_UUID
    characteristic_uuid: str = constants.DEFAULT_CHARACTERISTIC_UUID
    scan_timeout_seconds: float = 10.0
    connect_timeout_seconds: float = 20.0
    write_timeout_seconds: float = 2.0
    write_with_response: bool = True


@dataclass(slots=True)
class ControlConfig:
    min_interval_seconds: float = constants.DEFAULT_MIN_INTERVAL_SECONDS
    deadzone: float = constants.DEFAULT_DEADZONE
    max_radius: float = constants.DEFAULT_MAX_RADIUS
    initial_speed_percent: int = constants.DEFAULT_SPEED_PERCENT


@dataclass(slots=True)
class ServerConfig:
    enabled: bool = True
    host: str = constants.DEFAULT_SERVER_HOST
    port: int = constants.DEFAULT_SERVER_PORT


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_bluetooth: bool = False


@dataclass(slots=True)
class PilotConfig:
    link: LinkConfig
    control: ControlConfig
    server: ServerConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path


def load_config(path: Optional[Path] = None) -> PilotConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "link": {
                "device_name": constants.DEFAULT_DEVICE_NAME,
                "name_prefix": constants.DEFAULT_NAME_PREFIX,
                "service_uuid": constants.DEFAULT_SERVICE_UUID,
                "characteristic_uuid": constants.DEFAULT_CHARACTERISTIC_UUID,
                "scan_timeout_seconds": "10.0",
                "connect_timeout_seconds": "20.0",
                "write_timeout_seconds": "2.0",
                "write_with_response": "true",
            },
            "control": {
                "min_interval_ms": "100",
                "deadzone": str(constants.DEFAULT_DEADZONE),
                "max_radius": str(constants.DEFAULT_MAX_RADIUS),
                "initial_speed_percent": str(constants.DEFAULT_SPEED_PERCENT),
            },
            "server": {
                "enabled": "true",
                "host": constants.DEFAULT_SERVER_HOST,
                "port": str(constants.DEFAULT_SERVER_PORT),
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_bluetooth": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    link_defaults = LinkConfig()
    link = LinkConfig(
        device_name=parser.get("link", "device_name").strip(),
        name_prefix=parser.get("link", "name_prefix").strip(),
        service_uuid=parser.get("link", "service_uuid").strip().lower(),
        characteristic_uuid=parser.get("link", "characteristic_uuid").strip().lower(),
        scan_timeout_seconds=max(
            0.5,
            parser.getfloat(
                "link",
                "scan_timeout_seconds",
                fallback=link_defaults.scan_timeout_seconds,
            ),
        ),
        connect_timeout_seconds=max(
            1.0,
            parser.getfloat(
                "link",
                "connect_timeout_seconds",
                fallback=link_defaults.connect_timeout_seconds,
            ),
        ),
        write_timeout_seconds=max(
            0.1,
            parser.getfloat(
                "link",
                "write_timeout_seconds",
                fallback=link_defaults.write_timeout_seconds,
            ),
        ),
        write_with_response=parser.getboolean(
            "link", "write_with_response", fallback=True
        ),
    )

    try:
        min_interval_ms = parser.getfloat("control", "min_interval_ms", fallback=100.0)
    except ValueError:
        min_interval_ms = 100.0

    control = ControlConfig(
        min_interval_seconds=max(0.0, min_interval_ms) / 1000.0,
        deadzone=max(
            0.0,
            parser.getfloat("control", "deadzone", fallback=constants.DEFAULT_DEADZONE),
        ),
        max_radius=max(
            1.0,
            parser.getfloat(
                "control", "max_radius", fallback=constants.DEFAULT_MAX_RADIUS
            ),
        ),
        initial_speed_percent=max(
            0,
            min(
                100,
                parser.getint(
                    "control",
                    "initial_speed_percent",
                    fallback=constants.DEFAULT_SPEED_PERCENT,
                ),
            ),
        ),
    )

    server = ServerConfig(
        enabled=parser.getboolean("server", "enabled", fallback=True),
        host=parser.get("server", "host", fallback=constants.DEFAULT_SERVER_HOST),
        port=parser.getint("server", "port", fallback=constants.DEFAULT_SERVER_PORT),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_bluetooth=parser.getboolean("logging", "log_bluetooth", fallback=False),
    )

    return PilotConfig(
        link=link,
        control=control,
        server=server,
        logging=logging_config,
        raw=parser,
        path=config_path,
    )
