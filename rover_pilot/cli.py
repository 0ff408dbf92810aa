"""Command-line interface for rover-pilot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from bleak.exc import BleakError

from . import constants
from .adapters import BleakTransport
from .app import RoverPilotApp
from .config import load_config
from .logging import configure_logging

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rover-pilot", description="Drive an ESP32 rover over Bluetooth LE"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser(
        "serve", help="Run the control server for a browser UI"
    )
    serve_parser.add_argument(
        "--connect",
        action="store_true",
        help="Connect to the rover immediately instead of waiting for /connect",
    )

    subparsers.add_parser("scan", help="List nearby rovers and exit")

    subparsers.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)

    if args.command == "serve":
        RoverPilotApp.start(config, connect=args.connect)
        return 0

    if args.command == "scan":
        configure_logging(
            config.logging.level, log_bluetooth=config.logging.log_bluetooth
        )
        try:
            devices = asyncio.run(BleakTransport(config.link).scan())
        except BleakError as exc:
            LOGGER.error("Scan failed: %s", exc)
            return 1
        if not devices:
            print("No matching rovers found")
            return 1
        for device in devices:
            rssi = "?" if device.rssi is None else str(device.rssi)
            print(f"{device.name}\t{device.address}\tRSSI {rssi}")
        return 0

    if args.command == "show-config":
        print(f"Configuration loaded from {config.path!s}\n")
        for section in config.raw.sections():
            print(f"[{section}]")
            for key, value in config.raw[section].items():
                print(f"{key} = {value}")
            print()
        return 0

    LOGGER.error("Unknown command: %s", args.command)
    return 1


if __name__ == "__main__":
    sys.exit(main())
