"""Main application entry-point for rover-pilot."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from .adapters import BleakTransport
from .codec import WireCodec
from .config import PilotConfig, load_config
from .connection import LinkSession
from .controller import SessionController
from .core import RadioTransport
from .errors import DeviceNotFoundError, LinkCancelledError, LinkEstablishError
from .joystick import VectorMapper
from .logging import configure_logging
from .server import ControlServer
from .throttle import CommandThrottler

LOGGER = logging.getLogger(__name__)


class RoverPilotApp:
    """Coordinates application startup and shutdown.

    Wires the radio transport, link session, session controller and the
    HTTP control server from configuration. The transport and clock can be
    injected for testing.
    """

    def __init__(
        self,
        config: Optional[PilotConfig] = None,
        *,
        transport: Optional[RadioTransport] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._config = config or load_config()
        clock = clock or time.monotonic
        codec = WireCodec()
        control = self._config.control

        self._transport: RadioTransport = transport or BleakTransport(self._config.link)
        self._link = LinkSession(
            self._transport,
            codec=codec,
            clock=clock,
            connect_timeout=self._config.link.connect_timeout_seconds,
        )
        self._controller = SessionController(
            self._link,
            mapper=VectorMapper(deadzone=control.deadzone, max_radius=control.max_radius),
            throttler=CommandThrottler(control.min_interval_seconds),
            codec=codec,
            clock=clock,
            speed_percent=control.initial_speed_percent,
        )
        self._server: Optional[ControlServer] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def controller(self) -> SessionController:
        return self._controller

    async def run(self, *, connect: bool = False) -> None:
        """Serve until cancelled, then stop the rover and shut down."""

        self._shutdown_event = asyncio.Event()
        LOGGER.info("rover-pilot starting with config: %s", self._config.path)

        await self._start_server()
        if connect:
            await self._initial_connect()

        try:
            LOGGER.info("rover-pilot active; awaiting shutdown signal")
            await self._shutdown_event.wait()
        except asyncio.CancelledError:
            LOGGER.info("rover-pilot received shutdown signal")
            raise
        finally:
            await self._stop_services()

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    @classmethod
    def start(cls, config: Optional[PilotConfig] = None, *, connect: bool = False) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_bluetooth=instance._config.logging.log_bluetooth,
        )
        try:
            asyncio.run(instance.run(connect=connect))
        except KeyboardInterrupt:
            LOGGER.info("rover-pilot received shutdown signal")

    async def _initial_connect(self) -> None:
        try:
            await self._controller.connect()
        except (DeviceNotFoundError, LinkEstablishError) as exc:
            LOGGER.error("Could not connect to rover: %s. %s", exc, exc.guidance)
        except LinkCancelledError:
            LOGGER.info("Initial connect cancelled")

    async def _start_server(self) -> None:
        server_config = self._config.server
        if not server_config.enabled:
            LOGGER.info("Control server disabled")
            return
        self._server = ControlServer(
            self._controller, server_config.host, server_config.port
        )
        await self._server.start()

    async def _stop_services(self) -> None:
        await self._controller.disconnect()
        if self._server is not None:
            await self._server.stop()
            self._server = None
