"""HTTP control surface for a browser driving UI."""

from __future__ import annotations

import contextlib
import logging
import math
from typing import Any, Dict, Optional

from aiohttp import web

from .codec import WireCodec
from .commands import Motion
from .controller import InputResult, SessionController
from .errors import DeviceNotFoundError, LinkCancelledError, LinkEstablishError
from .joystick import JoystickVector

LOGGER = logging.getLogger(__name__)

_CODEC = WireCodec()


class BadRequest(ValueError):
    """Raised when a request body cannot be interpreted."""


async def _read_json(request: web.Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except ValueError as exc:
        # Covers JSONDecodeError, UnicodeDecodeError and the int digit limit
        raise BadRequest("Body must be JSON") from exc
    if not isinstance(payload, dict):
        raise BadRequest("Body must be a JSON object")
    return payload


def _number(payload: Dict[str, Any], key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise BadRequest(f"'{key}' must be a number")
    try:
        number = float(value)
    except OverflowError as exc:
        raise BadRequest(f"'{key}' is out of range") from exc
    if not math.isfinite(number):
        raise BadRequest(f"'{key}' must be finite")
    return number


@web.middleware
async def _bad_request_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    try:
        return await handler(request)
    except BadRequest as exc:
        return web.json_response({"error": "bad_request", "message": str(exc)}, status=400)


def _result_payload(result: InputResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "command": _CODEC.encode(result.command).decode("ascii"),
        "status": result.status.value,
    }
    if result.mapping is not None:
        payload["knob"] = {"x": result.mapping.clamped.dx, "y": result.mapping.clamped.dy}
    return payload


class ControlServer:
    """Minimal HTTP server exposing session control and `/status`."""

    def __init__(self, controller: SessionController, host: str, port: int) -> None:
        self._controller = controller
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[_bad_request_middleware])
        app.router.add_get("/status", self._handle_status)
        app.router.add_post("/connect", self._handle_connect)
        app.router.add_post("/disconnect", self._handle_disconnect)
        app.router.add_post("/input/vector", self._handle_vector)
        app.router.add_post("/input/release", self._handle_release)
        app.router.add_post("/input/stop", self._handle_stop)
        app.router.add_post("/input/button", self._handle_button)
        app.router.add_post("/input/speed", self._handle_speed)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info("Control server listening on http://%s:%s", self._host, self._port)

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.json_response(self._controller.snapshot().as_dict())

    async def _handle_connect(self, request: web.Request) -> web.Response:
        try:
            await self._controller.connect()
        except (DeviceNotFoundError, LinkEstablishError) as exc:
            return web.json_response(
                {
                    "error": type(exc).__name__,
                    "message": str(exc),
                    "guidance": exc.guidance,
                },
                status=502,
            )
        except LinkCancelledError as exc:
            return web.json_response(
                {"error": type(exc).__name__, "message": str(exc)}, status=409
            )
        return web.json_response(self._controller.snapshot().as_dict())

    async def _handle_disconnect(self, request: web.Request) -> web.Response:
        await self._controller.disconnect()
        return web.json_response(self._controller.snapshot().as_dict())

    async def _handle_vector(self, request: web.Request) -> web.Response:
        payload = await _read_json(request)
        vector = JoystickVector(_number(payload, "dx"), _number(payload, "dy"))
        result = await self._controller.on_directional_input(vector)
        return web.json_response(_result_payload(result))

    async def _handle_release(self, request: web.Request) -> web.Response:
        result = await self._controller.on_release()
        return web.json_response(_result_payload(result))

    async def _handle_stop(self, request: web.Request) -> web.Response:
        result = await self._controller.emergency_stop()
        return web.json_response(_result_payload(result))

    async def _handle_button(self, request: web.Request) -> web.Response:
        payload = await _read_json(request)
        try:
            motion = Motion(payload.get("command"))
        except ValueError as exc:
            raise BadRequest("'command' must be one of F, B, L, R, S") from exc
        result = await self._controller.on_button_command(motion)
        return web.json_response(_result_payload(result))

    async def _handle_speed(self, request: web.Request) -> web.Response:
        payload = await _read_json(request)
        percent = _number(payload, "percent")
        if not 0 <= percent <= 100:
            raise BadRequest("'percent' must be between 0 and 100")
        result = await self._controller.on_speed_change(percent)
        return web.json_response(_result_payload(result))
