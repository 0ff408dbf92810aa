"""Wire encoding for rover commands."""

from __future__ import annotations

import logging

from .commands import Command, Motion, SpeedSet
from .errors import WireCodecError

LOGGER = logging.getLogger(__name__)

SPEED_PREFIX = b"SPEED:"

_MOTION_BY_TOKEN = {motion.value.encode("ascii"): motion for motion in Motion}


class WireCodec:
    """Encode commands to the rover's ASCII protocol.

    Motion commands are a single letter (``F``, ``B``, ``L``, ``R``, ``S``) and
    speed commands are ``SPEED:<0-255>``. There is no framing or checksum.
    """

    def encode(self, command: Command) -> bytes:
        if isinstance(command, Motion):
            return command.value.encode("ascii")
        if isinstance(command, SpeedSet):
            return SPEED_PREFIX + str(command.value).encode("ascii")
        raise TypeError(f"Unsupported command type: {type(command).__name__}")

    def decode(self, payload: bytes) -> Command:
        """Parse a payload produced by :meth:`encode`.

        Raises:
            WireCodecError: If the payload is not a well-formed command.
        """

        data = bytes(payload)
        motion = _MOTION_BY_TOKEN.get(data)
        if motion is not None:
            return motion

        if not data.startswith(SPEED_PREFIX):
            raise WireCodecError(f"Unrecognised command payload: {data!r}")

        digits = data[len(SPEED_PREFIX) :]
        if not digits or not digits.isdigit():
            raise WireCodecError(f"Speed payload has no decimal value: {data!r}")
        if len(digits) > 1 and digits.startswith(b"0"):
            raise WireCodecError(f"Speed payload has leading zeros: {data!r}")

        try:
            return SpeedSet(int(digits))
        except ValueError as exc:
            raise WireCodecError(str(exc)) from exc

    def decode_notification(self, payload: bytes) -> str:
        """Render an inbound notification as diagnostic text."""
        return bytes(payload).decode("utf-8", errors="replace")
