"""Joystick vector to motion command mapping."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .commands import Motion
from .constants import DEFAULT_DEADZONE, DEFAULT_MAX_RADIUS


@dataclass(frozen=True, slots=True)
class JoystickVector:
    """Pixel displacement of the pointer from the joystick centre."""

    dx: float
    dy: float

    @property
    def magnitude(self) -> float:
        return math.hypot(self.dx, self.dy)


@dataclass(frozen=True, slots=True)
class VectorMapping:
    """Result of mapping one joystick vector.

    Attributes:
        direction: Motion command for the vector. ``Motion.STOP`` inside the deadzone.
        clamped: Vector limited to the joystick radius, used to place the knob.
        distance: Magnitude of the raw (unclamped) vector.
        angle: Angle of the vector in degrees, ``(-180, 180]``. ``None`` at the origin.
    """

    direction: Motion
    clamped: JoystickVector
    distance: float
    angle: Optional[float]


def direction_for_angle(angle: float) -> Motion:
    """Bucket an angle in degrees into one of four 90 degree sectors.

    Sectors are half-open with the lower bound inclusive. Screen coordinates
    are assumed (+y downward), so positive angles point backward.
    """

    if -45 <= angle < 45:
        return Motion.RIGHT
    if 45 <= angle < 135:
        return Motion.BACKWARD
    if -135 <= angle < -45:
        return Motion.FORWARD
    return Motion.LEFT


class VectorMapper:
    """Converts continuous joystick displacement into discrete motion."""

    def __init__(
        self,
        *,
        deadzone: float = DEFAULT_DEADZONE,
        max_radius: float = DEFAULT_MAX_RADIUS,
    ) -> None:
        if max_radius <= 0:
            raise ValueError("max_radius must be positive")
        self.deadzone = max(0.0, deadzone)
        self.max_radius = max_radius

    def map(
        self, vector: JoystickVector, max_radius: Optional[float] = None
    ) -> VectorMapping:
        radius = self.max_radius if max_radius is None else max_radius
        if radius <= 0:
            raise ValueError("max_radius must be positive")

        distance = vector.magnitude
        if distance == 0:
            return VectorMapping(
                direction=Motion.STOP,
                clamped=JoystickVector(0.0, 0.0),
                distance=0.0,
                angle=None,
            )

        radians = math.atan2(vector.dy, vector.dx)
        clamped = vector
        if distance > radius:
            clamped = JoystickVector(
                math.cos(radians) * radius, math.sin(radians) * radius
            )

        angle = math.degrees(radians)
        if angle == -180.0:
            # atan2 yields -pi for a negative-zero dy
            angle = 180.0
        if distance < self.deadzone:
            direction = Motion.STOP
        else:
            direction = direction_for_angle(angle)

        return VectorMapping(
            direction=direction, clamped=clamped, distance=distance, angle=angle
        )
