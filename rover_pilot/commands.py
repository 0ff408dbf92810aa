"""Command values understood by the rover."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

SPEED_MIN = 0
SPEED_MAX = 255


class Motion(str, Enum):
    """Discrete drive instructions, valued by their wire token."""

    FORWARD = "F"
    BACKWARD = "B"
    LEFT = "L"
    RIGHT = "R"
    STOP = "S"

    @property
    def label(self) -> str:
        return _MOTION_LABELS[self]


_MOTION_LABELS = {
    Motion.FORWARD: "Forward",
    Motion.BACKWARD: "Backward",
    Motion.LEFT: "Left",
    Motion.RIGHT: "Right",
    Motion.STOP: "Stopped",
}


@dataclass(frozen=True, slots=True)
class SpeedSet:
    """Drive power level as a byte."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"Speed must be an integer, got {self.value!r}")
        if not SPEED_MIN <= self.value <= SPEED_MAX:
            raise ValueError(
                f"Speed {self.value} outside [{SPEED_MIN}, {SPEED_MAX}]"
            )


Command = Union[Motion, SpeedSet]


def percent_to_speed(percent: float) -> int:
    """Convert a 0-100 slider value into the 0-255 byte range.

    Rounds half up, so 50% maps to 128. Values outside 0-100 are clamped.
    """

    clamped = max(0.0, min(100.0, float(percent)))
    return int(math.floor((clamped / 100) * SPEED_MAX + 0.5))
