"""Rate limiting and deduplication for outgoing commands.

Any change of command is forwarded immediately. A repeat of the previous
command is suppressed until the minimum interval has elapsed, so holding the
joystick in one sector does not flood the radio link.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .commands import Command
from .constants import DEFAULT_MIN_INTERVAL_SECONDS

LOGGER = logging.getLogger(__name__)


@dataclass
class ThrottleState:
    """Mutable record of the last accepted command."""

    last_command: Optional[Command] = None
    last_sent_at: Optional[float] = None


@dataclass(frozen=True)
class ThrottleDecision:
    """Result of evaluating a candidate command.

    Attributes:
        accepted: True if the command should be transmitted.
        reason: ``"changed"``, ``"interval"`` or ``"duplicate"``.
    """

    accepted: bool
    reason: str


class CommandThrottler:
    """Decides whether a candidate command is worth transmitting now.

    Motion and speed commands share one throttle state. Not thread-safe; all
    calls must come from the event loop.
    """

    def __init__(self, min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS) -> None:
        self.min_interval = max(0.0, min_interval)
        self._state = ThrottleState()

    @property
    def state(self) -> ThrottleState:
        return self._state

    def _decide(self, candidate: Command, now: float) -> ThrottleDecision:
        state = self._state
        if state.last_sent_at is None or candidate != state.last_command:
            return ThrottleDecision(accepted=True, reason="changed")
        if now - state.last_sent_at > self.min_interval:
            return ThrottleDecision(accepted=True, reason="interval")
        return ThrottleDecision(accepted=False, reason="duplicate")

    def should_send(self, candidate: Command, now: float) -> bool:
        """Check a candidate without committing it.

        Callers that get ``True`` must follow up with :meth:`record`.
        """
        return self._decide(candidate, now).accepted

    def record(self, candidate: Command, now: float) -> None:
        self._state.last_command = candidate
        self._state.last_sent_at = now

    def evaluate(self, candidate: Command, now: float) -> ThrottleDecision:
        """Decide and, on acceptance, commit in one step."""
        decision = self._decide(candidate, now)
        if decision.accepted:
            self.record(candidate, now)
        else:
            LOGGER.debug("Suppressed repeated command %r", candidate)
        return decision
