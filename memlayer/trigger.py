"""
Suggestion trigger - When is it worth showing suggestions?

A small state machine:

    idle ──context change──▶ pending(timer, generation)
    pending ──context change──▶ pending(new timer, generation + 1)   old timer cancelled
    pending ──timer fired──▶ idle            scoring starts
    pending ──timer fired during cool-down──▶ cooling_down   nothing scored
    idle ──presented──▶ cooling_down(until = now + min interval)

The generation counter is the staleness check: a timer or scoring pass that
carries an old generation never presents over a newer one.

Time is always passed in, so tests can drive it without sleeping.
"""

from enum import Enum
from typing import Any, Optional

from memlayer.log import get_logger
from memlayer.models import ContextWindow

logger = get_logger("trigger")


class TriggerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    COOLING_DOWN = "cooling_down"


class SuggestionTrigger:
    """Debounce plus a minimum spacing between presentations."""

    def __init__(self, delay_seconds: float = 2.0, min_interval_seconds: float = 1.0):
        self.delay_seconds = delay_seconds
        self.min_interval_seconds = min_interval_seconds
        self.generation = 0
        self._pending_context: Optional[ContextWindow] = None
        self._timer: Any = None  # anything with .cancel()
        self._cooldown_until: Optional[float] = None
        self._last_presented_generation = 0

    def state(self, now: float) -> TriggerState:
        if self._pending_context is not None:
            return TriggerState.PENDING
        if self._cooldown_until is not None and now < self._cooldown_until:
            return TriggerState.COOLING_DOWN
        return TriggerState.IDLE

    @property
    def pending_context(self) -> Optional[ContextWindow]:
        return self._pending_context

    def context_changed(self, context: ContextWindow) -> int:
        """Record a new context. Cancels any timer still waiting.

        Returns:
            The generation the caller must hand back in `timer_fired`.
        """
        self._cancel_timer()
        self.generation += 1
        self._pending_context = context
        return self.generation

    def attach_timer(self, generation: int, timer: Any) -> None:
        """Remember the timer that will fire for `generation`."""
        if generation != self.generation:
            timer.cancel()
            return
        self._timer = timer

    def timer_fired(self, generation: int, now: float) -> Optional[ContextWindow]:
        """A debounce timer went off.

        Returns:
            The context to score, or None if this timer was superseded or
            the last presentation is too recent.
        """
        if generation != self.generation or self._pending_context is None:
            logger.debug(f"Ignoring superseded timer (generation {generation}, current {self.generation})")
            return None

        context = self._pending_context
        self._pending_context = None
        self._timer = None

        if self._cooldown_until is not None and now < self._cooldown_until:
            logger.debug(f"Suppressing suggestions, cooling down for {self._cooldown_until - now:.2f}s")
            return None
        return context

    def may_present(self, generation: int, now: float) -> bool:
        """Whether a finished scoring pass from `generation` may be shown."""
        if generation < self._last_presented_generation:
            return False
        if self._cooldown_until is not None and now < self._cooldown_until:
            return False
        return True

    def presented(self, generation: int, now: float) -> None:
        self._last_presented_generation = generation
        self._cooldown_until = now + self.min_interval_seconds

    def cancel(self) -> None:
        """Drop the pending context and its timer."""
        self._cancel_timer()
        self._pending_context = None
        self.generation += 1

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
