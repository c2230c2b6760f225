from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


@dataclass(frozen=True, slots=True)
class StepHandle:
    step_id: int
    generation: int
    due_at_s: float


@dataclass(order=True, slots=True)
class _PendingStep:
    due_at_s: float
    step_id: int
    generation: int = field(compare=False)
    action: Callable[[], None] = field(compare=False)


class Timeline:
    """Single cooperative timeline of delayed steps.

    Nothing runs on its own: ``update()`` is polled from the frame loop and
    fires every step whose due time has passed, oldest first. Each step is
    stamped with the generation that was current when it was scheduled;
    ``invalidate()`` bumps the generation so stale steps never run, even if a
    caller kept a reference to their action.

    A step scheduled from inside a firing step is timed from the firing
    step's due time, not from the (possibly later) poll time, so chains of
    delays do not drift with the frame rate.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._generation = 0
        self._next_step_id = 0
        self._pending: list[_PendingStep] = []
        self._firing_due_at_s: float | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def now(self) -> float:
        """Current timeline time: the due time of the firing step, else the clock."""

        if self._firing_due_at_s is not None:
            return self._firing_due_at_s
        return self._clock.now()

    def pending_count(self) -> int:
        return sum(1 for step in self._pending if step.generation == self._generation)

    def schedule(self, delay_s: float, action: Callable[[], None]) -> StepHandle:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        base = self._clock.now() if self._firing_due_at_s is None else self._firing_due_at_s
        step = _PendingStep(
            due_at_s=base + float(delay_s),
            step_id=self._next_step_id,
            generation=self._generation,
            action=action,
        )
        self._next_step_id += 1
        self._pending.append(step)
        self._pending.sort()
        return StepHandle(step_id=step.step_id, generation=step.generation, due_at_s=step.due_at_s)

    def cancel(self, handle: StepHandle) -> bool:
        for idx, step in enumerate(self._pending):
            if step.step_id == handle.step_id:
                del self._pending[idx]
                return True
        return False

    def invalidate(self) -> int:
        """Drop every pending step and start a new generation."""

        self._generation += 1
        self._pending.clear()
        return self._generation

    def update(self) -> int:
        now = self._clock.now()
        fired = 0
        while self._pending and self._pending[0].due_at_s <= now:
            step = self._pending.pop(0)
            if step.generation != self._generation:
                continue
            self._firing_due_at_s = step.due_at_s
            try:
                step.action()
            finally:
                self._firing_due_at_s = None
            fired += 1
        return fired
