from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from .timeline import Timeline

logger = logging.getLogger(__name__)


class PresentationListener(Protocol):
    """Receives slot highlight events (rendering side)."""

    def activate(self, slot: int) -> None: ...
    def deactivate(self, slot: int) -> None: ...


class ToneSink(Protocol):
    """Fire-and-forget tone output for a slot."""

    def emit_tone(self, slot: int) -> None: ...


class NullListener:
    def activate(self, slot: int) -> None:
        _ = slot

    def deactivate(self, slot: int) -> None:
        _ = slot


class NullToneSink:
    def emit_tone(self, slot: int) -> None:
        _ = slot


@dataclass(frozen=True, slots=True)
class PlaybackTiming:
    # Base durations at speed 1.0; every value is divided by the speed multiplier.
    inter_step_s: float = 0.8
    highlight_s: float = 0.4
    settle_s: float = 0.0
    press_feedback_s: float = 0.3

    def validate(self) -> None:
        if self.inter_step_s < 0.0:
            raise ValueError("inter_step_s must be >= 0")
        if self.highlight_s <= 0.0:
            raise ValueError("highlight_s must be > 0")
        if self.settle_s < 0.0:
            raise ValueError("settle_s must be >= 0")
        if self.press_feedback_s <= 0.0:
            raise ValueError("press_feedback_s must be > 0")


class PlaybackScheduler:
    """Plays a sequence back one slot at a time on the shared timeline.

    For each slot: wait ``inter_step_s``, activate and sound the slot, wait
    ``highlight_s``, deactivate. Highlights never overlap. After the last
    slot and ``settle_s`` the completion callback runs.
    """

    def __init__(
        self,
        *,
        timeline: Timeline,
        timing: PlaybackTiming,
        listener: PresentationListener | None = None,
        tone_sink: ToneSink | None = None,
        sound_enabled: Callable[[], bool] = lambda: True,
    ) -> None:
        timing.validate()
        self._timeline = timeline
        self._timing = timing
        self._listener: PresentationListener = listener or NullListener()
        self._tone_sink: ToneSink = tone_sink or NullToneSink()
        self._sound_enabled = sound_enabled

        self._presenting = False
        self._token = 0
        self._lit: dict[int, int] = {}

    @property
    def presenting(self) -> bool:
        return self._presenting

    def lit_slots(self) -> tuple[int, ...]:
        return tuple(sorted(self._lit))

    def present(
        self,
        sequence: tuple[int, ...],
        *,
        speed: float,
        on_complete: Callable[[], None],
    ) -> None:
        if speed <= 0.0:
            raise ValueError("speed must be > 0")
        self.cancel()
        self._presenting = True
        token = self._token

        inter_s = self._timing.inter_step_s / speed
        highlight_s = self._timing.highlight_s / speed
        settle_s = self._timing.settle_s / speed

        def finish() -> None:
            if token != self._token:
                return
            self._presenting = False
            on_complete()

        def show(index: int) -> None:
            if token != self._token:
                return
            slot = sequence[index]
            self._light(slot)

            def hide() -> None:
                if token != self._token:
                    return
                self._unlight(slot)
                if index + 1 < len(sequence):
                    self._timeline.schedule(inter_s, lambda: show(index + 1))
                else:
                    self._timeline.schedule(settle_s, finish)

            self._timeline.schedule(highlight_s, hide)

        if sequence:
            self._timeline.schedule(inter_s, lambda: show(0))
        else:
            self._timeline.schedule(settle_s, finish)

    def flash(self, slot: int, *, speed: float) -> None:
        """Briefly light and sound a slot in response to a player press."""

        token = self._token
        self._light(slot)

        def hide() -> None:
            if token != self._token:
                return
            self._unlight(slot)

        self._timeline.schedule(self._timing.press_feedback_s / max(speed, 1e-6), hide)

    def cancel(self) -> None:
        """Forget the in-flight presentation and switch every lit slot off."""

        self._token += 1
        self._presenting = False
        lit = list(self._lit)
        self._lit.clear()
        for slot in lit:
            self._notify(self._listener.deactivate, slot)

    def _light(self, slot: int) -> None:
        self._lit[slot] = self._lit.get(slot, 0) + 1
        self._notify(self._listener.activate, slot)
        if self._sound_enabled():
            try:
                self._tone_sink.emit_tone(slot)
            except Exception:
                logger.warning("tone output failed for slot %d", slot, exc_info=True)

    def _unlight(self, slot: int) -> None:
        count = self._lit.get(slot, 0) - 1
        if count > 0:
            self._lit[slot] = count
            return
        self._lit.pop(slot, None)
        self._notify(self._listener.deactivate, slot)

    @staticmethod
    def _notify(callback: Callable[[int], None], slot: int) -> None:
        try:
            callback(slot)
        except Exception:
            logger.warning("presentation listener failed for slot %d", slot, exc_info=True)
