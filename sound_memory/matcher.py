from __future__ import annotations

from enum import StrEnum

from .memory_core import RoundState, RoundStatus


class MatchOutcome(StrEnum):
    IGNORED = "ignored"
    PARTIAL = "partial"
    COMPLETE = "complete"
    MISMATCH = "mismatch"


def match_selection(slot: int, sequence: tuple[int, ...], progress: tuple[int, ...]) -> MatchOutcome:
    """Compare one selection against the next expected slot.

    The first deviation is a mismatch wherever it happens; there is no
    partial credit and no retry inside a level.
    """

    index = len(progress)
    if index >= len(sequence):
        return MatchOutcome.IGNORED
    if slot != sequence[index]:
        return MatchOutcome.MISMATCH
    if index + 1 == len(sequence):
        return MatchOutcome.COMPLETE
    return MatchOutcome.PARTIAL


class InputMatcher:
    """Gatekeeper between player selections and round state."""

    def on_select(self, slot: int, state: RoundState) -> tuple[MatchOutcome, tuple[int, ...]]:
        if state.status is not RoundStatus.AWAITING_INPUT:
            return MatchOutcome.IGNORED, state.progress
        outcome = match_selection(slot, state.sequence, state.progress)
        if outcome is MatchOutcome.PARTIAL:
            return outcome, state.progress + (slot,)
        if outcome is MatchOutcome.COMPLETE:
            return outcome, state.sequence
        return outcome, state.progress
