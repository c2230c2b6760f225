from __future__ import annotations

from dataclasses import dataclass

from .memory_core import GameMode, RoundEvent, RoundEventKind


@dataclass(frozen=True, slots=True)
class RoundResult:
    """Persistable summary of a round that reached GAME_OVER."""

    mode: GameMode
    seed: int
    round_id: int
    score: int
    level: int
    best_combo: int
    sequence_length: int
    levels_completed: int
    mistakes: int
    duration_s: float
    ended_by: RoundEventKind
    new_high_score: bool


def round_result_from_events(
    events: list[RoundEvent],
    *,
    mode: GameMode,
    seed: int,
    round_id: int,
    score: int,
    level: int,
    best_combo: int,
    sequence_length: int,
    ended_by: RoundEventKind,
    ended_at_s: float,
    new_high_score: bool,
) -> RoundResult:
    """Build a RoundResult from the event log of one round."""

    mine = [e for e in events if e.round_id == round_id]
    started = [e.at_s for e in mine if e.kind is RoundEventKind.GAME_STARTED]
    started_at_s = started[0] if started else ended_at_s
    completed = sum(1 for e in mine if e.kind is RoundEventKind.LEVEL_COMPLETE)
    mistakes = sum(1 for e in mine if e.kind is RoundEventKind.MISMATCH)

    return RoundResult(
        mode=mode,
        seed=int(seed),
        round_id=int(round_id),
        score=int(score),
        level=int(level),
        best_combo=int(best_combo),
        sequence_length=int(sequence_length),
        levels_completed=int(completed),
        mistakes=int(mistakes),
        duration_s=max(0.0, float(ended_at_s - started_at_s)),
        ended_by=ended_by,
        new_high_score=bool(new_high_score),
    )
