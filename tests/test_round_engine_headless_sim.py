from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from sound_memory.matcher import MatchOutcome
from sound_memory.memory_core import GameMode, RoundEventKind, RoundStatus
from sound_memory.round_engine import build_sound_memory_game


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


@dataclass
class WatchingPlayer:
    """Remembers what was lit during presentation, like a human would."""

    seen: list[int] = field(default_factory=list)
    presenting: bool = True

    def activate(self, slot: int) -> None:
        if self.presenting:
            self.seen.append(slot)

    def deactivate(self, slot: int) -> None:
        _ = slot


def _run_scripted_game(seed: int, *, levels: int, mode: GameMode) -> tuple[tuple[object, ...], list[tuple[object, ...]]]:
    clock = FakeClock()
    player = WatchingPlayer()
    engine = build_sound_memory_game(clock=clock, seed=seed, listener=player)
    engine.start_game(mode)

    completed = 0
    for _ in range(20000):
        clock.advance(1.0 / 60.0)
        engine.update()

        if engine.status is not RoundStatus.AWAITING_INPUT:
            continue

        # The presented slots are exactly the sequence to reproduce.
        assert tuple(player.seen) == engine.state().sequence
        remembered = list(player.seen)
        player.seen.clear()
        player.presenting = False

        if completed == levels:
            engine.select_slot((remembered[0] + 1) % 8)
            break

        for slot in remembered:
            outcome = engine.select_slot(slot)
            assert outcome is not MatchOutcome.MISMATCH
        completed += 1
        player.presenting = True
    else:
        raise AssertionError("scripted game did not finish")

    state = engine.state()
    summary = (
        state.status,
        state.score,
        state.level,
        state.best_combo,
        state.speed_multiplier,
        len(state.sequence),
        engine.high_score,
    )
    events = [(e.kind, e.level, e.score, round(e.amount, 6), round(e.at_s, 6)) for e in engine.events()]
    return summary, events


def test_headless_scripted_run_is_exactly_deterministic() -> None:
    summary_1, events_1 = _run_scripted_game(seed=441, levels=7, mode=GameMode.NORMAL)
    summary_2, events_2 = _run_scripted_game(seed=441, levels=7, mode=GameMode.NORMAL)

    assert summary_1 == summary_2
    assert events_1 == events_2


def test_headless_normal_run_scores_and_speeds_up() -> None:
    summary, events = _run_scripted_game(seed=77, levels=7, mode=GameMode.NORMAL)
    status, score, level, best_combo, speed, seq_len, high_score = summary

    assert status is RoundStatus.GAME_OVER
    assert level == 8
    assert seq_len == 8
    assert best_combo == 7
    assert speed == pytest.approx(1.2)
    # sum(10 * n for n in 1..7) + sum(floor(c * 0.5) for c in 0..6)
    assert score == 280 + 9
    assert high_score == score

    kinds = [k for k, *_ in events]
    assert kinds.count(RoundEventKind.LEVEL_COMPLETE) == 7
    assert kinds.count(RoundEventKind.SPEED_CHANGED) == 1
    assert kinds[-1] is RoundEventKind.GAME_OVER


def test_best_combo_never_decreases_across_rounds() -> None:
    clock = FakeClock()
    engine = build_sound_memory_game(clock=clock, seed=5)
    best_seen = 0

    for round_no in range(3):
        engine.start_game(GameMode.SURVIVAL)
        for _ in range(round_no + 1):
            for _ in range(2000):
                clock.advance(0.05)
                engine.update()
                if engine.status is RoundStatus.AWAITING_INPUT:
                    break
            for slot in engine.state().sequence:
                engine.select_slot(slot)
            assert engine.state().best_combo >= best_seen
            best_seen = engine.state().best_combo

        for _ in range(2000):
            clock.advance(0.05)
            engine.update()
            if engine.status is RoundStatus.AWAITING_INPUT:
                break
        engine.select_slot((engine.state().sequence[0] + 1) % 8)
        assert engine.state().combo == 0
        assert engine.state().best_combo == best_seen

    assert best_seen == 3
