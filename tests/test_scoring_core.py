from __future__ import annotations

import pytest

from sound_memory.scoring import (
    ScoringRules,
    award_completion,
    clamp_speed,
    extend_time,
    next_speed,
    speed_for_level,
)


def test_first_completion_pays_ten_points_per_slot() -> None:
    award = award_completion(ScoringRules(), sequence_length=1, combo=0, best_combo=0, streak=0)
    assert award.base == 10
    assert award.combo_bonus == 0
    assert award.time_bonus == 0
    assert award.total == 10
    assert award.combo == 1
    assert award.best_combo == 1


def test_combo_bonus_uses_the_combo_carried_into_the_level() -> None:
    award = award_completion(ScoringRules(), sequence_length=4, combo=3, best_combo=5, streak=3)
    assert award.base == 40
    assert award.combo_bonus == 1  # floor(3 * 0.5)
    assert award.total == 41
    assert award.combo == 4
    assert award.best_combo == 5


def test_time_bonus_only_when_time_remaining_given() -> None:
    rules = ScoringRules()
    award = award_completion(rules, sequence_length=2, combo=0, best_combo=0, streak=0, time_remaining_s=30.0)
    assert award.time_bonus == 9  # floor(30 * 0.3)
    assert award.total == 29

    award = award_completion(rules, sequence_length=2, combo=0, best_combo=0, streak=0, time_remaining_s=3.2)
    assert award.time_bonus == 0


def test_streak_bonus_every_third_success_grows_with_the_streak() -> None:
    rules = ScoringRules(points_per_slot=1, combo_rate=0.0, streak_every=3, streak_bonus_points=5)
    payouts = []
    streak = 0
    for _ in range(9):
        award = award_completion(rules, sequence_length=1, combo=0, best_combo=0, streak=streak)
        payouts.append(award.streak_bonus)
        streak = award.streak
    assert payouts == [0, 0, 5, 0, 0, 10, 0, 0, 15]


def test_streak_bonus_disabled_by_default() -> None:
    award = award_completion(ScoringRules(), sequence_length=1, combo=0, best_combo=0, streak=2)
    assert award.streak == 3
    assert award.streak_bonus == 0


@pytest.mark.parametrize(
    "level,expected",
    [(1, None), (5, None), (6, 1.2), (10, 1.2), (11, 1.5), (15, 1.5), (16, 1.8), (40, 1.8)],
)
def test_speed_tiers(level: int, expected: float | None) -> None:
    assert speed_for_level(ScoringRules(), level) == expected


def test_next_speed_never_lowers_and_is_capped() -> None:
    rules = ScoringRules()
    assert next_speed(rules, level=3, current=0.5) == 0.5
    assert next_speed(rules, level=6, current=1.0) == 1.2
    assert next_speed(rules, level=6, current=1.75) == 1.75

    capped = ScoringRules(speed_tiers=((1, 3.0),))
    assert next_speed(capped, level=2, current=1.0) == 2.0


def test_speed_and_time_clamps() -> None:
    rules = ScoringRules()
    assert clamp_speed(rules, 0.1) == 0.5
    assert clamp_speed(rules, 5.0) == 2.0
    assert clamp_speed(rules, 1.25) == 1.25
    assert extend_time(rules, 10.0) == 15.0
    assert extend_time(rules, 27.5) == 30.0


def test_rules_validation() -> None:
    with pytest.raises(ValueError):
        ScoringRules(streak_every=0).validate()
    with pytest.raises(ValueError):
        ScoringRules(min_speed=2.0, max_speed=1.0).validate()
    with pytest.raises(ValueError):
        ScoringRules(speed_tiers=((10, 1.5), (5, 1.2))).validate()
    ScoringRules().validate()


def test_max_paid_length_caps_the_base_payout() -> None:
    rules = ScoringRules(points_per_slot=1, combo_rate=0.0, max_paid_length=20)
    assert award_completion(rules, sequence_length=7, combo=0, best_combo=0, streak=0).base == 7
    assert award_completion(rules, sequence_length=20, combo=0, best_combo=0, streak=0).base == 20
    assert award_completion(rules, sequence_length=23, combo=0, best_combo=0, streak=0).base == 20

    with pytest.raises(ValueError):
        ScoringRules(max_paid_length=0).validate()
