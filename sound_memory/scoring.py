from __future__ import annotations

import math
from dataclasses import dataclass

from .memory_core import clamp


@dataclass(frozen=True, slots=True)
class ScoringRules:
    points_per_slot: int = 10
    combo_rate: float = 0.5
    time_bonus_rate: float = 0.3

    # Streak payout: every ``streak_every``-th consecutive success pays
    # ``(streak // streak_every) * streak_bonus_points``. None disables it.
    streak_every: int | None = None
    streak_bonus_points: int = 5

    # (level threshold, multiplier): above the threshold, play at least this fast.
    speed_tiers: tuple[tuple[int, float], ...] = ((5, 1.2), (10, 1.5), (15, 1.8))
    min_speed: float = 0.5
    max_speed: float = 2.0

    # Longest sequence that still raises the base payout; None pays every slot.
    max_paid_length: int | None = None

    time_attack_start_s: float = 30.0
    time_attack_bonus_s: float = 5.0

    def validate(self) -> None:
        if self.points_per_slot < 0:
            raise ValueError("points_per_slot must be >= 0")
        if self.combo_rate < 0.0 or self.time_bonus_rate < 0.0:
            raise ValueError("bonus rates must be >= 0")
        if self.streak_every is not None and self.streak_every < 1:
            raise ValueError("streak_every must be >= 1")
        if not (0.0 < self.min_speed <= self.max_speed):
            raise ValueError("speed bounds must satisfy 0 < min_speed <= max_speed")
        if self.time_attack_start_s <= 0.0:
            raise ValueError("time_attack_start_s must be > 0")
        if self.time_attack_bonus_s < 0.0:
            raise ValueError("time_attack_bonus_s must be >= 0")
        if self.max_paid_length is not None and self.max_paid_length < 1:
            raise ValueError("max_paid_length must be >= 1")
        thresholds = [level for level, _ in self.speed_tiers]
        if thresholds != sorted(thresholds):
            raise ValueError("speed_tiers must be ordered by level")


@dataclass(frozen=True, slots=True)
class CompletionAward:
    base: int
    combo_bonus: int
    time_bonus: int
    streak_bonus: int
    combo: int
    best_combo: int
    streak: int

    @property
    def total(self) -> int:
        return self.base + self.combo_bonus + self.time_bonus + self.streak_bonus


def award_completion(
    rules: ScoringRules,
    *,
    sequence_length: int,
    combo: int,
    best_combo: int,
    streak: int,
    time_remaining_s: float | None = None,
) -> CompletionAward:
    """Score a completed sequence.

    The combo bonus uses the combo carried into this level; the combo and
    streak counters are advanced afterwards.
    """

    paid_length = int(sequence_length)
    if rules.max_paid_length is not None:
        paid_length = min(paid_length, rules.max_paid_length)
    base = paid_length * rules.points_per_slot
    combo_bonus = int(math.floor(combo * rules.combo_rate))
    time_bonus = 0
    if time_remaining_s is not None:
        time_bonus = int(math.floor(max(0.0, time_remaining_s) * rules.time_bonus_rate))

    new_streak = streak + 1
    streak_bonus = 0
    if rules.streak_every is not None and new_streak % rules.streak_every == 0:
        streak_bonus = (new_streak // rules.streak_every) * rules.streak_bonus_points

    new_combo = combo + 1
    return CompletionAward(
        base=base,
        combo_bonus=combo_bonus,
        time_bonus=time_bonus,
        streak_bonus=streak_bonus,
        combo=new_combo,
        best_combo=max(best_combo, new_combo),
        streak=new_streak,
    )


def speed_for_level(rules: ScoringRules, level: int) -> float | None:
    """Tier multiplier for ``level``, or None below the first threshold."""

    tier: float | None = None
    for threshold, multiplier in rules.speed_tiers:
        if level > threshold:
            tier = multiplier
    return tier


def next_speed(rules: ScoringRules, *, level: int, current: float) -> float:
    tier = speed_for_level(rules, level)
    if tier is None:
        return current
    return min(rules.max_speed, max(current, tier))


def clamp_speed(rules: ScoringRules, value: float) -> float:
    return clamp(value, rules.min_speed, rules.max_speed)


def extend_time(rules: ScoringRules, remaining_s: float) -> float:
    return min(rules.time_attack_start_s, remaining_s + rules.time_attack_bonus_s)
