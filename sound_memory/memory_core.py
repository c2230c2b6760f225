from __future__ import annotations

import random
from dataclasses import dataclass
from enum import StrEnum


class RoundStatus(StrEnum):
    IDLE = "idle"
    PRESENTING = "presenting"
    AWAITING_INPUT = "awaiting_input"
    GAME_OVER = "game_over"


class GameMode(StrEnum):
    NORMAL = "normal"
    TIME_ATTACK = "time_attack"
    SURVIVAL = "survival"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class GameOverPolicy(StrEnum):
    """What happens after the terminal GAME_OVER transition of a mode."""

    AUTO_RESTART = "auto_restart"
    AWAIT_RESTART = "await_restart"


class RoundEventKind(StrEnum):
    GAME_STARTED = "game_started"
    LEVEL_COMPLETE = "level_complete"
    STREAK_BONUS = "streak_bonus"
    MISMATCH = "mismatch"
    LIFE_LOST = "life_lost"
    TIME_UP = "time_up"
    GAME_OVER = "game_over"
    NEW_HIGH_SCORE = "new_high_score"
    SPEED_CHANGED = "speed_changed"
    SOUND_TOGGLED = "sound_toggled"


@dataclass(frozen=True, slots=True)
class RoundState:
    """Round-scoped game state.

    ``progress`` is always a prefix of ``sequence``. ``lives`` is only
    meaningful in survival and ``time_remaining_s`` only in time attack; both
    are ``None`` in the other modes.
    """

    status: RoundStatus
    mode: GameMode
    sequence: tuple[int, ...] = ()
    progress: tuple[int, ...] = ()
    level: int = 1
    score: int = 0
    lives: int | None = None
    time_remaining_s: float | None = None
    combo: int = 0
    best_combo: int = 0
    streak: int = 0
    speed_multiplier: float = 1.0


@dataclass(frozen=True, slots=True)
class RoundEvent:
    kind: RoundEventKind
    at_s: float
    round_id: int
    level: int
    score: int
    amount: float = 0.0
    detail: str = ""


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """View model for the UI (pure data)."""

    title: str
    status: RoundStatus
    mode: GameMode
    prompt: str
    input_hint: str
    level: int
    score: int
    high_score: int
    combo: int
    best_combo: int
    streak: int
    lives: int | None
    time_remaining_s: float | None
    speed_multiplier: float
    sequence_length: int
    progress_length: int
    sound_enabled: bool
    slot_count: int
    lit_slots: tuple[int, ...] = ()


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randrange(self, stop: int) -> int:
        return self._rng.randrange(stop)


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x <= lo else hi if x >= hi else float(x)
