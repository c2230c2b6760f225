from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .matcher import InputMatcher, MatchOutcome
from .memory_core import (
    GameMode,
    GameOverPolicy,
    GameSnapshot,
    RoundEvent,
    RoundEventKind,
    RoundState,
    RoundStatus,
)
from .persistence import ScoreStore
from .playback import PlaybackScheduler, PlaybackTiming, PresentationListener, ToneSink
from .results import RoundResult, round_result_from_events
from .scoring import ScoringRules, award_completion, clamp_speed, extend_time, next_speed
from .sequence import SequenceGenerator, SequenceGrowth
from .timeline import Clock, Timeline
from .tones import BUTTON_TONES, TILE_TONES, ToneRegistry

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Finished rounds kept in memory; the store holds the full history.
RESULT_HISTORY = 50


@dataclass(frozen=True, slots=True)
class SoundMemoryConfig:
    tones: ToneRegistry = TILE_TONES
    growth: SequenceGrowth = SequenceGrowth.INCREMENTAL
    sequence_offset: int = 0

    start_delay_s: float = 0.0
    level_delay_s: float = 1.0
    game_over_delay_s: float = 1.5

    survival_lives: int = 3
    max_level: int | None = None
    replay_on_life_lost: bool = False

    normal_policy: GameOverPolicy = GameOverPolicy.AUTO_RESTART
    time_attack_policy: GameOverPolicy = GameOverPolicy.AUTO_RESTART
    survival_policy: GameOverPolicy = GameOverPolicy.AUTO_RESTART

    timing: PlaybackTiming = field(default_factory=PlaybackTiming)
    scoring: ScoringRules = field(default_factory=ScoringRules)

    def policy_for(self, mode: GameMode) -> GameOverPolicy:
        if mode is GameMode.TIME_ATTACK:
            return self.time_attack_policy
        if mode is GameMode.SURVIVAL:
            return self.survival_policy
        return self.normal_policy


def classic_config() -> SoundMemoryConfig:
    """Four-button board: one point per slot, streak payouts, level cap 20."""

    return SoundMemoryConfig(
        tones=BUTTON_TONES,
        growth=SequenceGrowth.INCREMENTAL,
        start_delay_s=1.0,
        level_delay_s=1.0,
        max_level=20,
        normal_policy=GameOverPolicy.AWAIT_RESTART,
        time_attack_policy=GameOverPolicy.AWAIT_RESTART,
        survival_policy=GameOverPolicy.AWAIT_RESTART,
        timing=PlaybackTiming(inter_step_s=0.2, highlight_s=0.5, settle_s=0.0, press_feedback_s=0.5),
        scoring=ScoringRules(
            points_per_slot=1,
            combo_rate=0.0,
            streak_every=3,
            streak_bonus_points=5,
            max_paid_length=20,
        ),
    )


def tile_config() -> SoundMemoryConfig:
    """Eight-tile board: a fresh sequence of ``level + 2`` tiles every level."""

    return SoundMemoryConfig(
        tones=TILE_TONES,
        growth=SequenceGrowth.REGENERATE,
        sequence_offset=2,
    )


class SoundMemoryEngine:
    """Round state machine for the repeat-the-sequence game.

    IDLE -> PRESENTING -> AWAITING_INPUT -> PRESENTING (next level) ... and
    GAME_OVER on a miss (normal), an expired countdown (time attack) or the
    last lost life (survival). Every delayed transition runs on a Timeline;
    starting a game invalidates the timeline so nothing scheduled for an
    older round can touch the new one.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: SoundMemoryConfig | None = None,
        store: ScoreStore | None = None,
        tone_sink: ToneSink | None = None,
        listener: PresentationListener | None = None,
    ) -> None:
        cfg = config or SoundMemoryConfig()
        cfg.scoring.validate()
        cfg.timing.validate()
        if cfg.sequence_offset < 0:
            raise ValueError("sequence_offset must be >= 0")
        if cfg.start_delay_s < 0.0 or cfg.level_delay_s < 0.0 or cfg.game_over_delay_s < 0.0:
            raise ValueError("delays must be >= 0")
        if cfg.survival_lives < 1:
            raise ValueError("survival_lives must be >= 1")
        if cfg.max_level is not None and cfg.max_level < 1:
            raise ValueError("max_level must be >= 1")

        self._cfg = cfg
        self._seed = int(seed)
        self._store = store
        self._timeline = Timeline(clock)
        self._generator = SequenceGenerator(
            slot_count=cfg.tones.size,
            seed=self._seed,
            growth=cfg.growth,
            offset=cfg.sequence_offset,
        )
        self._matcher = InputMatcher()
        self._playback = PlaybackScheduler(
            timeline=self._timeline,
            timing=cfg.timing,
            listener=listener,
            tone_sink=tone_sink,
            sound_enabled=lambda: self._sound_enabled,
        )

        self._high_score = max(0, int(self._store_call("read high score", lambda s: s.read_high_score(), 0)))
        self._sound_enabled = bool(
            self._store_call("read sound preference", lambda s: s.read_sound_enabled(), True)
        )

        self._status = RoundStatus.IDLE
        self._mode = GameMode.NORMAL
        self._round_id = 0
        self._sequence: tuple[int, ...] = ()
        self._progress: tuple[int, ...] = ()
        self._level = 1
        self._score = 0
        self._lives: int | None = None
        self._time_remaining_s: float | None = None
        self._countdown_mark_s: float | None = None
        self._combo = 0
        self._best_combo = 0
        self._streak = 0
        self._speed = 1.0

        # Only the current round's events are kept; start_game clears the log.
        self._events: list[RoundEvent] = []
        self._results: deque[RoundResult] = deque(maxlen=RESULT_HISTORY)

    @property
    def status(self) -> RoundStatus:
        return self._status

    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def high_score(self) -> int:
        return self._high_score

    @property
    def sound_enabled(self) -> bool:
        return self._sound_enabled

    @property
    def round_id(self) -> int:
        return self._round_id

    @property
    def config(self) -> SoundMemoryConfig:
        return self._cfg

    def events(self) -> list[RoundEvent]:
        return list(self._events)

    def results(self) -> list[RoundResult]:
        return list(self._results)

    def lit_slots(self) -> tuple[int, ...]:
        return self._playback.lit_slots()

    # Control surface

    def start_game(self, mode: GameMode | None = None) -> None:
        """Start (or restart) a round.

        A round still in progress is abandoned without a result, but a score
        above the high score is kept.
        """

        self.stop()
        stored = self._store_call("read high score", lambda s: s.read_high_score(), 0)
        self._high_score = max(self._high_score, int(stored))

        self._mode = self._mode if mode is None else GameMode(mode)
        self._round_id += 1
        self._events = []
        self._sequence = ()
        self._progress = ()
        self._level = 1
        self._score = 0
        self._combo = 0
        self._streak = 0
        self._speed = 1.0
        self._lives = self._cfg.survival_lives if self._mode is GameMode.SURVIVAL else None
        self._time_remaining_s = (
            self._cfg.scoring.time_attack_start_s if self._mode is GameMode.TIME_ATTACK else None
        )
        self._countdown_mark_s = None
        self._status = RoundStatus.PRESENTING

        logger.debug("round %d started in %s mode", self._round_id, self._mode.value)
        self._record(RoundEventKind.GAME_STARTED, detail=self._mode.value)
        self._after(self._cfg.start_delay_s, self._begin_level)

    def stop(self) -> None:
        """Abandon the running round and go idle, keeping a new high score."""

        if self._status in (RoundStatus.PRESENTING, RoundStatus.AWAITING_INPUT):
            self._bank_high_score()
            logger.debug("round %d abandoned at score %d", self._round_id, self._score)
        self._timeline.invalidate()
        self._playback.cancel()
        self._countdown_mark_s = None
        self._status = RoundStatus.IDLE

    def select_slot(self, slot: int) -> MatchOutcome:
        if not self._cfg.tones.contains(slot):
            logger.debug("ignoring selection of slot %r outside the board", slot)
            return MatchOutcome.IGNORED

        self._tick_countdown()
        outcome, progress = self._matcher.on_select(slot, self.state())
        if outcome is MatchOutcome.IGNORED:
            return outcome

        self._playback.flash(slot, speed=self._speed)
        if outcome is MatchOutcome.PARTIAL:
            self._progress = progress
        elif outcome is MatchOutcome.COMPLETE:
            self._complete_level()
        else:
            self._handle_mismatch(slot)
        return outcome

    def toggle_sound(self) -> bool:
        self._sound_enabled = not self._sound_enabled
        enabled = self._sound_enabled
        self._store_call("write sound preference", lambda s: s.write_sound_enabled(enabled), None)
        self._record(RoundEventKind.SOUND_TOGGLED, detail="on" if enabled else "off")
        return enabled

    def set_speed(self, multiplier: float) -> bool:
        """Change playback speed; only while a round is running."""

        if self._status not in (RoundStatus.PRESENTING, RoundStatus.AWAITING_INPUT):
            return False
        if not math.isfinite(multiplier):
            return False
        value = clamp_speed(self._cfg.scoring, float(multiplier))
        if value != self._speed:
            self._speed = value
            self._record(RoundEventKind.SPEED_CHANGED, amount=value, detail="player")
        return True

    def update(self) -> None:
        self._timeline.update()
        self._tick_countdown()

    # Views

    def state(self) -> RoundState:
        return RoundState(
            status=self._status,
            mode=self._mode,
            sequence=self._sequence,
            progress=self._progress,
            level=self._level,
            score=self._score,
            lives=self._lives,
            time_remaining_s=self._time_remaining_s,
            combo=self._combo,
            best_combo=self._best_combo,
            streak=self._streak,
            speed_multiplier=self._speed,
        )

    def time_remaining_s(self) -> float | None:
        if self._time_remaining_s is None:
            return None
        if self._status is RoundStatus.AWAITING_INPUT and self._countdown_mark_s is not None:
            elapsed = self._timeline.now() - self._countdown_mark_s
            return max(0.0, self._time_remaining_s - elapsed)
        return self._time_remaining_s

    def current_prompt(self) -> str:
        if self._status is RoundStatus.IDLE:
            return "Press Enter to start. Watch the lights, then repeat the sequence."
        if self._status is RoundStatus.PRESENTING:
            return "Watch and listen..."
        if self._status is RoundStatus.AWAITING_INPUT:
            return "Your turn: repeat the sequence."
        if self._cfg.policy_for(self._mode) is GameOverPolicy.AUTO_RESTART:
            return f"Game over! Score: {self._score}. Restarting..."
        return f"Game over! Score: {self._score}. Press Enter to play again."

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            title="Sound Memory",
            status=self._status,
            mode=self._mode,
            prompt=self.current_prompt(),
            input_hint="1-9 / click = select  M = sound  [ ] = speed  R = restart",
            level=self._level,
            score=self._score,
            high_score=self._high_score,
            combo=self._combo,
            best_combo=self._best_combo,
            streak=self._streak,
            lives=self._lives,
            time_remaining_s=self.time_remaining_s(),
            speed_multiplier=self._speed,
            sequence_length=len(self._sequence),
            progress_length=len(self._progress),
            sound_enabled=self._sound_enabled,
            slot_count=self._cfg.tones.size,
            lit_slots=self._playback.lit_slots(),
        )

    # Transitions

    def _begin_level(self) -> None:
        self._sequence = self._generator.extend(self._sequence, self._level)
        self._present_current()

    def _present_current(self) -> None:
        self._progress = ()
        self._status = RoundStatus.PRESENTING
        self._playback.present(self._sequence, speed=self._speed, on_complete=self._on_presented)

    def _on_presented(self) -> None:
        self._status = RoundStatus.AWAITING_INPUT
        self._countdown_mark_s = self._timeline.now()

    def _complete_level(self) -> None:
        rules = self._cfg.scoring
        award = award_completion(
            rules,
            sequence_length=len(self._sequence),
            combo=self._combo,
            best_combo=self._best_combo,
            streak=self._streak,
            time_remaining_s=self._time_remaining_s if self._mode is GameMode.TIME_ATTACK else None,
        )
        self._score += award.total
        self._combo = award.combo
        self._best_combo = award.best_combo
        self._streak = award.streak
        self._record(RoundEventKind.LEVEL_COMPLETE, amount=award.total)
        if award.streak_bonus:
            self._record(RoundEventKind.STREAK_BONUS, amount=award.streak_bonus)

        if self._time_remaining_s is not None:
            self._time_remaining_s = extend_time(rules, self._time_remaining_s)
        self._countdown_mark_s = None

        self._level += 1
        if self._cfg.max_level is not None:
            self._level = min(self._level, self._cfg.max_level)
        speed = next_speed(rules, level=self._level, current=self._speed)
        if speed != self._speed:
            self._speed = speed
            self._record(RoundEventKind.SPEED_CHANGED, amount=speed, detail="level")

        self._progress = ()
        self._status = RoundStatus.PRESENTING
        logger.debug("round %d: level complete, now level %d", self._round_id, self._level)
        self._after(self._cfg.level_delay_s / self._speed, self._begin_level)

    def _handle_mismatch(self, slot: int) -> None:
        self._record(RoundEventKind.MISMATCH, amount=slot)
        self._combo = 0
        self._streak = 0
        self._progress = ()

        if self._mode is GameMode.SURVIVAL and self._lives is not None:
            self._lives = max(0, self._lives - 1)
            if self._lives > 0:
                self._record(RoundEventKind.LIFE_LOST, amount=self._lives)
                if self._cfg.replay_on_life_lost:
                    self._status = RoundStatus.PRESENTING
                    self._after(self._cfg.level_delay_s / self._speed, self._present_current)
                return
        self._game_over(RoundEventKind.MISMATCH)

    def _tick_countdown(self) -> None:
        if self._time_remaining_s is None or self._countdown_mark_s is None:
            return
        if self._status is not RoundStatus.AWAITING_INPUT:
            return
        now = self._timeline.now()
        self._time_remaining_s = max(0.0, self._time_remaining_s - (now - self._countdown_mark_s))
        self._countdown_mark_s = now
        if self._time_remaining_s <= 0.0:
            self._record(RoundEventKind.TIME_UP)
            self._game_over(RoundEventKind.TIME_UP)

    def _game_over(self, ended_by: RoundEventKind) -> None:
        self._status = RoundStatus.GAME_OVER
        self._countdown_mark_s = None

        new_high = self._bank_high_score()
        self._record(RoundEventKind.GAME_OVER, detail=ended_by.value)

        result = round_result_from_events(
            self._events,
            mode=self._mode,
            seed=self._seed,
            round_id=self._round_id,
            score=self._score,
            level=self._level,
            best_combo=self._best_combo,
            sequence_length=len(self._sequence),
            ended_by=ended_by,
            ended_at_s=self._timeline.now(),
            new_high_score=new_high,
        )
        self._results.append(result)
        self._store_call("record round", lambda s: s.record_round(result), None)
        logger.debug("round %d over (%s), score %d", self._round_id, ended_by.value, self._score)

        if self._cfg.policy_for(self._mode) is GameOverPolicy.AUTO_RESTART:
            self._after(self._cfg.game_over_delay_s, lambda: self.start_game(self._mode))

    # Helpers

    def _bank_high_score(self) -> bool:
        if self._score <= self._high_score:
            return False
        self._high_score = self._score
        score = self._score
        self._store_call("write high score", lambda s: s.write_high_score(score), None)
        self._record(RoundEventKind.NEW_HIGH_SCORE, amount=score)
        return True

    def _after(self, delay_s: float, action: Callable[[], None]) -> None:
        round_id = self._round_id

        def guarded() -> None:
            if round_id != self._round_id:
                return
            action()

        self._timeline.schedule(delay_s, guarded)

    def _record(self, kind: RoundEventKind, *, amount: float = 0.0, detail: str = "") -> None:
        self._events.append(
            RoundEvent(
                kind=kind,
                at_s=self._timeline.now(),
                round_id=self._round_id,
                level=self._level,
                score=self._score,
                amount=float(amount),
                detail=detail,
            )
        )

    def _store_call(self, what: str, call: Callable[[ScoreStore], _T], default: _T) -> _T:
        if self._store is None:
            return default
        try:
            return call(self._store)
        except Exception:
            logger.warning("score store failed to %s", what, exc_info=True)
            return default


def build_sound_memory_game(
    *,
    clock: Clock,
    seed: int,
    config: SoundMemoryConfig | None = None,
    store: ScoreStore | None = None,
    tone_sink: ToneSink | None = None,
    listener: PresentationListener | None = None,
) -> SoundMemoryEngine:
    """Factory for the sound memory game engine."""

    return SoundMemoryEngine(
        clock=clock,
        seed=seed,
        config=config,
        store=store,
        tone_sink=tone_sink,
        listener=listener,
    )
