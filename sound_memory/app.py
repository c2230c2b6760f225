"""Pygame UI shell for the Sound Memory game.

Mode menu -> game screen. Deterministic timing/scoring/RNG/state lives in
sound_memory/* (core modules); this file only draws snapshots and forwards
input to the engine.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import pygame

from .audio import PygameToneSink
from .memory_core import GameMode, GameSnapshot, RoundStatus
from .persistence import ScoreStore, SqliteScoreStore, default_db_path
from .round_engine import (
    SoundMemoryConfig,
    SoundMemoryEngine,
    build_sound_memory_game,
    classic_config,
    tile_config,
)
from .timeline import RealClock

logger = logging.getLogger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


WINDOW_SIZE = (960, 640)
TARGET_FPS = 60

TILE_COLORS: tuple[tuple[int, int, int], ...] = (
    (236, 72, 153),
    (139, 92, 246),
    (59, 130, 246),
    (20, 184, 166),
    (234, 179, 8),
    (239, 68, 68),
    (99, 102, 241),
    (6, 182, 212),
)

SPEED_STEP = 0.25


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 48)
        self._item_font = pygame.font.Font(None, 34)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            if self._items:
                self._items[self._selected].action()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            if self._is_root:
                self._app.quit()
            else:
                self._app.pop()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        surface.fill((12, 10, 32))

        title = self._title_font.render(self._title, True, (238, 232, 255))
        surface.blit(title, title.get_rect(center=(w // 2, h // 6)))

        row_h = 48
        y = h // 3
        for idx, item in enumerate(self._items):
            row = pygame.Rect(w // 2 - 180, y, 360, row_h - 8)
            selected = idx == self._selected
            pygame.draw.rect(surface, (244, 240, 255) if selected else (36, 30, 78), row, border_radius=10)
            color = (30, 20, 70) if selected else (230, 226, 250)
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, text.get_rect(center=row.center))
            y += row_h

        foot = self._hint_font.render("Enter: Select  |  Esc: Back", True, (170, 160, 200))
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 16)))


class GameScreen:
    def __init__(self, app: App, *, engine: SoundMemoryEngine, mode: GameMode) -> None:
        self._app = app
        self._engine = engine
        self._mode = mode
        self._tile_hitboxes: list[tuple[pygame.Rect, int]] = []

        self._big_font = pygame.font.Font(None, 56)
        self._mid_font = pygame.font.Font(None, 32)
        self._small_font = pygame.font.Font(None, 24)

        logger.debug("opening game screen in %s mode", mode.value)
        self._engine.start_game(mode)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            for rect, slot in self._tile_hitboxes:
                if rect.collidepoint(event.pos):
                    self._engine.select_slot(slot)
                    return
            return
        if event.type != pygame.KEYDOWN:
            return

        if event.key == pygame.K_ESCAPE:
            self._engine.stop()
            self._app.pop()
            return
        if event.key == pygame.K_m:
            self._engine.toggle_sound()
            return
        if event.key == pygame.K_r:
            self._engine.start_game(self._mode)
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            if self._engine.status in (RoundStatus.IDLE, RoundStatus.GAME_OVER):
                self._engine.start_game(self._mode)
            return
        if event.key == pygame.K_LEFTBRACKET:
            self._engine.set_speed(self._engine.state().speed_multiplier - SPEED_STEP)
            return
        if event.key == pygame.K_RIGHTBRACKET:
            self._engine.set_speed(self._engine.state().speed_multiplier + SPEED_STEP)
            return

        if pygame.K_1 <= event.key <= pygame.K_9:
            self._engine.select_slot(event.key - pygame.K_1)

    def render(self, surface: pygame.Surface) -> None:
        self._engine.update()
        snap = self._engine.snapshot()

        w, h = surface.get_size()
        surface.fill((14, 12, 36))

        self._render_header(surface, snap, w)
        self._render_board(surface, snap, w, h)

        prompt = self._mid_font.render(snap.prompt, True, (220, 214, 245))
        surface.blit(prompt, prompt.get_rect(center=(w // 2, h - 70)))
        hint = self._small_font.render(snap.input_hint + "  Esc = menu", True, (150, 142, 190))
        surface.blit(hint, hint.get_rect(center=(w // 2, h - 30)))

    def _render_header(self, surface: pygame.Surface, snap: GameSnapshot, w: int) -> None:
        score = self._big_font.render(str(snap.score), True, (248, 244, 255))
        surface.blit(score, (32, 20))
        parts = [
            f"{snap.mode.label}",
            f"Level {snap.level}",
            f"Combo {snap.combo}x",
            f"Best {snap.best_combo}x",
            f"Speed {snap.speed_multiplier:g}x",
        ]
        if snap.lives is not None:
            parts.append(f"Lives {snap.lives}")
        if snap.time_remaining_s is not None:
            parts.append(f"Time {snap.time_remaining_s:.0f}s")
        info = self._small_font.render("   ".join(parts), True, (190, 182, 225))
        surface.blit(info, (32, 72))

        high = self._mid_font.render(f"High {snap.high_score}", True, (250, 204, 21))
        surface.blit(high, high.get_rect(topright=(w - 32, 24)))
        sound = self._small_font.render(
            "Sound on" if snap.sound_enabled else "Sound off", True, (190, 182, 225)
        )
        surface.blit(sound, sound.get_rect(topright=(w - 32, 60)))

    def _render_board(self, surface: pygame.Surface, snap: GameSnapshot, w: int, h: int) -> None:
        cols = 4 if snap.slot_count > 4 else 2
        rows = (snap.slot_count + cols - 1) // cols
        top = 120
        bottom = h - 110
        gap = 16
        size = min((w - 64 - gap * (cols - 1)) // cols, (bottom - top - gap * (rows - 1)) // rows)
        left = (w - (size * cols + gap * (cols - 1))) // 2
        accepting = snap.status is RoundStatus.AWAITING_INPUT

        self._tile_hitboxes = []
        for slot in range(snap.slot_count):
            r, c = divmod(slot, cols)
            rect = pygame.Rect(left + c * (size + gap), top + r * (size + gap), size, size)
            base = TILE_COLORS[slot % len(TILE_COLORS)]
            if slot in snap.lit_slots:
                color = tuple(min(255, int(v * 1.5) + 40) for v in base)
            elif accepting:
                color = tuple(int(v * 0.8) for v in base)
            else:
                color = tuple(int(v * 0.55) for v in base)
            pygame.draw.rect(surface, color, rect, border_radius=18)
            pygame.draw.rect(surface, (255, 255, 255), rect, 2, border_radius=18)
            label = self._small_font.render(str(slot + 1), True, (255, 255, 255))
            surface.blit(label, label.get_rect(bottomright=(rect.right - 10, rect.bottom - 8)))
            self._tile_hitboxes.append((rect, slot))


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    store: ScoreStore | None = None,
    config: SoundMemoryConfig | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Sound Memory")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    cfg = config or SoundMemoryConfig()
    if store is None:
        store = SqliteScoreStore(default_db_path())

    engines: dict[str, SoundMemoryEngine] = {}

    def engine_for(name: str, engine_cfg: SoundMemoryConfig) -> SoundMemoryEngine:
        # Built on first use so each board gets its own tones.
        if name not in engines:
            engines[name] = build_sound_memory_game(
                clock=RealClock(),
                seed=_new_seed(),
                config=engine_cfg,
                store=store,
                tone_sink=PygameToneSink(engine_cfg.tones),
            )
        return engines[name]

    def open_mode(
        mode: GameMode, *, name: str = "default", engine_cfg: SoundMemoryConfig = cfg
    ) -> Callable[[], None]:
        return lambda: app.push(GameScreen(app, engine=engine_for(name, engine_cfg), mode=mode))

    main_items = [
        MenuItem("Normal", open_mode(GameMode.NORMAL)),
        MenuItem("Time Attack", open_mode(GameMode.TIME_ATTACK)),
        MenuItem("Survival", open_mode(GameMode.SURVIVAL)),
        MenuItem("Fresh Tiles", open_mode(GameMode.NORMAL, name="tiles", engine_cfg=tile_config())),
        MenuItem("Classic", open_mode(GameMode.NORMAL, name="classic", engine_cfg=classic_config())),
        MenuItem("Quit", app.quit),
    ]
    app.push(MenuScreen(app, "Sound Memory", main_items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
