"""Pygame UI shell for the Soccer Cognitive Trainer.

Three drills are reachable from the main menu:
- Scan Master (3x3 flash recall)
- Split-Second Striker (shoot/pass decisions)
- Arrow Sprint (arrow-key reaction time)

Deterministic timing/scoring/RNG/state lives in soccer_trainer/* (core modules);
this module only draws snapshots and turns key presses into session input.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import pygame

from .arrow_sprint import DIRECTION_GLYPHS, ArrowTrial, Direction, build_arrow_sprint_session
from .clock import RealClock
from .cognitive_core import GamePhase
from .scan_master import GRID_CELLS, ScanMasterRules, ScanTrial, build_scan_master_session, flashing_cell
from .scenarios import Action, FieldPosition
from .session import ReactionSession, SessionSnapshot
from .split_second_striker import StrikerTrial, build_striker_session

logger = logging.getLogger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


class DrillKind(StrEnum):
    SCAN = "scan"
    STRIKER = "striker"
    ARROW = "arrow"


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

_ARROW_KEYS: dict[int, Direction] = {
    pygame.K_UP: Direction.UP,
    pygame.K_DOWN: Direction.DOWN,
    pygame.K_LEFT: Direction.LEFT,
    pygame.K_RIGHT: Direction.RIGHT,
}

_ACTION_KEYS: dict[int, Action] = {
    pygame.K_s: Action.SHOOT,
    pygame.K_p: Action.PASS,
}

_DIGIT_KEYS: dict[int, int] = {
    **{getattr(pygame, f"K_{n}"): n - 1 for n in range(1, 10)},
    **{getattr(pygame, f"K_KP{n}"): n - 1 for n in range(1, 10)},
}


class App:
    def __init__(self, surface: pygame.Surface) -> None:
        self._surface = surface
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles its own quit behavior.
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
        surface.fill((15, 23, 42))

        title = self._title_font.render(self._title, True, (240, 240, 250))
        surface.blit(title, title.get_rect(center=(w // 2, h // 6)))
        tagline = self._hint_font.render("Train your mind. Elevate your game.", True, (190, 195, 215))
        surface.blit(tagline, tagline.get_rect(center=(w // 2, h // 6 + 40)))

        row_h = 48
        y = h // 3
        for idx, item in enumerate(self._items):
            row = pygame.Rect(w // 2 - 220, y, 440, row_h - 8)
            selected = idx == self._selected
            pygame.draw.rect(surface, (240, 244, 255) if selected else (40, 52, 90), row, border_radius=8)
            color = (20, 30, 70) if selected else (235, 240, 255)
            text = self._item_font.render(item.label, True, color)
            surface.blit(text, text.get_rect(center=row.center))
            y += row_h

        foot = self._hint_font.render("Up/Down: Move  |  Enter: Select  |  Esc: Back", True, (150, 160, 185))
        surface.blit(foot, foot.get_rect(midbottom=(w // 2, h - 14)))


class DrillScreen:
    """Hosts one ReactionSession: feeds it frames and input, draws its snapshot."""

    def __init__(self, app: App, *, kind: DrillKind, session_factory: Callable[[], ReactionSession]) -> None:
        self._app = app
        self._kind = kind
        self._session = session_factory()
        self._big_font = pygame.font.Font(None, 160)
        self._mid_font = pygame.font.Font(None, 44)
        self._small_font = pygame.font.Font(None, 26)
        self._cell_hitboxes: list[tuple[pygame.Rect, int]] = []

    @property
    def session(self) -> ReactionSession:
        return self._session

    def handle_event(self, event: pygame.event.Event) -> None:
        phase = self._session.phase

        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self._session.reset()
                self._app.pop()
                return
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE, pygame.K_r):
                if phase is GamePhase.IDLE:
                    self._session.start()
                    return
                if phase is GamePhase.SUMMARY:
                    self._session.restart()
                    return

            value = self._value_for_key(event.key)
            if value is not None:
                self._session.user_input(value)
            return

        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and self._kind is DrillKind.SCAN:
            for rect, cell in self._cell_hitboxes:
                if rect.collidepoint(event.pos):
                    self._session.user_input(cell)
                    return

    def _value_for_key(self, key: int) -> object | None:
        if self._kind is DrillKind.ARROW:
            return _ARROW_KEYS.get(key)
        if self._kind is DrillKind.STRIKER:
            return _ACTION_KEYS.get(key)
        return _DIGIT_KEYS.get(key)

    def render(self, surface: pygame.Surface) -> None:
        self._session.update()
        snap = self._session.snapshot()

        surface.fill((24, 18, 52))
        self._render_header(surface, snap)

        if snap.phase in (GamePhase.IDLE, GamePhase.COUNTDOWN, GamePhase.SUMMARY):
            self._render_text_block(surface, snap.prompt)
        elif self._kind is DrillKind.ARROW:
            self._render_arrow(surface, snap)
        elif self._kind is DrillKind.SCAN:
            self._render_grid(surface, snap)
        else:
            self._render_field(surface, snap)

        self._render_progress(surface, snap)

    def _render_header(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        w, _ = surface.get_size()
        title = self._small_font.render(snap.title, True, (230, 230, 245))
        surface.blit(title, (20, 14))
        if snap.trial_number > 0:
            progress = f"{snap.trial_number} / {snap.total_trials}"
            right = self._small_font.render(f"{progress}    Score: {snap.score}", True, (230, 230, 245))
            surface.blit(right, right.get_rect(topright=(w - 20, 14)))

    def _render_text_block(self, surface: pygame.Surface, text: str) -> None:
        w, h = surface.get_size()
        lines = text.split("\n")
        y = max(50, h // 2 - len(lines) * 15)
        for line in lines:
            img = self._small_font.render(line, True, (235, 235, 245))
            surface.blit(img, img.get_rect(midtop=(w // 2, y)))
            y += 30

    def _render_arrow(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        w, h = surface.get_size()
        panel = pygame.Rect(0, 0, 300, 300)
        panel.center = (w // 2, h // 2)
        pygame.draw.rect(surface, (250, 250, 255), panel, border_radius=12)

        trial = snap.stimulus
        if snap.phase is GamePhase.RESPONSE_OPEN and isinstance(trial, ArrowTrial):
            glyph = self._big_font.render(DIRECTION_GLYPHS[trial.direction], True, (124, 58, 237))
            surface.blit(glyph, glyph.get_rect(center=panel.center))
        else:
            img = self._mid_font.render(snap.prompt, True, (120, 120, 140))
            surface.blit(img, img.get_rect(center=panel.center))

    def _render_grid(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        w, h = surface.get_size()
        size = 96
        gap = 14
        left = w // 2 - (3 * size + 2 * gap) // 2
        top = h // 2 - (3 * size + 2 * gap) // 2 + 20

        lit: int | None = None
        trial = snap.stimulus
        rules = self._session.rules
        if snap.phase is GamePhase.STIMULUS_PENDING and isinstance(trial, ScanTrial) and isinstance(rules, ScanMasterRules):
            lit = flashing_cell(
                trial,
                elapsed_ms=snap.phase_elapsed_ms,
                interval_ms=rules.config.flash_interval_ms,
                on_ms=rules.config.flash_on_ms,
            )
        selected = snap.pending if isinstance(snap.pending, frozenset) else frozenset()
        targets = trial.target_set if snap.phase is GamePhase.FEEDBACK and isinstance(trial, ScanTrial) else frozenset()

        self._cell_hitboxes = []
        for cell in range(GRID_CELLS):
            row, col = divmod(cell, 3)
            rect = pygame.Rect(left + col * (size + gap), top + row * (size + gap), size, size)
            if cell == lit:
                color = (250, 204, 21)
            elif cell in selected:
                color = (34, 197, 94) if not targets or cell in targets else (239, 68, 68)
            elif cell in targets:
                color = (147, 197, 253)
            else:
                color = (226, 232, 240)
            pygame.draw.rect(surface, color, rect, border_radius=10)
            self._cell_hitboxes.append((rect, cell))

        status = self._mid_font.render(snap.prompt, True, (235, 235, 245))
        surface.blit(status, status.get_rect(midbottom=(w // 2, top - 16)))

    def _render_field(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        w, h = surface.get_size()
        field_rect = pygame.Rect(0, 0, 520, 340)
        field_rect.center = (w // 2, h // 2 + 10)
        pygame.draw.rect(surface, (22, 101, 52), field_rect)
        goal = pygame.Rect(0, 0, 160, 14)
        goal.midtop = field_rect.midtop
        pygame.draw.rect(surface, (250, 250, 250), goal)

        def to_px(p: FieldPosition) -> tuple[int, int]:
            return (
                field_rect.x + int(field_rect.w * p.x / 100.0),
                field_rect.y + int(field_rect.h * p.y / 100.0),
            )

        trial = snap.stimulus
        if isinstance(trial, StrikerTrial):
            scenario = trial.scenario
            for d in scenario.defenders:
                pygame.draw.circle(surface, (239, 68, 68), to_px(d), 11)
            for t in scenario.teammates:
                pygame.draw.circle(surface, (59, 130, 246), to_px(t), 11)
            pygame.draw.circle(surface, (34, 197, 94), to_px(scenario.player), 13)

        if snap.time_remaining_ms is not None:
            window = pygame.Rect(field_rect.x, field_rect.y - 22, field_rect.w, 10)
            pygame.draw.rect(surface, (60, 60, 80), window)
            window_ms = self._session.rules.response_window_ms(trial_index=0, trial=trial) or 1.0
            frac = max(0.0, min(1.0, snap.time_remaining_ms / window_ms))
            pygame.draw.rect(surface, (250, 204, 21), (window.x, window.y, int(window.w * frac), window.h))

        lines = snap.prompt.split("\n")
        y = field_rect.bottom + 8
        for line in lines:
            img = self._small_font.render(line, True, (235, 235, 245))
            surface.blit(img, img.get_rect(midtop=(w // 2, y)))
            y += 26

    def _render_progress(self, surface: pygame.Surface, snap: SessionSnapshot) -> None:
        w, h = surface.get_size()
        done = snap.trial_number - 1 if snap.phase in (GamePhase.STIMULUS_PENDING, GamePhase.RESPONSE_OPEN) else snap.trial_number
        frac = 0.0 if snap.total_trials <= 0 else max(0, done) / snap.total_trials
        pygame.draw.rect(surface, (46, 16, 101), (0, h - 6, w, 6))
        pygame.draw.rect(surface, (167, 139, 250), (0, h - 6, int(w * frac), 6))


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    pygame.init()

    pygame.display.set_caption("Soccer Cognitive Training")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    clock = pygame.time.Clock()

    app = App(surface=surface)
    real_clock = RealClock()

    builders: dict[DrillKind, Callable[..., ReactionSession]] = {
        DrillKind.SCAN: build_scan_master_session,
        DrillKind.STRIKER: build_striker_session,
        DrillKind.ARROW: build_arrow_sprint_session,
    }

    def open_drill(kind: DrillKind) -> None:
        seed = _new_seed()
        logger.info("opening %s drill (seed=%d)", kind.value, seed)
        app.push(
            DrillScreen(
                app,
                kind=kind,
                session_factory=lambda: builders[kind](clock=real_clock, seed=seed),
            )
        )

    main_items = [
        MenuItem("Scan Master", lambda: open_drill(DrillKind.SCAN)),
        MenuItem("Split-Second Striker", lambda: open_drill(DrillKind.STRIKER)),
        MenuItem("Arrow Sprint", lambda: open_drill(DrillKind.ARROW)),
        MenuItem("Quit", app.quit),
    ]

    app.push(MenuScreen(app, "Soccer Cognitive Training", main_items, is_root=True))

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
