"""Pygame UI shell for the Geometry Trainer.

Menus pick a puzzle (altitude, median, angle bisector) and a difficulty
tier; the game screen draws the current triangle and candidate segments and
forwards mouse clicks, mapped into canvas units, to the session.

Deterministic generation/timing/scoring lives in geometry_trainer/* (core
modules); nothing here mutates game state except through GeometrySession.
"""

from __future__ import annotations

import logging
import math
import os
import random
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .clock import RealClock
from .geometry import Point
from .hit_testing import display_to_canvas
from .lines import Concept, RoundLineSet, edge_hint_marks
from .progress import ProgressStore
from .puzzle_core import Difficulty, profile_for
from .session import FeedbackKind, GeometrySession, SessionSnapshot, SessionState
from .shapes import CanvasConfig

logger = logging.getLogger(__name__)


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None] | None  # None renders the row as locked


CONCEPT_TITLES: dict[Concept, str] = {
    Concept.ALTITUDE: "Altitude",
    Concept.MEDIAN: "Median",
    Concept.ANGLE_BISECTOR: "Angle Bisector",
}

CONCEPT_PROMPTS: dict[Concept, str] = {
    Concept.ALTITUDE: "Click the altitude: the segment perpendicular to the opposite side.",
    Concept.MEDIAN: "Click the median: from a vertex to the midpoint of the opposite side.",
    Concept.ANGLE_BISECTOR: "Click the angle bisector: it splits the vertex angle in half.",
}

DIFFICULTY_TITLES: dict[Difficulty, str] = {
    Difficulty.EASY: "Easy",
    Difficulty.MEDIUM: "Medium",
    Difficulty.HARD: "Hard",
}

FEEDBACK_TEXT: dict[FeedbackKind, str] = {
    FeedbackKind.CORRECT: "Correct!",
    FeedbackKind.PERFECT_STREAK: "Perfect streak!",
    FeedbackKind.RETRY: "Not quite. Try again.",
    FeedbackKind.REVEALED: "That was the last attempt. The correct segment is highlighted.",
    FeedbackKind.TIMEOUT: "Time is up! On to the next round.",
}

# Candidate colours cycle in line-set order.
SEGMENT_COLORS: tuple[tuple[int, int, int], ...] = (
    (80, 170, 255),
    (255, 100, 100),
    (90, 220, 140),
    (240, 200, 80),
)


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
        # Never pop the last/root screen; root handles its own quit/back behavior.
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
    def __init__(
        self,
        app: App,
        title: str,
        items: list[MenuItem] | Callable[[], list[MenuItem]],
        *,
        is_root: bool = False,
        footer_note: Callable[[], str] | None = None,
    ) -> None:
        self._app = app
        self._title = title
        self._items_source = items
        self._selected = 0
        self._is_root = is_root
        self._footer_note = footer_note
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def _items(self) -> list[MenuItem]:
        # Callable sources are re-read each time so unlocks show up on return.
        if callable(self._items_source):
            return self._items_source()
        return self._items_source

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.KEYDOWN:
            self._handle_key(event.key)

    def _handle_key(self, key: int) -> None:
        if key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        items = self._items()
        if not items:
            return
        self._selected = (self._selected + delta) % len(items)

    def _activate(self) -> None:
        items = self._items()
        if not items:
            return
        action = items[self._selected % len(items)].action
        if action is not None:
            action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        w, h = surface.get_size()
        bg = (3, 9, 78)
        panel_bg = (8, 18, 104)
        header_bg = (18, 30, 118)
        border = (226, 236, 255)
        text_main = (238, 245, 255)
        text_muted = (186, 200, 224)
        active_bg = (244, 248, 255)
        active_text = (14, 26, 74)

        surface.fill(bg)
        frame = _frame_rect(w, h)
        pygame.draw.rect(surface, panel_bg, frame)
        pygame.draw.rect(surface, border, frame, 2)

        header_h = max(34, min(52, h // 8))
        header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
        pygame.draw.rect(surface, header_bg, header)
        pygame.draw.line(surface, border, (header.x, header.bottom), (header.right, header.bottom), 1)

        title = self._title_font.render(self._title, True, text_main)
        surface.blit(title, title.get_rect(center=(frame.centerx, header.centery)))

        items = self._items()
        content_top = header.bottom + max(16, h // 30)
        content_bottom = frame.bottom - max(44, h // 12)
        list_rect = pygame.Rect(
            frame.x + max(14, w // 44),
            content_top,
            frame.w - max(28, w // 22),
            max(120, content_bottom - content_top),
        )
        pygame.draw.rect(surface, (6, 13, 92), list_rect)
        pygame.draw.rect(surface, (78, 102, 170), list_rect, 1)

        item_count = max(1, len(items))
        gap = max(4, min(10, list_rect.h // max(10, item_count * 3)))
        row_h = max(30, min(44, (list_rect.h - gap * (item_count + 1)) // item_count))
        total_h = row_h * item_count + gap * (item_count - 1)
        y = list_rect.y + max(8, (list_rect.h - total_h) // 2)

        for idx, item in enumerate(items):
            row = pygame.Rect(list_rect.x + 12, y, list_rect.w - 24, row_h)
            selected = idx == self._selected % item_count
            if selected:
                pygame.draw.rect(surface, active_bg, row)
                pygame.draw.rect(surface, (120, 142, 196), row, 2)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)

            if item.action is None:
                color = (120, 130, 160)
            else:
                color = active_text if selected else text_main
            label = _fit_label(self._item_font, item.label, row.w - 20)
            text = self._item_font.render(label, True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap

        footer = "Enter/Space: Select  |  Esc/Backspace: Back"
        if self._footer_note is not None:
            footer = f"{self._footer_note()}  |  {footer}"
        foot = self._hint_font.render(footer, True, text_muted)
        surface.blit(foot, foot.get_rect(midbottom=(frame.centerx, frame.bottom - 10)))


class GeometryGameScreen:
    def __init__(self, app: App, *, session_factory: Callable[[], GeometrySession]) -> None:
        self._app = app
        self._session = session_factory()
        self._session.start()
        self._canvas = CanvasConfig()
        self._canvas_rect: pygame.Rect | None = None
        self._show_hint = False

        self._small_font = pygame.font.Font(None, 24)
        self._tiny_font = pygame.font.Font(None, 18)
        self._big_font = pygame.font.Font(None, 64)

    @property
    def session(self) -> GeometrySession:
        return self._session

    @property
    def canvas_rect(self) -> pygame.Rect | None:
        return self._canvas_rect

    @property
    def show_hint(self) -> bool:
        return self._show_hint

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            self._click(event.pos)
            return
        if event.type != pygame.KEYDOWN:
            return

        if event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._session.abort()
            self._app.pop()
            return
        if self._session.state is SessionState.COMPLETE:
            if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
                self._app.pop()
            elif event.key == pygame.K_r:
                self._show_hint = False
                self._session.start()
            return

        if event.key == pygame.K_h:
            self._show_hint = not self._show_hint
            return

        choice = _choice_from_key(event.key)
        if choice is not None:
            self._session.select_segment(choice - 1)

    def _click(self, pos: tuple[int, int]) -> None:
        if self._canvas_rect is None:
            return
        r = self._canvas_rect
        point = display_to_canvas(pos, (r.x, r.y, r.w, r.h), (self._canvas.width, self._canvas.height))
        if point is None:
            return
        self._session.handle_click(point)

    def render(self, surface: pygame.Surface) -> None:
        self._session.update()
        snap = self._session.snapshot()

        w, h = surface.get_size()
        bg = (4, 12, 84)
        panel_bg = (8, 18, 104)
        header_bg = (18, 30, 118)
        border = (226, 236, 255)
        text_main = (238, 245, 255)
        text_muted = (188, 204, 228)

        surface.fill(bg)
        frame = _frame_rect(w, h)
        pygame.draw.rect(surface, panel_bg, frame)
        pygame.draw.rect(surface, border, frame, 2)

        header_h = max(40, min(56, h // 7))
        header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
        pygame.draw.rect(surface, header_bg, header)
        pygame.draw.line(surface, border, (header.x, header.bottom), (header.right, header.bottom), 1)

        title = self._small_font.render(
            f"{CONCEPT_TITLES[snap.concept]}  -  {DIFFICULTY_TITLES[snap.difficulty]}",
            True,
            text_main,
        )
        surface.blit(title, title.get_rect(midleft=(header.x + 12, header.centery)))

        stats = self._tiny_font.render(
            f"Round {snap.round}/{snap.total_rounds}   Score {snap.score}   "
            f"Attempts {snap.attempts_remaining}   Streak {snap.streak}   "
            f"Stars {snap.star_estimate}/3",
            True,
            text_muted,
        )
        surface.blit(stats, stats.get_rect(midright=(header.right - 110, header.centery)))

        if snap.time_remaining_s is not None:
            self._draw_timer(surface, header, snap)

        content = pygame.Rect(
            frame.x + max(14, w // 48),
            header.bottom + max(12, h // 36),
            frame.w - max(28, w // 24),
            frame.bottom - header.bottom - max(70, h // 8),
        )
        pygame.draw.rect(surface, (6, 13, 92), content)
        pygame.draw.rect(surface, (78, 102, 170), content, 1)

        if snap.state in (SessionState.COMPLETE, SessionState.ABORTED):
            self._canvas_rect = None
            self._render_results(surface, content, snap)
            footer = "Enter: Back to menu  |  R: Play again"
        else:
            self._canvas_rect = _fit_rect(content.inflate(-16, -16), self._canvas.width, self._canvas.height)
            self._render_puzzle(surface, self._canvas_rect, snap)
            footer = "Click a segment (or 1-4)  |  H: Hint marks  |  Esc: Quit session"

        message = FEEDBACK_TEXT.get(snap.feedback) or CONCEPT_PROMPTS[snap.concept]
        if snap.state is SessionState.COMPLETE:
            message = "Session complete."
        msg = self._small_font.render(_fit_label(self._small_font, message, frame.w - 40), True, text_main)
        surface.blit(msg, msg.get_rect(midbottom=(frame.centerx, frame.bottom - 34)))

        footer_text = self._tiny_font.render(footer, True, text_muted)
        surface.blit(footer_text, footer_text.get_rect(midbottom=(frame.centerx, frame.bottom - 12)))

    def _draw_timer(self, surface: pygame.Surface, header: pygame.Rect, snap: SessionSnapshot) -> None:
        remaining = snap.time_remaining_s or 0.0
        ratio = 0.0 if snap.time_limit_s <= 0.0 else remaining / snap.time_limit_s
        if ratio <= 0.10:
            color = (240, 90, 90)
        elif ratio <= 0.30:
            color = (240, 200, 80)
        else:
            color = (110, 220, 140)

        secs = int(math.ceil(remaining))
        label = self._small_font.render(f"{secs}s", True, color)
        surface.blit(label, label.get_rect(midright=(header.right - 70, header.centery)))

        bar = pygame.Rect(header.right - 62, header.centery - 4, 50, 8)
        pygame.draw.rect(surface, (40, 50, 110), bar)
        filled = bar.copy()
        filled.w = int(round(bar.w * max(0.0, min(1.0, ratio))))
        pygame.draw.rect(surface, color, filled)

    def _render_puzzle(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        pygame.draw.rect(surface, (244, 247, 252), rect)
        pygame.draw.rect(surface, (112, 134, 190), rect, 1)
        if snap.triangle is None or snap.line_set is None:
            return

        def to_px(p: Point) -> tuple[int, int]:
            return (
                int(round(rect.x + p.x * rect.w / self._canvas.width)),
                int(round(rect.y + p.y * rect.h / self._canvas.height)),
            )

        line_set: RoundLineSet = snap.line_set
        for seg in line_set:
            if seg.extension is not None:
                _draw_dashed_line(surface, (107, 114, 128), to_px(seg.extension.start), to_px(seg.extension.end), 2)

        corners = [to_px(v) for v in snap.triangle.vertices()]
        pygame.draw.polygon(surface, (31, 41, 55), corners, 3)

        if self._show_hint:
            for mark in edge_hint_marks(line_set):
                if mark.is_midpoint:
                    pygame.draw.line(surface, (22, 163, 74), to_px(mark.start), to_px(mark.end), 3)
                else:
                    _draw_dashed_line(surface, (128, 128, 128), to_px(mark.start), to_px(mark.end), 2, dash=5)

        for idx, seg in enumerate(line_set):
            start, end = to_px(seg.p1), to_px(seg.p2)
            if seg.selected:
                _draw_dashed_line(surface, (156, 163, 175), start, end, 2, dash=8)
                continue
            pygame.draw.line(surface, SEGMENT_COLORS[idx % len(SEGMENT_COLORS)], start, end, 3)
            label = self._tiny_font.render(str(idx + 1), True, (31, 41, 55))
            surface.blit(label, label.get_rect(center=(end[0] + 10, end[1] + 10)))

        if snap.reveal:
            ref = line_set.reference()
            pygame.draw.line(surface, (22, 163, 74), to_px(ref.p1), to_px(ref.p2), 5)
            pygame.draw.circle(surface, (22, 163, 74), to_px(ref.foot), 7)
            pygame.draw.circle(surface, (255, 255, 255), to_px(ref.foot), 7, 2)

    def _render_results(self, surface: pygame.Surface, rect: pygame.Rect, snap: SessionSnapshot) -> None:
        result = self._session.result()
        text_main = (238, 245, 255)
        y = rect.y + 24
        if result is None:
            lines = [f"Session ended at round {snap.round}.", f"Score: {snap.score}"]
        else:
            mean_rt = "n/a" if result.mean_response_time_s is None else f"{result.mean_response_time_s:.1f}s"
            lines = [
                f"Score: {result.score}/{result.total_rounds} ({result.percentage}%)",
                f"Best streak: {result.best_streak}",
                f"Time-outs: {result.timeouts}",
                f"Mean answer time: {mean_rt}",
            ]
            stars = self._big_font.render("*" * result.stars + "-" * (3 - result.stars), True, (250, 204, 21))
            surface.blit(stars, stars.get_rect(midtop=(rect.centerx, y)))
            y += stars.get_height() + 16
        for line in lines:
            text = self._small_font.render(line, True, text_main)
            surface.blit(text, text.get_rect(midtop=(rect.centerx, y)))
            y += text.get_height() + 8


def _frame_rect(w: int, h: int) -> pygame.Rect:
    margin = max(10, min(26, w // 34))
    return pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))


def _fit_rect(area: pygame.Rect, width: float, height: float) -> pygame.Rect:
    """Largest rect with the canvas aspect ratio centred inside ``area``."""

    scale = min(area.w / width, area.h / height)
    fitted = pygame.Rect(0, 0, max(1, int(width * scale)), max(1, int(height * scale)))
    fitted.center = area.center
    return fitted


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _draw_dashed_line(
    surface: pygame.Surface,
    color: tuple[int, int, int],
    start: tuple[int, int],
    end: tuple[int, int],
    width: int,
    *,
    dash: int = 6,
) -> None:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0.0:
        return
    steps = int(length // dash)
    for i in range(0, steps + 1, 2):
        t0 = (i * dash) / length
        t1 = min(1.0, ((i + 1) * dash) / length)
        a = (start[0] + dx * t0, start[1] + dy * t0)
        b = (start[0] + dx * t1, start[1] + dy * t1)
        pygame.draw.line(surface, color, a, b, width)


def _choice_from_key(key: int) -> int | None:
    mapping = {
        pygame.K_1: 1,
        pygame.K_2: 2,
        pygame.K_3: 3,
        pygame.K_4: 4,
        pygame.K_KP1: 1,
        pygame.K_KP2: 2,
        pygame.K_KP3: 3,
        pygame.K_KP4: 4,
    }
    return mapping.get(key)


WINDOW_SIZE = (960, 540)
WINDOW_SIZE_ENV = "GEOMETRY_TRAINER_WINDOW"
TARGET_FPS = 60


def _window_size() -> tuple[int, int]:
    raw = os.environ.get(WINDOW_SIZE_ENV, "").strip().lower()
    if raw == "":
        return WINDOW_SIZE
    try:
        w_s, h_s = raw.split("x", 1)
        w, h = int(w_s), int(h_s)
    except ValueError:
        logger.warning("ignoring malformed %s=%r", WINDOW_SIZE_ENV, raw)
        return WINDOW_SIZE
    if w < 320 or h < 240:
        return WINDOW_SIZE
    return (w, h)


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def run(
    *,
    max_frames: int | None = None,
    event_injector: Callable[[int], None] | None = None,
    progress_path: Path | None = None,
) -> int:
    pygame.init()

    pygame.display.set_caption("Geometry Trainer")
    surface = pygame.display.set_mode(_window_size(), pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    progress = ProgressStore(progress_path or ProgressStore.default_path())
    real_clock = RealClock()

    def open_game(concept: Concept, difficulty: Difficulty) -> None:
        seed = _new_seed()
        app.push(
            GeometryGameScreen(
                app,
                session_factory=lambda: GeometrySession(
                    clock=real_clock,
                    seed=seed,
                    concept=concept,
                    difficulty=difficulty,
                    progress=progress,
                ),
            )
        )

    def open_difficulty_menu(concept: Concept) -> None:
        items = [
            MenuItem(
                f"{DIFFICULTY_TITLES[d]}  ({int(profile_for(d).time_limit_s)}s per round)",
                lambda d=d: open_game(concept, d),
            )
            for d in Difficulty
        ]
        items.append(MenuItem("Back", app.pop))
        app.push(MenuScreen(app, CONCEPT_TITLES[concept], items))

    def game_items() -> list[MenuItem]:
        items: list[MenuItem] = []
        for concept in Concept:
            game_id = str(concept)
            record = progress.game(game_id)
            if not progress.is_unlocked(game_id):
                items.append(MenuItem(f"{CONCEPT_TITLES[concept]}  (locked)", None))
                continue
            stars = "*" * record.stars
            best = f"  best {record.best_score}%" if record.completed else ""
            items.append(
                MenuItem(
                    f"{CONCEPT_TITLES[concept]}  {stars}{best}",
                    lambda c=concept: open_difficulty_menu(c),
                )
            )
        items.append(MenuItem("Reset progress", progress.reset))
        items.append(MenuItem("Quit", app.quit))
        return items

    def progress_note() -> str:
        s = progress.summary()
        return f"{s.level}: {s.total_stars} stars"

    app.push(MenuScreen(app, "Geometry Trainer", game_items, is_root=True, footer_note=progress_note))

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
