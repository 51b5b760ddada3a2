"""Round/session state machine for the triangle puzzles.

A :class:`GeometrySession` is the single authority over a play session:
round index, score, attempts, streak, countdown and completion. It is
mutated only through its named transitions:

* :meth:`GeometrySession.start` resets counters and deals round 1.
* :meth:`GeometrySession.handle_click` / :meth:`GeometrySession.select_segment`
  evaluate a guess.
* :meth:`GeometrySession.update` is the tick: it expires the round timer and
  fires the pending acknowledgment delay that advances to the next round.
* :meth:`GeometrySession.abort` ends the session without reporting it.

Time comes only from the injected ``Clock`` so tests can drive it with a
fake clock. Acknowledgment delays are recorded as a single pending advance;
dealing a new round always cancels it, so a round can never be advanced
twice. While an answer is being acknowledged further clicks are ignored.

Events are applied in the order they arrive. A click that lands before the
tick which observes the timer at zero is still evaluated, so attempt
exhaustion wins over a simultaneous time-out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from .clock import Clock
from .geometry import DegenerateGeometryError, Point
from .hit_testing import DEFAULT_HIT_THRESHOLD, resolve_hit_index
from .lines import Concept, LineSetBuilder, RoundLineSet
from .puzzle_core import Difficulty, profile_for
from .results import RoundEvent, RoundOutcome, SessionResult, build_session_result, live_star_estimate
from .shapes import CanvasConfig, Triangle, TriangleGenerator, fallback_triangle

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    IDLE = "idle"
    ROUND_ACTIVE = "round_active"
    ROUND_RESOLVED = "round_resolved"  # answer given, waiting for the next round
    COMPLETE = "complete"
    ABORTED = "aborted"


class FeedbackKind(StrEnum):
    NONE = "none"
    PROMPT = "prompt"
    CORRECT = "correct"
    PERFECT_STREAK = "perfect_streak"
    RETRY = "retry"
    REVEALED = "revealed"
    TIMEOUT = "timeout"
    COMPLETE = "complete"


class ProgressRecorder(Protocol):
    def record_result(self, game_id: str, *, score: int, total_rounds: int, stars: int) -> object: ...


@dataclass(frozen=True, slots=True)
class SessionConfig:
    total_rounds: int = 15
    correct_delay_s: float = 2.0
    reveal_delay_s: float = 3.0
    timeout_delay_s: float = 2.0
    hit_threshold: float = DEFAULT_HIT_THRESHOLD
    max_generation_attempts: int = 10
    perfect_streak: int = 3


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the renderer (pure data apart from the live line set)."""

    state: SessionState
    concept: Concept
    difficulty: Difficulty
    round: int
    total_rounds: int
    score: int
    attempts_remaining: int
    streak: int
    time_limit_s: float
    time_remaining_s: float | None
    triangle: Triangle | None
    line_set: RoundLineSet | None
    reveal: bool
    feedback: FeedbackKind
    stars: int | None
    star_estimate: int


@dataclass(frozen=True, slots=True)
class _PendingAdvance:
    due_at_s: float
    round_index: int


class GeometrySession:
    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        concept: Concept | str = Concept.ALTITUDE,
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        canvas: CanvasConfig | None = None,
        config: SessionConfig | None = None,
        progress: ProgressRecorder | None = None,
        game_id: str | None = None,
    ) -> None:
        cfg = config or SessionConfig()
        if cfg.total_rounds <= 0:
            raise ValueError("total_rounds must be > 0")
        if min(cfg.correct_delay_s, cfg.reveal_delay_s, cfg.timeout_delay_s) < 0.0:
            raise ValueError("acknowledgment delays must be >= 0")
        if cfg.hit_threshold <= 0.0:
            raise ValueError("hit_threshold must be > 0")
        if cfg.max_generation_attempts <= 0:
            raise ValueError("max_generation_attempts must be > 0")

        self._clock = clock
        self._seed = int(seed)
        self._concept = Concept(concept)
        self._difficulty = Difficulty(difficulty)
        self._profile = profile_for(self._difficulty)
        self._cfg = cfg
        self._canvas = canvas or CanvasConfig()
        self._progress = progress
        self._game_id = str(game_id) if game_id is not None else str(self._concept)

        self._shapes = TriangleGenerator(seed=self._seed, canvas=self._canvas)
        self._builder = LineSetBuilder(seed=self._seed + 1)

        self._state = SessionState.IDLE
        self._round = 0
        self._score = 0
        self._streak = 0
        self._best_streak = 0
        self._attempts_remaining = 0
        self._attempts_used = 0

        self._triangle: Triangle | None = None
        self._line_set: RoundLineSet | None = None
        self._reveal = False
        self._feedback = FeedbackKind.NONE

        self._round_started_at_s = 0.0
        self._frozen_remaining_s: float | None = None
        self._pending: _PendingAdvance | None = None

        self._events: list[RoundEvent] = []
        self._result: SessionResult | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def concept(self) -> Concept:
        return self._concept

    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def game_id(self) -> str:
        return self._game_id

    @property
    def total_rounds(self) -> int:
        return self._cfg.total_rounds

    @property
    def round(self) -> int:
        return self._round

    @property
    def score(self) -> int:
        return self._score

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def best_streak(self) -> int:
        return self._best_streak

    @property
    def attempts_remaining(self) -> int:
        return self._attempts_remaining

    @property
    def triangle(self) -> Triangle | None:
        return self._triangle

    @property
    def line_set(self) -> RoundLineSet | None:
        return self._line_set

    @property
    def reveal(self) -> bool:
        return self._reveal

    @property
    def feedback(self) -> FeedbackKind:
        return self._feedback

    @property
    def is_processing(self) -> bool:
        """True while an answered round waits for its acknowledgment delay."""
        return self._pending is not None

    @property
    def is_terminal(self) -> bool:
        return self._state in (SessionState.COMPLETE, SessionState.ABORTED)

    def events(self) -> list[RoundEvent]:
        return list(self._events)

    def result(self) -> SessionResult | None:
        return self._result

    def start(self) -> None:
        if self._state in (SessionState.ROUND_ACTIVE, SessionState.ROUND_RESOLVED):
            return
        self._round = 0
        self._score = 0
        self._streak = 0
        self._best_streak = 0
        self._events.clear()
        self._result = None
        logger.info(
            "session start: game=%s difficulty=%s rounds=%d seed=%d",
            self._game_id,
            self._difficulty,
            self._cfg.total_rounds,
            self._seed,
        )
        self._begin_round()

    def abort(self) -> None:
        if self.is_terminal:
            return
        self._pending = None
        self._frozen_remaining_s = None
        self._state = SessionState.ABORTED
        self._feedback = FeedbackKind.NONE
        logger.info("session aborted at round %d with score %d", self._round, self._score)

    def time_remaining_s(self) -> float | None:
        if self._state is SessionState.ROUND_ACTIVE:
            elapsed = self._clock.now() - self._round_started_at_s
            return max(0.0, self._profile.time_limit_s - elapsed)
        if self._state is SessionState.ROUND_RESOLVED:
            return self._frozen_remaining_s
        return None

    def update(self) -> None:
        now = self._clock.now()
        if self._state is SessionState.ROUND_ACTIVE:
            if now - self._round_started_at_s >= self._profile.time_limit_s:
                self._time_out()
        if self._state is SessionState.ROUND_RESOLVED and self._pending is not None:
            pending = self._pending
            self._pending = None if now >= pending.due_at_s else pending
            if self._pending is None and pending.round_index == self._round:
                self._advance()

    def handle_click(self, point: Point) -> bool:
        """Evaluate a click in canvas coordinates. Returns True if it counted."""

        if self._state is not SessionState.ROUND_ACTIVE or self._line_set is None:
            return False
        idx = resolve_hit_index(self._line_set, point, threshold=self._cfg.hit_threshold)
        if idx is None:
            return False
        return self.select_segment(idx)

    def select_segment(self, index: int) -> bool:
        if self._state is not SessionState.ROUND_ACTIVE or self._line_set is None:
            return False
        if not (0 <= index < len(self._line_set)):
            return False
        segment = self._line_set[index]
        if segment.selected:
            return False

        self._attempts_used += 1
        if segment.is_reference:
            self._score += 1
            self._streak += 1
            self._best_streak = max(self._best_streak, self._streak)
            self._reveal = True
            self._feedback = (
                FeedbackKind.PERFECT_STREAK
                if self._streak >= self._cfg.perfect_streak
                else FeedbackKind.CORRECT
            )
            self._resolve_round(RoundOutcome.CORRECT, delay_s=self._cfg.correct_delay_s)
            return True

        self._line_set.mark_selected(index)
        self._attempts_remaining = max(0, self._attempts_remaining - 1)
        self._streak = 0
        if self._attempts_remaining > 0:
            self._feedback = FeedbackKind.RETRY
            return True

        self._reveal = True
        self._feedback = FeedbackKind.REVEALED
        self._resolve_round(RoundOutcome.MISSED, delay_s=self._cfg.reveal_delay_s)
        return True

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            concept=self._concept,
            difficulty=self._difficulty,
            round=self._round,
            total_rounds=self._cfg.total_rounds,
            score=self._score,
            attempts_remaining=self._attempts_remaining,
            streak=self._streak,
            time_limit_s=self._profile.time_limit_s,
            time_remaining_s=self.time_remaining_s(),
            triangle=self._triangle,
            line_set=self._line_set,
            reveal=self._reveal,
            feedback=self._feedback,
            stars=None if self._result is None else self._result.stars,
            star_estimate=live_star_estimate(self._score, self._cfg.total_rounds),
        )

    def _time_out(self) -> None:
        expired_at = self._round_started_at_s + self._profile.time_limit_s
        self._streak = 0
        self._feedback = FeedbackKind.TIMEOUT
        self._resolve_round(
            RoundOutcome.TIMEOUT,
            delay_s=self._cfg.timeout_delay_s,
            resolved_at_s=expired_at,
        )

    def _resolve_round(
        self,
        outcome: RoundOutcome,
        *,
        delay_s: float,
        resolved_at_s: float | None = None,
    ) -> None:
        at = self._clock.now() if resolved_at_s is None else resolved_at_s
        self._frozen_remaining_s = max(0.0, self._profile.time_limit_s - (at - self._round_started_at_s))
        self._events.append(
            RoundEvent(
                index=self._round,
                outcome=outcome,
                attempts_used=self._attempts_used,
                presented_at_s=self._round_started_at_s,
                resolved_at_s=at,
                response_time_s=max(0.0, at - self._round_started_at_s),
                streak_after=self._streak,
            )
        )
        self._state = SessionState.ROUND_RESOLVED
        self._pending = _PendingAdvance(due_at_s=at + delay_s, round_index=self._round)
        logger.debug("round %d resolved: %s (score %d)", self._round, outcome, self._score)

    def _advance(self) -> None:
        if self._round >= self._cfg.total_rounds:
            self._complete()
            return
        self._begin_round()

    def _begin_round(self) -> None:
        self._pending = None
        self._frozen_remaining_s = None
        self._round += 1
        self._triangle, self._line_set = self._deal()
        self._attempts_remaining = self._profile.attempts_per_round
        self._attempts_used = 0
        self._reveal = False
        self._feedback = FeedbackKind.PROMPT
        self._round_started_at_s = self._clock.now()
        self._state = SessionState.ROUND_ACTIVE

    def _deal(self) -> tuple[Triangle, RoundLineSet]:
        for attempt in range(self._cfg.max_generation_attempts):
            try:
                triangle = self._shapes.generate(self._difficulty)
                line_set = self._builder.build(triangle, self._concept, self._difficulty)
            except DegenerateGeometryError as exc:
                logger.debug("round %d: regenerating after %s (attempt %d)", self._round, exc, attempt + 1)
                continue
            # Feet closer than the click radius cannot be told apart.
            gap = line_set.min_foot_gap()
            if gap < self._cfg.hit_threshold:
                logger.debug(
                    "round %d: regenerating, feet only %.1fpx apart (attempt %d)", self._round, gap, attempt + 1
                )
                continue
            return triangle, line_set
        logger.debug("round %d: generation budget spent; using fallback triangle", self._round)
        triangle = fallback_triangle(self._canvas)
        return triangle, self._builder.build(triangle, self._concept, self._difficulty)

    def _complete(self) -> None:
        self._state = SessionState.COMPLETE
        self._feedback = FeedbackKind.COMPLETE
        self._frozen_remaining_s = None
        self._result = build_session_result(
            game_id=self._game_id,
            concept=str(self._concept),
            difficulty=str(self._difficulty),
            seed=self._seed,
            total_rounds=self._cfg.total_rounds,
            score=self._score,
            best_streak=self._best_streak,
            events=self._events,
        )
        logger.info(
            "session complete: game=%s score=%d/%d stars=%d",
            self._game_id,
            self._score,
            self._cfg.total_rounds,
            self._result.stars,
        )
        if self._progress is not None:
            self._progress.record_result(
                self._game_id,
                score=self._score,
                total_rounds=self._cfg.total_rounds,
                stars=self._result.stars,
            )
