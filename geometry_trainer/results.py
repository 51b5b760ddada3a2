from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .puzzle_core import round_half_up

# (minimum percentage, stars), checked top-down.
STAR_BREAKPOINTS: tuple[tuple[int, int], ...] = ((90, 3), (70, 2), (50, 1))


class RoundOutcome(StrEnum):
    CORRECT = "correct"
    MISSED = "missed"  # attempts exhausted
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class RoundEvent:
    index: int
    outcome: RoundOutcome
    attempts_used: int
    presented_at_s: float
    resolved_at_s: float
    response_time_s: float
    streak_after: int


@dataclass(frozen=True, slots=True)
class SessionResult:
    """Summary + round log for a completed session.

    ``score``, ``total_rounds`` and ``stars`` are what the progress store
    records; the rest is kept for the results screen.
    """

    game_id: str
    concept: str
    difficulty: str
    seed: int

    total_rounds: int
    score: int
    stars: int
    percentage: int
    best_streak: int
    timeouts: int
    mean_response_time_s: float | None

    events: tuple[RoundEvent, ...]


def score_percentage(score: int, total_rounds: int) -> int:
    if total_rounds <= 0:
        return 0
    return round_half_up(100.0 * score / total_rounds)


def star_rating(score: int, total_rounds: int) -> int:
    """0-3 stars from the exact score ratio (integer math, no float edges)."""

    if total_rounds <= 0:
        return 0
    for min_pct, stars in STAR_BREAKPOINTS:
        if score * 100 >= min_pct * total_rounds:
            return stars
    return 0


def live_star_estimate(score: int, total_rounds: int) -> int:
    # In-play gauge: a third of the rounds per star, capped at 3.
    if total_rounds <= 0:
        return 0
    return max(0, min(3, (score * 3) // total_rounds))


def build_session_result(
    *,
    game_id: str,
    concept: str,
    difficulty: str,
    seed: int,
    total_rounds: int,
    score: int,
    best_streak: int,
    events: list[RoundEvent],
) -> SessionResult:
    answered = [e.response_time_s for e in events if e.outcome is not RoundOutcome.TIMEOUT]
    mean_rt = None if not answered else sum(answered) / len(answered)

    return SessionResult(
        game_id=str(game_id),
        concept=str(concept),
        difficulty=str(difficulty),
        seed=int(seed),
        total_rounds=int(total_rounds),
        score=int(score),
        stars=star_rating(score, total_rounds),
        percentage=score_percentage(score, total_rounds),
        best_streak=int(best_streak),
        timeouts=sum(1 for e in events if e.outcome is RoundOutcome.TIMEOUT),
        mean_response_time_s=mean_rt,
        events=tuple(events),
    )
