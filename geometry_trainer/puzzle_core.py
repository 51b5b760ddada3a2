from __future__ import annotations

import math
import random
from collections.abc import MutableSequence, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

T = TypeVar("T")


class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True, slots=True)
class DifficultyProfile:
    """Per-tier knobs shared by the shape generator, line builder and session."""

    difficulty: Difficulty
    time_limit_s: float
    attempts_per_round: int
    decoy_count: int
    min_area: float  # px^2 in canvas space
    right_angle_probability: float
    min_separation_px: float
    require_inner_altitudes: bool = False


# Easy never asks for right triangles: two of their altitude feet sit on
# vertices, which the inner-foot rule rejects.
_PROFILES: dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: DifficultyProfile(
        difficulty=Difficulty.EASY,
        time_limit_s=45.0,
        attempts_per_round=2,
        decoy_count=2,
        min_area=15000.0,
        right_angle_probability=0.0,
        min_separation_px=35.0,
        require_inner_altitudes=True,
    ),
    Difficulty.MEDIUM: DifficultyProfile(
        difficulty=Difficulty.MEDIUM,
        time_limit_s=30.0,
        attempts_per_round=2,
        decoy_count=2,
        min_area=12000.0,
        right_angle_probability=0.33,
        min_separation_px=30.0,
    ),
    Difficulty.HARD: DifficultyProfile(
        difficulty=Difficulty.HARD,
        time_limit_s=20.0,
        attempts_per_round=1,
        decoy_count=3,
        min_area=9000.0,
        right_angle_probability=0.5,
        min_separation_px=25.0,
    ),
}


def profile_for(difficulty: Difficulty | str) -> DifficultyProfile:
    """Return the tier profile; raises ValueError for an unknown tier name."""

    return _PROFILES[Difficulty(difficulty)]


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def uniform(self, a: float, b: float) -> float:
        return self._rng.uniform(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def sample(self, seq: Sequence[T], *, k: int) -> list[T]:
        return self._rng.sample(seq, k=k)

    def shuffle(self, seq: MutableSequence[T]) -> None:
        self._rng.shuffle(seq)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else float(x)


def round_half_up(x: float) -> int:
    # Percentages round like the progress records always have (0.5 goes up).
    return int(math.floor(x + 0.5))
