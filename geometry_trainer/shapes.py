from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .geometry import (
    Point,
    distance,
    is_within_bounds,
    perpendicular_unit,
    projection_t,
    triangle_area,
)
from .puzzle_core import Difficulty, DifficultyProfile, SeededRng, profile_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CanvasConfig:
    # Logical drawing area; pointer input is normalised into this space.
    width: float = 600.0
    height: float = 400.0
    padding: float = 80.0

    def __post_init__(self) -> None:
        if self.padding < 0.0:
            raise ValueError("padding must be >= 0")
        if self.width - 2.0 * self.padding <= 0.0 or self.height - 2.0 * self.padding <= 0.0:
            raise ValueError("padding leaves no drawable area")

    @property
    def left(self) -> float:
        return self.padding

    @property
    def top(self) -> float:
        return self.padding

    @property
    def right(self) -> float:
        return self.width - self.padding

    @property
    def bottom(self) -> float:
        return self.height - self.padding

    def contains(self, p: Point) -> bool:
        return is_within_bounds(p, self.left, self.top, self.right, self.bottom)


@dataclass(frozen=True, slots=True)
class Triangle:
    a: Point
    b: Point
    c: Point

    def vertices(self) -> tuple[Point, Point, Point]:
        return (self.a, self.b, self.c)

    def opposite_edge(self, index: int) -> tuple[Point, Point]:
        """Edge facing vertex ``index`` (0=a, 1=b, 2=c), in a fixed winding."""

        edges = ((self.b, self.c), (self.c, self.a), (self.a, self.b))
        return edges[index]

    def area(self) -> float:
        return triangle_area(self.a, self.b, self.c)


def altitude_feet_t(triangle: Triangle) -> tuple[float, float, float]:
    """Unclamped projection parameters of each vertex onto its opposite edge."""

    feet: list[float] = []
    for idx, vertex in enumerate(triangle.vertices()):
        p1, p2 = triangle.opposite_edge(idx)
        feet.append(projection_t(vertex, p1, p2))
    return (feet[0], feet[1], feet[2])


def has_inner_altitudes(triangle: Triangle, *, lo: float = 0.1, hi: float = 0.9) -> bool:
    return all(lo <= t <= hi for t in altitude_feet_t(triangle))


def fallback_triangle(canvas: CanvasConfig) -> Triangle:
    """Largest equilateral triangle centred in the padded canvas."""

    avail_w = canvas.right - canvas.left
    avail_h = canvas.bottom - canvas.top
    side = min(avail_w, avail_h / (math.sqrt(3.0) / 2.0))
    height = side * math.sqrt(3.0) / 2.0
    cx = (canvas.left + canvas.right) / 2.0
    cy = (canvas.top + canvas.bottom) / 2.0
    return Triangle(
        a=Point(cx - side / 2.0, cy + height / 2.0),
        b=Point(cx + side / 2.0, cy + height / 2.0),
        c=Point(cx, cy - height / 2.0),
    )


class TriangleGenerator:
    """Deterministic rejection sampler for puzzle triangles.

    Oblique triangles are drawn from three uniform points in the padded
    canvas. Right triangles are built from a random leg ``AB`` and a second
    leg along its perpendicular. Both paths are bounded and always return a
    triangle: the right-angled path falls back to the oblique one, and the
    oblique one falls back to :func:`fallback_triangle`.
    """

    _RIGHT_ANGLE_ATTEMPTS = 50
    _MIN_BASE_LEG_PX = 50.0
    _SECOND_LEG_MIN_PX = 80.0
    _SECOND_LEG_SPAN_PX = 150.0

    def __init__(
        self,
        *,
        seed: int,
        canvas: CanvasConfig | None = None,
        max_attempts: int = 500,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._rng = SeededRng(seed)
        self._canvas = canvas or CanvasConfig()
        self._max_attempts = int(max_attempts)

    @property
    def canvas(self) -> CanvasConfig:
        return self._canvas

    def generate(self, difficulty: Difficulty | str) -> Triangle:
        profile = profile_for(difficulty)
        if self._rng.random() < profile.right_angle_probability:
            return self.generate_right_angled(difficulty)
        return self.generate_oblique(difficulty)

    def generate_oblique(self, difficulty: Difficulty | str) -> Triangle:
        profile = profile_for(difficulty)
        for _ in range(self._max_attempts):
            tri = Triangle(self._sample_point(), self._sample_point(), self._sample_point())
            if self._accepts(tri, profile):
                return tri
        logger.debug(
            "oblique sampling exhausted after %d attempts (%s); using fallback triangle",
            self._max_attempts,
            profile.difficulty,
        )
        return fallback_triangle(self._canvas)

    def generate_right_angled(self, difficulty: Difficulty | str) -> Triangle:
        profile = profile_for(difficulty)
        for _ in range(self._RIGHT_ANGLE_ATTEMPTS):
            a = self._sample_point()
            b = self._sample_point()
            if distance(a, b) < self._MIN_BASE_LEG_PX:
                continue
            n = perpendicular_unit(a, b)
            leg = self._SECOND_LEG_MIN_PX + self._rng.random() * self._SECOND_LEG_SPAN_PX
            c = Point(a.x + leg * n.x, a.y + leg * n.y)
            if not self._canvas.contains(c):
                continue
            tri = Triangle(a, b, c)
            if self._accepts(tri, profile):
                return tri
        logger.debug("right-angled sampling exhausted (%s); falling back to oblique", profile.difficulty)
        return self.generate_oblique(difficulty)

    def _accepts(self, tri: Triangle, profile: DifficultyProfile) -> bool:
        if tri.area() < profile.min_area:
            return False
        if profile.require_inner_altitudes and not has_inner_altitudes(tri):
            return False
        return True

    def _sample_point(self) -> Point:
        c = self._canvas
        return Point(self._rng.uniform(c.left, c.right), self._rng.uniform(c.top, c.bottom))
