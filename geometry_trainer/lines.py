from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

from .geometry import DegenerateGeometryError, Point, distance, perpendicular_unit, point_at, projection_t
from .puzzle_core import Difficulty, SeededRng, profile_for
from .shapes import Triangle

logger = logging.getLogger(__name__)


class DegenerateShapeError(DegenerateGeometryError):
    """The triangle cannot host a line set (zero-length opposite edge)."""


class Concept(StrEnum):
    ALTITUDE = "altitude"
    MEDIAN = "median"
    ANGLE_BISECTOR = "angle_bisector"


@dataclass(frozen=True, slots=True)
class Extension:
    # Dashed continuation of the measured edge out to a foot beyond it.
    start: Point
    end: Point


@dataclass(slots=True)
class Segment:
    p1: Point  # origin vertex
    p2: Point  # foot on the opposite edge's line
    t: float
    is_reference: bool = False
    selected: bool = False
    extension: Extension | None = None

    @property
    def foot(self) -> Point:
        return self.p2


@dataclass(frozen=True, slots=True)
class RoundLineSet:
    concept: Concept
    vertex_index: int
    edge: tuple[Point, Point]
    segments: tuple[Segment, ...]

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __getitem__(self, index: int) -> Segment:
        return self.segments[index]

    def reference_index(self) -> int:
        for idx, seg in enumerate(self.segments):
            if seg.is_reference:
                return idx
        raise LookupError("line set has no reference segment")

    def reference(self) -> Segment:
        return self.segments[self.reference_index()]

    def feet(self) -> tuple[Point, ...]:
        return tuple(seg.foot for seg in self.segments)

    def min_foot_gap(self) -> float:
        """Smallest distance between any two feet (inf for a single segment)."""

        feet = self.feet()
        gap = float("inf")
        for i in range(len(feet)):
            for j in range(i + 1, len(feet)):
                gap = min(gap, distance(feet[i], feet[j]))
        return gap

    def mark_selected(self, index: int) -> None:
        self.segments[index].selected = True


def reference_t(vertex: Point, p1: Point, p2: Point, concept: Concept) -> float:
    """Edge parameter of the reference foot for ``concept``."""

    if concept is Concept.ALTITUDE:
        return projection_t(vertex, p1, p2)
    if concept is Concept.MEDIAN:
        return 0.5
    # Angle bisector theorem: the foot splits the edge in the ratio of the
    # adjacent sides.
    d1 = distance(vertex, p1)
    d2 = distance(vertex, p2)
    if d1 + d2 == 0.0:
        raise DegenerateShapeError("angle bisector of a collapsed vertex")
    return d1 / (d1 + d2)


@dataclass(frozen=True, slots=True)
class HintMark:
    t: float
    base: Point  # on the measured edge
    start: Point
    end: Point
    is_midpoint: bool


def edge_hint_marks(line_set: RoundLineSet, *, offset: float = 20.0, size: float = 15.0) -> tuple[HintMark, ...]:
    """Quarter marks along the measured edge, ticked outward from the triangle.

    Each mark runs from its edge point to ``offset + size`` along the edge's
    normal on the side away from the origin vertex.
    """

    p1, p2 = line_set.edge
    n = perpendicular_unit(p1, p2)
    vertex = line_set.segments[0].p1
    mid = point_at(p1, p2, 0.5)
    if (vertex.x - mid.x) * n.x + (vertex.y - mid.y) * n.y > 0.0:
        n = Point(-n.x, -n.y)

    marks: list[HintMark] = []
    for i in (1, 2, 3):
        t = i / 4
        base = point_at(p1, p2, t)
        marks.append(
            HintMark(
                t=t,
                base=base,
                start=Point(base.x + n.x * offset, base.y + n.y * offset),
                end=Point(base.x + n.x * (offset + size), base.y + n.y * (offset + size)),
                is_midpoint=i == 2,
            )
        )
    return tuple(marks)


def make_segment(vertex: Point, p1: Point, p2: Point, t: float, *, is_reference: bool = False) -> Segment:
    foot = point_at(p1, p2, t)
    extension: Extension | None = None
    if t < 0.0:
        extension = Extension(start=p1, end=foot)
    elif t > 1.0:
        extension = Extension(start=p2, end=foot)
    return Segment(p1=vertex, p2=foot, t=float(t), is_reference=is_reference, extension=extension)


class LineSetBuilder:
    """Deterministic builder for one round's reference and decoy segments.

    Decoys share the reference's origin vertex and land on the same edge
    line. Every foot must keep a minimum pixel distance from the reference
    foot and from previously accepted decoys; after ``max_decoy_attempts``
    the sampled candidate with the most clearance is kept so a round is
    never refused.
    """

    _ALTITUDE_T_RANGE = (-0.4, 1.4)
    _INNER_T_RANGE = (0.05, 0.95)
    _ALTITUDE_SEPARATION_RATIO = 0.2
    _EDGE_SEPARATION_RATIO = 0.15

    def __init__(self, *, seed: int, max_decoy_attempts: int = 50) -> None:
        if max_decoy_attempts <= 0:
            raise ValueError("max_decoy_attempts must be > 0")
        self._rng = SeededRng(seed)
        self._max_decoy_attempts = int(max_decoy_attempts)

    def build(self, triangle: Triangle, concept: Concept | str, difficulty: Difficulty | str) -> RoundLineSet:
        kind = Concept(concept)
        profile = profile_for(difficulty)

        vertex_index = self._rng.randint(0, 2)
        vertex = triangle.vertices()[vertex_index]
        p1, p2 = triangle.opposite_edge(vertex_index)
        edge_len = distance(p1, p2)
        if edge_len == 0.0:
            raise DegenerateShapeError(f"zero-length edge opposite vertex {vertex_index}")

        reference = make_segment(vertex, p1, p2, reference_t(vertex, p1, p2, kind), is_reference=True)

        if kind is Concept.ALTITUDE:
            scale = distance(vertex, reference.foot) * self._ALTITUDE_SEPARATION_RATIO
            t_lo, t_hi = self._ALTITUDE_T_RANGE
        else:
            scale = edge_len * self._EDGE_SEPARATION_RATIO
            t_lo, t_hi = self._INNER_T_RANGE
        min_sep = max(profile.min_separation_px, scale)

        segments = [reference]
        feet = [reference.foot]
        for _ in range(profile.decoy_count):
            t = self._sample_decoy_t(p1, p2, feet, min_sep=min_sep, t_lo=t_lo, t_hi=t_hi)
            decoy = make_segment(vertex, p1, p2, t)
            segments.append(decoy)
            feet.append(decoy.foot)

        self._rng.shuffle(segments)
        return RoundLineSet(
            concept=kind,
            vertex_index=vertex_index,
            edge=(p1, p2),
            segments=tuple(segments),
        )

    def _sample_decoy_t(
        self,
        p1: Point,
        p2: Point,
        taken: list[Point],
        *,
        min_sep: float,
        t_lo: float,
        t_hi: float,
    ) -> float:
        best_t = t_lo
        best_clearance = -1.0
        for _ in range(self._max_decoy_attempts):
            t = self._rng.uniform(t_lo, t_hi)
            foot = point_at(p1, p2, t)
            clearance = min(distance(foot, other) for other in taken)
            if clearance >= min_sep:
                return t
            if clearance > best_clearance:
                best_t, best_clearance = t, clearance
        logger.debug(
            "decoy spacing not met after %d attempts; keeping t=%.3f (clearance %.1fpx)",
            self._max_decoy_attempts,
            best_t,
            best_clearance,
        )
        return best_t
