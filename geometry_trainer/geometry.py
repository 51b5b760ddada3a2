"""Plane geometry kernel used by the triangle puzzles.

Everything here is a pure function of its arguments and works in canvas
coordinates (pixels of the logical drawing area, y pointing down).  The only
partial operation is :func:`projection_t`, which is undefined for a
zero-length line; it raises :class:`DegenerateGeometryError` so callers can
skip or regenerate instead of dividing by zero.

The projection parameter ``t`` locates a point along the line through
``p1 -> p2``: ``t = 0`` is ``p1``, ``t = 1`` is ``p2`` and values outside
``[0, 1]`` lie on the line's continuation beyond the segment.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .puzzle_core import clamp01, lerp


class DegenerateGeometryError(ValueError):
    """Raised when an operation needs a line but both endpoints coincide."""


@dataclass(frozen=True, slots=True)
class Point:
    x: float
    y: float


def distance(p1: Point, p2: Point) -> float:
    return math.hypot(p1.x - p2.x, p1.y - p2.y)


def signed_area(a: Point, b: Point, c: Point) -> float:
    """Shoelace area; positive when a -> b -> c turns counter-clockwise in y-up axes."""

    return (a.x * (b.y - c.y) + b.x * (c.y - a.y) + c.x * (a.y - b.y)) / 2.0


def triangle_area(a: Point, b: Point, c: Point) -> float:
    return abs(signed_area(a, b, c))


def midpoint(p1: Point, p2: Point) -> Point:
    return point_at(p1, p2, 0.5)


def point_at(p1: Point, p2: Point, t: float) -> Point:
    return Point(lerp(p1.x, p2.x, t), lerp(p1.y, p2.y, t))


def projection_t(q: Point, p1: Point, p2: Point) -> float:
    """Unclamped projection parameter of ``q`` onto the line ``p1 -> p2``."""

    dx = p2.x - p1.x
    dy = p2.y - p1.y
    len_sq = dx * dx + dy * dy
    if len_sq == 0.0:
        raise DegenerateGeometryError("projection onto a zero-length line")
    return ((q.x - p1.x) * dx + (q.y - p1.y) * dy) / len_sq


def clamp_t(t: float) -> float:
    return clamp01(t)


def foot_of_perpendicular(q: Point, p1: Point, p2: Point) -> tuple[Point, float]:
    """Return the perpendicular foot of ``q`` on line ``p1 -> p2`` and its ``t``."""

    t = projection_t(q, p1, p2)
    return point_at(p1, p2, t), t


def distance_to_segment(q: Point, p1: Point, p2: Point) -> float:
    t = clamp_t(projection_t(q, p1, p2))
    return distance(q, point_at(p1, p2, t))


def perpendicular_unit(p1: Point, p2: Point) -> Point:
    """Unit vector perpendicular to ``p1 -> p2`` (rotated +90 degrees)."""

    dx = p2.x - p1.x
    dy = p2.y - p1.y
    length = math.hypot(dx, dy)
    if length == 0.0:
        raise DegenerateGeometryError("perpendicular of a zero-length line")
    return Point(-dy / length, dx / length)


def angle_at(vertex: Point, p: Point, q: Point) -> float:
    """Interior angle ``p-vertex-q`` in degrees."""

    ux, uy = p.x - vertex.x, p.y - vertex.y
    vx, vy = q.x - vertex.x, q.y - vertex.y
    nu = math.hypot(ux, uy)
    nv = math.hypot(vx, vy)
    if nu == 0.0 or nv == 0.0:
        raise DegenerateGeometryError("angle with a zero-length arm")
    cos_a = max(-1.0, min(1.0, (ux * vx + uy * vy) / (nu * nv)))
    return math.degrees(math.acos(cos_a))


def is_within_bounds(p: Point, left: float, top: float, right: float, bottom: float) -> bool:
    return left <= p.x <= right and top <= p.y <= bottom
