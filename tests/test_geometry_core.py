from __future__ import annotations

import math

import pytest

from geometry_trainer.geometry import (
    DegenerateGeometryError,
    Point,
    angle_at,
    clamp_t,
    distance,
    distance_to_segment,
    foot_of_perpendicular,
    is_within_bounds,
    midpoint,
    perpendicular_unit,
    point_at,
    projection_t,
    signed_area,
    triangle_area,
)


def test_distance_and_midpoint() -> None:
    assert distance(Point(0, 0), Point(3, 4)) == pytest.approx(5.0)
    assert midpoint(Point(0, 0), Point(10, 20)) == Point(5.0, 10.0)


def test_triangle_area_is_orientation_independent() -> None:
    a, b, c = Point(0, 0), Point(4, 0), Point(0, 3)
    assert triangle_area(a, b, c) == pytest.approx(6.0)
    assert triangle_area(a, c, b) == pytest.approx(6.0)
    assert signed_area(a, b, c) == pytest.approx(-signed_area(a, c, b))


def test_projection_t_is_unclamped() -> None:
    p1, p2 = Point(0, 0), Point(10, 0)
    assert projection_t(Point(5, 7), p1, p2) == pytest.approx(0.5)
    assert projection_t(Point(-5, 3), p1, p2) == pytest.approx(-0.5)
    assert projection_t(Point(15, -2), p1, p2) == pytest.approx(1.5)
    assert clamp_t(-0.5) == 0.0
    assert clamp_t(1.5) == 1.0


def test_projection_onto_zero_length_line_raises() -> None:
    with pytest.raises(DegenerateGeometryError):
        projection_t(Point(1, 1), Point(2, 2), Point(2, 2))
    with pytest.raises(DegenerateGeometryError):
        perpendicular_unit(Point(2, 2), Point(2, 2))


def test_foot_of_perpendicular_is_perpendicular() -> None:
    q = Point(3, 8)
    p1, p2 = Point(0, 0), Point(10, 5)
    foot, t = foot_of_perpendicular(q, p1, p2)
    assert foot == point_at(p1, p2, t)
    dot = (q.x - foot.x) * (p2.x - p1.x) + (q.y - foot.y) * (p2.y - p1.y)
    assert dot == pytest.approx(0.0, abs=1e-9)


def test_distance_to_segment_clamps_to_endpoints() -> None:
    p1, p2 = Point(0, 0), Point(10, 0)
    assert distance_to_segment(Point(5, 3), p1, p2) == pytest.approx(3.0)
    assert distance_to_segment(Point(13, 4), p1, p2) == pytest.approx(5.0)
    assert distance_to_segment(Point(-3, -4), p1, p2) == pytest.approx(5.0)


def test_perpendicular_unit_and_angle() -> None:
    n = perpendicular_unit(Point(0, 0), Point(5, 0))
    assert math.hypot(n.x, n.y) == pytest.approx(1.0)
    assert n.x == pytest.approx(0.0)
    assert angle_at(Point(0, 0), Point(1, 0), Point(0, 1)) == pytest.approx(90.0)
    assert angle_at(Point(0, 0), Point(1, 0), Point(1, 1)) == pytest.approx(45.0)


def test_is_within_bounds_includes_edges() -> None:
    assert is_within_bounds(Point(80, 80), 80, 80, 520, 320)
    assert is_within_bounds(Point(520, 320), 80, 80, 520, 320)
    assert not is_within_bounds(Point(79.9, 100), 80, 80, 520, 320)
