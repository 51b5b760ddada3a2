from __future__ import annotations

import pytest

from geometry_trainer.geometry import Point, angle_at
from geometry_trainer.puzzle_core import Difficulty, profile_for
from geometry_trainer.shapes import (
    CanvasConfig,
    Triangle,
    TriangleGenerator,
    altitude_feet_t,
    fallback_triangle,
    has_inner_altitudes,
)


def test_generator_determinism_same_seed_same_triangles() -> None:
    g1 = TriangleGenerator(seed=4242)
    g2 = TriangleGenerator(seed=4242)
    seq1 = [g1.generate(Difficulty.MEDIUM) for _ in range(12)]
    seq2 = [g2.generate(Difficulty.MEDIUM) for _ in range(12)]
    assert seq1 == seq2


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_generated_triangles_respect_area_and_bounds(difficulty: Difficulty) -> None:
    canvas = CanvasConfig()
    gen = TriangleGenerator(seed=77, canvas=canvas)
    min_area = profile_for(difficulty).min_area
    for _ in range(40):
        tri = gen.generate(difficulty)
        assert tri.area() >= min_area
        for v in tri.vertices():
            assert canvas.contains(v)


def test_easy_triangles_keep_altitude_feet_inside_edges() -> None:
    gen = TriangleGenerator(seed=1234)
    for _ in range(30):
        tri = gen.generate(Difficulty.EASY)
        assert has_inner_altitudes(tri)
        assert all(0.1 <= t <= 0.9 for t in altitude_feet_t(tri))


def test_right_angled_path_puts_the_right_angle_at_a() -> None:
    right = 0
    for seed in range(20):
        tri = TriangleGenerator(seed=seed).generate_right_angled(Difficulty.HARD)
        if angle_at(tri.a, tri.b, tri.c) == pytest.approx(90.0, abs=1e-6):
            right += 1
    assert right >= 18


def test_fallback_when_budget_cannot_be_met() -> None:
    # An unreachable area forces every sampling path onto the fallback.
    canvas = CanvasConfig(width=200.0, height=200.0, padding=80.0)
    gen = TriangleGenerator(seed=3, canvas=canvas, max_attempts=5)
    tri = gen.generate(Difficulty.EASY)
    assert tri == fallback_triangle(canvas)
    for v in tri.vertices():
        assert canvas.contains(v)


def test_fallback_triangle_is_equilateral_with_centred_feet() -> None:
    tri = fallback_triangle(CanvasConfig())
    assert tri.area() > profile_for(Difficulty.EASY).min_area
    for t in altitude_feet_t(tri):
        assert t == pytest.approx(0.5)


def test_opposite_edge_faces_vertex() -> None:
    tri = Triangle(Point(0, 0), Point(10, 0), Point(0, 10))
    assert tri.opposite_edge(0) == (tri.b, tri.c)
    assert tri.opposite_edge(1) == (tri.c, tri.a)
    assert tri.opposite_edge(2) == (tri.a, tri.b)


def test_canvas_config_rejects_padding_that_leaves_no_room() -> None:
    with pytest.raises(ValueError):
        CanvasConfig(width=100.0, height=100.0, padding=60.0)
    with pytest.raises(ValueError):
        CanvasConfig(padding=-1.0)
