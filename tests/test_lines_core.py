from __future__ import annotations

import math

import pytest

from geometry_trainer.geometry import Point, angle_at, distance, midpoint, point_at
from geometry_trainer.lines import (
    Concept,
    DegenerateShapeError,
    LineSetBuilder,
    RoundLineSet,
    edge_hint_marks,
    make_segment,
)
from geometry_trainer.puzzle_core import Difficulty, SeededRng, profile_for
from geometry_trainer.shapes import CanvasConfig, Triangle, TriangleGenerator, fallback_triangle


def _triangles(seed: int, n: int, difficulty: Difficulty) -> list[Triangle]:
    gen = TriangleGenerator(seed=seed)
    return [gen.generate(difficulty) for _ in range(n)]


@pytest.mark.parametrize("concept", list(Concept))
@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_exactly_one_reference_and_profile_decoy_count(concept: Concept, difficulty: Difficulty) -> None:
    builder = LineSetBuilder(seed=11)
    for tri in _triangles(5, 10, difficulty):
        line_set = builder.build(tri, concept, difficulty)
        assert sum(1 for seg in line_set if seg.is_reference) == 1
        assert len(line_set) == profile_for(difficulty).decoy_count + 1
        vertex = tri.vertices()[line_set.vertex_index]
        assert all(seg.p1 == vertex for seg in line_set)
        assert line_set.edge == tri.opposite_edge(line_set.vertex_index)


def test_builder_determinism_same_seed_same_line_sets() -> None:
    tris = _triangles(9, 6, Difficulty.HARD)
    b1 = LineSetBuilder(seed=300)
    b2 = LineSetBuilder(seed=300)
    for tri in tris:
        s1 = b1.build(tri, Concept.MEDIAN, Difficulty.HARD)
        s2 = b2.build(tri, Concept.MEDIAN, Difficulty.HARD)
        assert s1 == s2


def test_reference_feet_match_construction() -> None:
    tri = Triangle(Point(120, 300), Point(480, 300), Point(200, 100))
    builder = LineSetBuilder(seed=1)

    median = builder.build(tri, Concept.MEDIAN, Difficulty.MEDIUM)
    p1, p2 = median.edge
    assert median.reference().foot == midpoint(p1, p2)
    assert median.reference().t == pytest.approx(0.5)

    bisector = builder.build(tri, Concept.ANGLE_BISECTOR, Difficulty.MEDIUM)
    vertex = tri.vertices()[bisector.vertex_index]
    foot = bisector.reference().foot
    p1, p2 = bisector.edge
    assert angle_at(vertex, p1, foot) == pytest.approx(angle_at(vertex, foot, p2))

    altitude = builder.build(tri, Concept.ALTITUDE, Difficulty.MEDIUM)
    vertex = tri.vertices()[altitude.vertex_index]
    foot = altitude.reference().foot
    p1, p2 = altitude.edge
    dot = (vertex.x - foot.x) * (p2.x - p1.x) + (vertex.y - foot.y) * (p2.y - p1.y)
    assert dot == pytest.approx(0.0, abs=1e-6)


@pytest.mark.parametrize("concept", list(Concept))
def test_decoy_feet_keep_minimum_separation(concept: Concept) -> None:
    tri = fallback_triangle(CanvasConfig())
    builder = LineSetBuilder(seed=2024)
    floor = profile_for(Difficulty.MEDIUM).min_separation_px
    for _ in range(20):
        line_set = builder.build(tri, concept, Difficulty.MEDIUM)
        feet = line_set.feet()
        for i in range(len(feet)):
            for j in range(i + 1, len(feet)):
                assert distance(feet[i], feet[j]) >= floor


@pytest.mark.parametrize("concept", [Concept.MEDIAN, Concept.ANGLE_BISECTOR])
def test_median_and_bisector_decoys_stay_on_the_edge(concept: Concept) -> None:
    builder = LineSetBuilder(seed=8)
    for tri in _triangles(21, 10, Difficulty.HARD):
        for seg in builder.build(tri, concept, Difficulty.HARD):
            assert 0.0 < seg.t < 1.0
            assert seg.extension is None


def test_extensions_follow_foot_outside_edge() -> None:
    builder = LineSetBuilder(seed=99)
    seen_extension = False
    for tri in _triangles(13, 25, Difficulty.HARD):
        line_set = builder.build(tri, Concept.ALTITUDE, Difficulty.HARD)
        p1, p2 = line_set.edge
        for seg in line_set:
            assert -0.4 <= seg.t <= 1.4 or seg.is_reference
            if 0.0 <= seg.t <= 1.0:
                assert seg.extension is None
                continue
            seen_extension = True
            assert seg.extension is not None
            assert seg.extension.end == seg.foot
            assert seg.extension.start == (p1 if seg.t < 0.0 else p2)
    assert seen_extension


def test_make_segment_extension_sides() -> None:
    v, p1, p2 = Point(0, 10), Point(0, 0), Point(10, 0)
    before = make_segment(v, p1, p2, -0.2)
    after = make_segment(v, p1, p2, 1.3)
    inside = make_segment(v, p1, p2, 0.4, is_reference=True)
    assert before.extension is not None and before.extension.start == p1
    assert after.extension is not None and after.extension.start == p2
    assert inside.extension is None and inside.is_reference


def test_collapsed_triangle_raises_degenerate_shape_error() -> None:
    p = Point(200, 200)
    with pytest.raises(DegenerateShapeError):
        LineSetBuilder(seed=1).build(Triangle(p, p, p), Concept.ALTITUDE, Difficulty.EASY)


def test_reference_lookup_and_mark_selected() -> None:
    line_set = LineSetBuilder(seed=4).build(fallback_triangle(CanvasConfig()), Concept.MEDIAN, Difficulty.EASY)
    ref_idx = line_set.reference_index()
    assert line_set[ref_idx] is line_set.reference()
    other = (ref_idx + 1) % len(line_set)
    line_set.mark_selected(other)
    assert line_set[other].selected
    assert not line_set.reference().selected


def test_exhausted_decoy_sampling_keeps_best_spaced_candidate() -> None:
    # A 60px edge cannot hold feet 35px apart, so every decoy exhausts its attempts.
    side = 60.0
    tri = Triangle(Point(100, 200), Point(160, 200), Point(130, 200 - side * math.sqrt(3.0) / 2.0))
    attempts = 8
    line_set = LineSetBuilder(seed=55, max_decoy_attempts=attempts).build(tri, Concept.MEDIAN, Difficulty.EASY)
    p1, p2 = line_set.edge

    mirror = SeededRng(55)
    mirror.randint(0, 2)
    taken = [midpoint(p1, p2)]
    expected = []
    for _ in range(profile_for(Difficulty.EASY).decoy_count):
        candidates = [mirror.uniform(0.05, 0.95) for _ in range(attempts)]
        clearances = [min(distance(point_at(p1, p2, t), foot) for foot in taken) for t in candidates]
        best = candidates[clearances.index(max(clearances))]
        expected.append(best)
        taken.append(point_at(p1, p2, best))

    decoys = sorted(seg.t for seg in line_set if not seg.is_reference)
    assert decoys == pytest.approx(sorted(expected))


def test_min_foot_gap_reports_closest_pair() -> None:
    v = Point(50, 0)
    p1, p2 = Point(0, 100), Point(100, 100)
    line_set = RoundLineSet(
        concept=Concept.MEDIAN,
        vertex_index=0,
        edge=(p1, p2),
        segments=(
            make_segment(v, p1, p2, 0.5, is_reference=True),
            make_segment(v, p1, p2, 0.1),
            make_segment(v, p1, p2, 0.62),
        ),
    )
    assert line_set.min_foot_gap() == pytest.approx(12.0)
    assert RoundLineSet(Concept.MEDIAN, 0, (p1, p2), line_set.segments[:1]).min_foot_gap() == math.inf


@pytest.mark.parametrize("vertex", [Point(50, 0), Point(50, 200)])
def test_edge_hint_marks_quarter_the_edge_away_from_the_vertex(vertex: Point) -> None:
    p1, p2 = Point(0, 100), Point(100, 100)
    line_set = RoundLineSet(
        concept=Concept.MEDIAN,
        vertex_index=0,
        edge=(p1, p2),
        segments=(make_segment(vertex, p1, p2, 0.5, is_reference=True),),
    )
    marks = edge_hint_marks(line_set, offset=20.0, size=15.0)
    assert [m.t for m in marks] == [0.25, 0.5, 0.75]
    assert [m.is_midpoint for m in marks] == [False, True, False]
    away = 1.0 if vertex.y < 100 else -1.0
    for mark in marks:
        assert (mark.base.x, mark.base.y) == pytest.approx((100 * mark.t, 100.0))
        assert mark.start.x == pytest.approx(mark.base.x)
        assert mark.start.y == pytest.approx(100 + away * 20.0)
        assert mark.end.y == pytest.approx(100 + away * 35.0)
