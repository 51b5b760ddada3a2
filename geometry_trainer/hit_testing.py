from __future__ import annotations

from .geometry import Point, distance_to_segment
from .lines import RoundLineSet, Segment

# Canvas units; a little wider than typical cursor or fingertip imprecision.
DEFAULT_HIT_THRESHOLD = 22.0


def resolve_hit_index(
    line_set: RoundLineSet,
    point: Point,
    *,
    threshold: float = DEFAULT_HIT_THRESHOLD,
) -> int | None:
    """Index of the closest unselected segment within ``threshold``, else None.

    Distances are measured to the segment itself (projection clamped to the
    endpoints). Zero-length segments are skipped. On equal distances the
    first segment in iteration order wins.
    """

    best_idx: int | None = None
    best_dist = float(threshold)
    for idx, seg in enumerate(line_set):
        if seg.selected:
            continue
        if seg.p1 == seg.p2:
            continue
        d = distance_to_segment(point, seg.p1, seg.p2)
        if d < best_dist:
            best_dist = d
            best_idx = idx
    return best_idx


def display_to_canvas(
    pos: tuple[float, float],
    display_rect: tuple[float, float, float, float],
    canvas_size: tuple[float, float],
) -> Point | None:
    """Map a window pixel inside ``display_rect`` (x, y, w, h) to canvas units.

    Returns None when the position falls outside the displayed canvas or the
    rect has no area.
    """

    x, y = float(pos[0]), float(pos[1])
    rx, ry, rw, rh = (float(v) for v in display_rect)
    if rw <= 0.0 or rh <= 0.0:
        return None
    if not (rx <= x <= rx + rw and ry <= y <= ry + rh):
        return None
    cw, ch = float(canvas_size[0]), float(canvas_size[1])
    return Point((x - rx) * (cw / rw), (y - ry) * (ch / rh))


def resolve_hit(
    line_set: RoundLineSet,
    point: Point,
    *,
    threshold: float = DEFAULT_HIT_THRESHOLD,
) -> Segment | None:
    idx = resolve_hit_index(line_set, point, threshold=threshold)
    return None if idx is None else line_set[idx]
