"""
Orthogonal post-processing of raw edge polylines.

The layout core emits polylines that run from node centre to node centre
through one bend point per crossed rank gap. This module turns them into
purely horizontal and vertical segments and trims both ends back to the
boundary of the source and target boxes, so arrows start and stop on box
edges instead of inside them.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import Point

EPSILON = 1e-9


@dataclass(frozen=True)
class NodeRect:
    """A box given by its centre and half extents."""

    cx: float
    cy: float
    hw: float
    hh: float

    @property
    def has_area(self) -> bool:
        return self.hw > 0 and self.hh > 0

    def strictly_contains(self, point: Point) -> bool:
        return (
            abs(point.x - self.cx) < self.hw - EPSILON
            and abs(point.y - self.cy) < self.hh - EPSILON
        )


def snap_to_orthogonal(
    points: Sequence[Point], vertical_first: bool = True
) -> List[Point]:
    """
    Make every segment of a polyline axis-parallel.

    A diagonal segment gets one bend point inserted. With vertical_first the
    segment first moves along y and then along x, otherwise the other way
    round. Start and end points never move.

    Args:
        points: Polyline to snap.
        vertical_first: Move along the rank axis before the cross axis.

    Returns:
        Snapped polyline without duplicate or collinear interior points.
    """
    if len(points) < 2:
        return list(points)

    snapped: List[Point] = [points[0]]
    for curr in points[1:]:
        prev = snapped[-1]
        if abs(prev.x - curr.x) > EPSILON and abs(prev.y - curr.y) > EPSILON:
            if vertical_first:
                snapped.append(Point(prev.x, curr.y))
            else:
                snapped.append(Point(curr.x, prev.y))
        snapped.append(curr)

    return simplify_path(snapped)


def simplify_path(points: Sequence[Point]) -> List[Point]:
    """Drop consecutive duplicates and collinear interior points."""
    deduped: List[Point] = []
    for point in points:
        if deduped and _same(deduped[-1], point):
            continue
        deduped.append(point)

    if len(deduped) < 3:
        if len(deduped) == 1 and len(points) > 1:
            # Degenerate zero-length path keeps both ends.
            return [points[0], points[-1]]
        return deduped

    result: List[Point] = [deduped[0]]
    for i in range(1, len(deduped) - 1):
        prev, curr, nxt = result[-1], deduped[i], deduped[i + 1]
        same_x = abs(prev.x - curr.x) <= EPSILON and abs(curr.x - nxt.x) <= EPSILON
        same_y = abs(prev.y - curr.y) <= EPSILON and abs(curr.y - nxt.y) <= EPSILON
        if same_x or same_y:
            continue
        result.append(curr)
    result.append(deduped[-1])
    return result


def clip_endpoints_to_nodes(
    points: Sequence[Point],
    source_rect: Optional[NodeRect],
    target_rect: Optional[NodeRect],
) -> List[Point]:
    """
    Move the ends of a path onto the boundaries of its source and target.

    If the path starts strictly inside the source rectangle, the leading
    points inside it are replaced by the point where the path leaves the
    rectangle. The target end is handled symmetrically. A missing rectangle
    or one with zero area leaves that end untouched.

    Args:
        points: Polyline, usually already snapped.
        source_rect: Rectangle of the source node, or None.
        target_rect: Rectangle of the target node, or None.

    Returns:
        Clipped polyline.
    """
    result = list(points)
    if len(result) < 2:
        return result

    if source_rect is not None and source_rect.has_area:
        result = _clip_start(result, source_rect)
    if target_rect is not None and target_rect.has_area:
        result = list(reversed(_clip_start(list(reversed(result)), target_rect)))
    return result


def _clip_start(points: List[Point], rect: NodeRect) -> List[Point]:
    if not rect.strictly_contains(points[0]):
        return points

    exit_index = None
    for i, point in enumerate(points):
        if not rect.strictly_contains(point):
            exit_index = i
            break
    if exit_index is None:
        return points

    inside = points[exit_index - 1]
    outside = points[exit_index]
    exit_point = _exit_point(inside, outside, rect)

    clipped = [exit_point]
    if not _same(exit_point, outside):
        clipped.append(outside)
    clipped.extend(points[exit_index + 1 :])
    if len(clipped) == 1:
        clipped.append(outside)
    return clipped


def _exit_point(inside: Point, outside: Point, rect: NodeRect) -> Point:
    """Point where the segment inside -> outside crosses the rectangle edge."""
    dx = outside.x - inside.x
    dy = outside.y - inside.y
    t = 1.0
    if abs(dx) > EPSILON:
        bound = rect.cx + rect.hw if dx > 0 else rect.cx - rect.hw
        t = min(t, (bound - inside.x) / dx)
    if abs(dy) > EPSILON:
        bound = rect.cy + rect.hh if dy > 0 else rect.cy - rect.hh
        t = min(t, (bound - inside.y) / dy)
    t = max(0.0, t)

    x = inside.x + dx * t
    y = inside.y + dy * t
    # Land exactly on the edge that was crossed.
    if abs(dy) > EPSILON and abs(abs(y - rect.cy) - rect.hh) < 1e-6:
        y = rect.cy + rect.hh if dy > 0 else rect.cy - rect.hh
    if abs(dx) > EPSILON and abs(abs(x - rect.cx) - rect.hw) < 1e-6:
        x = rect.cx + rect.hw if dx > 0 else rect.cx - rect.hw
    return Point(x, y)


def _same(a: Point, b: Point) -> bool:
    return abs(a.x - b.x) <= EPSILON and abs(a.y - b.y) <= EPSILON
