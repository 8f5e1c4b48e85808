"""Tests for orthogonal snapping and endpoint clipping."""

from archlayout.models import Point
from archlayout.router import (
    NodeRect,
    clip_endpoints_to_nodes,
    simplify_path,
    snap_to_orthogonal,
)


def is_orthogonal(points):
    return all(a.x == b.x or a.y == b.y for a, b in zip(points, points[1:]))


class TestSnapToOrthogonal:
    """Tests for snap_to_orthogonal."""

    def test_vertical_first(self):
        """A diagonal segment bends after moving along y."""
        result = snap_to_orthogonal([Point(0, 0), Point(10, 20)])
        assert result == [Point(0, 0), Point(0, 20), Point(10, 20)]

    def test_horizontal_first(self):
        """With vertical_first=False the bend moves along x first."""
        result = snap_to_orthogonal([Point(0, 0), Point(10, 20)], vertical_first=False)
        assert result == [Point(0, 0), Point(10, 0), Point(10, 20)]

    def test_endpoints_never_move(self):
        """Start and end points are preserved."""
        points = [Point(3, 1), Point(8, 15), Point(2, 40)]
        result = snap_to_orthogonal(points)
        assert result[0] == points[0]
        assert result[-1] == points[-1]
        assert is_orthogonal(result)

    def test_already_orthogonal(self):
        """Axis-parallel paths are only simplified."""
        points = [Point(0, 0), Point(0, 10), Point(0, 20)]
        assert snap_to_orthogonal(points) == [Point(0, 0), Point(0, 20)]

    def test_short_input(self):
        """Fewer than two points are returned unchanged."""
        assert snap_to_orthogonal([Point(1, 1)]) == [Point(1, 1)]
        assert snap_to_orthogonal([]) == []


class TestSimplifyPath:
    """Tests for simplify_path."""

    def test_removes_duplicates(self):
        """Consecutive duplicate points collapse."""
        assert simplify_path([Point(0, 0), Point(0, 0), Point(5, 0)]) == [
            Point(0, 0),
            Point(5, 0),
        ]

    def test_removes_collinear(self):
        """Collinear interior points are dropped."""
        points = [Point(0, 0), Point(5, 0), Point(10, 0), Point(10, 5)]
        assert simplify_path(points) == [Point(0, 0), Point(10, 0), Point(10, 5)]

    def test_degenerate_path_keeps_both_ends(self):
        """A zero-length path still has two points."""
        assert simplify_path([Point(1, 1), Point(1, 1)]) == [Point(1, 1), Point(1, 1)]


class TestClipEndpoints:
    """Tests for clip_endpoints_to_nodes."""

    def test_clips_both_ends(self):
        """Ends inside the boxes move to the box boundaries."""
        source = NodeRect(0, 0, 10, 10)
        target = NodeRect(0, 50, 10, 10)
        result = clip_endpoints_to_nodes([Point(0, 0), Point(0, 50)], source, target)
        assert result == [Point(0, 10), Point(0, 40)]

    def test_clips_through_bend(self):
        """Leading points inside the source are replaced by the exit point."""
        source = NodeRect(0, 0, 20, 10)
        points = [Point(0, 0), Point(0, 5), Point(0, 30), Point(40, 30)]
        result = clip_endpoints_to_nodes(points, source, None)
        assert result[0] == Point(0, 10)
        assert result[-1] == Point(40, 30)
        assert is_orthogonal(result)

    def test_missing_rect_leaves_end(self):
        """No rectangle means no clipping."""
        points = [Point(0, 0), Point(0, 50)]
        assert clip_endpoints_to_nodes(points, None, None) == points

    def test_zero_area_rect_leaves_end(self):
        """Rectangles without area are ignored."""
        points = [Point(0, 0), Point(0, 50)]
        assert clip_endpoints_to_nodes(points, NodeRect(0, 0, 0, 0), None) == points

    def test_point_on_boundary_is_untouched(self):
        """A start already on the boundary is not strictly inside."""
        points = [Point(0, 10), Point(0, 50)]
        assert clip_endpoints_to_nodes(points, NodeRect(0, 0, 10, 10), None) == points
