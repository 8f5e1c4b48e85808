"""Tests for the geometry adapter and layout_graph()."""

import pytest

from archlayout.layout import LayoutError, StructuralError
from archlayout.models import (
    EdgeKind,
    GroupSpec,
    Margin,
    Point,
    SizedEdge,
    SizedGraph,
    SizedNode,
    Spacing,
)
from archlayout.positioning import (
    center_to_top_left,
    layout_graph,
    normalize_band_widths,
    top_left_to_center,
)

TOLERANCE = 1e-6


def on_boundary(point, node):
    """True if the point lies on the outline of the node box."""
    within_x = node.x - TOLERANCE <= point.x <= node.right + TOLERANCE
    within_y = node.y - TOLERANCE <= point.y <= node.bottom + TOLERANCE
    on_vertical = abs(point.x - node.x) < TOLERANCE or abs(point.x - node.right) < TOLERANCE
    on_horizontal = abs(point.y - node.y) < TOLERANCE or abs(point.y - node.bottom) < TOLERANCE
    return (on_vertical and within_y) or (on_horizontal and within_x)


def overlaps(a, b):
    return a.x < b.right and b.x < a.right and a.y < b.bottom and b.y < a.bottom


def contains(outer, inner):
    return (
        outer.x <= inner.x + TOLERANCE
        and outer.y <= inner.y + TOLERANCE
        and inner.right <= outer.right + TOLERANCE
        and inner.bottom <= outer.bottom + TOLERANCE
    )


class TestCoordinateHelpers:
    """Tests for centre and top-left conversion."""

    def test_center_to_top_left(self):
        """The top-left corner is half a box away from the centre."""
        assert center_to_top_left(100, 50, 40, 20) == Point(80, 40)

    def test_round_trip(self):
        """Converting there and back returns the centre."""
        top_left = center_to_top_left(12.5, 7.25, 9, 3)
        assert top_left_to_center(top_left.x, top_left.y, 9, 3) == Point(12.5, 7.25)


class TestLayoutGraphBasics:
    """Tests for degenerate and invalid input."""

    def test_empty_graph(self):
        """No nodes gives an empty graph."""
        graph = layout_graph(SizedGraph())
        assert graph.width == 0
        assert graph.height == 0
        assert graph.nodes == ()
        assert graph.edges == ()
        assert graph.groups == ()

    def test_unsupported_direction(self):
        """Only top-to-bottom layouts are supported."""
        with pytest.raises(LayoutError, match="direction"):
            layout_graph(SizedGraph(nodes=[SizedNode("A", 10, 10)], direction="LR"))

    def test_unknown_edge_endpoint(self):
        """Dangling edges are a structural error."""
        graph = SizedGraph(nodes=[SizedNode("A", 10, 10)], edges=[SizedEdge("A", "B")])
        with pytest.raises(StructuralError):
            layout_graph(graph)

    def test_single_node_with_margin(self):
        """A single node sits at the margin and sizes the canvas."""
        graph = layout_graph(
            SizedGraph(nodes=[SizedNode("A", 100, 40)], margin=Margin(10, 20))
        )
        node = graph.node("A")
        assert (node.x, node.y) == (pytest.approx(10), pytest.approx(20))
        assert graph.width == pytest.approx(120)
        assert graph.height == pytest.approx(80)

    def test_node_data_passes_through(self):
        """Labels, kinds and data reach the positioned nodes."""
        graph = layout_graph(
            SizedGraph(nodes=[SizedNode("A", 10, 10, label="Alpha", kind="k", data={"x": 1})])
        )
        node = graph.node("A")
        assert node.label == "Alpha"
        assert node.kind == "k"
        assert node.data == {"x": 1}


class TestChainGeometry:
    """Tests on the A -> B -> C chain."""

    def test_canvas_and_positions(self, chain_graph):
        """Nodes are stacked and translated onto the margin."""
        graph = layout_graph(chain_graph)
        a, b, c = graph.node("A"), graph.node("B"), graph.node("C")
        assert a.y == pytest.approx(40)
        assert c.x == pytest.approx(40)
        assert a.center.x == pytest.approx(c.center.x)
        assert graph.width == pytest.approx(200)
        assert graph.height == pytest.approx(320)
        assert a.bottom <= b.y
        assert b.bottom <= c.y

    def test_straight_edge_endpoints(self, chain_graph):
        """A straight edge runs from the source bottom to the target top."""
        graph = layout_graph(chain_graph)
        edge = graph.edges[0]
        a, b = graph.node("A"), graph.node("B")
        assert len(edge.points) == 2
        start, end = edge.points
        assert (start.x, start.y) == (pytest.approx(a.center.x), pytest.approx(a.bottom))
        assert (end.x, end.y) == (pytest.approx(b.center.x), pytest.approx(b.y))

    def test_to_dict(self, chain_graph):
        """The dict form mirrors the geometry."""
        data = layout_graph(chain_graph).to_dict()
        assert [n["id"] for n in data["nodes"]] == ["A", "B", "C"]
        assert data["edges"][0]["source"] == "A"
        assert set(data["edges"][0]["points"][0]) == {"x", "y"}
        assert data["groups"] == []


class TestGeneralInvariants:
    """Invariants that hold for every laid out graph."""

    @pytest.fixture
    def tangled_graph(self):
        nodes = [SizedNode(n, 60 + 10 * i, 30 + 5 * i) for i, n in enumerate("ABCDEF")]
        edges = [
            SizedEdge("A", "B"),
            SizedEdge("A", "C", label="x", label_width=20, label_height=14),
            SizedEdge("B", "D"),
            SizedEdge("C", "D"),
            SizedEdge("D", "A"),
            SizedEdge("A", "E"),
            SizedEdge("E", "E"),
            SizedEdge("F", "D"),
        ]
        return SizedGraph(nodes=nodes, edges=edges)

    def test_nodes_do_not_overlap(self, tangled_graph):
        """No two node boxes intersect."""
        graph = layout_graph(tangled_graph)
        nodes = list(graph.nodes)
        for i, a in enumerate(nodes):
            for b in nodes[i + 1 :]:
                assert not overlaps(a, b), (a.id, b.id)

    def test_edges_are_orthogonal(self, tangled_graph):
        """Every segment is horizontal or vertical."""
        graph = layout_graph(tangled_graph)
        for edge in graph.edges:
            for p, q in zip(edge.points, edge.points[1:]):
                assert abs(p.x - q.x) < TOLERANCE or abs(p.y - q.y) < TOLERANCE

    def test_edges_end_on_node_boundaries(self, tangled_graph):
        """Both ends of each edge touch their node outlines."""
        graph = layout_graph(tangled_graph)
        for edge in graph.edges:
            assert on_boundary(edge.points[0], graph.node(edge.source)), edge
            assert on_boundary(edge.points[-1], graph.node(edge.target)), edge

    def test_everything_inside_canvas(self, tangled_graph):
        """Nodes, points and label anchors lie within the canvas."""
        graph = layout_graph(tangled_graph)
        for node in graph.nodes:
            assert node.x >= 0 and node.right <= graph.width + TOLERANCE
            assert node.y >= 0 and node.bottom <= graph.height + TOLERANCE
        for edge in graph.edges:
            for point in edge.points:
                assert 0 <= point.x <= graph.width + TOLERANCE
                assert 0 <= point.y <= graph.height + TOLERANCE

    def test_labelled_edge_has_anchor(self, tangled_graph):
        """Labelled edges get a label anchor, unlabelled ones do not."""
        graph = layout_graph(tangled_graph)
        labelled = [e for e in graph.edges if e.label]
        assert len(labelled) == 1
        assert labelled[0].label_anchor is not None
        assert all(e.label_anchor is None for e in graph.edges if not e.label)

    def test_label_boxes_do_not_overlap(self):
        """Reserved label boxes stay apart, self-loops on one node included."""
        nodes = [SizedNode(n, 80, 40) for n in "ABCD"]
        edges = [
            SizedEdge("A", "B", label="calls", label_width=40, label_height=16),
            SizedEdge("A", "C", label="reads", label_width=44, label_height=16),
            SizedEdge("A", "D", label="long hop", label_width=60, label_height=16),
            SizedEdge("B", "D", label="writes", label_width=48, label_height=16),
            SizedEdge("C", "A", label="back", label_width=36, label_height=16),
            SizedEdge("B", "B", label="retry", label_width=40, label_height=16),
            SizedEdge("B", "B", label="poll", label_width=32, label_height=16),
        ]
        graph = layout_graph(SizedGraph(nodes=nodes, edges=edges))
        boxes = []
        for sized, edge in zip(edges, graph.edges):
            anchor = edge.label_anchor
            assert anchor is not None, edge
            half_w, half_h = sized.label_width / 2, sized.label_height / 2
            boxes.append((anchor.x - half_w, anchor.y - half_h, anchor.x + half_w, anchor.y + half_h))
        for i, a in enumerate(boxes):
            for b in boxes[i + 1 :]:
                apart = (
                    a[2] <= b[0] + TOLERANCE
                    or b[2] <= a[0] + TOLERANCE
                    or a[3] <= b[1] + TOLERANCE
                    or b[3] <= a[1] + TOLERANCE
                )
                assert apart, (a, b)

    def test_deterministic(self, tangled_graph):
        """Repeated layouts are identical."""
        assert layout_graph(tangled_graph).to_dict() == layout_graph(tangled_graph).to_dict()

    def test_ordering_edges_are_dropped(self):
        """Only real edges appear in the output."""
        graph = layout_graph(
            SizedGraph(
                nodes=[SizedNode("A", 10, 10), SizedNode("B", 10, 10)],
                edges=[SizedEdge("A", "B", kind=EdgeKind.ORDERING)],
            )
        )
        assert graph.edges == ()
        assert graph.node("A").bottom <= graph.node("B").y


class TestGroups:
    """Tests for group rectangles."""

    def test_groups_contain_members(self, grouped_graph):
        """Each group rectangle contains its members and child groups."""
        graph = layout_graph(grouped_graph)
        system = graph.groups[0]
        storage = system.children[0]
        assert system.id == "system"
        assert storage.id == "storage"
        assert contains(system, graph.node("api"))
        assert contains(storage, graph.node("db"))
        assert contains(storage, graph.node("cache"))
        assert contains(system, storage)

    def test_group_padding(self, grouped_graph):
        """Children keep the padding from the parent border."""
        graph = layout_graph(grouped_graph)
        system = graph.groups[0]
        storage = system.children[0]
        pad = grouped_graph.spacing.group_padding
        assert storage.x - system.x >= pad - TOLERANCE
        assert system.right - storage.right >= pad - TOLERANCE
        assert system.bottom - storage.bottom >= pad - TOLERANCE

    def test_side_by_side_members(self):
        """A group around two unconnected boxes reserves padding and its header."""
        spacing = Spacing()
        graph = layout_graph(
            SizedGraph(
                nodes=[SizedNode("A", 100, 50), SizedNode("B", 120, 60)],
                edges=[],
                groups=[GroupSpec(id="g", label="Group", member_ids=["A", "B"])],
                spacing=spacing,
            )
        )
        group = graph.groups[0]
        a, b = graph.node("A"), graph.node("B")
        pad, header = spacing.group_padding, spacing.group_header
        assert a.right + spacing.node <= b.x + TOLERANCE or b.right + spacing.node <= a.x + TOLERANCE
        assert group.width >= 220 + spacing.node + 2 * pad - TOLERANCE
        assert group.height >= 60 + 2 * pad + header - TOLERANCE
        for child in (a, b):
            assert contains(group, child)
            assert child.y - group.y >= pad + header - TOLERANCE
            assert group.bottom - child.bottom >= pad - TOLERANCE

    def test_header_band_above_nested_group(self, grouped_graph):
        """The header band sits between a group's top border and its content."""
        graph = layout_graph(grouped_graph)
        system = graph.groups[0]
        storage = system.children[0]
        pad = grouped_graph.spacing.group_padding
        header = grouped_graph.spacing.group_header
        assert graph.node("api").y - system.y >= pad + header - TOLERANCE
        for node_id in ("db", "cache"):
            assert graph.node(node_id).y - storage.y >= pad + header - TOLERANCE

    def test_non_members_stay_outside(self, grouped_graph):
        """Nodes outside a group do not intersect its rectangle."""
        graph = layout_graph(grouped_graph)
        system = graph.groups[0]
        storage = system.children[0]
        for node_id in ("user", "mail"):
            assert not overlaps(system, graph.node(node_id))
        assert not overlaps(storage, graph.node("api"))

    def test_iter_groups_order(self, grouped_graph):
        """Groups are iterated parents before children."""
        graph = layout_graph(grouped_graph)
        assert [g.id for g in graph.iter_groups()] == ["system", "storage"]

    def test_empty_group(self):
        """An empty group keeps its configured width."""
        spacing = Spacing(empty_group_width=120)
        graph = layout_graph(
            SizedGraph(
                nodes=[SizedNode("A", 50, 30)],
                groups=[GroupSpec("empty", label="Empty")],
                spacing=spacing,
            )
        )
        group = graph.groups[0]
        assert group.width == pytest.approx(120)
        assert group.height > 0
        assert not overlaps(group, graph.node("A"))

    def test_uniform_band_width(self):
        """Top-level bands share their left and right edges."""
        graph = layout_graph(
            SizedGraph(
                nodes=[SizedNode("a", 100, 40), SizedNode("b", 300, 40)],
                edges=[SizedEdge("a", "b", kind=EdgeKind.ORDERING)],
                groups=[GroupSpec("top", member_ids=["a"]), GroupSpec("bottom", member_ids=["b"])],
                uniform_band_width=True,
            )
        )
        top, bottom = graph.groups
        assert top.x == pytest.approx(bottom.x)
        assert top.width == pytest.approx(bottom.width)
        assert top.bottom <= bottom.y

    def test_normalize_band_widths_empty(self):
        """No groups means nothing to stretch."""
        assert normalize_band_widths(()) == ()
