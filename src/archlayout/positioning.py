"""
Geometry adapter for diagram layout.

This module turns the raw output of a layout engine into a PositionedGraph:
- Converts node centres to top-left positions
- Snaps edge polylines to orthogonal segments and clips them to node boxes
- Computes nested group rectangles from their positioned content
- Optionally stretches top-level groups (bands) to one shared width
- Translates everything onto a canvas with a fixed outer margin

layout_graph() is the entry point used by every diagram family.
"""

from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .layout import LayeredLayout, LayoutError
from .models import (
    EdgeKind,
    GroupSpec,
    Point,
    PositionedEdge,
    PositionedGraph,
    PositionedGroup,
    PositionedNode,
    SizedGraph,
    Spacing,
)
from .router import NodeRect, clip_endpoints_to_nodes, snap_to_orthogonal


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned rectangle given by its edges."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @classmethod
    def from_rect(cls, rect: NodeRect) -> "Bounds":
        return cls(rect.cx - rect.hw, rect.cy - rect.hh, rect.cx + rect.hw, rect.cy + rect.hh)

    @classmethod
    def union(cls, boxes: Iterable["Bounds"]) -> "Bounds":
        boxes = list(boxes)
        return cls(
            min(b.left for b in boxes),
            min(b.top for b in boxes),
            max(b.right for b in boxes),
            max(b.bottom for b in boxes),
        )


def center_to_top_left(cx: float, cy: float, width: float, height: float) -> Point:
    """Convert a centre position to the top-left corner of a box."""
    return Point(cx - width / 2, cy - height / 2)


def top_left_to_center(x: float, y: float, width: float, height: float) -> Point:
    """Convert the top-left corner of a box to its centre."""
    return Point(x + width / 2, y + height / 2)


def compute_group_rects(
    groups: Sequence[GroupSpec],
    node_rects: Dict[str, NodeRect],
    placeholder_rects: Dict[str, NodeRect],
    spacing: Spacing,
) -> Dict[str, Bounds]:
    """
    Compute group rectangles from their positioned content, leaves first.

    A group's rectangle is the union of its direct member boxes, its
    placeholder box and its child group rectangles, grown by the group
    padding on every side plus the header height on top.

    Args:
        groups: Group forest.
        node_rects: Positioned node boxes.
        placeholder_rects: Boxes reserved for empty groups.
        spacing: Spacing parameters.

    Returns:
        Dictionary mapping group ids to their Bounds.
    """
    owner: Dict[str, str] = {}
    for root in groups:
        for group in root.walk():
            for member in group.member_ids:
                owner.setdefault(member, group.id)

    pad = spacing.group_padding
    rects: Dict[str, Bounds] = {}

    def visit(group: GroupSpec) -> Bounds:
        content: List[Bounds] = [
            Bounds.from_rect(node_rects[member])
            for member in group.member_ids
            if owner.get(member) == group.id and member in node_rects
        ]
        for child in group.children:
            content.append(visit(child))
        if group.id in placeholder_rects:
            content.append(Bounds.from_rect(placeholder_rects[group.id]))

        if content:
            inner = Bounds.union(content)
            bounds = Bounds(
                inner.left - pad,
                inner.top - pad - spacing.group_header,
                inner.right + pad,
                inner.bottom + pad,
            )
        else:
            bounds = Bounds(0.0, 0.0, spacing.empty_group_width, spacing.empty_group_height)
        rects[group.id] = bounds
        return bounds

    for group in groups:
        visit(group)
    return rects


def normalize_band_widths(
    groups: Sequence[PositionedGroup],
) -> Tuple[PositionedGroup, ...]:
    """
    Stretch top-level groups to share the same left and right edges.

    Nested groups are left as they are.
    """
    if not groups:
        return tuple(groups)
    left = min(group.x for group in groups)
    right = max(group.right for group in groups)
    return tuple(replace(group, x=left, width=right - left) for group in groups)


def layout_graph(
    sized_graph: SizedGraph, engine: Optional[LayeredLayout] = None
) -> PositionedGraph:
    """
    Lay out a sized graph and assemble the positioned result.

    Args:
        sized_graph: Nodes, edges, groups and spacing.
        engine: Layout engine; a LayeredLayout by default.

    Returns:
        PositionedGraph with every coordinate on the canvas.

    Raises:
        LayoutError: For an unsupported direction or unsatisfiable layout.
        StructuralError: If edges or groups reference unknown nodes.
    """
    if sized_graph.direction != "TB":
        raise LayoutError(f"Unsupported layout direction: {sized_graph.direction!r}")
    if not sized_graph.nodes:
        return PositionedGraph(0, 0, (), (), ())

    engine = engine or LayeredLayout()
    spacing = sized_graph.spacing
    raw = engine.assign_ranks_and_coordinates(
        sized_graph.nodes, sized_graph.edges, spacing, sized_graph.groups
    )

    node_rects: Dict[str, NodeRect] = {}
    nodes: List[PositionedNode] = []
    for node in sized_graph.nodes:
        center = raw.centers[node.id]
        node_rects[node.id] = NodeRect(center.x, center.y, node.width / 2, node.height / 2)
        top_left = center_to_top_left(center.x, center.y, node.width, node.height)
        nodes.append(
            PositionedNode(
                id=node.id,
                x=top_left.x,
                y=top_left.y,
                width=node.width,
                height=node.height,
                label=node.label,
                kind=node.kind,
                data=node.data,
            )
        )

    edges: List[PositionedEdge] = []
    label_boxes: List[Bounds] = []
    for index, edge in enumerate(sized_graph.edges):
        if edge.kind is not EdgeKind.REAL:
            continue
        points = raw.edge_paths.get(index, [])
        snapped = snap_to_orthogonal(points, vertical_first=index not in raw.reversed_edges)
        clipped = clip_endpoints_to_nodes(
            snapped, node_rects.get(edge.source), node_rects.get(edge.target)
        )
        anchor = raw.label_anchors.get(index)
        if anchor is not None:
            label_boxes.append(
                Bounds.from_rect(
                    NodeRect(anchor.x, anchor.y, edge.label_width / 2, edge.label_height / 2)
                )
            )
        edges.append(
            PositionedEdge(
                source=edge.source,
                target=edge.target,
                points=tuple(clipped),
                label=edge.label,
                label_anchor=anchor,
                data=edge.data,
            )
        )

    group_rects = compute_group_rects(
        sized_graph.groups, node_rects, raw.placeholders, spacing
    )
    groups = tuple(_build_group(group, group_rects) for group in sized_graph.groups)
    if sized_graph.uniform_band_width:
        groups = normalize_band_widths(groups)

    extents: List[Bounds] = [
        Bounds(n.x, n.y, n.right, n.bottom) for n in nodes
    ]
    extents.extend(Bounds(g.x, g.y, g.right, g.bottom) for g in _walk(groups))
    extents.extend(label_boxes)
    for edge in edges:
        extents.extend(Bounds(p.x, p.y, p.x, p.y) for p in edge.points)
    canvas = Bounds.union(extents)

    margin = sized_graph.margin
    dx = margin.x - canvas.left
    dy = margin.y - canvas.top

    return PositionedGraph(
        width=canvas.width + 2 * margin.x,
        height=canvas.height + 2 * margin.y,
        nodes=tuple(replace(n, x=n.x + dx, y=n.y + dy) for n in nodes),
        edges=tuple(_shift_edge(e, dx, dy) for e in edges),
        groups=tuple(_shift_group(g, dx, dy) for g in groups),
    )


def _build_group(group: GroupSpec, rects: Dict[str, Bounds]) -> PositionedGroup:
    bounds = rects[group.id]
    return PositionedGroup(
        id=group.id,
        x=bounds.left,
        y=bounds.top,
        width=bounds.width,
        height=bounds.height,
        label=group.label,
        children=tuple(_build_group(child, rects) for child in group.children),
        kind=group.kind,
        data=group.data,
    )


def _walk(groups: Sequence[PositionedGroup]) -> Iterable[PositionedGroup]:
    for group in groups:
        yield group
        yield from _walk(group.children)


def _shift_point(point: Point, dx: float, dy: float) -> Point:
    return Point(point.x + dx, point.y + dy)


def _shift_edge(edge: PositionedEdge, dx: float, dy: float) -> PositionedEdge:
    anchor = edge.label_anchor
    return replace(
        edge,
        points=tuple(_shift_point(p, dx, dy) for p in edge.points),
        label_anchor=_shift_point(anchor, dx, dy) if anchor is not None else None,
    )


def _shift_group(group: PositionedGroup, dx: float, dy: float) -> PositionedGroup:
    return replace(
        group,
        x=group.x + dx,
        y=group.y + dy,
        children=tuple(_shift_group(child, dx, dy) for child in group.children),
    )
