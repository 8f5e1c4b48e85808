"""
Data models for diagram layout.

This module contains the dataclasses exchanged between the diagram families,
the layout core and the renderers. The input side (SizedGraph and friends) is
built by the per-family sizing logic; the output side (PositionedGraph and
friends) is produced once per layout call and never mutated afterwards.

Classes:
    Point: An immutable 2-D point.
    EdgeKind: Tag separating drawn edges from rank-only ordering edges.
    SizedNode: A node with a precomputed box size.
    SizedEdge: A directed edge with an optional label box.
    GroupSpec: A named container owning nodes and child containers.
    Spacing: Spacing parameters for the layout core.
    Margin: Outer canvas margin.
    SizedGraph: Complete input to the layout core.
    PositionedNode: A node with a top-left position.
    PositionedEdge: An orthogonally routed edge.
    PositionedGroup: A container rectangle with positioned children.
    PositionedGraph: Complete output of the layout core.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Point:
    """A point in diagram coordinates (y grows downwards)."""

    x: float
    y: float


class EdgeKind(Enum):
    """Kind of an edge in a SizedGraph."""

    REAL = "real"
    ORDERING = "ordering"


@dataclass
class SizedNode:
    """
    A node whose box size was computed by the sizing logic.

    Attributes:
        id: Unique node identifier.
        width: Box width.
        height: Box height.
        label: Optional display label, passed through untouched.
        kind: Optional family-specific kind, passed through untouched.
        data: Free-form metadata, passed through untouched.
    """

    id: str
    width: float
    height: float
    label: Optional[str] = None
    kind: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SizedEdge:
    """
    A directed edge between two sized nodes.

    Ordering edges only influence rank assignment; they are never routed and
    never appear in the positioned output.

    Attributes:
        source: Source node id.
        target: Target node id.
        label: Optional label text.
        label_width: Width reserved for the label box.
        label_height: Height reserved for the label box.
        kind: EdgeKind.REAL or EdgeKind.ORDERING.
        minlen: Minimum rank distance between source and target.
        weight: Relative importance when breaking cycles and aligning.
        data: Free-form metadata, passed through untouched.
    """

    source: str
    target: str
    label: Optional[str] = None
    label_width: float = 0.0
    label_height: float = 0.0
    kind: EdgeKind = EdgeKind.REAL
    minlen: int = 1
    weight: float = 1.0
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_label(self) -> bool:
        return bool(self.label) and self.label_width > 0 and self.label_height > 0


@dataclass
class GroupSpec:
    """
    A container in the group forest.

    Groups own their children directly; there are no back-pointers. Use
    build_parent_map() when a parent lookup is needed.

    Attributes:
        id: Unique group identifier.
        label: Header text.
        member_ids: Ids of nodes directly inside this group.
        children: Nested groups.
        kind: Optional family-specific kind.
        data: Free-form metadata, passed through untouched.
    """

    id: str
    label: str = ""
    member_ids: List[str] = field(default_factory=list)
    children: List["GroupSpec"] = field(default_factory=list)
    kind: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def walk(self) -> Iterator["GroupSpec"]:
        """Yield this group and all descendants, parents before children."""
        yield self
        for child in self.children:
            yield from child.walk()


def build_parent_map(groups: List[GroupSpec]) -> Dict[str, Optional[str]]:
    """
    Build a group id -> parent group id map for a finished group forest.

    Top-level groups map to None.
    """
    parents: Dict[str, Optional[str]] = {}

    def visit(group: GroupSpec, parent: Optional[str]) -> None:
        parents[group.id] = parent
        for child in group.children:
            visit(child, group.id)

    for group in groups:
        visit(group, None)
    return parents


@dataclass
class Spacing:
    """
    Spacing parameters for the layout core.

    Attributes:
        node: Gap between neighbouring boxes in a rank.
        rank: Gap between neighbouring ranks.
        edge: Gap between an edge route and its neighbours in a rank.
        group_padding: Padding between a group border and its content.
        group_header: Height of the header band on top of a group.
        empty_group_width: Width of a group with no content.
        empty_group_height: Height of a group with no content.
        self_loop: Horizontal reach of a self-loop route.
    """

    node: float = 50.0
    rank: float = 50.0
    edge: float = 10.0
    group_padding: float = 20.0
    group_header: float = 24.0
    empty_group_width: float = 120.0
    empty_group_height: float = 60.0
    self_loop: float = 20.0


@dataclass
class Margin:
    """Outer canvas margin."""

    x: float = 40.0
    y: float = 40.0


@dataclass
class SizedGraph:
    """
    Input to the layout core.

    Attributes:
        nodes: Sized nodes.
        edges: Real and ordering edges.
        groups: Group forest.
        direction: Layout axis; only "TB" is supported.
        spacing: Spacing parameters.
        margin: Outer canvas margin.
        uniform_band_width: Stretch top-level groups to one shared width.
    """

    nodes: List[SizedNode] = field(default_factory=list)
    edges: List[SizedEdge] = field(default_factory=list)
    groups: List[GroupSpec] = field(default_factory=list)
    direction: str = "TB"
    spacing: Spacing = field(default_factory=Spacing)
    margin: Margin = field(default_factory=Margin)
    uniform_band_width: bool = False


@dataclass(frozen=True)
class PositionedNode:
    """A node placed at top-left (x, y)."""

    id: str
    x: float
    y: float
    width: float
    height: float
    label: Optional[str] = None
    kind: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class PositionedEdge:
    """
    A routed edge.

    Attributes:
        source: Source node id.
        target: Target node id.
        points: Orthogonal route from source boundary to target boundary.
        label: Optional label text.
        label_anchor: Centre of the reserved label box, if labelled.
        data: Metadata copied from the SizedEdge.
    """

    source: str
    target: str
    points: Tuple[Point, ...] = ()
    label: Optional[str] = None
    label_anchor: Optional[Point] = None
    data: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


@dataclass(frozen=True)
class PositionedGroup:
    """A group rectangle; children mirror the input group tree."""

    id: str
    x: float
    y: float
    width: float
    height: float
    label: str = ""
    children: Tuple["PositionedGroup", ...] = ()
    kind: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class PositionedGraph:
    """Output of the layout core."""

    width: float = 0.0
    height: float = 0.0
    nodes: Tuple[PositionedNode, ...] = ()
    edges: Tuple[PositionedEdge, ...] = ()
    groups: Tuple[PositionedGroup, ...] = ()

    def node(self, node_id: str) -> PositionedNode:
        """Return the positioned node with the given id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def iter_groups(self) -> Iterator[PositionedGroup]:
        """Yield every group depth-first, parents before children."""
        stack = list(reversed(self.groups))
        while stack:
            group = stack.pop()
            yield group
            stack.extend(reversed(group.children))

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-compatible representation of the geometry."""

        def group_dict(group: PositionedGroup) -> Dict[str, Any]:
            return {
                "id": group.id,
                "x": group.x,
                "y": group.y,
                "width": group.width,
                "height": group.height,
                "children": [group_dict(child) for child in group.children],
            }

        edges = []
        for edge in self.edges:
            entry: Dict[str, Any] = {
                "source": edge.source,
                "target": edge.target,
                "points": [{"x": p.x, "y": p.y} for p in edge.points],
            }
            if edge.label is not None:
                entry["label"] = edge.label
            if edge.label_anchor is not None:
                entry["labelAnchor"] = {
                    "x": edge.label_anchor.x,
                    "y": edge.label_anchor.y,
                }
            edges.append(entry)

        return {
            "width": self.width,
            "height": self.height,
            "nodes": [
                {"id": n.id, "x": n.x, "y": n.y, "width": n.width, "height": n.height}
                for n in self.nodes
            ],
            "edges": edges,
            "groups": [group_dict(group) for group in self.groups],
        }
