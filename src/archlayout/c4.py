"""
C4 model diagrams: parsing, sizing and layout.

Supports the Mermaid C4 syntax:

    C4Context | C4Container | C4Component | C4Dynamic | C4Deployment
    title Internet Banking
    Person(customer, "Customer", "A bank customer")
    System_Boundary(bank, "Bank") {
        Container(api, "API", "Python", "Serves JSON")
        ContainerDb(db, "Database", "PostgreSQL")
    }
    Rel(customer, api, "Uses", "HTTPS")

Every element keyword has an _Ext variant for external elements. Boundaries
nest and close with a lone "}".
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import C4Config
from .layout import LayeredLayout
from .models import EdgeKind, GroupSpec, PositionedGraph, SizedEdge, SizedGraph, SizedNode
from .parser import parse_args, preprocess_lines, unquote
from .positioning import layout_graph
from .text_metrics import estimate_text_width

logger = logging.getLogger(__name__)

DIAGRAM_TYPES = {"C4Context", "C4Container", "C4Component", "C4Dynamic", "C4Deployment"}
DEFAULT_DIAGRAM_TYPE = "C4Context"

# keyword -> (kind, has technology argument)
ELEMENT_SPECS: Dict[str, Tuple[str, bool]] = {}
for _kind, _has_tech in (
    ("Person", False),
    ("System", False),
    ("Container", True),
    ("ContainerDb", True),
    ("ContainerQueue", True),
    ("Component", True),
    ("ComponentDb", True),
    ("ComponentQueue", True),
):
    ELEMENT_SPECS[_kind] = (_kind, _has_tech)
    ELEMENT_SPECS[_kind + "_Ext"] = (_kind, _has_tech)

BOUNDARY_KINDS = {
    "Boundary",
    "System_Boundary",
    "Container_Boundary",
    "Enterprise_Boundary",
    "Deployment_Node",
}

REL_DIRECTIONS = {
    "Rel": None,
    "BiRel": None,
    "Rel_D": "D",
    "Rel_U": "U",
    "Rel_L": "L",
    "Rel_R": "R",
    "Rel_Back": "Back",
}

TITLE_PATTERN = re.compile(r"^title\s+(.+)$", re.IGNORECASE)
BOUNDARY_PATTERN = re.compile(r"^(\w+)\s*\(([^)]*)\)\s*\{$")
CALL_PATTERN = re.compile(r"^(\w+)\s*\(([^)]*)\)$")


@dataclass
class C4Element:
    """A person, system, container or component."""

    kind: str
    alias: str
    label: str
    description: Optional[str] = None
    technology: Optional[str] = None
    external: bool = False
    parent_boundary: Optional[str] = None


@dataclass
class C4Boundary:
    """A boundary box grouping elements and nested boundaries."""

    alias: str
    label: str
    kind: str
    elements: List[C4Element] = field(default_factory=list)
    children: List["C4Boundary"] = field(default_factory=list)
    parent_boundary: Optional[str] = None


@dataclass
class C4Relationship:
    """A relationship between two elements."""

    source: str
    target: str
    label: str
    technology: Optional[str] = None
    direction: Optional[str] = None
    bidirectional: bool = False

    @property
    def display_label(self) -> str:
        if self.technology:
            return f"{self.label} [{self.technology}]"
        return self.label


@dataclass
class C4Diagram:
    """Parsed C4 diagram."""

    diagram_type: str = DEFAULT_DIAGRAM_TYPE
    title: Optional[str] = None
    elements: List[C4Element] = field(default_factory=list)
    relationships: List[C4Relationship] = field(default_factory=list)
    boundaries: List[C4Boundary] = field(default_factory=list)


def parse_c4(input_text: str) -> C4Diagram:
    """
    Parse Mermaid C4 syntax.

    Unknown keywords and malformed lines are skipped. A first line that is
    not a C4 diagram keyword falls back to C4Context.

    Args:
        input_text: Diagram source.

    Returns:
        Parsed C4Diagram.
    """
    lines = preprocess_lines(input_text)
    first_line = lines[0] if lines else ""
    diagram = C4Diagram(
        diagram_type=first_line if first_line in DIAGRAM_TYPES else DEFAULT_DIAGRAM_TYPE
    )
    stack: List[C4Boundary] = []

    for line in lines[1:]:
        title_match = TITLE_PATTERN.match(line)
        if title_match:
            diagram.title = unquote(title_match.group(1).strip())
            continue

        if line == "}":
            if stack:
                stack.pop()
            continue

        boundary_match = BOUNDARY_PATTERN.match(line)
        if boundary_match and boundary_match.group(1) in BOUNDARY_KINDS:
            args = parse_args(boundary_match.group(2))
            alias = unquote(args[0]) if args else ""
            label = unquote(args[1]) if len(args) > 1 else alias
            parent = stack[-1] if stack else None
            boundary = C4Boundary(
                alias=alias,
                label=label,
                kind=boundary_match.group(1),
                parent_boundary=parent.alias if parent else None,
            )
            if parent is not None:
                parent.children.append(boundary)
            else:
                diagram.boundaries.append(boundary)
            stack.append(boundary)
            continue

        call_match = CALL_PATTERN.match(line)
        if not call_match:
            continue
        keyword, args_text = call_match.group(1), call_match.group(2)

        if keyword in ELEMENT_SPECS:
            element = _parse_element(keyword, args_text, stack[-1] if stack else None)
            if stack:
                stack[-1].elements.append(element)
            diagram.elements.append(element)
        elif keyword in REL_DIRECTIONS:
            relationship = _parse_relationship(keyword, args_text)
            if relationship is not None:
                diagram.relationships.append(relationship)

    return diagram


def _parse_element(
    keyword: str, args_text: str, parent: Optional[C4Boundary]
) -> C4Element:
    kind, has_technology = ELEMENT_SPECS[keyword]
    args = [unquote(arg) for arg in parse_args(args_text)]
    args += [""] * (4 - len(args))

    if has_technology:
        technology = args[2] or None
        description = args[3] or None
    else:
        technology = None
        description = args[2] or None

    return C4Element(
        kind=kind,
        alias=args[0],
        label=args[1],
        description=description,
        technology=technology,
        external=keyword.endswith("_Ext"),
        parent_boundary=parent.alias if parent else None,
    )


def _parse_relationship(keyword: str, args_text: str) -> Optional[C4Relationship]:
    args = parse_args(args_text)
    if len(args) < 3:
        return None
    return C4Relationship(
        source=unquote(args[0]),
        target=unquote(args[1]),
        label=unquote(args[2]),
        technology=unquote(args[3]) if len(args) > 3 and args[3] else None,
        direction=REL_DIRECTIONS[keyword],
        bidirectional=keyword == "BiRel",
    )


def element_size(element: C4Element, config: C4Config) -> Tuple[float, float]:
    """
    Calculate the box size of a C4 element from its text content.

    Persons have a fixed size to leave room for the figure. Other elements
    fit the widest of label, [technology] and description.
    """
    if element.kind == "Person":
        return config.person_width, config.person_height

    fonts = config.fonts
    text_width = estimate_text_width(
        element.label, fonts.node_label_size, fonts.node_label_weight
    )
    lines = 1
    if element.technology:
        text_width = max(
            text_width,
            estimate_text_width(
                f"[{element.technology}]", config.tech_font_size, config.tech_font_weight
            ),
        )
        lines += 1
    if element.description:
        text_width = max(
            text_width,
            estimate_text_width(
                element.description, config.desc_font_size, config.desc_font_weight
            ),
        )
        lines += 1

    width = max(config.min_box_width, text_width + config.box_pad_x * 2)
    height = max(config.min_box_height, lines * config.line_height + config.box_pad_y * 2)
    return width, height


def relationship_edges(
    relationship: C4Relationship, index: int, label_width: float, label_height: float
) -> List[SizedEdge]:
    """
    Edges for one relationship.

    Rel_U and Rel_Back add a rank-only edge pointing the other way so the
    target is placed above the source. Rel_D adds one along the relationship.
    """
    label = relationship.display_label
    edges = [
        SizedEdge(
            source=relationship.source,
            target=relationship.target,
            label=label or None,
            label_width=label_width if label else 0.0,
            label_height=label_height if label else 0.0,
            data={"relationship": relationship, "index": index},
        )
    ]
    if relationship.direction in ("U", "Back"):
        edges.append(
            SizedEdge(relationship.target, relationship.source, kind=EdgeKind.ORDERING)
        )
    elif relationship.direction == "D":
        edges.append(
            SizedEdge(relationship.source, relationship.target, kind=EdgeKind.ORDERING)
        )
    return edges


def known_relationships(diagram: C4Diagram) -> List[C4Relationship]:
    """Relationships whose endpoints are both declared elements."""
    aliases = {element.alias for element in diagram.elements}
    kept = []
    for relationship in diagram.relationships:
        if relationship.source in aliases and relationship.target in aliases:
            kept.append(relationship)
        else:
            logger.warning(
                "Dropping relationship %s -> %s: unknown element",
                relationship.source,
                relationship.target,
            )
    return kept


def unique_elements(diagram: C4Diagram) -> List[C4Element]:
    """Elements with duplicate aliases removed (first declaration wins)."""
    seen = set()
    elements = []
    for element in diagram.elements:
        if element.alias in seen:
            logger.warning("Ignoring duplicate element alias %r", element.alias)
            continue
        seen.add(element.alias)
        elements.append(element)
    return elements


def boundary_groups(boundaries: List[C4Boundary]) -> List[GroupSpec]:
    """Convert the boundary tree into group specs."""
    return [
        GroupSpec(
            id=boundary.alias,
            label=boundary.label,
            member_ids=[element.alias for element in boundary.elements],
            children=boundary_groups(boundary.children),
            kind=boundary.kind,
            data={"boundary": boundary},
        )
        for boundary in boundaries
    ]


def build_sized_graph(diagram: C4Diagram, config: Optional[C4Config] = None) -> SizedGraph:
    """
    Size every element and relationship label of a C4 diagram.

    Args:
        diagram: Parsed diagram.
        config: Layout constants.

    Returns:
        SizedGraph ready for layout_graph().
    """
    config = config or C4Config()
    fonts = config.fonts

    nodes = []
    for element in unique_elements(diagram):
        width, height = element_size(element, config)
        nodes.append(
            SizedNode(
                id=element.alias,
                width=width,
                height=height,
                label=element.label,
                kind=element.kind,
                data={"element": element},
            )
        )

    edges: List[SizedEdge] = []
    for index, relationship in enumerate(known_relationships(diagram)):
        label_width = (
            estimate_text_width(
                relationship.display_label,
                fonts.edge_label_size,
                fonts.edge_label_weight,
            )
            + fonts.edge_label_pad_x
        )
        label_height = fonts.edge_label_size + fonts.edge_label_pad_y
        edges.extend(relationship_edges(relationship, index, label_width, label_height))

    return SizedGraph(
        nodes=nodes,
        edges=edges,
        groups=boundary_groups(diagram.boundaries),
        spacing=config.spacing(),
        margin=config.margin(),
    )


def layout_c4(
    diagram: C4Diagram,
    config: Optional[C4Config] = None,
    engine: Optional[LayeredLayout] = None,
) -> PositionedGraph:
    """Lay out a parsed C4 diagram."""
    return layout_graph(build_sized_graph(diagram, config), engine)
