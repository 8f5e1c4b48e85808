"""
ArchiMate layered views: parsing, sizing and layout.

Syntax:

    archimate-layered
      business:
        actor Customer
        service "Online Banking" as OB
      application:
        component "Web App" as WA
      Customer -->|serving| OB
      OB --> WA

Layers are stacked top to bottom in LAYER_ORDER. Each present layer becomes a
band group, and rank-only edges between consecutive layers keep the bands in
order.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .config import ArchiMateConfig
from .layout import LayeredLayout
from .models import EdgeKind, GroupSpec, PositionedGraph, SizedEdge, SizedGraph, SizedNode
from .positioning import layout_graph
from .text_metrics import estimate_text_width

logger = logging.getLogger(__name__)

LAYER_ORDER = (
    "strategy",
    "motivation",
    "business",
    "application",
    "technology",
    "physical",
    "implementation",
)

LAYER_LABELS = {
    "strategy": "Strategy",
    "motivation": "Motivation",
    "business": "Business",
    "application": "Application",
    "technology": "Technology",
    "physical": "Physical",
    "implementation": "Implementation & Migration",
}

LAYER_ELEMENT_TYPES = {
    "business": {
        "actor", "role", "process", "function", "service", "object", "event",
        "interface", "collaboration", "interaction", "contract",
        "representation", "product",
    },
    "application": {
        "component", "collaboration", "interface", "function", "interaction",
        "process", "event", "service", "dataObject",
    },
    "technology": {
        "node", "device", "systemSoftware", "artifact", "communicationNetwork",
        "path", "interface", "function", "process", "interaction", "event",
        "service",
    },
    "strategy": {"resource", "capability", "valueStream", "courseOfAction"},
    "motivation": {
        "stakeholder", "driver", "assessment", "goal", "outcome", "principle",
        "requirement", "constraint", "meaning", "value",
    },
    "physical": {"equipment", "facility", "distributionNetwork", "material"},
    "implementation": {
        "workPackage", "deliverable", "implementationEvent", "plateau", "gap",
    },
}

ALL_ELEMENT_TYPES = set().union(*LAYER_ELEMENT_TYPES.values())

RELATIONSHIP_TYPES = {
    "composition",
    "aggregation",
    "assignment",
    "realization",
    "serving",
    "access",
    "influence",
    "triggering",
    "flow",
    "specialization",
    "association",
}

LAYER_PATTERN = re.compile(r"^(\w+):$")
TYPED_REL_PATTERN = re.compile(r"^(\w+)\s+-->\|(\w+)\|\s+(\w+)$")
PLAIN_REL_PATTERN = re.compile(r"^(\w+)\s+-->\s+(\w+)$")
QUOTED_ALIAS_PATTERN = re.compile(r'^(\w+)\s+"([^"]+)"\s+as\s+(\w+)$')
QUOTED_PATTERN = re.compile(r'^(\w+)\s+"([^"]+)"$')
SIMPLE_PATTERN = re.compile(r"^(\w+)\s+(\w+)$")


@dataclass
class ArchiMateElement:
    """An element placed in one layer."""

    id: str
    label: str
    type: str
    layer: str


@dataclass
class ArchiMateRelationship:
    """A typed relationship between two elements."""

    source: str
    target: str
    type: str = "association"
    label: Optional[str] = None


@dataclass
class ArchiMateDiagram:
    """
    Parsed ArchiMate diagram.

    Attributes:
        layers: Layer name -> elements, in order of first appearance.
        elements: Element id -> element. A later element with the same id
            replaces the earlier one.
        relationships: Relationships in input order.
    """

    layers: Dict[str, List[ArchiMateElement]] = field(default_factory=dict)
    elements: Dict[str, ArchiMateElement] = field(default_factory=dict)
    relationships: List[ArchiMateRelationship] = field(default_factory=list)

    def present_layers(self) -> List[str]:
        """Non-empty layers in top-to-bottom order."""
        return [layer for layer in LAYER_ORDER if self.layers.get(layer)]


def parse_archimate(input_text: str) -> ArchiMateDiagram:
    """
    Parse the archimate-layered syntax.

    Element lines are only recognised inside a layer block. A non-indented
    line that is neither an element nor a relationship ends the block.
    Unrecognised lines are skipped.

    Args:
        input_text: Diagram source, header line included.

    Returns:
        Parsed ArchiMateDiagram.
    """
    diagram = ArchiMateDiagram()
    current_layer: Optional[str] = None
    header_seen = False

    for raw in input_text.split("\n"):
        line = raw.strip()
        if not line or line.startswith("%%"):
            continue
        if not header_seen:
            header_seen = True
            continue

        layer_match = LAYER_PATTERN.match(line)
        if layer_match and layer_match.group(1) in LAYER_ELEMENT_TYPES:
            current_layer = layer_match.group(1)
            diagram.layers.setdefault(current_layer, [])
            continue

        relationship = parse_relationship(line)
        if relationship is not None:
            diagram.relationships.append(relationship)
            continue

        if current_layer is not None:
            element = parse_element(line, current_layer)
            if element is not None:
                diagram.elements[element.id] = element
                diagram.layers[current_layer].append(element)
                continue
            if not raw[:1].isspace():
                current_layer = None

    return diagram


def parse_element(line: str, layer: str) -> Optional[ArchiMateElement]:
    """
    Parse an element declaration inside a layer block.

    Formats:
        type alias             -> id=alias, label=alias
        type "Label" as alias  -> id=alias, label=Label
        type "Label"           -> id=Label with whitespace runs as "_"
    """
    match = QUOTED_ALIAS_PATTERN.match(line)
    if match:
        if not is_valid_element_type(match.group(1), layer):
            return None
        return ArchiMateElement(match.group(3), match.group(2), match.group(1), layer)

    match = QUOTED_PATTERN.match(line)
    if match:
        if not is_valid_element_type(match.group(1), layer):
            return None
        label = match.group(2)
        return ArchiMateElement(re.sub(r"\s+", "_", label), label, match.group(1), layer)

    match = SIMPLE_PATTERN.match(line)
    if match:
        if not is_valid_element_type(match.group(1), layer):
            return None
        return ArchiMateElement(match.group(2), match.group(2), match.group(1), layer)

    return None


def is_valid_element_type(type_name: str, layer: str) -> bool:
    """Layer types first; any known type is accepted in any layer."""
    if type_name in LAYER_ELEMENT_TYPES.get(layer, ()):
        return True
    return type_name in ALL_ELEMENT_TYPES


def parse_relationship(line: str) -> Optional[ArchiMateRelationship]:
    """Parse `a -->|type| b` or `a --> b` (association)."""
    match = TYPED_REL_PATTERN.match(line)
    if match:
        if match.group(2) not in RELATIONSHIP_TYPES:
            return None
        return ArchiMateRelationship(match.group(1), match.group(3), match.group(2))

    match = PLAIN_REL_PATTERN.match(line)
    if match:
        return ArchiMateRelationship(match.group(1), match.group(2))

    return None


def type_display_name(type_name: str) -> str:
    """Turn a camelCase element type into words: dataObject -> Data Object."""
    spaced = re.sub(r"([a-z])([A-Z])", r"\1 \2", type_name)
    return spaced[:1].upper() + spaced[1:]


def element_width(element: ArchiMateElement, config: ArchiMateConfig) -> float:
    """Widest of the minimum, the padded label, and type plus half label."""
    fonts = config.fonts
    label_width = estimate_text_width(
        element.label, fonts.node_label_size, fonts.node_label_weight
    )
    type_width = estimate_text_width(
        element.type, config.type_indicator_size, config.type_indicator_weight
    )
    return max(
        config.min_element_width,
        label_width + config.element_pad_x,
        type_width + label_width / 2 + config.element_pad_x,
    )


def layer_ordering_edges(
    diagram: ArchiMateDiagram, weight: float
) -> List[SizedEdge]:
    """Rank-only edges from every element of a layer to every element below."""
    edges = []
    present = diagram.present_layers()
    for upper, lower in zip(present, present[1:]):
        for source in _layer_ids(diagram, upper):
            for target in _layer_ids(diagram, lower):
                edges.append(
                    SizedEdge(source, target, kind=EdgeKind.ORDERING, weight=weight)
                )
    return edges


def layer_groups(diagram: ArchiMateDiagram) -> List[GroupSpec]:
    """One band group per present layer."""
    return [
        GroupSpec(
            id=f"layer:{layer}",
            label=LAYER_LABELS[layer],
            member_ids=_layer_ids(diagram, layer),
            kind=layer,
        )
        for layer in diagram.present_layers()
    ]


def known_relationships(diagram: ArchiMateDiagram) -> List[ArchiMateRelationship]:
    """Relationships whose endpoints are both declared elements."""
    kept = []
    for relationship in diagram.relationships:
        if relationship.source in diagram.elements and relationship.target in diagram.elements:
            kept.append(relationship)
        else:
            logger.warning(
                "Dropping %s relationship %s -> %s: unknown element",
                relationship.type,
                relationship.source,
                relationship.target,
            )
    return kept


def _layer_ids(diagram: ArchiMateDiagram, layer: str) -> List[str]:
    """Ids of the elements that ended up in a layer, without duplicates."""
    ids = []
    for element in diagram.layers.get(layer, []):
        if diagram.elements.get(element.id) is element and element.id not in ids:
            ids.append(element.id)
    return ids


def build_sized_graph(
    diagram: ArchiMateDiagram, config: Optional[ArchiMateConfig] = None
) -> SizedGraph:
    """
    Size the elements of an ArchiMate diagram and build its layer bands.

    Args:
        diagram: Parsed diagram.
        config: Layout constants.

    Returns:
        SizedGraph with uniform band width enabled.
    """
    config = config or ArchiMateConfig()
    fonts = config.fonts

    nodes = [
        SizedNode(
            id=element.id,
            width=element_width(element, config),
            height=config.element_height,
            label=element.label,
            kind=element.type,
            data={"element": element},
        )
        for element in diagram.elements.values()
    ]

    edges = layer_ordering_edges(diagram, config.layer_edge_weight)
    for relationship in known_relationships(diagram):
        label = relationship.label
        edges.append(
            SizedEdge(
                source=relationship.source,
                target=relationship.target,
                label=label,
                label_width=(
                    estimate_text_width(label, fonts.edge_label_size, fonts.edge_label_weight)
                    + fonts.edge_label_pad_x
                    if label
                    else 0.0
                ),
                label_height=fonts.edge_label_size + fonts.edge_label_pad_y if label else 0.0,
                data={"relationship": relationship},
            )
        )

    return SizedGraph(
        nodes=nodes,
        edges=edges,
        groups=layer_groups(diagram),
        spacing=config.spacing(),
        margin=config.margin(),
        uniform_band_width=True,
    )


def layout_archimate(
    diagram: ArchiMateDiagram,
    config: Optional[ArchiMateConfig] = None,
    engine: Optional[LayeredLayout] = None,
) -> PositionedGraph:
    """Lay out a parsed ArchiMate diagram."""
    return layout_graph(build_sized_graph(diagram, config), engine)
