"""
UML class diagrams: parsing, sizing and layout.

Supports the Mermaid classDiagram syntax:

    classDiagram
      class Animal {
        <<abstract>>
        +String name
        +speak()* String
      }
      Animal : +int age
      Animal <|-- Dog : extends
      Owner "1" o-- "many" Dog
      namespace Zoo {
        class Keeper
      }

Classes mentioned only in relationships are declared implicitly.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .config import ClassDiagramConfig
from .layout import LayeredLayout
from .models import GroupSpec, PositionedGraph, SizedEdge, SizedGraph, SizedNode
from .positioning import layout_graph
from .text_metrics import estimate_mono_text_width, estimate_text_width

logger = logging.getLogger(__name__)

# arrow -> (relationship type, end that carries the marker)
ARROWS: Dict[str, Tuple[str, str]] = {
    "<|--": ("inheritance", "from"),
    "<|..": ("realization", "from"),
    "..|>": ("realization", "to"),
    "..>": ("dependency", "to"),
    "*--": ("composition", "from"),
    "o--": ("aggregation", "from"),
    "--*": ("composition", "to"),
    "--o": ("aggregation", "to"),
    "-->": ("association", "to"),
    "--": ("link", "to"),
}

_ARROW_ALTERNATION = "|".join(
    re.escape(arrow) for arrow in sorted(ARROWS, key=len, reverse=True)
)
RELATIONSHIP_PATTERN = re.compile(
    r"^([\w~]+)\s+"
    r'(?:"([^"]*)"\s+)?'
    rf"({_ARROW_ALTERNATION})\s+"
    r'(?:"([^"]*)"\s+)?'
    r"([\w~]+)"
    r"(?:\s*:\s*(.*))?$"
)
NAMESPACE_PATTERN = re.compile(r"^namespace\s+([\w.]+)\s*\{$")
CLASS_BLOCK_PATTERN = re.compile(r"^class\s+([\w~]+)\s*\{$")
CLASS_PATTERN = re.compile(r"^class\s+([\w~]+)$")
ANNOTATION_PATTERN = re.compile(r"^<<([^>]+)>>$")
ANNOTATION_FOR_PATTERN = re.compile(r"^<<([^>]+)>>\s+([\w~]+)$")
MEMBER_PATTERN = re.compile(r"^([\w~]+)\s*:\s*(.+)$")
GENERIC_PATTERN = re.compile(r"~([^~]*)~")

VISIBILITY_MARKS = "+-#~"


@dataclass
class ClassMember:
    """An attribute or method of a class."""

    name: str
    type: Optional[str] = None
    visibility: str = ""
    is_method: bool = False
    is_static: bool = False
    is_abstract: bool = False

    @property
    def display_text(self) -> str:
        text = f"{self.visibility} {self.name}" if self.visibility else self.name
        if self.type:
            text += f": {self.type}"
        return text


@dataclass
class ClassNode:
    """A class with its compartments."""

    id: str
    label: str
    annotation: Optional[str] = None
    attributes: List[ClassMember] = field(default_factory=list)
    methods: List[ClassMember] = field(default_factory=list)
    namespace: Optional[str] = None

    def add_member(self, member: ClassMember) -> None:
        if member.is_method:
            self.methods.append(member)
        else:
            self.attributes.append(member)


@dataclass
class ClassRelationship:
    """A relationship between two classes."""

    source: str
    target: str
    type: str
    marker_at: str = "to"
    label: Optional[str] = None
    source_cardinality: Optional[str] = None
    target_cardinality: Optional[str] = None


@dataclass
class ClassNamespace:
    """A named group of classes."""

    name: str
    class_ids: List[str] = field(default_factory=list)


@dataclass
class ClassDiagram:
    """Parsed class diagram."""

    classes: Dict[str, ClassNode] = field(default_factory=dict)
    relationships: List[ClassRelationship] = field(default_factory=list)
    namespaces: List[ClassNamespace] = field(default_factory=list)

    def namespace(self, name: str) -> ClassNamespace:
        """Return the namespace with this name, creating it if needed."""
        for namespace in self.namespaces:
            if namespace.name == name:
                return namespace
        namespace = ClassNamespace(name)
        self.namespaces.append(namespace)
        return namespace

    def ensure_class(self, raw_name: str, namespace: Optional[ClassNamespace] = None) -> ClassNode:
        """Return the class for a name, declaring it on first use."""
        class_id, label = split_generic(raw_name)
        node = self.classes.get(class_id)
        if node is None:
            node = ClassNode(id=class_id, label=label)
            self.classes[class_id] = node
        elif label != class_id:
            node.label = label
        if namespace is not None and node.namespace is None:
            node.namespace = namespace.name
            namespace.class_ids.append(class_id)
        return node


def split_generic(raw_name: str) -> Tuple[str, str]:
    """Split `Box~T~` into id `Box` and label `Box<T>`."""
    class_id = raw_name.split("~", 1)[0]
    return class_id, GENERIC_PATTERN.sub(r"<\1>", raw_name)


def parse_member(text: str) -> ClassMember:
    """
    Parse one member line.

    Visibility is a leading + - # or ~. A trailing $ marks a static member
    and a trailing * an abstract one. Methods are `name(args) returnType`;
    attributes are `type name` or `name: type`.
    """
    text = GENERIC_PATTERN.sub(r"<\1>", text.strip())
    visibility = ""
    if text[:1] in VISIBILITY_MARKS and len(text) > 1:
        visibility = text[0]
        text = text[1:].strip()

    is_static = False
    is_abstract = False
    while text[-1:] in ("$", "*"):
        is_static = is_static or text.endswith("$")
        is_abstract = is_abstract or text.endswith("*")
        text = text[:-1].rstrip()

    if "(" in text and ")" in text:
        close = text.index(")")
        name = text[: close + 1]
        rest = text[close + 1 :].strip()
        while rest[:1] in ("$", "*") and rest:
            is_static = is_static or rest[0] == "$"
            is_abstract = is_abstract or rest[0] == "*"
            rest = rest[1:].strip()
        return ClassMember(
            name=name.strip(),
            type=rest or None,
            visibility=visibility,
            is_method=True,
            is_static=is_static,
            is_abstract=is_abstract,
        )

    if ":" in text:
        name, member_type = (part.strip() for part in text.split(":", 1))
    else:
        parts = text.split()
        if len(parts) >= 2:
            member_type, name = parts[0], " ".join(parts[1:])
        else:
            member_type, name = "", text
    return ClassMember(
        name=name,
        type=member_type or None,
        visibility=visibility,
        is_static=is_static,
        is_abstract=is_abstract,
    )


def parse_class_diagram(input_text: str) -> ClassDiagram:
    """
    Parse Mermaid classDiagram syntax.

    Args:
        input_text: Diagram source, header line included.

    Returns:
        Parsed ClassDiagram. Unrecognised lines are skipped.
    """
    diagram = ClassDiagram()
    current_class: Optional[ClassNode] = None
    current_namespace: Optional[ClassNamespace] = None
    header_seen = False

    for raw in input_text.split("\n"):
        line = raw.strip()
        if not line or line.startswith("%%"):
            continue
        if not header_seen:
            header_seen = True
            continue

        if current_class is not None:
            if line == "}":
                current_class = None
                continue
            annotation = ANNOTATION_PATTERN.match(line)
            if annotation:
                current_class.annotation = annotation.group(1).strip()
            else:
                current_class.add_member(parse_member(line))
            continue

        if line == "}":
            current_namespace = None
            continue

        match = NAMESPACE_PATTERN.match(line)
        if match:
            current_namespace = diagram.namespace(match.group(1))
            continue

        match = CLASS_BLOCK_PATTERN.match(line)
        if match:
            current_class = diagram.ensure_class(match.group(1), current_namespace)
            continue

        match = CLASS_PATTERN.match(line)
        if match:
            diagram.ensure_class(match.group(1), current_namespace)
            continue

        match = ANNOTATION_FOR_PATTERN.match(line)
        if match:
            diagram.ensure_class(match.group(2)).annotation = match.group(1).strip()
            continue

        match = RELATIONSHIP_PATTERN.match(line)
        if match:
            source = diagram.ensure_class(match.group(1))
            target = diagram.ensure_class(match.group(5))
            rel_type, marker_at = ARROWS[match.group(3)]
            label = match.group(6).strip() if match.group(6) else None
            diagram.relationships.append(
                ClassRelationship(
                    source=source.id,
                    target=target.id,
                    type=rel_type,
                    marker_at=marker_at,
                    label=label or None,
                    source_cardinality=match.group(2) or None,
                    target_cardinality=match.group(4) or None,
                )
            )
            continue

        match = MEMBER_PATTERN.match(line)
        if match:
            diagram.ensure_class(match.group(1)).add_member(parse_member(match.group(2)))
            continue

        logger.debug("Skipping unrecognised class diagram line: %s", line)

    return diagram


def compartment_heights(
    node: ClassNode, config: ClassDiagramConfig
) -> Tuple[float, float, float]:
    """Heights of the header, attribute and method compartments."""
    header = config.header_height
    if node.annotation:
        header += config.annotation_height
    attributes = len(node.attributes) * config.member_row_height + config.compartment_pad_y
    methods = len(node.methods) * config.member_row_height + config.compartment_pad_y
    return header, attributes, methods


def class_width(node: ClassNode, config: ClassDiagramConfig) -> float:
    """Fit the class name, annotation and the widest member line."""
    widest = estimate_text_width(node.label, config.name_font_size, config.name_font_weight)
    if node.annotation:
        widest = max(
            widest,
            estimate_text_width(
                f"<<{node.annotation}>>",
                config.annotation_font_size,
                config.annotation_font_weight,
            ),
        )
    for member in node.attributes + node.methods:
        widest = max(
            widest, estimate_mono_text_width(member.display_text, config.member_font_size)
        )
    return max(config.min_width, widest + config.box_pad_x * 2)


def namespace_groups(diagram: ClassDiagram) -> List[GroupSpec]:
    """One group per namespace, id "namespace:<name>"."""
    return [
        GroupSpec(
            id=f"namespace:{namespace.name}",
            label=namespace.name,
            member_ids=list(namespace.class_ids),
            kind="namespace",
        )
        for namespace in diagram.namespaces
    ]


def build_sized_graph(
    diagram: ClassDiagram, config: Optional[ClassDiagramConfig] = None
) -> SizedGraph:
    """
    Size every class box and relationship label.

    Args:
        diagram: Parsed diagram.
        config: Layout constants.

    Returns:
        SizedGraph ready for layout_graph().
    """
    config = config or ClassDiagramConfig()
    fonts = config.fonts

    nodes = []
    for node in diagram.classes.values():
        header, attributes, methods = compartment_heights(node, config)
        nodes.append(
            SizedNode(
                id=node.id,
                width=class_width(node, config),
                height=header + attributes + methods,
                label=node.label,
                kind="class",
                data={
                    "class": node,
                    "header_height": header,
                    "attr_height": attributes,
                    "method_height": methods,
                },
            )
        )

    edges = []
    for relationship in diagram.relationships:
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
        groups=namespace_groups(diagram),
        spacing=config.spacing(),
        margin=config.margin(),
    )


def layout_class_diagram(
    diagram: ClassDiagram,
    config: Optional[ClassDiagramConfig] = None,
    engine: Optional[LayeredLayout] = None,
) -> PositionedGraph:
    """Lay out a parsed class diagram."""
    return layout_graph(build_sized_graph(diagram, config), engine)
