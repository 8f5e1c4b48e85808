"""
ASCII and Unicode art rendering of the three diagram families.

The same layout core used for SVG runs here in character-cell units: boxes
are sized from their text, the positioned graph is rounded to cells, and
the renderer.py primitives draw boundaries, boxes, connectors and labels.
"""

import math
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from . import archimate, c4, class_diagram
from .archimate import ArchiMateDiagram, type_display_name
from .c4 import C4Diagram
from .class_diagram import ClassDiagram
from .config import ArchiMateConfig, AsciiConfig
from .layout import LayeredLayout
from .models import (
    GroupSpec,
    Point,
    PositionedEdge,
    PositionedGraph,
    SizedEdge,
    SizedGraph,
    SizedNode,
)
from .positioning import layout_graph
from .renderer import BoxRenderer, Canvas, Cell, LineRenderer
from .text_metrics import display_width

PERSON_FIGURE_HEIGHT = 3

# relationship type -> (dashed, start marker, end marker)
ARCHIMATE_LINE_STYLES = {
    "composition": (False, "diamond", None),
    "aggregation": (False, "open_diamond", None),
    "assignment": (False, "circle", "arrow"),
    "realization": (True, None, "open"),
    "serving": (False, None, "open"),
    "access": (True, None, "arrow"),
    "influence": (True, None, "open"),
    "triggering": (False, None, "arrow"),
    "flow": (True, None, "arrow"),
    "specialization": (False, None, "open"),
    "association": (False, None, None),
}

CLASS_LINE_MARKERS = {
    "inheritance": "open",
    "realization": "open",
    "composition": "diamond",
    "aggregation": "open_diamond",
    "association": "arrow",
    "dependency": "arrow",
    "link": None,
}

Rect = Tuple[int, int, int, int]
Sections = List[List[str]]
EdgeStyle = Tuple[bool, Optional[str], Optional[str]]


def to_cell(value: float) -> int:
    """Round a layout coordinate to the nearest cell, halves rounding up."""
    return int(math.floor(value + 0.5))


def c4_sections(element: c4.C4Element) -> Sections:
    """Label section, then technology and description in a second section."""
    details = []
    if element.technology:
        details.append(f"[{element.technology}]")
    if element.description:
        details.append(element.description)
    return [[element.label], details] if details else [[element.label]]


def archimate_sections(element: archimate.ArchiMateElement) -> Sections:
    return [[f"<<{type_display_name(element.type)}>>", element.label]]


def class_sections(node: class_diagram.ClassNode) -> Sections:
    """Header, attribute and method compartments."""
    header = [f"<<{node.annotation}>>"] if node.annotation else []
    header.append(node.label)
    return [
        header,
        [member.display_text for member in node.attributes],
        [member.display_text for member in node.methods],
    ]


def _inside(cell: Cell, rect: Rect) -> bool:
    x, y, width, height = rect
    return x <= cell[0] < x + width and y <= cell[1] < y + height


def _step_toward(cell: Cell, other: Cell) -> Cell:
    """Move one cell along the axis toward `other`."""
    x, y = cell
    if other[0] != x:
        return (x + (1 if other[0] > x else -1), y)
    if other[1] != y:
        return (x, y + (1 if other[1] > y else -1))
    return cell


class AsciiRenderer:
    """
    Renders parsed diagrams as text art.

    Args:
        config: Cell-unit spacing and the character set choice.
        engine: Layout engine; a default LayeredLayout when omitted.
        trace: Optional RenderTrace receiving stages and placements.
    """

    def __init__(
        self,
        config: Optional[AsciiConfig] = None,
        engine: Optional[LayeredLayout] = None,
        trace=None,
    ):
        self.config = config or AsciiConfig()
        self.engine = engine
        self.trace = trace
        self.box_renderer = BoxRenderer()
        self.line_renderer = LineRenderer()

    # ------------------------------------------------------------------
    # Families
    # ------------------------------------------------------------------

    def render_c4(self, diagram: C4Diagram) -> str:
        """Render a C4 diagram; persons get a figure above their box."""
        sections: Dict[str, Sections] = {}
        persons: Set[str] = set()
        nodes = []
        for element in c4.unique_elements(diagram):
            sections[element.alias] = c4_sections(element)
            dims = self.box_renderer.calculate_box_dimensions(sections[element.alias])
            height = dims.height
            if element.kind == "Person":
                persons.add(element.alias)
                height += PERSON_FIGURE_HEIGHT
            nodes.append(
                SizedNode(element.alias, dims.width, height, element.label, element.kind)
            )

        edges: List[SizedEdge] = []
        for index, relationship in enumerate(c4.known_relationships(diagram)):
            edges.extend(
                c4.relationship_edges(
                    relationship, index, display_width(relationship.display_label) + 2, 1
                )
            )

        def style(edge: PositionedEdge) -> EdgeStyle:
            relationship = edge.data.get("relationship")
            bidirectional = relationship is not None and relationship.bidirectional
            return False, "arrow" if bidirectional else None, "arrow"

        graph = self._layout(nodes, edges, c4.boundary_groups(diagram.boundaries))
        return self._draw(graph, sections, style, persons=persons, dashed_groups=True)

    def render_archimate(self, diagram: ArchiMateDiagram) -> str:
        """Render an ArchiMate view with solid layer bands."""
        sections: Dict[str, Sections] = {}
        nodes = []
        for element in diagram.elements.values():
            sections[element.id] = archimate_sections(element)
            dims = self.box_renderer.calculate_box_dimensions(sections[element.id])
            nodes.append(
                SizedNode(element.id, dims.width, dims.height, element.label, element.type)
            )

        edges = archimate.layer_ordering_edges(diagram, ArchiMateConfig().layer_edge_weight)
        for relationship in archimate.known_relationships(diagram):
            label = relationship.label
            edges.append(
                SizedEdge(
                    relationship.source,
                    relationship.target,
                    label=label,
                    label_width=display_width(label) + 2 if label else 0,
                    label_height=1 if label else 0,
                    data={"relationship": relationship},
                )
            )

        def style(edge: PositionedEdge) -> EdgeStyle:
            relationship = edge.data.get("relationship")
            rel_type = relationship.type if relationship is not None else "association"
            return ARCHIMATE_LINE_STYLES.get(rel_type, ARCHIMATE_LINE_STYLES["association"])

        graph = self._layout(nodes, edges, archimate.layer_groups(diagram), uniform_bands=True)
        return self._draw(graph, sections, style, dashed_groups=False)

    def render_class(self, diagram: ClassDiagram) -> str:
        """Render a class diagram with three-compartment boxes."""
        sections: Dict[str, Sections] = {}
        nodes = []
        for node in diagram.classes.values():
            sections[node.id] = class_sections(node)
            dims = self.box_renderer.calculate_box_dimensions(sections[node.id])
            nodes.append(SizedNode(node.id, dims.width, dims.height, node.label, "class"))

        edges = []
        for relationship in diagram.relationships:
            label = relationship.label
            edges.append(
                SizedEdge(
                    relationship.source,
                    relationship.target,
                    label=label,
                    label_width=display_width(label) + 2 if label else 0,
                    label_height=1 if label else 0,
                    data={"relationship": relationship},
                )
            )

        def style(edge: PositionedEdge) -> EdgeStyle:
            relationship = edge.data["relationship"]
            dashed = relationship.type in ("dependency", "realization")
            marker = CLASS_LINE_MARKERS.get(relationship.type)
            if relationship.marker_at == "from":
                return dashed, marker, None
            return dashed, None, marker

        graph = self._layout(nodes, edges, class_diagram.namespace_groups(diagram))
        return self._draw(
            graph, sections, style, dashed_groups=True, cardinalities=True
        )

    # ------------------------------------------------------------------
    # Shared pipeline
    # ------------------------------------------------------------------

    def _layout(
        self,
        nodes: List[SizedNode],
        edges: List[SizedEdge],
        groups: List[GroupSpec],
        uniform_bands: bool = False,
    ) -> PositionedGraph:
        graph = layout_graph(
            SizedGraph(
                nodes=nodes,
                edges=edges,
                groups=groups,
                spacing=self.config.spacing(),
                margin=self.config.margin(),
                uniform_band_width=uniform_bands,
            ),
            self.engine,
        )
        if self.trace is not None:
            self.trace.add_stage(
                "cell_layout",
                {
                    "width": graph.width,
                    "height": graph.height,
                    "nodes": len(graph.nodes),
                    "edges": len(graph.edges),
                    "groups": len(graph.groups),
                },
            )
        return graph

    def _stage(self, name: str, canvas: Canvas) -> None:
        if self.trace is not None:
            self.trace.add_stage(name, {}, canvas)

    def _draw(
        self,
        graph: PositionedGraph,
        sections: Dict[str, Sections],
        style: Callable[[PositionedEdge], EdgeStyle],
        persons: Optional[Set[str]] = None,
        dashed_groups: bool = True,
        cardinalities: bool = False,
    ) -> str:
        persons = persons or set()
        canvas = Canvas(
            to_cell(graph.width) + 1,
            to_cell(graph.height) + 1,
            use_ascii=self.config.use_ascii,
            trace=self.trace,
        )

        for group in graph.iter_groups():
            x, y = to_cell(group.x), to_cell(group.y)
            width, height = to_cell(group.right) - x, to_cell(group.bottom) - y
            self.box_renderer.draw_frame(canvas, x, y, width, height, dashed=dashed_groups)
            if group.label:
                canvas.draw_text(x + 2, y + 1, group.label, "group_label")
        self._stage("groups_drawn", canvas)

        rects: Dict[str, Rect] = {}
        for node in graph.nodes:
            x, y = to_cell(node.x), to_cell(node.y)
            width, height = int(round(node.width)), int(round(node.height))
            rects[node.id] = (x, y, width, height)
            box_y = y
            if node.id in persons:
                self._draw_person(canvas, x, y, width)
                box_y += PERSON_FIGURE_HEIGHT
            self.box_renderer.draw_box(canvas, x, box_y, width, sections[node.id])
        self._stage("boxes_drawn", canvas)

        paths = []
        for edge in graph.edges:
            cells = self._edge_cells(edge, rects)
            paths.append(cells)
            dashed, start, end = style(edge)
            self.line_renderer.draw_path(canvas, cells, dashed, start, end)
        self._stage("edges_drawn", canvas)

        for edge, cells in zip(graph.edges, paths):
            if edge.label:
                self._draw_label(canvas, edge, cells)
            if cardinalities and len(cells) >= 2:
                relationship = edge.data["relationship"]
                if relationship.source_cardinality:
                    self._draw_cardinality(canvas, relationship.source_cardinality, cells[0], cells[1])
                if relationship.target_cardinality:
                    self._draw_cardinality(canvas, relationship.target_cardinality, cells[-1], cells[-2])
        self._stage("labels_drawn", canvas)

        return canvas.render()

    def _edge_cells(self, edge: PositionedEdge, rects: Dict[str, Rect]) -> List[Cell]:
        """Round an edge route to cells, keeping both ends outside their boxes."""
        cells = [(to_cell(p.x), to_cell(p.y)) for p in edge.points]
        if len(cells) < 2:
            return cells
        source, target = rects.get(edge.source), rects.get(edge.target)
        if source is not None and _inside(cells[0], source):
            cells[0] = _step_toward(cells[0], cells[1])
        if target is not None and _inside(cells[-1], target):
            cells[-1] = _step_toward(cells[-1], cells[-2])
        return cells

    def _draw_person(self, canvas: Canvas, x: int, y: int, width: int) -> None:
        """
        Draw the person figure in the three rows above the box.

           ┌─┐
           │ │
          ─┴─┴─
        """
        chars = canvas.chars
        cx = x + width // 2
        rows = [
            (cx - 1, [chars["top_left"], chars["horizontal"], chars["top_right"]]),
            (cx - 1, [chars["vertical"], " ", chars["vertical"]]),
            (
                cx - 2,
                [
                    chars["horizontal"],
                    chars["tee_up"],
                    chars["horizontal"],
                    chars["tee_up"],
                    chars["horizontal"],
                ],
            ),
        ]
        for row, (start, glyphs) in enumerate(rows):
            for offset, glyph in enumerate(glyphs):
                canvas.set(start + offset, y + row, glyph, "person", "AsciiRenderer._draw_person")

    def _draw_label(self, canvas: Canvas, edge: PositionedEdge, cells: Sequence[Cell]) -> None:
        anchor = edge.label_anchor
        if anchor is None:
            if not cells:
                return
            middle = cells[len(cells) // 2]
            anchor = Point(middle[0] + 2 + display_width(edge.label) / 2, middle[1])
        x = to_cell(anchor.x) - display_width(edge.label) // 2
        canvas.draw_text(x, to_cell(anchor.y), edge.label, "edge_label")

    def _draw_cardinality(self, canvas: Canvas, text: str, end: Cell, toward: Cell) -> None:
        """Place a multiplicity beside a path end, off the line."""
        if toward[0] == end[0]:
            canvas.draw_text(end[0] + 2, end[1], text, "cardinality")
        else:
            canvas.draw_text(end[0], end[1] - 1, text, "cardinality")
