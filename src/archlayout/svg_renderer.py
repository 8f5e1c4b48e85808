"""
SVG rendering of positioned diagrams using drawsvg.

Each diagram family has its own draw routine, but all of them share the same
drawing setup (canvas, background, optional title) and the same connector
primitives (polylines, arrowheads, diamonds, label pills). Colours come from
a ResolvedColors instance, so the output carries literal hex values only.
"""

import math
from typing import List, Optional, Sequence, Tuple

import drawsvg as draw

from .archimate import type_display_name
from .config import FontConfig
from .models import Point, PositionedEdge, PositionedGraph, PositionedGroup, PositionedNode
from .text_metrics import estimate_text_width
from .theme import DEFAULTS, ResolvedColors, color_mix, resolve_colors

FONT_FAMILY = "Inter, -apple-system, BlinkMacSystemFont, sans-serif"
MONO_FONT_FAMILY = "'JetBrains Mono', 'SF Mono', 'Fira Code', ui-monospace, monospace"

OUTER_STROKE = 1.0
INNER_STROKE = 0.75
CONNECTOR_STROKE = 0.75

TITLE_BAND = 40
TITLE_FONT_SIZE = 16
TITLE_FONT_WEIGHT = 700

# C4
C4_LINE_SPACING = 18
C4_LABEL_SIZE = 13
C4_LABEL_WEIGHT = 600
C4_TECH_SIZE = 10
C4_DESC_SIZE = 11
C4_BOUNDARY_LABEL_SIZE = 12
PERSON_HEAD_RADIUS = 14
PERSON_HEAD_OFFSET = 18
PERSON_BODY_TOP = 34

# ArchiMate
LAYER_COLORS = {
    "business": "#F0C040",
    "application": "#4488CC",
    "technology": "#44AA66",
    "strategy": "#CCB366",
    "motivation": "#AA77CC",
    "physical": "#66BB99",
    "implementation": "#CC6666",
}

# relationship type -> (dash pattern, start marker, end marker)
ARCHIMATE_STYLES = {
    "composition": (None, "diamond-filled", None),
    "aggregation": (None, "diamond-open", None),
    "assignment": (None, "circle", "arrow-filled"),
    "realization": ("6 4", None, "arrow-open"),
    "serving": (None, None, "arrow-open"),
    "access": ("2 3", None, "arrow-filled"),
    "influence": ("6 4", None, "arrow-open"),
    "triggering": (None, None, "arrow-filled"),
    "flow": ("6 4", None, "arrow-filled"),
    "specialization": (None, None, "triangle-open"),
    "association": (None, None, None),
}

# Class diagrams: relationship type -> marker drawn at the marker end
CLASS_MARKERS = {
    "inheritance": "triangle-open",
    "realization": "triangle-open",
    "composition": "diamond-filled",
    "aggregation": "diamond-open",
    "association": "arrow-open",
    "dependency": "arrow-open",
    "link": None,
}
CLASS_DASHED = {"dependency", "realization"}
CLASS_MEMBER_ROW = 20
CLASS_MEMBER_FONT_SIZE = 11
CLASS_NAME_FONT_SIZE = 13
CLASS_ANNOTATION_FONT_SIZE = 10

# marker -> (length along the line, width across it)
MARKER_SIZES = {
    "arrow-filled": (10, 8),
    "arrow-open": (8, 6),
    "triangle-open": (12, 10),
    "diamond-filled": (12, 10),
    "diamond-open": (12, 10),
    "circle": (8, 8),
}


def path_midpoint(points: Sequence[Point]) -> Point:
    """Point halfway along a polyline, measured by arc length."""
    if not points:
        return Point(0.0, 0.0)
    total = sum(
        math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(points, points[1:])
    )
    if total == 0:
        return points[0]

    half = total / 2
    walked = 0.0
    for a, b in zip(points, points[1:]):
        length = math.hypot(b.x - a.x, b.y - a.y)
        if walked + length >= half:
            t = (half - walked) / length if length > 0 else 0.0
            return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)
        walked += length
    return points[-1]


def _direction(tail: Point, tip: Point) -> Tuple[float, float]:
    """Unit vector from tail to tip; (0, 1) when the points coincide."""
    dx, dy = tip.x - tail.x, tip.y - tail.y
    length = math.hypot(dx, dy)
    if length == 0:
        return 0.0, 1.0
    return dx / length, dy / length


class SvgRenderer:
    """
    Draws positioned diagrams as SVG documents.

    Args:
        colors: Resolved theme colours. Defaults to the default palette.
        font_family: CSS font stack for all proportional text.
        transparent: Leave out the background rectangle.
    """

    def __init__(
        self,
        colors: Optional[ResolvedColors] = None,
        font_family: str = FONT_FAMILY,
        transparent: bool = False,
    ):
        self.colors = colors or resolve_colors(DEFAULTS)
        self.font_family = font_family
        self.transparent = transparent
        self.fonts = FontConfig()

    # ------------------------------------------------------------------
    # Drawing setup
    # ------------------------------------------------------------------

    def _start(
        self, graph: PositionedGraph, title: Optional[str]
    ) -> Tuple[draw.Drawing, draw.Group]:
        """Create the drawing and the group that holds the diagram body."""
        width = graph.width
        offset = 0
        if title:
            offset = TITLE_BAND
            width = max(
                width,
                estimate_text_width(title, TITLE_FONT_SIZE, TITLE_FONT_WEIGHT) + 2 * TITLE_BAND,
            )
        height = graph.height + offset

        d = draw.Drawing(width, height)
        if not self.transparent:
            d.append(draw.Rectangle(0, 0, width, height, fill=self.colors.bg))
        if title:
            d.append(
                draw.Text(
                    title,
                    TITLE_FONT_SIZE,
                    width / 2,
                    24,
                    fill=self.colors.text,
                    font_family=self.font_family,
                    font_weight=str(TITLE_FONT_WEIGHT),
                    text_anchor="middle",
                    dominant_baseline="middle",
                )
            )

        body = draw.Group(transform=f"translate(0, {offset})") if offset else draw.Group()
        d.append(body)
        return d, body

    def _text(
        self,
        parent: draw.Group,
        text: str,
        size: float,
        x: float,
        y: float,
        fill: str,
        weight: int = 400,
        anchor: str = "middle",
        **kwargs,
    ) -> None:
        font_family = kwargs.pop("font_family", self.font_family)
        parent.append(
            draw.Text(
                text,
                size,
                x,
                y,
                fill=fill,
                font_family=font_family,
                font_weight=str(weight),
                text_anchor=anchor,
                dominant_baseline="middle",
                **kwargs,
            )
        )

    # ------------------------------------------------------------------
    # Connector primitives
    # ------------------------------------------------------------------

    def _polyline(
        self, parent: draw.Group, points: Sequence[Point], dash: Optional[str] = None
    ) -> None:
        coords: List[float] = []
        for point in points:
            coords.extend((point.x, point.y))
        attrs = {}
        if dash:
            attrs["stroke_dasharray"] = dash
        parent.append(
            draw.Lines(
                *coords,
                close=False,
                fill="none",
                stroke=self.colors.line,
                stroke_width=CONNECTOR_STROKE,
                **attrs,
            )
        )

    def _marker(
        self, parent: draw.Group, marker: Optional[str], tail: Point, tip: Point
    ) -> None:
        """
        Draw an end marker whose tip touches `tip`, oriented from `tail`.

        Markers: arrow-filled, arrow-open, triangle-open, diamond-filled,
        diamond-open and circle.
        """
        if marker is None:
            return
        length, width = MARKER_SIZES[marker]
        ux, uy = _direction(tail, tip)
        px, py = -uy, ux
        half = width / 2

        if marker == "circle":
            radius = width / 2 - 1
            parent.append(
                draw.Circle(
                    tip.x - ux * (radius + 1),
                    tip.y - uy * (radius + 1),
                    radius,
                    fill=self.colors.line,
                )
            )
            return

        if marker.startswith("diamond"):
            mid_x, mid_y = tip.x - ux * length / 2, tip.y - uy * length / 2
            outline = (
                tip.x, tip.y,
                mid_x + px * half, mid_y + py * half,
                tip.x - ux * length, tip.y - uy * length,
                mid_x - px * half, mid_y - py * half,
            )
            filled = marker == "diamond-filled"
            parent.append(
                draw.Lines(
                    *outline,
                    close=True,
                    fill=self.colors.line if filled else self.colors.bg,
                    stroke=self.colors.line,
                    stroke_width=INNER_STROKE,
                )
            )
            return

        base_x, base_y = tip.x - ux * length, tip.y - uy * length
        left = (base_x + px * half, base_y + py * half)
        right = (base_x - px * half, base_y - py * half)

        if marker == "arrow-open":
            parent.append(
                draw.Lines(
                    *left, tip.x, tip.y, *right,
                    close=False,
                    fill="none",
                    stroke=self.colors.line,
                    stroke_width=1.25,
                )
            )
        elif marker == "triangle-open":
            parent.append(
                draw.Lines(
                    *left, tip.x, tip.y, *right,
                    close=True,
                    fill=self.colors.bg,
                    stroke=self.colors.line,
                    stroke_width=OUTER_STROKE,
                )
            )
        else:
            parent.append(
                draw.Lines(
                    *left, tip.x, tip.y, *right,
                    close=True,
                    fill=self.colors.arrow,
                    stroke="none",
                )
            )

    def _end_markers(
        self,
        parent: draw.Group,
        points: Sequence[Point],
        start: Optional[str],
        end: Optional[str],
    ) -> None:
        if len(points) < 2:
            return
        self._marker(parent, start, points[1], points[0])
        self._marker(parent, end, points[-2], points[-1])

    def _label_pill(
        self, parent: draw.Group, text: str, at: Point, height: float = 18
    ) -> None:
        width = estimate_text_width(
            text, self.fonts.edge_label_size, self.fonts.edge_label_weight
        ) + 12
        parent.append(
            draw.Rectangle(
                at.x - width / 2,
                at.y - height / 2,
                width,
                height,
                rx=2,
                ry=2,
                fill=self.colors.bg,
                stroke=self.colors.inner_stroke,
                stroke_width=0.5,
            )
        )

    @staticmethod
    def _label_position(edge: PositionedEdge) -> Point:
        return edge.label_anchor or path_midpoint(edge.points)

    # ------------------------------------------------------------------
    # C4
    # ------------------------------------------------------------------

    def render_c4(self, graph: PositionedGraph, title: Optional[str] = None) -> str:
        """
        Render a positioned C4 diagram.

        Boundaries are drawn first, then elements, then relationships so that
        arrowheads and label pills stay visible.

        Args:
            graph: Output of layout_c4().
            title: Optional diagram title drawn above the diagram.

        Returns:
            SVG document as a string.
        """
        d, body = self._start(graph, title)
        for group in graph.iter_groups():
            self._c4_boundary(body, group)
        for node in graph.nodes:
            if node.kind == "Person":
                self._c4_person(body, node)
            else:
                self._c4_element(body, node)
        for edge in graph.edges:
            self._c4_relationship(body, edge)
        return d.as_svg()

    def _c4_boundary(self, parent: draw.Group, group: PositionedGroup) -> None:
        parent.append(
            draw.Rectangle(
                group.x,
                group.y,
                group.width,
                group.height,
                rx=2,
                ry=2,
                fill="none",
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
                stroke_dasharray="8 4",
            )
        )
        kind = (group.kind or "Boundary").replace("_", " ")
        self._text(
            parent, f"[{kind}]", C4_TECH_SIZE, group.x + 10, group.y + 16,
            self.colors.text_muted, anchor="start", font_style="italic",
        )
        self._text(
            parent, group.label, C4_BOUNDARY_LABEL_SIZE, group.x + 10, group.y + 30,
            self.colors.text_sec, weight=600, anchor="start",
        )

    def _c4_lines(self, element) -> List[Tuple[str, float, int, bool, str]]:
        """(text, size, weight, italic, colour) for each text line of an element."""
        lines = [(element.label, C4_LABEL_SIZE, C4_LABEL_WEIGHT, False, self.colors.text)]
        if element.technology and element.kind != "Person":
            lines.append(
                (f"[{element.technology}]", C4_TECH_SIZE, 400, True, self.colors.text_muted)
            )
        if element.description:
            lines.append((element.description, C4_DESC_SIZE, 400, False, self.colors.text_sec))
        return lines

    def _c4_text_block(
        self, parent: draw.Group, element, cx: float, top: float, height: float
    ) -> None:
        lines = self._c4_lines(element)
        y = top + (height - len(lines) * C4_LINE_SPACING) / 2 + 12
        for text, size, weight, italic, fill in lines:
            extra = {"font_style": "italic"} if italic else {}
            self._text(parent, text, size, cx, y, fill, weight=weight, **extra)
            y += C4_LINE_SPACING

    def _c4_fill(self, node: PositionedNode) -> str:
        element = node.data.get("element")
        external = element is not None and element.external
        return self.colors.text_muted if external else self.colors.node_fill

    def _c4_element(self, parent: draw.Group, node: PositionedNode) -> None:
        parent.append(
            draw.Rectangle(
                node.x,
                node.y,
                node.width,
                node.height,
                rx=6,
                ry=6,
                fill=self._c4_fill(node),
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
            )
        )
        element = node.data.get("element")
        if element is not None:
            self._c4_text_block(parent, element, node.center.x, node.y, node.height)

    def _c4_person(self, parent: draw.Group, node: PositionedNode) -> None:
        fill = self._c4_fill(node)
        cx = node.center.x
        parent.append(
            draw.Circle(
                cx,
                node.y + PERSON_HEAD_OFFSET,
                PERSON_HEAD_RADIUS,
                fill=fill,
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
            )
        )
        body_top = node.y + PERSON_BODY_TOP
        body_height = node.height - PERSON_BODY_TOP
        parent.append(
            draw.Rectangle(
                node.x,
                body_top,
                node.width,
                body_height,
                rx=6,
                ry=6,
                fill=fill,
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
            )
        )
        element = node.data.get("element")
        if element is not None:
            self._c4_text_block(parent, element, cx, body_top, body_height)

    def _c4_relationship(self, parent: draw.Group, edge: PositionedEdge) -> None:
        if len(edge.points) < 2:
            return
        relationship = edge.data.get("relationship")
        self._polyline(parent, edge.points)
        start = "arrow-filled" if relationship is not None and relationship.bidirectional else None
        self._end_markers(parent, edge.points, start, "arrow-filled")

        if relationship is None or not relationship.label:
            return
        at = self._label_position(edge)
        if relationship.technology:
            tech = f"[{relationship.technology}]"
            self._label_pill(parent, f"{relationship.label} {tech}", at, height=28)
            self._text(
                parent, relationship.label, self.fonts.edge_label_size, at.x, at.y - 5,
                self.colors.text_muted, weight=self.fonts.edge_label_weight,
            )
            self._text(
                parent, tech, C4_TECH_SIZE, at.x, at.y + 8,
                self.colors.text_faint, font_style="italic",
            )
        else:
            self._label_pill(parent, relationship.label, at)
            self._text(
                parent, relationship.label, self.fonts.edge_label_size, at.x, at.y,
                self.colors.text_muted, weight=self.fonts.edge_label_weight,
            )

    # ------------------------------------------------------------------
    # ArchiMate
    # ------------------------------------------------------------------

    def render_archimate(self, graph: PositionedGraph, title: Optional[str] = None) -> str:
        """Render a positioned ArchiMate layered view as an SVG string."""
        d, body = self._start(graph, title)
        for group in graph.iter_groups():
            self._archimate_band(body, group)
        for node in graph.nodes:
            self._archimate_element(body, node)
        for edge in graph.edges:
            self._archimate_relationship(body, edge)
        return d.as_svg()

    def _archimate_band(self, parent: draw.Group, group: PositionedGroup) -> None:
        layer_color = LAYER_COLORS.get(group.kind or "", self.colors.line)
        parent.append(
            draw.Rectangle(
                group.x,
                group.y,
                group.width,
                group.height,
                rx=4,
                ry=4,
                fill=color_mix(layer_color, self.colors.bg, 12),
                stroke=color_mix(layer_color, self.colors.node_stroke, 30),
                stroke_width=OUTER_STROKE,
            )
        )
        self._text(
            parent, group.label, 11, group.x + 8, group.y + 16,
            self.colors.text_muted, weight=600, anchor="start",
        )

    def _archimate_element(self, parent: draw.Group, node: PositionedNode) -> None:
        parent.append(
            draw.Rectangle(
                node.x,
                node.y,
                node.width,
                node.height,
                rx=4,
                ry=4,
                fill=self.colors.node_fill,
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
            )
        )
        self._text(
            parent, node.label or node.id, self.fonts.node_label_size,
            node.center.x, node.center.y + 2, self.colors.text,
            weight=self.fonts.node_label_weight,
        )
        if node.kind:
            self._text(
                parent, type_display_name(node.kind), 9, node.right - 6, node.y + 12,
                self.colors.text_faint, anchor="end",
            )

    def _archimate_relationship(self, parent: draw.Group, edge: PositionedEdge) -> None:
        if len(edge.points) < 2:
            return
        relationship = edge.data.get("relationship")
        rel_type = relationship.type if relationship is not None else "association"
        dash, start, end = ARCHIMATE_STYLES.get(rel_type, ARCHIMATE_STYLES["association"])
        self._polyline(parent, edge.points, dash)
        self._end_markers(parent, edge.points, start, end)

        if edge.label:
            at = self._label_position(edge)
            self._label_pill(parent, edge.label, at)
            self._text(
                parent, edge.label, self.fonts.edge_label_size, at.x, at.y,
                self.colors.text_muted, weight=self.fonts.edge_label_weight,
            )

    # ------------------------------------------------------------------
    # Class diagrams
    # ------------------------------------------------------------------

    def render_class(self, graph: PositionedGraph, title: Optional[str] = None) -> str:
        """Render a positioned class diagram as an SVG string."""
        d, body = self._start(graph, title)
        for group in graph.iter_groups():
            self._namespace(body, group)
        for node in graph.nodes:
            self._class_box(body, node)
        for edge in graph.edges:
            self._class_relationship(body, edge)
        return d.as_svg()

    def _namespace(self, parent: draw.Group, group: PositionedGroup) -> None:
        parent.append(
            draw.Rectangle(
                group.x,
                group.y,
                group.width,
                group.height,
                rx=2,
                ry=2,
                fill="none",
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
                stroke_dasharray="8 4",
            )
        )
        self._text(
            parent, group.label, self.fonts.group_header_size, group.x + 10, group.y + 14,
            self.colors.text_sec, weight=self.fonts.group_header_weight, anchor="start",
        )

    def _class_box(self, parent: draw.Group, node: PositionedNode) -> None:
        cls = node.data.get("class")
        header = node.data.get("header_height", node.height)
        attr_height = node.data.get("attr_height", 0)

        parent.append(
            draw.Rectangle(
                node.x, node.y, node.width, node.height,
                fill=self.colors.node_fill,
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
            )
        )
        parent.append(
            draw.Rectangle(
                node.x, node.y, node.width, header,
                fill=self.colors.group_header,
                stroke=self.colors.node_stroke,
                stroke_width=OUTER_STROKE,
            )
        )

        cx = node.center.x
        name_y = node.y + header / 2
        if cls is not None and cls.annotation:
            self._text(
                parent, f"<<{cls.annotation}>>", CLASS_ANNOTATION_FONT_SIZE, cx, node.y + 12,
                self.colors.text_muted, weight=500, font_style="italic",
            )
            name_y += 6
        self._text(
            parent, node.label or node.id, CLASS_NAME_FONT_SIZE, cx, name_y,
            self.colors.text, weight=700,
        )

        divider_y = node.y + header + attr_height
        parent.append(
            draw.Line(
                node.x, divider_y, node.right, divider_y,
                stroke=self.colors.node_stroke,
                stroke_width=INNER_STROKE,
            )
        )
        if cls is None:
            return
        self._members(parent, cls.attributes, node.x + 8, node.y + header)
        self._members(parent, cls.methods, node.x + 8, divider_y)

    def _members(self, parent: draw.Group, members, x: float, top: float) -> None:
        for index, member in enumerate(members):
            extra = {}
            if member.is_abstract:
                extra["font_style"] = "italic"
            if member.is_static:
                extra["text_decoration"] = "underline"
            self._text(
                parent,
                member.display_text,
                CLASS_MEMBER_FONT_SIZE,
                x,
                top + 4 + index * CLASS_MEMBER_ROW + 10,
                self.colors.text_sec,
                anchor="start",
                font_family=MONO_FONT_FAMILY,
                **extra,
            )

    def _class_relationship(self, parent: draw.Group, edge: PositionedEdge) -> None:
        points = edge.points
        if len(points) < 2:
            return
        relationship = edge.data.get("relationship")
        rel_type = relationship.type if relationship is not None else "link"
        self._polyline(parent, points, "6 4" if rel_type in CLASS_DASHED else None)

        marker = CLASS_MARKERS.get(rel_type)
        if relationship is not None and relationship.marker_at == "from":
            self._end_markers(parent, points, marker, None)
        else:
            self._end_markers(parent, points, None, marker)

        if edge.label:
            at = edge.label_anchor or points[len(points) // 2]
            self._text(
                parent, edge.label, self.fonts.edge_label_size, at.x, at.y - 8,
                self.colors.text_muted,
            )
        if relationship is None:
            return
        if relationship.source_cardinality:
            self._cardinality(parent, relationship.source_cardinality, points[0], points[1])
        if relationship.target_cardinality:
            self._cardinality(parent, relationship.target_cardinality, points[-1], points[-2])

    def _cardinality(self, parent: draw.Group, text: str, at: Point, toward: Point) -> None:
        dx, dy = toward.x - at.x, toward.y - at.y
        if abs(dx) > abs(dy):
            offset = (14 if dx > 0 else -14, -10)
        else:
            offset = (-14, 14 if dy > 0 else -14)
        self._text(
            parent, text, self.fonts.edge_label_size, at.x + offset[0], at.y + offset[1],
            self.colors.text_muted,
        )

