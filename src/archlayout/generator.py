"""
Main diagram generator module.

Combines parsing, sizing, layout and rendering to turn diagram text into SVG
documents or text art.
"""

import dataclasses
import logging
from typing import Any, Optional, Tuple

from .archimate import ArchiMateDiagram, layout_archimate, parse_archimate
from .ascii_renderer import AsciiRenderer
from .c4 import C4Diagram, layout_c4, parse_c4
from .class_diagram import ClassDiagram, layout_class_diagram, parse_class_diagram
from .config import ArchiMateConfig, AsciiConfig, C4Config, ClassDiagramConfig
from .export import DiagramExporter
from .layout import LayeredLayout
from .models import PositionedGraph
from .parser import ARCHIMATE, C4, CLASS, detect_diagram_type
from .svg_renderer import FONT_FAMILY, SvgRenderer
from .theme import DEFAULTS, DiagramColors, resolve_colors
from .tracer import RenderTrace

logger = logging.getLogger(__name__)

PARSERS = {
    C4: parse_c4,
    ARCHIMATE: parse_archimate,
    CLASS: parse_class_diagram,
}


def diagram_summary(diagram: Any) -> dict:
    """Element and relationship counts of a parsed diagram, for traces."""
    if isinstance(diagram, C4Diagram):
        return {
            "type": diagram.diagram_type,
            "title": diagram.title,
            "elements": len(diagram.elements),
            "relationships": len(diagram.relationships),
            "boundaries": len(diagram.boundaries),
        }
    if isinstance(diagram, ArchiMateDiagram):
        return {
            "layers": diagram.present_layers(),
            "elements": len(diagram.elements),
            "relationships": len(diagram.relationships),
        }
    if isinstance(diagram, ClassDiagram):
        return {
            "classes": len(diagram.classes),
            "relationships": len(diagram.relationships),
            "namespaces": len(diagram.namespaces),
        }
    return {}


class DiagramGenerator:
    """
    Generate diagrams from C4, ArchiMate or class diagram text.

    Example:
        >>> generator = DiagramGenerator()
        >>> svg = generator.generate_svg('''
        ... C4Context
        ... Person(user, "User")
        ... System(app, "App")
        ... Rel(user, app, "Uses")
        ... ''')
        >>> art = generator.generate_ascii("classDiagram\\nA <|-- B")
    """

    def __init__(
        self,
        c4_config: Optional[C4Config] = None,
        archimate_config: Optional[ArchiMateConfig] = None,
        class_config: Optional[ClassDiagramConfig] = None,
        ascii_config: Optional[AsciiConfig] = None,
        engine: Optional[LayeredLayout] = None,
        font: Optional[str] = None,
    ):
        """
        Initialize the diagram generator.

        Args:
            c4_config: Sizing and spacing for C4 diagrams.
            archimate_config: Sizing and spacing for ArchiMate views.
            class_config: Sizing and spacing for class diagrams.
            ascii_config: Cell spacing and character set for text art.
            engine: Layout engine shared by every call.
            font: Font name for PNG output (e.g. "Cascadia Code").
        """
        self.c4_config = c4_config or C4Config()
        self.archimate_config = archimate_config or ArchiMateConfig()
        self.class_config = class_config or ClassDiagramConfig()
        self.ascii_config = ascii_config or AsciiConfig()
        self.engine = engine or LayeredLayout()
        self.exporter = DiagramExporter(default_font=font)
        self._trace: Optional[RenderTrace] = None

    def parse(self, input_text: str) -> Tuple[str, Any]:
        """
        Detect the diagram family and parse the text.

        Returns:
            (diagram type, parsed diagram)

        Raises:
            ParseError: If the input is empty or its header is unsupported.
        """
        diagram_type = detect_diagram_type(input_text)
        diagram = PARSERS[diagram_type](input_text)
        logger.debug("Parsed %s diagram: %s", diagram_type, diagram_summary(diagram))
        return diagram_type, diagram

    def layout(self, input_text: str) -> PositionedGraph:
        """
        Parse and lay out diagram text in pixel units.

        Raises:
            ParseError: For unsupported input.
            LayoutError: If the layout core rejects the graph.
        """
        diagram_type, diagram = self.parse(input_text)
        return self._layout(diagram_type, diagram)

    def _layout(self, diagram_type: str, diagram: Any) -> PositionedGraph:
        if diagram_type == C4:
            graph = layout_c4(diagram, self.c4_config, self.engine)
        elif diagram_type == ARCHIMATE:
            graph = layout_archimate(diagram, self.archimate_config, self.engine)
        else:
            graph = layout_class_diagram(diagram, self.class_config, self.engine)
        logger.debug(
            "Laid out %d nodes and %d edges on a %.0fx%.0f canvas",
            len(graph.nodes),
            len(graph.edges),
            graph.width,
            graph.height,
        )
        return graph

    def _start_trace(self, input_text: str, output_format: str, debug: bool) -> None:
        self._trace = RenderTrace(input_text=input_text, output_format=output_format) if debug else None

    def generate_svg(
        self,
        input_text: str,
        colors: Optional[DiagramColors] = None,
        transparent: bool = False,
        font_family: str = FONT_FAMILY,
        debug: bool = False,
    ) -> str:
        """
        Generate an SVG document from diagram text.

        Args:
            input_text: Diagram source.
            colors: Theme palette; the default light palette when omitted.
            transparent: Leave out the background rectangle.
            font_family: CSS font stack for text.
            debug: Record a RenderTrace, available from get_trace().

        Returns:
            SVG document as a string.

        Raises:
            ParseError: For unsupported input.
            ColorError: For non-hex theme colours.
            LayoutError: If the layout core rejects the graph.
        """
        self._start_trace(input_text, "svg", debug)
        diagram_type, diagram = self.parse(input_text)
        if self._trace is not None:
            self._trace.diagram_type = diagram_type
            self._trace.add_stage("parse", diagram_summary(diagram))

        graph = self._layout(diagram_type, diagram)
        if self._trace is not None:
            self._trace.add_stage("layout", graph.to_dict())

        renderer = SvgRenderer(
            resolve_colors(colors or DEFAULTS),
            font_family=font_family,
            transparent=transparent,
        )
        if diagram_type == C4:
            svg = renderer.render_c4(graph, title=diagram.title)
        elif diagram_type == ARCHIMATE:
            svg = renderer.render_archimate(graph)
        else:
            svg = renderer.render_class(graph)

        if self._trace is not None:
            self._trace.add_stage("render", {"bytes": len(svg)})
        return svg

    def generate_ascii(
        self,
        input_text: str,
        use_ascii: Optional[bool] = None,
        padding_x: Optional[int] = None,
        padding_y: Optional[int] = None,
        debug: bool = False,
    ) -> str:
        """
        Generate text art from diagram text.

        Args:
            input_text: Diagram source.
            use_ascii: Plain ASCII instead of Unicode box drawing; defaults
                to the configured choice.
            padding_x: Horizontal gap between boxes, in cells.
            padding_y: Vertical gap between ranks, in cells.
            debug: Record a RenderTrace including every character placement.

        Returns:
            The diagram as a multi-line string.
        """
        self._start_trace(input_text, "ascii", debug)
        config = self.ascii_config
        overrides = {
            key: value
            for key, value in (
                ("use_ascii", use_ascii),
                ("padding_x", padding_x),
                ("padding_y", padding_y),
            )
            if value is not None
        }
        if overrides:
            config = dataclasses.replace(config, **overrides)

        diagram_type, diagram = self.parse(input_text)
        if self._trace is not None:
            self._trace.diagram_type = diagram_type
            self._trace.add_stage("parse", diagram_summary(diagram))

        renderer = AsciiRenderer(config, self.engine, trace=self._trace)
        if diagram_type == C4:
            art = renderer.render_c4(diagram)
            if diagram.title:
                art = f"{diagram.title}\n\n{art}" if art else diagram.title
        elif diagram_type == ARCHIMATE:
            art = renderer.render_archimate(diagram)
        else:
            art = renderer.render_class(diagram)

        logger.debug("Rendered %d rows of text art", art.count("\n") + 1 if art else 0)
        return art

    def get_trace(self) -> Optional[RenderTrace]:
        """Trace of the last generate call made with debug=True, else None."""
        return self._trace

    def save_txt(self, input_text: str, filename: str, **kwargs) -> None:
        """Generate text art and save it to a text file."""
        self.exporter.save_txt(self.generate_ascii(input_text, **kwargs), filename)

    def save_svg(self, input_text: str, filename: str, **kwargs) -> None:
        """Generate an SVG document and save it to a file."""
        self.exporter.save_svg(self.generate_svg(input_text, **kwargs), filename)

    def save_png(
        self,
        input_text: str,
        filename: str,
        font_size: int = 16,
        bg_color: str = "#FFFFFF",
        fg_color: str = "#000000",
        padding: int = 20,
        font: Optional[str] = None,
        scale: int = 2,
        use_ascii: Optional[bool] = None,
    ) -> None:
        """
        Generate text art and save it as a PNG image.

        Example:
            >>> generator = DiagramGenerator(font="Cascadia Code")
            >>> generator.save_png(text, "diagram.png", font_size=24)
        """
        art = self.generate_ascii(input_text, use_ascii=use_ascii)
        self.exporter.save_png(
            art,
            filename,
            font_size=font_size,
            bg_color=bg_color,
            fg_color=fg_color,
            padding=padding,
            font=font,
            scale=scale,
        )
