"""
archlayout - Layered layout and rendering for architecture diagrams

Parses C4, ArchiMate and UML class diagram text, lays it out with a layered
(Sugiyama-style) engine that keeps groups contiguous, and renders the result
as SVG or as ASCII/Unicode art.

Example:
    >>> from archlayout import DiagramGenerator
    >>> generator = DiagramGenerator()
    >>> print(generator.generate_ascii('''
    ... classDiagram
    ...   Animal <|-- Dog
    ... '''))

Debug Mode Example:
    >>> art = generator.generate_ascii(text, debug=True)
    >>> print(generator.get_trace().summary())
"""

__version__ = "0.1.0"

from .config import (  # noqa: E402
    ArchiMateConfig,
    AsciiConfig,
    C4Config,
    ClassDiagramConfig,
    FontConfig,
)
from .export import DiagramExporter  # noqa: E402
from .generator import DiagramGenerator  # noqa: E402
from .layout import LayeredLayout, LayoutError, StructuralError  # noqa: E402
from .models import (  # noqa: E402
    EdgeKind,
    GroupSpec,
    Margin,
    Point,
    PositionedEdge,
    PositionedGraph,
    PositionedGroup,
    PositionedNode,
    SizedEdge,
    SizedGraph,
    SizedNode,
    Spacing,
)
from .parser import ParseError, detect_diagram_type  # noqa: E402
from .positioning import center_to_top_left, layout_graph, top_left_to_center  # noqa: E402
from .theme import THEMES, ColorError, DiagramColors, resolve_colors  # noqa: E402
from .tracer import CharacterPlacement, PipelineStage, RenderTrace  # noqa: E402

__all__ = [
    # Main API
    "DiagramGenerator",
    "DiagramExporter",
    # Layout core
    "LayeredLayout",
    "LayoutError",
    "StructuralError",
    "layout_graph",
    "center_to_top_left",
    "top_left_to_center",
    # Models
    "Point",
    "EdgeKind",
    "SizedNode",
    "SizedEdge",
    "GroupSpec",
    "Spacing",
    "Margin",
    "SizedGraph",
    "PositionedNode",
    "PositionedEdge",
    "PositionedGroup",
    "PositionedGraph",
    # Parsing
    "ParseError",
    "detect_diagram_type",
    # Configuration
    "FontConfig",
    "C4Config",
    "ArchiMateConfig",
    "ClassDiagramConfig",
    "AsciiConfig",
    # Theme
    "THEMES",
    "DiagramColors",
    "ColorError",
    "resolve_colors",
    # Debug/Tracing
    "RenderTrace",
    "PipelineStage",
    "CharacterPlacement",
]
