"""Tests for SVG rendering."""

import pytest

from archlayout.archimate import layout_archimate, parse_archimate
from archlayout.c4 import layout_c4, parse_c4
from archlayout.class_diagram import layout_class_diagram, parse_class_diagram
from archlayout.models import Point, PositionedGraph
from archlayout.svg_renderer import MARKER_SIZES, SvgRenderer, path_midpoint
from archlayout.theme import THEMES, resolve_colors


@pytest.fixture
def renderer():
    return SvgRenderer()


class TestPathMidpoint:
    """Tests for path_midpoint."""

    def test_arc_length_midpoint(self):
        """The midpoint is measured along the path."""
        points = [Point(0, 0), Point(10, 0), Point(10, 10)]
        assert path_midpoint(points) == Point(10, 0)

    def test_straight(self):
        """A straight segment has its midpoint in the middle."""
        assert path_midpoint([Point(0, 0), Point(0, 30)]) == Point(0, 15)

    def test_degenerate(self):
        """Empty and zero-length paths do not fail."""
        assert path_midpoint([]) == Point(0, 0)
        assert path_midpoint([Point(3, 4), Point(3, 4)]) == Point(3, 4)


class TestDocument:
    """Tests shared by every family."""

    def test_empty_graph(self, renderer):
        """An empty graph still produces an SVG document."""
        svg = renderer.render_class(PositionedGraph())
        assert "<svg" in svg
        assert svg.rstrip().endswith("</svg>")

    def test_background(self, renderer, class_input):
        """The background rectangle uses the theme background."""
        svg = renderer.render_class(layout_class_diagram(parse_class_diagram(class_input)))
        assert 'x="0" y="0"' in svg
        assert "#FFFFFF" in svg

    def test_transparent(self, class_input):
        """Transparent output has no background rectangle."""
        svg = SvgRenderer(transparent=True).render_class(
            layout_class_diagram(parse_class_diagram(class_input))
        )
        assert 'x="0" y="0"' not in svg

    def test_theme_colours(self, class_input):
        """Theme colours appear as literal hex values."""
        colors = resolve_colors(THEMES["tokyo-night"])
        svg = SvgRenderer(colors).render_class(layout_class_diagram(parse_class_diagram(class_input)))
        assert "#1a1b26" in svg
        assert "#3d59a1" in svg
        assert "var(" not in svg

    def test_title_band(self, renderer, c4_input):
        """A title shifts the body down by the title band."""
        graph = layout_c4(parse_c4(c4_input))
        svg = renderer.render_c4(graph, title="Internet Banking")
        assert "Internet Banking" in svg
        assert "translate(0, 40)" in svg

    def test_custom_font(self, c4_input):
        """The font family is configurable."""
        svg = SvgRenderer(font_family="Courier").render_c4(layout_c4(parse_c4(c4_input)))
        assert "Courier" in svg

    def test_marker_sizes_known(self):
        """Every marker has a size."""
        assert set(MARKER_SIZES) == {
            "arrow-filled",
            "arrow-open",
            "triangle-open",
            "diamond-filled",
            "diamond-open",
            "circle",
        }


class TestC4Svg:
    """Tests for render_c4."""

    def test_content(self, renderer, c4_input):
        """Elements, boundary and relationship labels are drawn."""
        svg = renderer.render_c4(layout_c4(parse_c4(c4_input)))
        for text in ("Customer", "A bank customer", "[Python]", "Serves JSON", "Bank", "Uses", "[HTTPS]"):
            assert text in svg
        assert "[System Boundary]" in svg
        assert 'stroke-dasharray="8 4"' in svg

    def test_person_has_head(self, renderer):
        """Persons are drawn with a circular head."""
        svg = renderer.render_c4(layout_c4(parse_c4('C4Context\nPerson(p, "P")')))
        assert "<circle" in svg


class TestArchimateSvg:
    """Tests for render_archimate."""

    def test_content(self, renderer, archimate_input):
        """Bands, elements and type labels are drawn."""
        svg = renderer.render_archimate(layout_archimate(parse_archimate(archimate_input)))
        for text in ("Business", "Application", "Technology", "Online Banking", "Web App", "Service"):
            assert text in svg

    def test_realization_is_dashed(self, renderer, archimate_input):
        """Realization uses the long dash pattern."""
        svg = renderer.render_archimate(layout_archimate(parse_archimate(archimate_input)))
        assert 'stroke-dasharray="6 4"' in svg

    def test_access_dash(self, renderer):
        """Access uses the short dash pattern."""
        diagram = parse_archimate(
            "archimate-layered\n  application:\n    component App\n    dataObject Data\n"
            "  App -->|access| Data"
        )
        svg = renderer.render_archimate(layout_archimate(diagram))
        assert 'stroke-dasharray="2 3"' in svg


class TestClassSvg:
    """Tests for render_class."""

    def test_content(self, renderer, class_input):
        """Names, members, labels and cardinalities are drawn."""
        svg = renderer.render_class(layout_class_diagram(parse_class_diagram(class_input)))
        for text in ("Animal", "Dog", "Owner", "Keeper", "Zoo", "+ name: String", "extends", "many"):
            assert text in svg
        assert "abstract" in svg

    def test_abstract_member_italic(self, renderer, class_input):
        """Abstract members are italic."""
        svg = renderer.render_class(layout_class_diagram(parse_class_diagram(class_input)))
        assert 'font-style="italic"' in svg

    def test_static_member_underlined(self, renderer):
        """Static members are underlined."""
        diagram = parse_class_diagram("classDiagram\nclass A {\n+int count$\n}")
        svg = renderer.render_class(layout_class_diagram(diagram))
        assert 'text-decoration="underline"' in svg

    def test_dependency_is_dashed(self, renderer):
        """Dependencies are drawn dashed."""
        svg = renderer.render_class(
            layout_class_diagram(parse_class_diagram("classDiagram\nA ..> B"))
        )
        assert 'stroke-dasharray="6 4"' in svg
