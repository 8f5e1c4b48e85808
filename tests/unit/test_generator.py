"""Tests for the DiagramGenerator pipeline."""

import pytest

from archlayout import DiagramGenerator, DiagramColors, ParseError
from archlayout.config import AsciiConfig
from archlayout.models import PositionedGraph
from archlayout.theme import ColorError

SIBLINGS = "classDiagram\nA <|-- B\nA <|-- C"


def widest(art):
    return max(len(line) for line in art.split("\n"))


class TestParse:
    """Tests for parse and layout."""

    @pytest.mark.parametrize(
        "fixture, expected",
        [("c4_input", "c4"), ("archimate_input", "archimate"), ("class_input", "class")],
    )
    def test_detects_family(self, generator, request, fixture, expected):
        """The header picks the parser."""
        diagram_type, _ = generator.parse(request.getfixturevalue(fixture))
        assert diagram_type == expected

    def test_unsupported_header(self, generator):
        """Unknown headers raise ParseError."""
        with pytest.raises(ParseError):
            generator.parse("graph TD\nA --> B")

    def test_empty_input(self, generator):
        """Empty input raises ParseError."""
        with pytest.raises(ParseError):
            generator.generate_ascii("   \n")

    def test_layout(self, generator, class_input):
        """layout returns pixel geometry."""
        graph = generator.layout(class_input)
        assert isinstance(graph, PositionedGraph)
        assert {n.id for n in graph.nodes} == {"Animal", "Dog", "Owner", "Keeper"}


class TestGenerateSvg:
    """Tests for generate_svg."""

    def test_c4_title(self, generator, c4_input):
        """C4 titles are drawn in the SVG."""
        svg = generator.generate_svg(c4_input)
        assert "Internet Banking" in svg
        assert "translate(0, 40)" in svg

    def test_colors(self, generator, class_input):
        """A custom palette reaches the output."""
        svg = generator.generate_svg(class_input, colors=DiagramColors(bg="#000000", fg="#ffffff"))
        assert "#000000" in svg

    def test_bad_colour(self, generator, class_input):
        """Non-hex colours raise ColorError."""
        with pytest.raises(ColorError):
            generator.generate_svg(class_input, colors=DiagramColors(bg="white"))

    def test_debug_trace(self, generator, archimate_input):
        """debug=True records parse, layout and render stages."""
        generator.generate_svg(archimate_input, debug=True)
        trace = generator.get_trace()
        assert trace.stage_names() == ["parse", "layout", "render"]
        assert trace.diagram_type == "archimate"
        assert trace.output_format == "svg"
        assert trace.get_stage("parse").data["elements"] == 4
        assert len(trace.get_stage("layout").data["nodes"]) == 4

    def test_no_trace_without_debug(self, generator, class_input):
        """The trace is cleared by a non-debug call."""
        generator.generate_svg(class_input, debug=True)
        generator.generate_svg(class_input)
        assert generator.get_trace() is None


class TestGenerateAscii:
    """Tests for generate_ascii."""

    def test_c4_title_prepended(self, generator, c4_input):
        """C4 titles sit above the art, separated by a blank line."""
        art = generator.generate_ascii(c4_input)
        assert art.startswith("Internet Banking\n\n")

    def test_ascii_override(self, generator, class_input):
        """use_ascii switches to the plain character set."""
        art = generator.generate_ascii(class_input, use_ascii=True)
        assert "┌" not in art
        assert "+" in art

    def test_configured_ascii(self, class_input):
        """The configured character set is the default."""
        art = DiagramGenerator(ascii_config=AsciiConfig(use_ascii=True)).generate_ascii(class_input)
        assert "┌" not in art

    def test_padding_x(self, generator):
        """Wider horizontal padding widens the art."""
        narrow = generator.generate_ascii(SIBLINGS, padding_x=2)
        wide = generator.generate_ascii(SIBLINGS, padding_x=12)
        assert widest(wide) > widest(narrow)

    def test_padding_y(self, generator):
        """Taller vertical padding adds rows."""
        short = generator.generate_ascii(SIBLINGS, padding_y=2)
        tall = generator.generate_ascii(SIBLINGS, padding_y=6)
        assert tall.count("\n") > short.count("\n")

    def test_debug_trace(self, generator, class_input):
        """ASCII traces include every drawing pass and placements."""
        generator.generate_ascii(class_input, debug=True)
        trace = generator.get_trace()
        assert trace.stage_names() == [
            "parse",
            "cell_layout",
            "groups_drawn",
            "boxes_drawn",
            "edges_drawn",
            "labels_drawn",
        ]
        assert trace.output_format == "ascii"
        assert trace.get_canvas_at_stage("labels_drawn")
        assert trace.character_placements


class TestSave:
    """Tests for the save helpers."""

    def test_save_txt(self, generator, class_input, tmp_path):
        """save_txt writes the text art."""
        path = tmp_path / "out.txt"
        generator.save_txt(class_input, str(path))
        assert path.read_text(encoding="utf-8") == generator.generate_ascii(class_input)

    def test_save_svg(self, generator, archimate_input, tmp_path):
        """save_svg writes the SVG document."""
        path = tmp_path / "out.svg"
        generator.save_svg(archimate_input, str(path))
        assert "<svg" in path.read_text(encoding="utf-8")

    def test_save_png(self, generator, class_input, tmp_path):
        """save_png writes a PNG file."""
        path = tmp_path / "out.png"
        generator.save_png(class_input, str(path), scale=1)
        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
