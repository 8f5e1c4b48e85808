"""
Tests for the tracer module.

These tests cover the debug records captured while a diagram moves
through the parse, layout and drawing stages.
"""

from archlayout.renderer import Canvas
from archlayout.tracer import CharacterPlacement, PipelineStage, RenderTrace


class TestCharacterPlacement:
    """Tests for CharacterPlacement dataclass."""

    def test_str_new_placement(self):
        """A write to a blank cell shows only the new character."""
        placement = CharacterPlacement(10, 5, "│", " ", "line", "LineRenderer.draw_path")
        assert placement.is_overwrite is False
        assert str(placement) == "(10,5) '│' [line] LineRenderer.draw_path"

    def test_str_overwrite(self):
        """An overwrite shows the change."""
        placement = CharacterPlacement(10, 5, "┼", "│", "junction", "Canvas.connect")
        assert placement.is_overwrite is True
        assert "'│' -> '┼'" in str(placement)


class TestPipelineStage:
    """Tests for PipelineStage dataclass."""

    def test_str_shortens_long_values(self):
        """Long data values are shortened."""
        stage = PipelineStage("parse", {"input": "word " * 60})
        result = str(stage)
        assert result.startswith("[parse]")
        assert result.endswith("...")
        assert len(result.split("\n")[1]) < 120

    def test_str_with_canvas(self):
        """Canvas previews are limited to the first rows."""
        stage = PipelineStage("boxes_drawn", {}, [f"row{i}" for i in range(20)])
        result = str(stage)
        assert "15 of 20 rows" in result
        assert "|row14|" in result
        assert "|row15|" not in result


class TestRenderTrace:
    """Tests for RenderTrace."""

    def test_add_stage_copies_data(self):
        """Stage data is copied, so later changes do not leak in."""
        trace = RenderTrace()
        data = {"nodes": 1}
        trace.add_stage("layout", data)
        data["nodes"] = 2
        assert trace.get_stage("layout").data == {"nodes": 1}

    def test_canvas_snapshot(self):
        """Passing a canvas records its rendered rows."""
        trace = RenderTrace()
        canvas = Canvas(4, 2)
        canvas.draw_text(0, 0, "ab")
        trace.add_stage("boxes_drawn", {}, canvas)
        assert trace.get_canvas_at_stage("boxes_drawn") == ["ab"]

    def test_missing_stage(self):
        """Unknown stages and stages without a canvas return None."""
        trace = RenderTrace()
        trace.add_stage("parse", {})
        assert trace.get_stage("render") is None
        assert trace.get_canvas_at_stage("parse") is None

    def test_stage_names(self):
        """Stage names keep their recording order."""
        trace = RenderTrace()
        for name in ("parse", "layout", "render"):
            trace.add_stage(name, {})
        assert trace.stage_names() == ["parse", "layout", "render"]

    def test_placement_queries(self):
        """Placements can be filtered by cell, junctions and reason."""
        trace = RenderTrace()
        trace.add_placement(1, 1, "─", " ", "line", "a")
        trace.add_placement(1, 1, "┼", "─", "junction", "b")
        trace.add_placement(2, 1, "─", " ", "line", "a")
        assert len(trace.get_placements_at(1, 1)) == 2
        assert [p.char for p in trace.get_junctions()] == ["┼"]
        assert trace.reason_counts() == {"line": 2, "junction": 1}

    def test_summary(self):
        """The summary names the family, stages and placement counts."""
        trace = RenderTrace(input_text="classDiagram", diagram_type="class", output_format="ascii")
        trace.add_stage("parse", {})
        canvas = Canvas(2, 1)
        canvas.draw_text(0, 0, "x")
        trace.add_stage("boxes_drawn", {}, canvas)
        trace.add_placement(0, 0, "A", " ", "text", "Canvas.draw_text")
        summary = trace.summary()
        assert summary.startswith("Render trace: class diagram -> ascii")
        assert "Stages (2): parse, boxes_drawn*" in summary
        assert "Placements: 1 (junctions: 0)" in summary
        assert "text" in summary

    def test_dump_to_file(self, tmp_path):
        """The full dump is written as UTF-8."""
        trace = RenderTrace()
        trace.add_stage("layout", {"width": 10})
        trace.add_placement(0, 0, "┌", " ", "frame", "BoxRenderer.draw_frame")
        path = tmp_path / "trace.txt"
        trace.dump_to_file(str(path))
        content = path.read_text(encoding="utf-8")
        assert "[layout]" in content
        assert "width = 10" in content
        assert "'┌'" in content
