"""
Debug tracing for the diagram pipeline.

With debug=True the generator keeps a RenderTrace of the last call: one
PipelineStage per step (parse, layout or cell_layout, then render or the
individual drawing passes of the text renderer) and, for text art, every
character written to the canvas.

Usage:
    >>> generator = DiagramGenerator()
    >>> art = generator.generate_ascii(text, debug=True)
    >>> trace = generator.get_trace()
    >>> print(trace.summary())
    >>> trace.dump_to_file("debug_trace.txt")
"""

import json
import textwrap
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

PREVIEW_ROWS = 15
VALUE_WIDTH = 100


@dataclass
class CharacterPlacement:
    """
    One write to a canvas cell.

    Attributes:
        x: Column.
        y: Row.
        char: Character written.
        previous_char: Character the cell held before (" " when blank).
        reason: What was drawn, e.g. "frame", "line", "junction", "marker".
        source: The drawing routine responsible.
    """

    x: int
    y: int
    char: str
    previous_char: str
    reason: str
    source: str

    @property
    def is_overwrite(self) -> bool:
        return self.previous_char != " "

    def __str__(self) -> str:
        change = f"'{self.previous_char}' -> '{self.char}'" if self.is_overwrite else f"'{self.char}'"
        return f"({self.x},{self.y}) {change} [{self.reason}] {self.source}"


def _format_value(value: Any) -> str:
    text = json.dumps(value, default=str, ensure_ascii=False)
    return textwrap.shorten(text, VALUE_WIDTH, placeholder=" ...")


@dataclass
class PipelineStage:
    """
    What the pipeline looked like after one step.

    Attributes:
        name: Stage name, e.g. "parse", "layout", "edges_drawn".
        data: Summary values recorded for the stage.
        canvas_snapshot: Rendered canvas rows, for text art stages.
    """

    name: str
    data: Dict[str, Any]
    canvas_snapshot: Optional[List[str]] = None

    def __str__(self) -> str:
        lines = [f"[{self.name}]"]
        lines.extend(f"  {key} = {_format_value(value)}" for key, value in self.data.items())
        if self.canvas_snapshot:
            shown = self.canvas_snapshot[:PREVIEW_ROWS]
            lines.append(f"  canvas ({len(shown)} of {len(self.canvas_snapshot)} rows):")
            lines.extend(f"    |{row}|" for row in shown)
        return "\n".join(lines)


@dataclass
class RenderTrace:
    """
    Trace of one generate call.

    Attributes:
        stages: Pipeline stages in the order they ran.
        character_placements: Every canvas write (text art only).
        input_text: The diagram source.
        diagram_type: Detected family ("c4", "archimate" or "class").
        output_format: "svg" or "ascii".
    """

    stages: List[PipelineStage] = field(default_factory=list)
    character_placements: List[CharacterPlacement] = field(default_factory=list)
    input_text: str = ""
    diagram_type: str = ""
    output_format: str = ""

    def add_stage(self, name: str, data: Dict[str, Any], canvas: Optional[Any] = None) -> None:
        """
        Record a stage. The data dict is copied; a canvas, when given, is
        rendered and stored row by row.
        """
        snapshot = None
        if canvas is not None:
            rendered = canvas.render()
            snapshot = rendered.split("\n") if rendered else []
        self.stages.append(PipelineStage(name, dict(data), snapshot))

    def add_placement(
        self, x: int, y: int, char: str, previous_char: str, reason: str, source: str
    ) -> None:
        self.character_placements.append(
            CharacterPlacement(x, y, char, previous_char, reason, source)
        )

    def get_stage(self, name: str) -> Optional[PipelineStage]:
        return next((stage for stage in self.stages if stage.name == name), None)

    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def get_canvas_at_stage(self, name: str) -> Optional[List[str]]:
        """Canvas rows recorded at a stage, or None when it has none."""
        stage = self.get_stage(name)
        return stage.canvas_snapshot if stage and stage.canvas_snapshot else None

    def get_placements_at(self, x: int, y: int) -> List[CharacterPlacement]:
        return [p for p in self.character_placements if (p.x, p.y) == (x, y)]

    def get_junctions(self) -> List[CharacterPlacement]:
        """Writes where meeting or crossing lines were merged into one glyph."""
        return [p for p in self.character_placements if p.reason == "junction"]

    def reason_counts(self) -> Counter:
        return Counter(p.reason for p in self.character_placements)

    def summary(self) -> str:
        """Short overview: family, stages and placement counts."""
        family = self.diagram_type or "unknown"
        marked = [f"{s.name}*" if s.canvas_snapshot else s.name for s in self.stages]
        lines = [
            f"Render trace: {family} diagram -> {self.output_format or 'unknown'}",
            f"Input: {textwrap.shorten(self.input_text, VALUE_WIDTH, placeholder=' ...')!r}",
            f"Stages ({len(self.stages)}): {', '.join(marked) or 'none'}",
            f"Placements: {len(self.character_placements)} "
            f"(junctions: {len(self.get_junctions())})",
        ]
        for reason, count in self.reason_counts().most_common():
            lines.append(f"  {reason:<14}{count}")
        return "\n".join(lines)

    def dump(self) -> str:
        """Summary, every stage and every placement."""
        sections = [self.summary(), "", "Stages", "------"]
        sections.extend(str(stage) for stage in self.stages)
        sections.extend(["", "Placements", "----------"])
        sections.extend(str(p) for p in self.character_placements)
        return "\n".join(sections)

    def dump_to_file(self, filename: str) -> None:
        Path(filename).write_text(self.dump(), encoding="utf-8")
