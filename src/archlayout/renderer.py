"""
Character-grid drawing primitives for ASCII output.

Handles a canvas that understands double-width characters, multi-section
boxes, dashed boundaries and orthogonal connector paths. Lines that meet or
cross are merged into the matching corner, tee or cross character.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from .text_metrics import display_width, is_wide_char

# Unicode box-drawing characters
UNICODE_CHARS = {
    "horizontal": "─",
    "vertical": "│",
    "top_left": "┌",
    "top_right": "┐",
    "bottom_left": "└",
    "bottom_right": "┘",
    "tee_right": "├",
    "tee_left": "┤",
    "tee_down": "┬",
    "tee_up": "┴",
    "cross": "┼",
    "dash_horizontal": "╌",
    "dash_vertical": "┊",
    "dash_corner": "+",
    "arrow_down": "▼",
    "arrow_up": "▲",
    "arrow_left": "◄",
    "arrow_right": "►",
    "open_down": "▽",
    "open_up": "△",
    "open_left": "◁",
    "open_right": "▷",
    "diamond": "◆",
    "open_diamond": "◇",
    "circle": "●",
}

# Plain ASCII fallback
ASCII_CHARS = {
    "horizontal": "-",
    "vertical": "|",
    "top_left": "+",
    "top_right": "+",
    "bottom_left": "+",
    "bottom_right": "+",
    "tee_right": "+",
    "tee_left": "+",
    "tee_down": "+",
    "tee_up": "+",
    "cross": "+",
    "dash_horizontal": ".",
    "dash_vertical": ":",
    "dash_corner": "+",
    "arrow_down": "v",
    "arrow_up": "^",
    "arrow_left": "<",
    "arrow_right": ">",
    "open_down": "v",
    "open_up": "^",
    "open_left": "<",
    "open_right": ">",
    "diamond": "*",
    "open_diamond": "o",
    "circle": "o",
}

# Placed after a wide character; occupies the second cell and renders as nothing.
WIDE_CHAR_PAD = ""

UP, DOWN, LEFT, RIGHT = "u", "d", "l", "r"

# Junction name -> directions it connects. Later entries win when two names
# share a glyph, so ASCII "+" reads back as a full cross.
JUNCTIONS: List[Tuple[str, str]] = [
    ("horizontal", "lr"),
    ("vertical", "ud"),
    ("dash_horizontal", "lr"),
    ("dash_vertical", "ud"),
    ("top_left", "dr"),
    ("top_right", "dl"),
    ("bottom_left", "ur"),
    ("bottom_right", "ul"),
    ("tee_right", "udr"),
    ("tee_left", "udl"),
    ("tee_down", "dlr"),
    ("tee_up", "ulr"),
    ("cross", "udlr"),
]

_JUNCTION_NAMES: Dict[FrozenSet[str], str] = {
    frozenset(dirs): name
    for name, dirs in JUNCTIONS
    if not name.startswith("dash_")
}
_JUNCTION_NAMES[frozenset("l")] = "horizontal"
_JUNCTION_NAMES[frozenset("r")] = "horizontal"
_JUNCTION_NAMES[frozenset("u")] = "vertical"
_JUNCTION_NAMES[frozenset("d")] = "vertical"

_STEP = {UP: (0, -1), DOWN: (0, 1), LEFT: (-1, 0), RIGHT: (1, 0)}
_OPPOSITE = {UP: DOWN, DOWN: UP, LEFT: RIGHT, RIGHT: LEFT}
_DIRECTION_NAMES = {UP: "up", DOWN: "down", LEFT: "left", RIGHT: "right"}

Cell = Tuple[int, int]


def charset(use_ascii: bool = False) -> Dict[str, str]:
    """Return the ASCII or Unicode character set."""
    return ASCII_CHARS if use_ascii else UNICODE_CHARS


class Canvas:
    """
    A 2D character canvas for drawing ASCII art.

    A wide character takes two cells; the second holds WIDE_CHAR_PAD.
    When a trace is attached, every placement is recorded on it.
    """

    def __init__(
        self,
        width: int,
        height: int,
        use_ascii: bool = False,
        trace=None,
    ):
        self.width = width
        self.height = height
        self.chars = charset(use_ascii)
        self.trace = trace
        self.grid: List[List[str]] = [[" " for _ in range(width)] for _ in range(height)]
        self._line_dirs: Dict[str, FrozenSet[str]] = {}
        for name, dirs in JUNCTIONS:
            self._line_dirs[self.chars[name]] = frozenset(dirs)

    def set(self, x: int, y: int, char: str, reason: str = "", source: str = "") -> None:
        """Set a character at position (x, y)."""
        if 0 <= x < self.width and 0 <= y < self.height:
            if self.trace is not None:
                self.trace.add_placement(x, y, char, self.grid[y][x], reason, source)
            self.grid[y][x] = char

    def get(self, x: int, y: int) -> str:
        """Get character at position (x, y)."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.grid[y][x]
        return " "

    def draw_text(self, x: int, y: int, text: str, reason: str = "text") -> None:
        """Draw text starting at (x, y), giving wide characters two cells."""
        offset = 0
        for char in text:
            self.set(x + offset, y, char, reason, "Canvas.draw_text")
            offset += 1
            if is_wide_char(char):
                self.set(x + offset, y, WIDE_CHAR_PAD, reason, "Canvas.draw_text")
                offset += 1

    def line_directions(self, x: int, y: int) -> Optional[FrozenSet[str]]:
        """Directions connected by the line character at (x, y), if it is one."""
        return self._line_dirs.get(self.get(x, y))

    def connect(
        self, x: int, y: int, directions: FrozenSet[str], dashed: bool = False
    ) -> None:
        """
        Add line directions to a cell, merging with any line already there.

        Blank cells take the plain line or junction; text and markers are
        left alone.
        """
        current = self.get(x, y)
        existing = self._line_dirs.get(current)
        if existing is None and current != " ":
            return
        merged = directions | (existing or frozenset())
        name = _JUNCTION_NAMES[merged]
        if dashed and existing is None and name in ("horizontal", "vertical"):
            name = "dash_" + name
        self.set(x, y, self.chars[name], "line" if existing is None else "junction", "Canvas.connect")

    def render(self) -> str:
        """Render the canvas to a string."""
        lines = []
        for row in self.grid:
            line = "".join(row).rstrip()
            lines.append(line)

        # Remove leading and trailing empty lines
        while lines and not lines[-1]:
            lines.pop()
        while lines and not lines[0]:
            lines.pop(0)

        return "\n".join(lines)


@dataclass
class BoxDimensions:
    """Size of a multi-section box in cells."""

    width: int
    height: int
    sections: List[List[str]]


class BoxRenderer:
    """
    Renders bordered boxes whose content is split into sections.

    Sections are separated by a divider row; an empty section still takes
    one row.
    """

    def __init__(self, padding: int = 1):
        self.padding = padding

    def calculate_box_dimensions(self, sections: Sequence[Sequence[str]]) -> BoxDimensions:
        widest = max(
            (display_width(line) for section in sections for line in section),
            default=0,
        )
        rows = sum(max(len(section), 1) for section in sections)
        return BoxDimensions(
            width=widest + 2 * self.padding + 2,
            height=rows + max(len(sections) - 1, 0) + 2,
            sections=[list(section) for section in sections],
        )

    def draw_frame(
        self, canvas: Canvas, x: int, y: int, width: int, height: int, dashed: bool = False
    ) -> None:
        """Draw a rectangle outline; dashed frames use + corners."""
        if width < 2 or height < 2:
            return
        chars = canvas.chars
        right = x + width - 1
        bottom = y + height - 1

        if dashed:
            horizontal, vertical = chars["dash_horizontal"], chars["dash_vertical"]
            corners = [chars["dash_corner"]] * 4
        else:
            horizontal, vertical = chars["horizontal"], chars["vertical"]
            corners = [
                chars["top_left"],
                chars["top_right"],
                chars["bottom_left"],
                chars["bottom_right"],
            ]

        for cx in range(x + 1, right):
            canvas.set(cx, y, horizontal, "frame", "BoxRenderer.draw_frame")
            canvas.set(cx, bottom, horizontal, "frame", "BoxRenderer.draw_frame")
        for cy in range(y + 1, bottom):
            canvas.set(x, cy, vertical, "frame", "BoxRenderer.draw_frame")
            canvas.set(right, cy, vertical, "frame", "BoxRenderer.draw_frame")
        for (cx, cy), corner in zip(
            ((x, y), (right, y), (x, bottom), (right, bottom)), corners
        ):
            canvas.set(cx, cy, corner, "frame_corner", "BoxRenderer.draw_frame")

    def draw_box(
        self,
        canvas: Canvas,
        x: int,
        y: int,
        width: int,
        sections: Sequence[Sequence[str]],
    ) -> None:
        """
        Draw a box with centred section text at (x, y).

        ┌──────────┐
        │ Web App  │
        ├──────────┤
        │ [Python] │
        └──────────┘
        """
        chars = canvas.chars
        height = sum(max(len(s), 1) for s in sections) + max(len(sections) - 1, 0) + 2
        self.draw_frame(canvas, x, y, width, height)

        row = y + 1
        for index, section in enumerate(sections):
            for line in section:
                inner = width - 2
                text_x = x + 1 + (inner - display_width(line)) // 2
                canvas.draw_text(text_x, row, line, "box_text")
                row += 1
            if not section:
                row += 1
            if index < len(sections) - 1:
                canvas.set(x, row, chars["tee_right"], "separator", "BoxRenderer.draw_box")
                for cx in range(x + 1, x + width - 1):
                    canvas.set(cx, row, chars["horizontal"], "separator", "BoxRenderer.draw_box")
                canvas.set(x + width - 1, row, chars["tee_left"], "separator", "BoxRenderer.draw_box")
                row += 1


def _direction_between(a: Cell, b: Cell) -> Optional[str]:
    """Axis direction from a to b, or None if they coincide."""
    if b[0] > a[0]:
        return RIGHT
    if b[0] < a[0]:
        return LEFT
    if b[1] > a[1]:
        return DOWN
    if b[1] < a[1]:
        return UP
    return None


class LineRenderer:
    """
    Renders orthogonal connector paths between boxes.
    """

    def draw_path(
        self,
        canvas: Canvas,
        cells: Sequence[Cell],
        dashed: bool = False,
        start_marker: Optional[str] = None,
        end_marker: Optional[str] = None,
    ) -> None:
        """
        Draw a path through axis-aligned corner cells.

        Args:
            canvas: Target canvas.
            cells: Bend cells; consecutive cells share a row or a column.
            dashed: Draw straight runs with dashed characters.
            start_marker: Marker at the first cell.
            end_marker: Marker at the last cell. "arrow" and "open" are
                oriented along the path; "diamond", "open_diamond" and
                "circle" are not.
        """
        cells = [cell for i, cell in enumerate(cells) if i == 0 or cell != cells[i - 1]]
        if not cells:
            return

        # Collect every direction a cell joins first, so bends become corners.
        joins: Dict[Cell, Set[str]] = {}
        for a, b in zip(cells, cells[1:]):
            forward = _direction_between(a, b)
            if forward is None:
                continue
            backward = _OPPOSITE[forward]
            dx, dy = _STEP[forward]
            x, y = a
            while True:
                dirs = joins.setdefault((x, y), set())
                if (x, y) != a:
                    dirs.add(backward)
                if (x, y) != b:
                    dirs.add(forward)
                if (x, y) == b:
                    break
                x, y = x + dx, y + dy

        for (x, y), dirs in joins.items():
            if dirs:
                canvas.connect(x, y, frozenset(dirs), dashed)

        if len(cells) >= 2:
            self.draw_marker(canvas, cells[0], _direction_between(cells[1], cells[0]), start_marker)
            self.draw_marker(canvas, cells[-1], _direction_between(cells[-2], cells[-1]), end_marker)
        elif end_marker:
            self.draw_marker(canvas, cells[0], DOWN, end_marker)

    def draw_marker(
        self, canvas: Canvas, cell: Cell, heading: Optional[str], marker: Optional[str]
    ) -> None:
        """Place a marker glyph at a path end heading in `heading`."""
        if marker is None:
            return
        if marker in ("arrow", "open"):
            key = f"{marker}_{_DIRECTION_NAMES[heading or DOWN]}"
        else:
            key = marker
        canvas.set(cell[0], cell[1], canvas.chars[key], "marker", "LineRenderer.draw_marker")
