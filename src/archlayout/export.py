"""
File export for rendered diagrams.

Text art goes to .txt, SVG documents to .svg unchanged, and text art can be
rasterised to PNG with Pillow. PNG output draws every character in its own
grid cell, so wide characters take two columns just as in the terminal.
"""

from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from .text_metrics import display_width, is_wide_char

MONOSPACE_FONTS = (
    # Linux
    "DejaVuSansMono",
    "DejaVu Sans Mono",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    # macOS
    "Menlo",
    "Monaco",
    "/System/Library/Fonts/Menlo.ttc",
    # Windows
    "Consolas",
    "Cascadia Code",
    "C:/Windows/Fonts/consola.ttf",
)
LINE_SPACING = 1.2
MIN_IMAGE_SIZE = 100


class DiagramExporter:
    """
    Writes rendered diagrams to disk.

    Attributes:
        default_font: Font name or path tried first for PNG export.
    """

    def __init__(self, default_font: Optional[str] = None):
        self.default_font = default_font

    def save_txt(self, art: str, filename: str) -> None:
        """Save text art to a UTF-8 file."""
        Path(filename).write_text(art, encoding="utf-8")

    def save_svg(self, svg: str, filename: str) -> None:
        Path(filename).write_text(svg, encoding="utf-8")

    def save_png(
        self,
        art: str,
        filename: str,
        font_size: int = 16,
        bg_color: str = "#FFFFFF",
        fg_color: str = "#000000",
        padding: int = 20,
        font: Optional[str] = None,
        scale: int = 2,
    ) -> None:
        """
        Rasterise text art to a PNG image.

        Args:
            art: The text art to render.
            filename: Output filename (should end in .png).
            font_size: Font size in points before scaling.
            bg_color: Background colour.
            fg_color: Text colour.
            padding: Blank border in pixels before scaling.
            font: Font name or path, overriding default_font.
            scale: Resolution multiplier (2 for retina).
        """
        lines = art.split("\n")
        loaded_font = self._load_monospace_font(font_size * scale, font or self.default_font)
        cell_width, line_height = self._cell_size(loaded_font)
        border = padding * scale

        columns = max((display_width(line) for line in lines), default=0)
        size = (
            max(cell_width * columns + 2 * border, MIN_IMAGE_SIZE * scale),
            max(line_height * len(lines) + 2 * border, MIN_IMAGE_SIZE * scale),
        )

        img = Image.new("RGB", size, bg_color)
        draw = ImageDraw.Draw(img)
        for row, line in enumerate(lines):
            y = border + row * line_height
            column = 0
            for ch in line:
                if ch != " ":
                    draw.text((border + column * cell_width, y), ch, font=loaded_font, fill=fg_color)
                column += 2 if is_wide_char(ch) else 1

        img.save(Path(filename), "PNG")

    @staticmethod
    def _cell_size(loaded_font) -> Tuple[int, int]:
        """Width of one column and height of one row for the font."""
        left, top, right, bottom = loaded_font.getbbox("M")
        return max(1, right - left), max(1, int((bottom - top) * LINE_SPACING))

    def _load_monospace_font(self, font_size: int, font_name: Optional[str] = None):
        """
        Load the requested font, else the first common monospace font found,
        else Pillow's built-in default at the requested size.
        """
        candidates = ((font_name,) if font_name else ()) + MONOSPACE_FONTS
        for candidate in candidates:
            try:
                return ImageFont.truetype(candidate, font_size)
            except OSError:
                continue
        return ImageFont.load_default(size=font_size)
