"""Command-line interface: render diagram text to text art, SVG or PNG."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .generator import DiagramGenerator
from .layout import LayoutError
from .parser import ParseError
from .theme import THEMES, ColorError, DiagramColors, get_theme

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_ERROR = 2
EXIT_MISSING_FILE = 3

EPILOG = """\
examples:
  archlayout diagram.txt                      render a file as text art
  cat diagram.txt | archlayout                render piped input
  archlayout --svg -o out.svg diagram.txt     render to an SVG file
  archlayout -t tokyo-night --svg diagram.txt render with a theme
  archlayout --png -o out.png diagram.txt     rasterise the text art
  archlayout --themes                         list available themes
"""


class UsageError(Exception):
    """Raised for invalid command-line arguments."""


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="archlayout",
        description="Render C4, ArchiMate and class diagrams to text art or SVG.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("file", nargs="?", help="Input file (reads stdin if omitted)")
    parser.add_argument("-v", "--version", action="version", version=__version__)
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress to stderr")

    output = parser.add_argument_group("output options")
    output.add_argument("-s", "--svg", action="store_true", help="Output SVG instead of text art")
    output.add_argument("--png", action="store_true", help="Rasterise the text art to PNG (needs -o)")
    output.add_argument("-o", "--output", help="Write output to a file instead of stdout")

    ascii_group = parser.add_argument_group("text art options")
    ascii_group.add_argument(
        "--ascii-only", action="store_true", help="Use +, -, | instead of Unicode box drawing"
    )
    ascii_group.add_argument(
        "--padding-x", type=int, default=5, help="Horizontal gap between boxes (default: 5)"
    )
    ascii_group.add_argument(
        "--padding-y", type=int, default=3, help="Vertical gap between ranks (default: 3)"
    )

    svg_group = parser.add_argument_group("SVG options")
    svg_group.add_argument("-t", "--theme", help="Built-in theme name")
    svg_group.add_argument("--bg", help="Background colour (hex, e.g. #1a1b26)")
    svg_group.add_argument("--fg", help="Foreground colour (hex, e.g. #a9b1d6)")
    svg_group.add_argument(
        "--transparent", action="store_true", help="Render with a transparent background"
    )
    svg_group.add_argument("--themes", action="store_true", help="List available themes")

    return parser


def format_themes() -> str:
    lines = ["Available themes:", ""]
    for name, theme in THEMES.items():
        lines.append(f"  {name:<20} bg: {theme.bg}  fg: {theme.fg}")
    lines.append("")
    lines.append("Usage: archlayout --theme <name> --svg diagram.txt")
    return "\n".join(lines)


def resolve_palette(theme: Optional[str], bg: Optional[str], fg: Optional[str]) -> DiagramColors:
    """Theme palette with --bg and --fg applied on top."""
    base = get_theme(theme) if theme else DiagramColors()
    return DiagramColors(
        bg=bg or base.bg,
        fg=fg or base.fg,
        line=base.line,
        accent=base.accent,
        muted=base.muted,
        surface=base.surface,
        border=base.border,
    )


def write_output(content: str, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(content, encoding="utf-8")
        logger.info("Wrote %s", output)
    else:
        sys.stdout.write(content if content.endswith("\n") else content + "\n")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the command line.

    Returns:
        0 on success, 1 for usage errors or empty input, 2 for parse,
        layout or render errors, 3 when the input file does not exist.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print('Run "archlayout --help" for usage information', file=sys.stderr)
        return EXIT_USAGE

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.themes:
        print(format_themes())
        return EXIT_OK

    if args.png and not args.output:
        print("Error: --png requires --output", file=sys.stderr)
        return EXIT_USAGE

    if args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {args.file}", file=sys.stderr)
            return EXIT_MISSING_FILE
        text = path.read_text(encoding="utf-8")
    elif sys.stdin.isatty():
        parser.print_help(sys.stderr)
        return EXIT_USAGE
    else:
        text = sys.stdin.read()

    if not text.strip():
        print("Error: Empty input", file=sys.stderr)
        return EXIT_USAGE

    try:
        palette = resolve_palette(args.theme, args.bg, args.fg)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print('Run "archlayout --themes" to see available themes', file=sys.stderr)
        return EXIT_USAGE

    generator = DiagramGenerator()
    try:
        if args.svg:
            svg = generator.generate_svg(text, colors=palette, transparent=args.transparent)
            write_output(svg, args.output)
        elif args.png:
            art = generator.generate_ascii(
                text,
                use_ascii=args.ascii_only,
                padding_x=args.padding_x,
                padding_y=args.padding_y,
            )
            generator.exporter.save_png(art, args.output, bg_color=palette.bg, fg_color=palette.fg)
            logger.info("Wrote %s", args.output)
        else:
            art = generator.generate_ascii(
                text,
                use_ascii=args.ascii_only,
                padding_x=args.padding_x,
                padding_y=args.padding_y,
            )
            write_output(art, args.output)
    except (ParseError, LayoutError, ColorError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
