"""
Shared parsing helpers for the diagram DSLs.

Handles line preprocessing, diagram type detection and the quote-aware
argument splitting used by the C4 syntax. The family parsers live in
c4.py, archimate.py and class_diagram.py.
"""

from typing import List


class ParseError(Exception):
    """Raised when input parsing fails."""

    pass


C4 = "c4"
ARCHIMATE = "archimate"
CLASS = "class"

DIAGRAM_HEADERS = (
    ("C4", C4),
    ("archimate", ARCHIMATE),
    ("classDiagram", CLASS),
)


def preprocess_lines(input_text: str) -> List[str]:
    """
    Split input into trimmed lines, dropping blanks and %% comments.

    Args:
        input_text: Raw diagram text.

    Returns:
        List of non-empty, stripped lines.
    """
    lines = []
    for line in input_text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("%%"):
            continue
        lines.append(stripped)
    return lines


def detect_diagram_type(input_text: str) -> str:
    """
    Detect the diagram family from the header line.

    Args:
        input_text: Raw diagram text.

    Returns:
        One of C4, ARCHIMATE or CLASS.

    Raises:
        ParseError: If the input is empty or the header is not recognised.
    """
    lines = preprocess_lines(input_text)
    if not lines:
        raise ParseError("Empty diagram input")

    header = lines[0]
    for prefix, diagram_type in DIAGRAM_HEADERS:
        if header.startswith(prefix):
            return diagram_type

    raise ParseError(f"Line 1: Unsupported diagram type: {header}")


def parse_args(args_text: str) -> List[str]:
    """
    Split a comma separated argument list, keeping quoted commas.

    Quotes are kept on the returned values; use unquote() to strip them.
    A trailing empty argument is dropped.
    """
    args: List[str] = []
    current = ""
    in_quotes = False

    for char in args_text:
        if char == '"':
            in_quotes = not in_quotes
            current += char
        elif char == "," and not in_quotes:
            args.append(current.strip())
            current = ""
        else:
            current += char

    if current.strip():
        args.append(current.strip())

    return args


def unquote(value: str) -> str:
    """Remove one pair of surrounding double quotes."""
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value
