"""
Text metrics for sizing boxes without a font rasterizer.

Widths are estimates: each character counts one column, or two columns for
CJK, Hangul, fullwidth forms and emoji, and each column is scaled by an
average glyph width ratio for the requested font weight.
"""

from typing import Tuple

# Inclusive code point ranges rendered two columns wide.
WIDE_RANGES: Tuple[Tuple[int, int], ...] = (
    (0x1100, 0x115F),  # Hangul Jamo
    (0x2E80, 0x303E),  # CJK radicals, Kangxi, ideographic punctuation
    (0x3040, 0x33BF),  # Hiragana, Katakana, Bopomofo, CJK compatibility
    (0x3400, 0x4DBF),  # CJK extension A
    (0x4E00, 0x9FFF),  # CJK unified ideographs
    (0xA960, 0xA97C),  # Hangul Jamo extended-A
    (0xAC00, 0xD7A3),  # Hangul syllables
    (0xF900, 0xFAFF),  # CJK compatibility ideographs
    (0xFE10, 0xFE19),  # Vertical forms
    (0xFE30, 0xFE6F),  # CJK compatibility and small forms
    (0xFF00, 0xFF60),  # Fullwidth forms
    (0xFFE0, 0xFFE6),  # Fullwidth signs
    (0x1F000, 0x1FAFF),  # Emoji, Mahjong, Domino
    (0x20000, 0x2FA1F),  # CJK extensions B-F
)

# Average glyph width as a fraction of the font size.
BOLD_WIDTH_RATIO = 0.58
MEDIUM_WIDTH_RATIO = 0.55
REGULAR_WIDTH_RATIO = 0.52
MONO_WIDTH_RATIO = 0.6


def is_wide_char(char: str) -> bool:
    """Return True if the character occupies two terminal columns."""
    if not char:
        return False
    code = ord(char[0])
    for start, end in WIDE_RANGES:
        if code < start:
            return False
        if code <= end:
            return True
    return False


def display_width(text: str) -> int:
    """
    Return the display width of text in monospace columns.

    Args:
        text: Text to measure.

    Returns:
        Number of columns, counting wide characters twice.
    """
    return sum(2 if is_wide_char(char) else 1 for char in text)


def width_ratio(font_weight: int) -> float:
    """Average glyph width ratio for a font weight (heavier is wider)."""
    if font_weight >= 600:
        return BOLD_WIDTH_RATIO
    if font_weight >= 500:
        return MEDIUM_WIDTH_RATIO
    return REGULAR_WIDTH_RATIO


def estimate_text_width(text: str, font_size: float, font_weight: int = 400) -> float:
    """
    Estimate the rendered pixel width of text in a proportional font.

    Args:
        text: Text to measure.
        font_size: Font size in pixels.
        font_weight: CSS font weight (400 regular, 500 medium, 600+ bold).

    Returns:
        Estimated width in pixels; 0 for empty text.
    """
    if not text:
        return 0.0
    return display_width(text) * font_size * width_ratio(font_weight)


def estimate_mono_text_width(text: str, font_size: float) -> float:
    """Estimate the rendered pixel width of text in a monospace font."""
    if not text:
        return 0.0
    return display_width(text) * font_size * MONO_WIDTH_RATIO
