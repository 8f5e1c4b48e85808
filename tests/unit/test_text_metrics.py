"""Tests for the text measuring helpers."""

import pytest

from archlayout.text_metrics import (
    BOLD_WIDTH_RATIO,
    MONO_WIDTH_RATIO,
    REGULAR_WIDTH_RATIO,
    display_width,
    estimate_mono_text_width,
    estimate_text_width,
    is_wide_char,
    width_ratio,
)


class TestIsWideChar:
    """Tests for double-width detection."""

    @pytest.mark.parametrize("char", ["中", "あ", "한", "Ａ", "😀"])
    def test_wide_characters(self, char):
        """CJK, kana, Hangul, fullwidth forms and emoji take two columns."""
        assert is_wide_char(char) is True

    @pytest.mark.parametrize("char", ["a", "Z", "1", "─", "é", " "])
    def test_narrow_characters(self, char):
        """Latin letters, digits and box drawing take one column."""
        assert is_wide_char(char) is False

    def test_empty_string(self):
        """An empty string is not wide."""
        assert is_wide_char("") is False


class TestDisplayWidth:
    """Tests for display_width."""

    def test_ascii(self):
        """Plain text counts one column per character."""
        assert display_width("Hello") == 5

    def test_mixed(self):
        """Wide characters count twice."""
        assert display_width("A中B") == 4

    def test_empty(self):
        """Empty text has no width."""
        assert display_width("") == 0


class TestEstimateTextWidth:
    """Tests for proportional width estimates."""

    def test_empty_text_is_zero(self):
        """Empty labels reserve no width."""
        assert estimate_text_width("", 13, 500) == 0.0

    def test_regular_weight(self):
        """Regular weight uses the regular ratio."""
        assert estimate_text_width("abcd", 10, 400) == pytest.approx(4 * 10 * REGULAR_WIDTH_RATIO)

    def test_bold_is_wider(self):
        """Heavier weights are estimated wider."""
        assert estimate_text_width("abcd", 10, 700) > estimate_text_width("abcd", 10, 400)
        assert width_ratio(600) == BOLD_WIDTH_RATIO

    def test_wide_characters_count_double(self):
        """Each CJK character is estimated as two columns."""
        assert estimate_text_width("中", 10) == pytest.approx(estimate_text_width("ab", 10))

    def test_mono_width(self):
        """Monospace estimates use a fixed ratio."""
        assert estimate_mono_text_width("abc", 10) == pytest.approx(3 * 10 * MONO_WIDTH_RATIO)
        assert estimate_mono_text_width("", 10) == 0.0
