"""
Colour themes for SVG output.

A palette needs only a background and a foreground colour. The optional
line, accent, muted, surface and border colours enrich it; any that are
missing are derived by mixing the foreground into the background at fixed
percentages (see MIX).
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


class ColorError(ValueError):
    """Raised for colours that are not #RGB, #RRGGBB or #RRGGBBAA hex."""


HEX_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

# Percentage of the foreground mixed into the background per derived colour.
MIX = {
    "text_sec": 60,
    "text_muted": 40,
    "text_faint": 25,
    "line": 30,
    "arrow": 50,
    "node_fill": 3,
    "node_stroke": 20,
    "group_header": 5,
    "inner_stroke": 12,
}

# Derived colour -> optional palette field that overrides the mix.
OVERRIDES = {
    "text_sec": "muted",
    "text_muted": "muted",
    "text_faint": None,
    "line": "line",
    "arrow": "accent",
    "node_fill": "surface",
    "node_stroke": "border",
    "group_header": None,
    "inner_stroke": None,
}


@dataclass(frozen=True)
class DiagramColors:
    """Input palette; only bg and fg are required."""

    bg: str = "#FFFFFF"
    fg: str = "#27272A"
    line: Optional[str] = None
    accent: Optional[str] = None
    muted: Optional[str] = None
    surface: Optional[str] = None
    border: Optional[str] = None


@dataclass(frozen=True)
class ResolvedColors:
    """Every colour a renderer needs, as literal hex strings."""

    bg: str
    text: str
    text_sec: str
    text_muted: str
    text_faint: str
    line: str
    arrow: str
    node_fill: str
    node_stroke: str
    group_fill: str
    group_header: str
    inner_stroke: str


DEFAULTS = DiagramColors()

THEMES: Dict[str, DiagramColors] = {
    "zinc-dark": DiagramColors(bg="#18181B", fg="#FAFAFA"),
    "tokyo-night": DiagramColors(
        bg="#1a1b26", fg="#a9b1d6", line="#3d59a1", accent="#7aa2f7", muted="#565f89"
    ),
    "tokyo-night-storm": DiagramColors(
        bg="#24283b", fg="#a9b1d6", line="#3d59a1", accent="#7aa2f7", muted="#565f89"
    ),
    "tokyo-night-light": DiagramColors(
        bg="#d5d6db", fg="#343b58", line="#34548a", accent="#34548a", muted="#9699a3"
    ),
    "catppuccin-mocha": DiagramColors(
        bg="#1e1e2e", fg="#cdd6f4", line="#585b70", accent="#cba6f7", muted="#6c7086"
    ),
    "catppuccin-latte": DiagramColors(
        bg="#eff1f5", fg="#4c4f69", line="#9ca0b0", accent="#8839ef", muted="#9ca0b0"
    ),
    "nord": DiagramColors(
        bg="#2e3440", fg="#d8dee9", line="#4c566a", accent="#88c0d0", muted="#616e88"
    ),
    "nord-light": DiagramColors(
        bg="#eceff4", fg="#2e3440", line="#aab1c0", accent="#5e81ac", muted="#7b88a1"
    ),
    "dracula": DiagramColors(
        bg="#282a36", fg="#f8f8f2", line="#6272a4", accent="#bd93f9", muted="#6272a4"
    ),
    "github-light": DiagramColors(
        bg="#ffffff", fg="#1f2328", line="#d1d9e0", accent="#0969da", muted="#59636e"
    ),
    "github-dark": DiagramColors(
        bg="#0d1117", fg="#e6edf3", line="#3d444d", accent="#4493f8", muted="#9198a1"
    ),
    "solarized-light": DiagramColors(
        bg="#fdf6e3", fg="#657b83", line="#93a1a1", accent="#268bd2", muted="#93a1a1"
    ),
    "solarized-dark": DiagramColors(
        bg="#002b36", fg="#839496", line="#586e75", accent="#268bd2", muted="#586e75"
    ),
    "one-dark": DiagramColors(
        bg="#282c34", fg="#abb2bf", line="#4b5263", accent="#c678dd", muted="#5c6370"
    ),
}

RGBA = Tuple[int, int, int, Optional[int]]


def get_theme(name: str) -> DiagramColors:
    """Look up a named theme."""
    try:
        return THEMES[name]
    except KeyError:
        raise ValueError(
            f"Unknown theme: {name!r}. Available: {', '.join(sorted(THEMES))}"
        ) from None


def validate_hex_color(value: str, label: str) -> None:
    """Raise ColorError unless value is a hex colour."""
    if not isinstance(value, str) or not HEX_RE.match(value):
        raise ColorError(
            f"Invalid color for {label!r}: {value!r}. "
            "Only hex colors (#RGB, #RRGGBB, #RRGGBBAA) are supported."
        )


def parse_hex(value: str) -> RGBA:
    """
    Parse #RGB, #RRGGBB or #RRGGBBAA into channels.

    Returns:
        (r, g, b, a) where a is None when the colour has no alpha.
    """
    digits = value.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if len(digits) not in (6, 8):
        raise ColorError(
            f"Invalid hex color: {value!r}. Expected 3, 6 or 8 hex digits."
        )
    try:
        channels = [int(digits[i : i + 2], 16) for i in range(0, len(digits), 2)]
    except ValueError:
        raise ColorError(f"Invalid hex color: {value!r}") from None
    alpha = channels[3] if len(channels) == 4 else None
    return channels[0], channels[1], channels[2], alpha


def _round_channel(value: float) -> int:
    return int(math.floor(max(0.0, min(255.0, value)) + 0.5))


def to_hex(rgba: RGBA) -> str:
    """Format channels as #rrggbb, or #rrggbbaa when alpha is not opaque."""
    r, g, b, a = rgba
    text = "#" + "".join(f"{_round_channel(c):02x}" for c in (r, g, b))
    if a is not None and _round_channel(a) != 255:
        text += f"{_round_channel(a):02x}"
    return text


def color_mix(fg: str, bg: str, pct: float) -> str:
    """
    Mix pct percent of fg into bg, channel by channel in sRGB.

    Alpha is interpolated too when either colour carries one; a missing
    alpha counts as fully opaque.
    """
    fr, fgr, fb, fa = parse_hex(fg)
    br, bgr, bb, ba = parse_hex(bg)
    t = pct / 100
    alpha: Optional[float] = None
    if fa is not None or ba is not None:
        start = 255 if ba is None else ba
        end = 255 if fa is None else fa
        alpha = start + t * (end - start)
    return to_hex(
        (
            br + t * (fr - br),
            bgr + t * (fgr - bgr),
            bb + t * (fb - bb),
            alpha,
        )
    )


def resolve_colors(colors: DiagramColors) -> ResolvedColors:
    """
    Resolve a palette into literal colours for every drawing role.

    Raises:
        ColorError: If any provided colour is not hex.
    """
    validate_hex_color(colors.bg, "bg")
    validate_hex_color(colors.fg, "fg")

    derived: Dict[str, str] = {}
    for role, pct in MIX.items():
        override_field = OVERRIDES[role]
        override = getattr(colors, override_field) if override_field else None
        if override:
            validate_hex_color(override, override_field)
            derived[role] = override
        else:
            derived[role] = color_mix(colors.fg, colors.bg, pct)

    return ResolvedColors(
        bg=colors.bg,
        text=colors.fg,
        group_fill=colors.bg,
        **derived,
    )


def from_editor_theme(theme: Dict[str, Any]) -> DiagramColors:
    """
    Build a palette from a VS Code / TextMate style theme dictionary.

    Reads `colors` (editor.background, editor.foreground, ...) and the
    `tokenColors` entries for keywords and comments.
    """
    ui = theme.get("colors") or {}
    dark = theme.get("type") == "dark"
    token_colors: List[Dict[str, Any]] = theme.get("tokenColors") or []

    def token_color(scope: str) -> Optional[str]:
        for token in token_colors:
            scopes = token.get("scope")
            matches = scope in scopes if isinstance(scopes, list) else scopes == scope
            if matches:
                return (token.get("settings") or {}).get("foreground")
        return None

    return DiagramColors(
        bg=ui.get("editor.background") or ("#1e1e1e" if dark else "#ffffff"),
        fg=ui.get("editor.foreground") or ("#d4d4d4" if dark else "#333333"),
        line=ui.get("editorLineNumber.foreground"),
        accent=ui.get("focusBorder") or token_color("keyword"),
        muted=token_color("comment") or ui.get("editorLineNumber.foreground"),
        surface=ui.get("editor.selectionBackground"),
        border=ui.get("editorWidget.border"),
    )
