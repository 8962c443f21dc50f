"""Overlay fill styles and labels derived from a cell's token."""

from __future__ import annotations

from dataclasses import dataclass

from bitworld.core.cells import CellState

# Fill colour per token value; larger values fall back to the nearest
# smaller power of two in the table.
TOKEN_COLORS: dict[int, str] = {
    2: "#f7d794",
    4: "#ffd166",
    8: "#ff9f1c",
    16: "#ff6b6b",
    32: "#ff4d94",
    64: "#c77dff",
    128: "#7f5af0",
    256: "#4cc9f0",
    512: "#00b4d8",
    1024: "#2ec4b6",
    2048: "#2b9348",
}

EMPTY_FILL = "#ffffff"
MISSING_TOKEN_COLOR = "#eeeeee"
UNKNOWN_TOKEN_COLOR = "#dddddd"
STROKE_COLOR = "#333"


@dataclass(frozen=True)
class OverlayStyle:
    fill_color: str
    fill_opacity: float
    stroke_color: str = STROKE_COLOR
    weight: int = 1

    def to_dict(self) -> dict[str, object]:
        return {
            "fill_color": self.fill_color,
            "fill_opacity": self.fill_opacity,
            "stroke_color": self.stroke_color,
            "weight": self.weight,
        }


def color_for_token(value: int | None) -> str:
    """Fill colour for a token value."""
    if not value:
        return MISSING_TOKEN_COLOR
    v = value
    while v > 1 and v not in TOKEN_COLORS:
        v //= 2
    return TOKEN_COLORS.get(v, UNKNOWN_TOKEN_COLOR)


def style_for_state(state: CellState) -> OverlayStyle:
    if state.token_present:
        return OverlayStyle(color_for_token(state.token_value), 0.8)
    return OverlayStyle(EMPTY_FILL, 0.06)


def label_for_state(state: CellState) -> str:
    """Permanent label text: the token value, or blank."""
    return str(state.token_value) if state.token_present else ""
