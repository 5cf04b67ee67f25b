from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import math
from pathlib import Path
import re
import tomllib
from typing import Any, Mapping

from countchart.errors import InvalidInput
from countchart.raster.canvas import RGBA

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")

_COLOR_TOKENS = (
    "bar_color",
    "bar_gradient_color",
    "line_color",
    "marker_fill_color",
    "background_color",
    "plot_background_color",
    "grid_color",
    "title_color",
    "axis_color",
    "axis_label_color",
    "tick_label_color",
    "item_label_color",
    "legend_background_color",
    "legend_border_color",
    "legend_text_color",
)
_FONT_SIZE_TOKENS = (
    "title_font_px",
    "legend_font_px",
    "item_label_font_px",
    "tick_font_px",
    "axis_label_font_px",
)
_INSET_TOKENS = ("legend_padding", "chart_padding")
_INT_TOKENS = ("line_width_px", "marker_radius_px", "bar_gradient_span_px")


@dataclass(frozen=True)
class ChartStyle:
    """Styling tokens for count-by-date charts.

    Colors are hex strings (``#RRGGBB`` or ``#RRGGBBAA``); insets are
    ``(top, left, bottom, right)`` in pixels.
    """

    font_family: str = "Segoe UI"
    title_font_px: float = 18.0
    legend_font_px: float = 12.0
    item_label_font_px: float = 10.0
    tick_font_px: float = 10.0
    axis_label_font_px: float = 13.0

    bar_color: str = "#6366F1"
    bar_gradient_color: str = "#8B5CF6"
    line_color: str = "#F43F5E"
    marker_fill_color: str = "#FFFFFF"
    background_color: str = "#FAFAFC"
    plot_background_color: str = "#FFFFFF"
    grid_color: str = "#E5E7EB"
    title_color: str = "#1F2937"
    axis_color: str = "#808080"
    axis_label_color: str = "#404040"
    tick_label_color: str = "#404040"
    item_label_color: str = "#404040"
    legend_background_color: str = "#FFFFFF"
    legend_border_color: str = "#C0C0C0"
    legend_text_color: str = "#1F2937"

    bar_margin: float = 0.7
    bar_gradient_span_px: int = 100
    line_width_px: int = 3
    marker_radius_px: int = 5
    rotation_angle_rad: float = -math.pi / 4.0
    arrow_size_px: float = 10.0
    legend_padding: tuple[int, int, int, int] = (2, 5, 2, 5)
    chart_padding: tuple[int, int, int, int] = (7, 5, 27, 5)

    def rgba(self, token: str) -> RGBA:
        if token not in _COLOR_TOKENS:
            raise KeyError(f"not a color token: {token}")
        return hex_to_rgba(getattr(self, token))


DEFAULT_STYLE = ChartStyle()


def hex_to_rgba(value: str) -> RGBA:
    if not isinstance(value, str) or not _HEX_COLOR.match(value):
        raise InvalidInput(f"not a hex color (#RRGGBB or #RRGGBBAA): {value!r}")
    raw = value[1:]
    alpha = int(raw[6:8], 16) if len(raw) == 8 else 255
    return (int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16), alpha)


def validate_style_overrides(overrides: Mapping[str, Any] | None = None, *, base: ChartStyle = DEFAULT_STYLE) -> ChartStyle:
    """Validate and merge style overrides on top of ``base``."""

    raw: dict[str, Any] = asdict(base)
    if overrides:
        for key, value in overrides.items():
            if key not in raw:
                raise InvalidInput(f"Unknown style token: {key}")
            raw[key] = value

    for key in _COLOR_TOKENS:
        if not isinstance(raw[key], str) or not _HEX_COLOR.match(raw[key]):
            raise InvalidInput(f"Token `{key}` must be a hex color (#RRGGBB or #RRGGBBAA)")

    if not isinstance(raw["font_family"], str) or not raw["font_family"].strip():
        raise InvalidInput("Token `font_family` must be a non-empty string")

    for key in _FONT_SIZE_TOKENS:
        if not _is_number(raw[key]) or float(raw[key]) <= 0:
            raise InvalidInput(f"Token `{key}` must be a positive number")

    if not _is_number(raw["bar_margin"]) or not 0.0 <= float(raw["bar_margin"]) < 1.0:
        raise InvalidInput("Token `bar_margin` must be a number in [0, 1)")

    for key in _INT_TOKENS:
        if not _is_number(raw[key]) or int(raw[key]) < 1:
            raise InvalidInput(f"Token `{key}` must be a positive integer")

    if not _is_number(raw["rotation_angle_rad"]) or not math.isfinite(float(raw["rotation_angle_rad"])):
        raise InvalidInput("Token `rotation_angle_rad` must be a finite number")

    if not _is_number(raw["arrow_size_px"]) or float(raw["arrow_size_px"]) < 0:
        raise InvalidInput("Token `arrow_size_px` must be a number >= 0")

    for key in _INSET_TOKENS:
        value = raw[key]
        if not isinstance(value, (list, tuple)) or len(value) != 4 or not all(_is_number(v) and v >= 0 for v in value):
            raise InvalidInput(f"Token `{key}` must be four non-negative numbers (top, left, bottom, right)")
        raw[key] = tuple(int(v) for v in value)

    out: dict[str, Any] = {}
    for f in fields(ChartStyle):
        value = raw[f.name]
        if f.name in _FONT_SIZE_TOKENS or f.name in ("bar_margin", "rotation_angle_rad", "arrow_size_px"):
            value = float(value)
        elif f.name in _INT_TOKENS:
            value = int(value)
        out[f.name] = value
    return ChartStyle(**out)


def load_style(path: str | Path) -> ChartStyle:
    """Read style overrides from a TOML file.

    Tokens may sit at the top level or under a ``[style]`` table.
    """
    style_path = Path(path)
    if not style_path.exists():
        raise FileNotFoundError(f"style file not found: {style_path}")
    with style_path.open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise InvalidInput(f"invalid style file {style_path}: {exc}") from exc
    table = raw.get("style", raw)
    if not isinstance(table, dict):
        raise InvalidInput("`style` must be a table")
    return validate_style_overrides(table)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
