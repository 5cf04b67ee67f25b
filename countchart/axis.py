from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
import logging
import math
from typing import Literal

from countchart.errors import InvalidInput
from countchart.formatting import CountFormatter, DateLabelFormatter
from countchart.raster.canvas import RGBA
from countchart.raster.draw_text import DEFAULT_FONT_FAMILY
from countchart.raster.surface import Surface
from countchart.scales import generate_count_ticks
from countchart.ticks import LabelFormatter, NiceDateTickSource, TickCandidate, TickSource


LOGGER = logging.getLogger(__name__)

AxisEdge = Literal["top", "bottom", "left", "right"]
Segment = tuple[float, float, float, float]

DEFAULT_ROTATION_RAD = -math.pi / 4.0
DEFAULT_ARROW_SIZE_PX = 10.0
ARROW_HEAD_BACK_PX = 5.0
ARROW_HEAD_SPREAD_PX = 3.0
RIGHT_LABEL_GAP_PX = 5.0


class ArrowDirection(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    AUTO = "auto"


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2.0


@dataclass(frozen=True)
class AxisGeometryConfig:
    rotation_angle_rad: float = DEFAULT_ROTATION_RAD
    arrow_size_px: float = DEFAULT_ARROW_SIZE_PX
    label_on_right: bool = False
    arrow_direction: ArrowDirection = ArrowDirection.AUTO

    def __post_init__(self) -> None:
        try:
            angle = float(self.rotation_angle_rad)
        except (TypeError, ValueError) as exc:
            raise InvalidInput("rotation_angle_rad must be a number") from exc
        if not math.isfinite(angle):
            raise InvalidInput("rotation angle must be a finite number")
        if not math.isfinite(self.arrow_size_px) or self.arrow_size_px < 0:
            raise InvalidInput("arrow_size_px must be a finite number >= 0")
        try:
            direction = ArrowDirection(self.arrow_direction)
        except ValueError as exc:
            raise InvalidInput(f"unknown arrow direction: {self.arrow_direction!r}") from exc
        object.__setattr__(self, "rotation_angle_rad", angle)
        object.__setattr__(self, "arrow_direction", direction)


@dataclass(frozen=True)
class AxisStyle:
    line_color: RGBA = (128, 128, 128, 255)
    line_width: int = 1
    tick_length_px: int = 4
    tick_label_gap_px: int = 3
    tick_label_color: RGBA = (75, 85, 99, 255)
    label_color: RGBA = (55, 65, 81, 255)
    label_gap_px: int = 6
    font_family: str = DEFAULT_FONT_FAMILY
    tick_font_px: float = 10.0
    label_font_px: float = 13.0
    label_bold: bool = True


@dataclass(frozen=True)
class AxisRange:
    lower: float
    upper: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lower) and math.isfinite(self.upper)):
            raise InvalidInput("axis range bounds must be finite")
        if self.upper < self.lower:
            raise InvalidInput("axis range upper bound must be >= lower bound")

    def to_px(self, value: float, area: Rect, edge: AxisEdge) -> float:
        span = self.upper - self.lower
        frac = 0.5 if span == 0 else (float(value) - self.lower) / span
        if edge in ("top", "bottom"):
            return area.min_x + frac * area.width
        return area.max_y - frac * area.height


@dataclass(frozen=True)
class NumberTick:
    value: float
    label: str


@dataclass(frozen=True)
class AxisState:
    """Where the next axis on the same edge may start, plus where ticks landed."""

    cursor: float
    tick_positions: tuple[float, ...] = ()


def is_horizontal_edge(edge: AxisEdge) -> bool:
    return edge in ("top", "bottom")


def resolve_horizontal(direction: ArrowDirection, edge: AxisEdge) -> bool:
    if direction is ArrowDirection.HORIZONTAL:
        return True
    if direction is ArrowDirection.VERTICAL:
        return False
    return is_horizontal_edge(edge)


def arrow_segments(cursor: float, data_area: Rect, *, horizontal: bool, size_px: float = DEFAULT_ARROW_SIZE_PX) -> tuple[Segment, Segment, Segment]:
    """Shaft plus the two head strokes of an open arrow leaving the data area.

    Horizontal arrows point right from ``data_area.max_x`` at height ``cursor``;
    vertical arrows point up from ``data_area.min_y`` at column ``cursor``.
    """
    if horizontal:
        x1, y1 = data_area.max_x, cursor
        x2, y2 = data_area.max_x + size_px, cursor
        return (
            (x1, y1, x2, y2),
            (x2, y2, x2 - ARROW_HEAD_BACK_PX, y2 - ARROW_HEAD_SPREAD_PX),
            (x2, y2, x2 - ARROW_HEAD_BACK_PX, y2 + ARROW_HEAD_SPREAD_PX),
        )
    x1, y1 = cursor, data_area.min_y
    x2, y2 = cursor, data_area.min_y - size_px
    return (
        (x1, y1, x2, y2),
        (x2, y2, x2 - ARROW_HEAD_SPREAD_PX, y2 + ARROW_HEAD_BACK_PX),
        (x2, y2, x2 + ARROW_HEAD_SPREAD_PX, y2 + ARROW_HEAD_BACK_PX),
    )


def right_label_position(
    label_width: float,
    label_height: float,
    *,
    cursor: float,
    plot_area: Rect,
    data_area: Rect,
    edge: AxisEdge,
) -> tuple[float, float]:
    """Baseline-left origin of an axis label pushed to the right end of the axis."""
    x = min(data_area.max_x, plot_area.max_x) - label_width
    if edge == "bottom":
        y = cursor + label_height + RIGHT_LABEL_GAP_PX
    else:
        y = cursor - RIGHT_LABEL_GAP_PX
    return (x, y)


def draw_arrow(surface: Surface, cursor: float, data_area: Rect, edge: AxisEdge, *, direction: ArrowDirection, size_px: float, style: AxisStyle) -> None:
    horizontal = resolve_horizontal(direction, edge)
    with surface.scoped():
        surface.set_paint(style.line_color)
        surface.set_stroke(style.line_width)
        for x0, y0, x1, y1 in arrow_segments(cursor, data_area, horizontal=horizontal, size_px=size_px):
            surface.line(x0, y0, x1, y1)


def draw_right_label(surface: Surface, label: str | None, *, cursor: float, plot_area: Rect, data_area: Rect, edge: AxisEdge, style: AxisStyle) -> None:
    if label is None or not label.strip():
        return
    with surface.scoped():
        surface.set_font(family=style.font_family, size_px=style.label_font_px, bold=style.label_bold)
        surface.set_paint(style.label_color)
        metrics = surface.measure_text(label)
        x, y = right_label_position(metrics.width, metrics.height, cursor=cursor, plot_area=plot_area, data_area=data_area, edge=edge)
        surface.text(x, y, label, anchor="baseline_left")


def _outward(edge: AxisEdge) -> float:
    return 1.0 if edge in ("bottom", "right") else -1.0


def _draw_axis_line(surface: Surface, cursor: float, data_area: Rect, edge: AxisEdge, style: AxisStyle) -> None:
    with surface.scoped():
        surface.set_paint(style.line_color)
        surface.set_stroke(style.line_width)
        if is_horizontal_edge(edge):
            surface.line(data_area.min_x, cursor, data_area.max_x, cursor)
        else:
            surface.line(cursor, data_area.min_y, cursor, data_area.max_y)


def _draw_tick_marks(surface: Surface, cursor: float, positions: Sequence[float], edge: AxisEdge, style: AxisStyle) -> None:
    if style.tick_length_px <= 0 or not positions:
        return
    sign = _outward(edge)
    with surface.scoped():
        surface.set_paint(style.line_color)
        surface.set_stroke(style.line_width)
        for pos in positions:
            if is_horizontal_edge(edge):
                surface.line(pos, cursor, pos, cursor + sign * style.tick_length_px)
            else:
                surface.line(cursor, pos, cursor + sign * style.tick_length_px, pos)


def _draw_centered_label(surface: Surface, label: str | None, cursor: float, data_area: Rect, edge: AxisEdge, style: AxisStyle) -> float:
    """Draw the axis label centred along the axis; returns the cursor past it."""
    if label is None or not label.strip():
        return cursor
    sign = _outward(edge)
    with surface.scoped():
        surface.set_font(family=style.font_family, size_px=style.label_font_px, bold=style.label_bold)
        surface.set_paint(style.label_color)
        metrics = surface.measure_text(label)
        offset = style.label_gap_px
        if is_horizontal_edge(edge):
            y = cursor + sign * offset
            surface.text(data_area.center_x, y, label, anchor="top_center" if edge == "bottom" else "bottom_center")
        else:
            x = cursor + sign * offset
            # Reads bottom-to-top on the left edge, top-to-bottom on the right.
            surface.rotate(-math.pi / 2.0 if edge == "left" else math.pi / 2.0, x, data_area.center_y)
            surface.text(x, data_area.center_y, label, anchor="bottom_center")
    return cursor + sign * (offset + metrics.height)


@dataclass
class DateAxisRenderer:
    """Date axis with rotated tick labels and an arrow at its far end.

    Ticks come from ``tick_source``; ``DatasetTickSource`` keeps only dates that
    carry data, ``NiceDateTickSource`` spaces them evenly. After the base pass an
    arrow is added and, with ``label_on_right``, the axis label is moved to the
    right end of the axis instead of being centred.
    """

    label: str | None = None
    config: AxisGeometryConfig = field(default_factory=AxisGeometryConfig)
    style: AxisStyle = field(default_factory=AxisStyle)
    tick_source: TickSource = field(default_factory=NiceDateTickSource)
    label_formatter: LabelFormatter = field(default_factory=DateLabelFormatter)

    def refresh_ticks(self, axis_range: AxisRange, *, target: int = 8) -> list[TickCandidate]:
        return self.tick_source.ticks(axis_range.lower, axis_range.upper, self.label_formatter, target=target)

    def draw(
        self,
        surface: Surface,
        cursor: float,
        plot_area: Rect,
        data_area: Rect,
        edge: AxisEdge,
        ticks: Sequence[TickCandidate],
        *,
        axis_range: AxisRange,
    ) -> AxisState:
        move_label = self.config.label_on_right and is_horizontal_edge(edge)
        state = self._draw_base(surface, cursor, data_area, edge, ticks, axis_range=axis_range, draw_label=not move_label)
        if move_label:
            draw_right_label(surface, self.label, cursor=state.cursor, plot_area=plot_area, data_area=data_area, edge=edge, style=self.style)
        draw_arrow(surface, cursor, data_area, edge, direction=self.config.arrow_direction, size_px=self.config.arrow_size_px, style=self.style)
        return state

    def measure_tick_extent(self, surface: Surface, ticks: Sequence[TickCandidate]) -> float:
        """Distance the rotated tick labels reach away from a horizontal axis line."""
        if not ticks:
            return 0.0
        with surface.scoped():
            surface.set_font(family=self.style.font_family, size_px=self.style.tick_font_px)
            extent = 0.0
            angle = self.config.rotation_angle_rad
            for tick in ticks:
                m = surface.measure_text(tick.label)
                extent = max(extent, abs(m.width * math.sin(angle)) + abs(m.height * math.cos(angle)))
        return extent

    def _draw_base(
        self,
        surface: Surface,
        cursor: float,
        data_area: Rect,
        edge: AxisEdge,
        ticks: Sequence[TickCandidate],
        *,
        axis_range: AxisRange,
        draw_label: bool,
    ) -> AxisState:
        positions = [axis_range.to_px(t.instant_ms, data_area, edge) for t in ticks]
        _draw_axis_line(surface, cursor, data_area, edge, self.style)
        _draw_tick_marks(surface, cursor, positions, edge, self.style)

        sign = _outward(edge)
        label_offset = self.style.tick_length_px + self.style.tick_label_gap_px
        extent = self.measure_tick_extent(surface, ticks)
        with surface.scoped():
            surface.set_font(family=self.style.font_family, size_px=self.style.tick_font_px)
            surface.set_paint(self.style.tick_label_color)
            for tick, pos in zip(ticks, positions):
                if is_horizontal_edge(edge):
                    anchor_x, anchor_y = pos, cursor + sign * label_offset
                    with surface.scoped():
                        surface.rotate(self.config.rotation_angle_rad, anchor_x, anchor_y)
                        surface.text(anchor_x, anchor_y, tick.label, anchor="top_right")
                else:
                    anchor_x = cursor + sign * label_offset
                    surface.text(anchor_x, pos, tick.label, anchor="center_right" if edge == "left" else "center_left")
                    extent = max(extent, float(surface.measure_text(tick.label).width))

        next_cursor = cursor + sign * (label_offset + extent)
        if draw_label:
            next_cursor = _draw_centered_label(surface, self.label, next_cursor, data_area, edge, self.style)
        LOGGER.debug("date axis on %s edge: %d ticks", edge, len(ticks))
        return AxisState(cursor=next_cursor, tick_positions=tuple(positions))


@dataclass
class NumberAxisRenderer:
    """Count axis: whole-number ticks, locale formatted, arrow pointing up by default."""

    label: str | None = None
    arrow_direction: ArrowDirection = ArrowDirection.VERTICAL
    arrow_size_px: float = DEFAULT_ARROW_SIZE_PX
    style: AxisStyle = field(default_factory=AxisStyle)
    formatter: LabelFormatter = field(default_factory=CountFormatter)

    def refresh_ticks(self, axis_range: AxisRange, *, target: int = 6) -> list[NumberTick]:
        values = generate_count_ticks(axis_range.lower, axis_range.upper, max(2, target))
        return [NumberTick(value=float(v), label=self.formatter(v)) for v in values.tolist()]

    def measure_tick_extent(self, surface: Surface, ticks: Sequence[NumberTick]) -> float:
        with surface.scoped():
            surface.set_font(family=self.style.font_family, size_px=self.style.tick_font_px)
            return float(max((surface.measure_text(t.label).width for t in ticks), default=0))

    def draw(
        self,
        surface: Surface,
        cursor: float,
        plot_area: Rect,
        data_area: Rect,
        edge: AxisEdge,
        ticks: Sequence[NumberTick],
        *,
        axis_range: AxisRange,
    ) -> AxisState:
        positions = [axis_range.to_px(t.value, data_area, edge) for t in ticks]
        _draw_axis_line(surface, cursor, data_area, edge, self.style)
        _draw_tick_marks(surface, cursor, positions, edge, self.style)

        sign = _outward(edge)
        label_offset = self.style.tick_length_px + self.style.tick_label_gap_px
        with surface.scoped():
            surface.set_font(family=self.style.font_family, size_px=self.style.tick_font_px)
            surface.set_paint(self.style.tick_label_color)
            extent = 0.0
            for tick, pos in zip(ticks, positions):
                m = surface.measure_text(tick.label)
                if is_horizontal_edge(edge):
                    surface.text(pos, cursor + sign * label_offset, tick.label, anchor="top_center" if edge == "bottom" else "bottom_center")
                    extent = max(extent, float(m.height))
                else:
                    surface.text(cursor + sign * label_offset, pos, tick.label, anchor="center_right" if edge == "left" else "center_left")
                    extent = max(extent, float(m.width))

        next_cursor = _draw_centered_label(surface, self.label, cursor + sign * (label_offset + extent), data_area, edge, self.style)
        draw_arrow(surface, cursor, data_area, edge, direction=self.arrow_direction, size_px=self.arrow_size_px, style=self.style)
        return AxisState(cursor=next_cursor, tick_positions=tuple(positions))
