from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math

import numpy as np

from countchart.axis import AxisGeometryConfig, AxisRange, AxisStyle, DateAxisRenderer, NumberAxisRenderer, Rect
from countchart.formatting import CountFormatter, DateLabelFormatter
from countchart.raster import draw_markers, draw_polyline, new_canvas
from countchart.raster.surface import RasterSurface, Surface
from countchart.request import CountByDateChartRequest
from countchart.scales import DataLimits, build_transform, compute_count_limits, map_to_pixels
from countchart.series import CountSeries, SeriesSpec, SeriesStyle, aggregate_pair
from countchart.style import DEFAULT_STYLE, ChartStyle
from countchart.ticks import DAY_MS, TickSource, resolve_tick_source


LOGGER = logging.getLogger(__name__)

# Shown when there is nothing to plot: one week from the epoch.
EMPTY_RANGE_MS = (0.0, 7.0 * DAY_MS)
TITLE_GAP_PX = 6
LEGEND_GAP_PX = 8
AXIS_ROOM_PX = 4


@dataclass(frozen=True)
class LegendEntry:
    label: str
    mode: str
    color: tuple[int, int, int, int]
    gradient_to: tuple[int, int, int, int] | None = None


@dataclass(frozen=True)
class LegendLayout:
    entries: tuple[LegendEntry, ...]
    x: int
    y: int
    box_w: int
    box_h: int
    swatch_w: int
    swatch_h: int
    item_gap: int
    text_widths: tuple[int, ...]


@dataclass
class CountByDateChart:
    """Bars for the per-period counts with the same counts drawn as a trend line.

    The layout follows a fixed top-down order: title, legend, then the plot with
    a date axis along the bottom and a count axis on the left.
    """

    width: int
    height: int
    title: str
    bars: CountSeries
    trend: CountSeries
    x_label: str
    y_label: str
    style: ChartStyle = DEFAULT_STYLE
    date_formatter: DateLabelFormatter = field(default_factory=DateLabelFormatter)
    count_formatter: CountFormatter = field(default_factory=CountFormatter)

    _last_data_area: Rect | None = field(default=None, init=False, repr=False)
    _last_x_range: AxisRange | None = field(default=None, init=False, repr=False)
    _last_y_range: AxisRange | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be > 0")

    @classmethod
    def from_request(cls, request: CountByDateChartRequest, style: ChartStyle = DEFAULT_STYLE) -> "CountByDateChart":
        bars, trend = aggregate_pair(
            request.data,
            request.scale,
            request.timezone,
            request.date_locale,
            bar_name=request.y_axis_label,
            trend_name=request.trend_title,
        )
        return cls(
            width=request.width,
            height=request.height,
            title=request.chart_title,
            bars=bars,
            trend=trend,
            x_label=request.x_axis_label,
            y_label=request.y_axis_label,
            style=style,
            date_formatter=DateLabelFormatter.create(request.date_locale, request.display_timezone),
            count_formatter=CountFormatter.create(request.date_locale),
        )

    def series_specs(self) -> tuple[SeriesSpec, SeriesSpec]:
        s = self.style
        bar_style = SeriesStyle(
            mode="bars",
            color=s.rgba("bar_color"),
            gradient_to=s.rgba("bar_gradient_color"),
            bar_width=1.0 - s.bar_margin,
        )
        line_style = SeriesStyle(
            mode="lines+markers",
            color=s.rgba("line_color"),
            marker_size=s.marker_radius_px * 2,
            line_width=s.line_width_px,
        )
        return (
            SeriesSpec(series=self.bars, style=bar_style, label=self.bars.name or self.y_label),
            SeriesSpec(series=self.trend, style=line_style, label=self.trend.name or "trend"),
        )

    def tick_source(self) -> TickSource:
        if len(self.bars) == 0 and len(self.trend) == 0:
            return resolve_tick_source(None, timezone=self.date_formatter.timezone)
        return resolve_tick_source((self.bars, self.trend))

    def last_data_area(self) -> Rect | None:
        return self._last_data_area

    def last_ranges(self) -> tuple[AxisRange, AxisRange] | None:
        if self._last_x_range is None or self._last_y_range is None:
            return None
        return (self._last_x_range, self._last_y_range)

    def _limits(self) -> DataLimits:
        x, y = self.bars.to_arrays()
        if x.size == 0:
            return DataLimits(xmin=EMPTY_RANGE_MS[0], xmax=EMPTY_RANGE_MS[1], ymin=0.0, ymax=1.0)
        durations = [p.end_ms - p.start_ms for p in self.bars.periods()]
        x_pad = 0.6 * float(min(durations))
        _, y_trend = self.trend.to_arrays()
        y_all = np.concatenate([y, y_trend]) if y_trend.size else y
        return compute_count_limits(x, y_all, x_pad=x_pad)

    def render(self) -> np.ndarray:
        s = self.style
        canvas = new_canvas(self.width, self.height, color=s.rgba("background_color"))
        surface = RasterSurface(canvas)
        pad_top, pad_left, pad_bottom, pad_right = s.chart_padding
        bar_spec, line_spec = self.series_specs()

        cursor_y = float(pad_top)
        cursor_y = self._draw_title(surface, cursor_y)
        legend = self._build_legend_layout(surface, (bar_spec, line_spec), top=int(round(cursor_y)))
        self._draw_legend(surface, canvas, legend)
        cursor_y = float(legend.y + legend.box_h + LEGEND_GAP_PX)

        plot_area = Rect(
            x=float(pad_left),
            y=cursor_y,
            width=float(max(2, self.width - pad_left - pad_right)),
            height=float(max(2, self.height - cursor_y - pad_bottom)),
        )

        limits = self._limits()
        x_range = AxisRange(limits.xmin, limits.xmax)
        y_range = AxisRange(limits.ymin, limits.ymax)
        axis_style = AxisStyle(
            line_color=s.rgba("axis_color"),
            tick_label_color=s.rgba("tick_label_color"),
            label_color=s.rgba("axis_label_color"),
            font_family=s.font_family,
            tick_font_px=s.tick_font_px,
            label_font_px=s.axis_label_font_px,
        )
        x_axis = DateAxisRenderer(
            label=self.x_label,
            config=AxisGeometryConfig(rotation_angle_rad=s.rotation_angle_rad, arrow_size_px=s.arrow_size_px, label_on_right=True),
            style=axis_style,
            tick_source=self.tick_source(),
            label_formatter=self.date_formatter,
        )
        y_axis = NumberAxisRenderer(label=self.y_label, arrow_size_px=s.arrow_size_px, style=axis_style, formatter=self.count_formatter)

        y_ticks = y_axis.refresh_ticks(y_range, target=max(2, int(plot_area.height // 40)))
        x_ticks = x_axis.refresh_ticks(x_range, target=max(2, int(plot_area.width // 80)))

        data_area = self._data_area(surface, plot_area, x_axis, x_ticks, y_axis, y_ticks)
        self._last_data_area = data_area
        self._last_x_range = x_range
        self._last_y_range = y_range

        x_positions = [x_range.to_px(t.instant_ms, data_area, "bottom") for t in x_ticks]
        y_positions = [y_range.to_px(t.value, data_area, "left") for t in y_ticks]
        self._draw_plot_background(surface, data_area, x_positions, y_positions)

        plot_w = int(data_area.width) + 1
        plot_h = int(data_area.height) + 1
        transform = build_transform(limits=limits, width=plot_w, height=plot_h)
        x0 = int(data_area.min_x)
        y0 = int(data_area.min_y)

        # Pass 0: bars at the back so the trend line stays visible.
        x, y = bar_spec.series.to_arrays()
        if x.size:
            durations = np.asarray([p.end_ms - p.start_ms for p in bar_spec.series.periods()], dtype=np.float64)
            half = durations * bar_spec.style.bar_width * 0.5
            zeros = np.zeros_like(y)
            px_left, _ = map_to_pixels(x - half, zeros, transform, plot_w, plot_h)
            px_right, _ = map_to_pixels(x + half, zeros, transform, plot_w, plot_h)
            px_mid, py_zero = map_to_pixels(x, zeros, transform, plot_w, plot_h)
            _, py_vals = map_to_pixels(x, y, transform, plot_w, plot_h)
            with surface.scoped():
                surface.set_paint(bar_spec.style.color)
                for i in range(x.size):
                    if y[i] <= 0:
                        continue
                    left = x0 + int(min(px_left[i], px_right[i]))
                    right = x0 + int(max(px_left[i], px_right[i]))
                    top = y0 + int(min(py_zero[i], py_vals[i]))
                    bottom = y0 + int(max(py_zero[i], py_vals[i]))
                    surface.fill_rect(left, top, right, bottom, gradient_to=bar_spec.style.gradient_to, gradient_span=s.bar_gradient_span_px)
            with surface.scoped():
                surface.set_font(family=s.font_family, size_px=s.item_label_font_px)
                surface.set_paint(s.rgba("item_label_color"))
                for i in range(x.size):
                    surface.text(float(x0 + px_mid[i]), float(y0 + py_vals[i] - 2), self.count_formatter(y[i]), anchor="bottom_center")

        # Pass 1: trend line, then markers on top.
        tx, ty = line_spec.series.to_arrays()
        if tx.size:
            px, py = map_to_pixels(tx, ty, transform, plot_w, plot_h)
            px = px + x0
            py = py + y0
            draw_polyline(canvas, px, py, color=line_spec.style.color, width=line_spec.style.line_width)
            draw_markers(
                canvas,
                px,
                py,
                color=line_spec.style.color,
                size=line_spec.style.marker_size,
                shape="diamond",
                fill=s.rgba("marker_fill_color"),
            )

        x_axis.draw(surface, data_area.max_y, plot_area, data_area, "bottom", x_ticks, axis_range=x_range)
        y_axis.draw(surface, data_area.min_x, plot_area, data_area, "left", y_ticks, axis_range=y_range)
        LOGGER.debug(
            "rendered %dx%d chart: %d periods, %d date ticks, %d count ticks",
            self.width,
            self.height,
            len(self.bars),
            len(x_ticks),
            len(y_ticks),
        )
        return canvas

    def _draw_title(self, surface: Surface, top: float) -> float:
        if not self.title.strip():
            return top
        s = self.style
        with surface.scoped():
            surface.set_font(family=s.font_family, size_px=s.title_font_px, bold=True)
            surface.set_paint(s.rgba("title_color"))
            metrics = surface.measure_text(self.title)
            surface.text(self.width / 2.0, top, self.title, anchor="top_center")
        return top + metrics.height + TITLE_GAP_PX

    def _build_legend_layout(self, surface: Surface, specs: tuple[SeriesSpec, ...], *, top: int) -> LegendLayout:
        s = self.style
        entries = tuple(
            LegendEntry(
                label=spec.label if spec.label is not None and spec.label.strip() else f"series {i + 1}",
                mode=spec.style.mode,
                color=spec.style.color,
                gradient_to=spec.style.gradient_to,
            )
            for i, spec in enumerate(specs)
        )
        with surface.scoped():
            surface.set_font(family=s.font_family, size_px=s.legend_font_px)
            text_widths = tuple(surface.measure_text(entry.label).width for entry in entries)
            text_h = max(surface.measure_text(entry.label).height for entry in entries)
        swatch_w = int(max(12, s.legend_font_px * 1.6))
        swatch_h = int(max(6, s.legend_font_px * 0.8))
        item_gap = int(max(8, s.legend_font_px))
        pad_top, pad_left, pad_bottom, pad_right = s.legend_padding
        content_w = sum(swatch_w + 4 + w for w in text_widths) + item_gap * (len(entries) - 1)
        box_w = pad_left + content_w + pad_right
        box_h = pad_top + max(swatch_h, text_h, s.marker_radius_px * 2) + pad_bottom
        x = int(round((self.width - box_w) / 2.0))
        return LegendLayout(
            entries=entries,
            x=x,
            y=top,
            box_w=box_w,
            box_h=box_h,
            swatch_w=swatch_w,
            swatch_h=swatch_h,
            item_gap=item_gap,
            text_widths=text_widths,
        )

    def _draw_legend(self, surface: Surface, canvas: np.ndarray, layout: LegendLayout) -> None:
        s = self.style
        pad_top, pad_left, pad_bottom, _ = s.legend_padding
        x0, y0 = layout.x, layout.y
        x1, y1 = x0 + layout.box_w - 1, y0 + layout.box_h - 1
        row_y = y0 + pad_top + (layout.box_h - pad_top - pad_bottom) / 2.0
        with surface.scoped():
            surface.set_paint(s.rgba("legend_background_color"))
            surface.fill_rect(x0, y0, x1, y1)
            surface.set_paint(s.rgba("legend_border_color"))
            surface.line(x0, y0, x1, y0)
            surface.line(x0, y1, x1, y1)
            surface.line(x0, y0, x0, y1)
            surface.line(x1, y0, x1, y1)

            surface.set_font(family=s.font_family, size_px=s.legend_font_px)
            x = float(x0 + pad_left)
            for entry, text_w in zip(layout.entries, layout.text_widths):
                sw_x0 = int(round(x))
                sw_x1 = sw_x0 + layout.swatch_w - 1
                if entry.mode == "bars":
                    surface.set_paint(entry.color)
                    half = layout.swatch_h // 2
                    surface.fill_rect(sw_x0, int(row_y) - half, sw_x1, int(row_y) + half, gradient_to=entry.gradient_to)
                else:
                    surface.set_paint(entry.color)
                    surface.set_stroke(max(1, s.line_width_px - 1))
                    surface.line(sw_x0, row_y, sw_x1, row_y)
                    surface.set_stroke(1)
                    draw_markers(
                        canvas,
                        np.asarray([sw_x0 + layout.swatch_w // 2], dtype=np.int32),
                        np.asarray([int(row_y)], dtype=np.int32),
                        color=entry.color,
                        size=s.marker_radius_px * 2,
                        shape="diamond",
                        fill=s.rgba("marker_fill_color"),
                    )
                surface.set_paint(s.rgba("legend_text_color"))
                surface.text(sw_x1 + 4, row_y, entry.label, anchor="center_left")
                x += layout.swatch_w + 4 + text_w + layout.item_gap

    def _data_area(
        self,
        surface: Surface,
        plot_area: Rect,
        x_axis: DateAxisRenderer,
        x_ticks: list,
        y_axis: NumberAxisRenderer,
        y_ticks: list,
    ) -> Rect:
        st = y_axis.style
        label_room = 0.0
        with surface.scoped():
            surface.set_font(family=st.font_family, size_px=st.label_font_px, bold=st.label_bold)
            if y_axis.label:
                label_room = float(surface.measure_text(y_axis.label).height + st.label_gap_px)
            x_label_h = float(surface.measure_text(x_axis.label).height) if x_axis.label else 0.0
        left = st.tick_length_px + st.tick_label_gap_px + y_axis.measure_tick_extent(surface, y_ticks) + label_room + AXIS_ROOM_PX
        bottom = st.tick_length_px + st.tick_label_gap_px + x_axis.measure_tick_extent(surface, x_ticks)
        if x_axis.label:
            bottom += x_label_h + 5
        arrow_room = x_axis.config.arrow_size_px + AXIS_ROOM_PX
        width = max(2.0, plot_area.width - left - arrow_room)
        height = max(2.0, plot_area.height - bottom - arrow_room)
        return Rect(
            x=float(math.floor(plot_area.x + left)),
            y=float(math.floor(plot_area.y + arrow_room)),
            width=float(math.floor(width)),
            height=float(math.floor(height)),
        )

    def _draw_plot_background(self, surface: Surface, data_area: Rect, x_positions: list[float], y_positions: list[float]) -> None:
        s = self.style
        with surface.scoped():
            surface.set_paint(s.rgba("plot_background_color"))
            surface.fill_rect(data_area.min_x, data_area.min_y, data_area.max_x, data_area.max_y)
            surface.set_paint(s.rgba("grid_color"))
            for x in x_positions:
                surface.line(x, data_area.min_y, x, data_area.max_y)
            for y in y_positions:
                surface.line(data_area.min_x, y, data_area.max_x, y)
