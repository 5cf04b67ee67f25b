from __future__ import annotations

import math
import unittest

from countchart.axis import (
    ArrowDirection,
    AxisGeometryConfig,
    AxisRange,
    AxisStyle,
    DateAxisRenderer,
    NumberAxisRenderer,
    Rect,
    arrow_segments,
    resolve_horizontal,
    right_label_position,
)
from countchart.errors import InvalidInput
from countchart.formatting import CountFormatter
from countchart.raster.surface import GraphicsState, LineCommand, RecordingSurface, TextCommand
from countchart.ticks import DAY_MS, TickCandidate


DATA_AREA = Rect(x=50.0, y=10.0, width=200.0, height=100.0)
PLOT_AREA = Rect(x=0.0, y=0.0, width=300.0, height=200.0)
X_RANGE = AxisRange(0.0, 10.0 * DAY_MS)
TICKS = [
    TickCandidate(instant_ms=0, label="Jan 1, 1970"),
    TickCandidate(instant_ms=5 * DAY_MS, label="Jan 6, 1970"),
    TickCandidate(instant_ms=10 * DAY_MS, label="Jan 11, 1970"),
]


def _segment(cmd: LineCommand) -> tuple[float, float, float, float]:
    return (cmd.x0, cmd.y0, cmd.x1, cmd.y1)


class _FailingTextSurface(RecordingSurface):
    def __init__(self, width: int, height: int, fail_on: str) -> None:
        super().__init__(width, height)
        self.fail_on = fail_on

    def _emit(self, command) -> None:
        if isinstance(command, TextCommand) and command.text == self.fail_on:
            raise RuntimeError("text backend failed")
        super()._emit(command)


class AxisGeometryTests(unittest.TestCase):
    def test_config_rejects_non_finite_rotation(self) -> None:
        for bad in (math.nan, math.inf, -math.inf):
            with self.subTest(angle=bad):
                with self.assertRaisesRegex(InvalidInput, "finite"):
                    AxisGeometryConfig(rotation_angle_rad=bad)

    def test_config_coerces_arrow_direction(self) -> None:
        self.assertIs(AxisGeometryConfig(arrow_direction="vertical").arrow_direction, ArrowDirection.VERTICAL)  # type: ignore[arg-type]
        with self.assertRaises(InvalidInput):
            AxisGeometryConfig(arrow_direction="sideways")  # type: ignore[arg-type]

    def test_direction_resolution(self) -> None:
        self.assertTrue(resolve_horizontal(ArrowDirection.AUTO, "bottom"))
        self.assertTrue(resolve_horizontal(ArrowDirection.AUTO, "top"))
        self.assertFalse(resolve_horizontal(ArrowDirection.AUTO, "left"))
        self.assertFalse(resolve_horizontal(ArrowDirection.AUTO, "right"))
        self.assertTrue(resolve_horizontal(ArrowDirection.HORIZONTAL, "left"))
        self.assertFalse(resolve_horizontal(ArrowDirection.VERTICAL, "bottom"))

    def test_horizontal_arrow_geometry(self) -> None:
        shaft, upper, lower = arrow_segments(70.0, Rect(10, 20, 100, 50), horizontal=True)
        self.assertEqual(shaft, (110.0, 70.0, 120.0, 70.0))
        self.assertEqual(upper, (120.0, 70.0, 115.0, 67.0))
        self.assertEqual(lower, (120.0, 70.0, 115.0, 73.0))

    def test_vertical_arrow_geometry(self) -> None:
        shaft, left, right = arrow_segments(10.0, Rect(10, 20, 100, 50), horizontal=False)
        self.assertEqual(shaft, (10.0, 20.0, 10.0, 10.0))
        self.assertEqual(left, (10.0, 10.0, 7.0, 15.0))
        self.assertEqual(right, (10.0, 10.0, 13.0, 15.0))

    def test_right_label_position(self) -> None:
        plot = Rect(0, 0, 200, 150)
        data = Rect(20, 10, 170, 100)
        self.assertEqual(right_label_position(40, 12, cursor=100, plot_area=plot, data_area=data, edge="bottom"), (150.0, 117.0))
        self.assertEqual(right_label_position(40, 12, cursor=100, plot_area=plot, data_area=data, edge="top"), (150.0, 95.0))
        narrow_plot = Rect(0, 0, 180, 150)
        self.assertEqual(right_label_position(40, 12, cursor=100, plot_area=narrow_plot, data_area=data, edge="bottom")[0], 140.0)

    def test_axis_range_rejects_inverted_bounds(self) -> None:
        with self.assertRaises(InvalidInput):
            AxisRange(5.0, 1.0)

    def test_axis_range_maps_both_orientations(self) -> None:
        rng = AxisRange(0.0, 10.0)
        self.assertEqual(rng.to_px(5.0, DATA_AREA, "bottom"), 150.0)
        self.assertEqual(rng.to_px(0.0, DATA_AREA, "left"), 110.0)
        self.assertEqual(rng.to_px(10.0, DATA_AREA, "left"), 10.0)


class DateAxisRendererTests(unittest.TestCase):
    def _draw(self, config: AxisGeometryConfig, *, label: str | None = "Date", surface: RecordingSurface | None = None):
        surface = surface or RecordingSurface(320, 240)
        renderer = DateAxisRenderer(label=label, config=config)
        state = renderer.draw(surface, DATA_AREA.max_y, PLOT_AREA, DATA_AREA, "bottom", TICKS, axis_range=X_RANGE)
        return surface, renderer, state

    def test_tick_label_anchor_is_invariant_under_rotation(self) -> None:
        style = AxisStyle()
        expected_y = DATA_AREA.max_y + style.tick_length_px + style.tick_label_gap_px
        anchors = None
        for angle in (0.0, -math.pi / 4.0, -math.pi / 2.0, 1.0):
            with self.subTest(angle=angle):
                surface, _, _ = self._draw(AxisGeometryConfig(rotation_angle_rad=angle))
                labels = [t for t in surface.texts() if t.text in {tick.label for tick in TICKS}]
                self.assertEqual(len(labels), 3)
                for cmd in labels:
                    self.assertEqual(cmd.anchor, "top_right")
                    self.assertAlmostEqual(cmd.angle_rad, angle)
                    self.assertAlmostEqual(cmd.local_anchor[1], 0.0)
                got = [(round(c.x, 6), round(c.y, 6)) for c in labels]
                self.assertEqual(got, [(50.0, expected_y), (150.0, expected_y), (250.0, expected_y)])
                if anchors is None:
                    anchors = got
                self.assertEqual(got, anchors)

    def test_arrow_is_drawn_last_from_original_cursor(self) -> None:
        surface, _, _ = self._draw(AxisGeometryConfig())
        lines = surface.lines()
        expected = arrow_segments(DATA_AREA.max_y, DATA_AREA, horizontal=True)
        self.assertEqual(tuple(_segment(c) for c in lines[-3:]), expected)

    def test_explicit_vertical_arrow_on_bottom_edge(self) -> None:
        surface, _, _ = self._draw(AxisGeometryConfig(arrow_direction=ArrowDirection.VERTICAL))
        expected = arrow_segments(DATA_AREA.max_y, DATA_AREA, horizontal=False)
        self.assertEqual(tuple(_segment(c) for c in surface.lines()[-3:]), expected)

    def test_centered_label_without_label_on_right(self) -> None:
        surface, _, _ = self._draw(AxisGeometryConfig(label_on_right=False))
        label = [t for t in surface.texts() if t.text == "Date"]
        self.assertEqual(len(label), 1)
        self.assertEqual(label[0].anchor, "top_center")
        self.assertEqual(label[0].x, DATA_AREA.center_x)

    def test_label_on_right_replaces_centered_label(self) -> None:
        surface, renderer, state = self._draw(AxisGeometryConfig(label_on_right=True))
        label = [t for t in surface.texts() if t.text == "Date"]
        self.assertEqual(len(label), 1)
        cmd = label[0]
        self.assertEqual(cmd.anchor, "baseline_left")
        with surface.scoped():
            surface.set_font(family=renderer.style.font_family, size_px=renderer.style.label_font_px, bold=renderer.style.label_bold)
            metrics = surface.measure_text("Date")
        self.assertAlmostEqual(cmd.x, min(DATA_AREA.max_x, PLOT_AREA.max_x) - metrics.width)
        self.assertAlmostEqual(cmd.y, state.cursor + metrics.height + 5)

    def test_state_is_restored_after_draw(self) -> None:
        surface = RecordingSurface(320, 240)
        surface.set_paint((1, 2, 3, 255))
        before = surface.state
        self._draw(AxisGeometryConfig(label_on_right=True), surface=surface)
        self.assertEqual(surface.state, before)
        self.assertEqual(surface.depth, 0)

    def test_state_is_restored_when_drawing_fails(self) -> None:
        surface = _FailingTextSurface(320, 240, fail_on="Date")
        with self.assertRaisesRegex(RuntimeError, "text backend failed"):
            self._draw(AxisGeometryConfig(label_on_right=True), surface=surface)
        self.assertEqual(surface.state, GraphicsState())
        self.assertEqual(surface.depth, 0)

    def test_returned_cursor_moves_away_from_axis(self) -> None:
        _, _, state = self._draw(AxisGeometryConfig())
        self.assertGreater(state.cursor, DATA_AREA.max_y)
        self.assertEqual(state.tick_positions, (50.0, 150.0, 250.0))

    def test_no_ticks_still_draws_axis_and_arrow(self) -> None:
        surface = RecordingSurface(320, 240)
        DateAxisRenderer(label=None).draw(surface, DATA_AREA.max_y, PLOT_AREA, DATA_AREA, "bottom", [], axis_range=X_RANGE)
        self.assertEqual(surface.texts(), [])
        self.assertEqual(len(surface.lines()), 4)


class NumberAxisRendererTests(unittest.TestCase):
    def test_ticks_are_whole_numbers_including_zero(self) -> None:
        ticks = NumberAxisRenderer().refresh_ticks(AxisRange(0.0, 5.4), target=6)
        values = [t.value for t in ticks]
        self.assertEqual(values[0], 0.0)
        self.assertTrue(all(v == int(v) for v in values))
        self.assertTrue(all(0.0 <= v <= 5.4 for v in values))

    def test_labels_use_locale_grouping(self) -> None:
        ticks = NumberAxisRenderer(formatter=CountFormatter.create("de_DE")).refresh_ticks(AxisRange(0.0, 1500.0), target=6)
        self.assertIn("1.000", [t.label for t in ticks])

    def test_vertical_arrow_on_left_edge(self) -> None:
        surface = RecordingSurface(320, 240)
        renderer = NumberAxisRenderer(label="Count")
        y_range = AxisRange(0.0, 4.0)
        ticks = renderer.refresh_ticks(y_range, target=5)
        state = renderer.draw(surface, DATA_AREA.min_x, PLOT_AREA, DATA_AREA, "left", ticks, axis_range=y_range)
        expected = arrow_segments(DATA_AREA.min_x, DATA_AREA, horizontal=False)
        self.assertEqual(tuple(_segment(c) for c in surface.lines()[-3:]), expected)
        self.assertLess(state.cursor, DATA_AREA.min_x)
        self.assertEqual(surface.depth, 0)
        tick_texts = [t for t in surface.texts() if t.text != "Count"]
        self.assertTrue(all(t.anchor == "center_right" for t in tick_texts))


if __name__ == "__main__":
    unittest.main()
