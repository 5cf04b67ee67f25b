from __future__ import annotations

import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from countchart.errors import InvalidInput
from countchart.periods import DateScale
from countchart.request import MAX_DATA_POINTS, CountByDateChartRequest
from countchart.series import Observation


def _request(**overrides):
    kwargs = dict(
        data=[{"date": "2024-01-01", "count": 3}],
        scale="week",
        timezone="UTC",
        width=640,
        height=400,
        chart_title="Orders",
        trend_title="Trend",
        x_axis_label="Week",
        y_axis_label="Orders",
    )
    kwargs.update(overrides)
    return CountByDateChartRequest.create(**kwargs)


class RequestValidationTests(unittest.TestCase):
    def test_valid_request_is_normalized(self) -> None:
        request = _request()
        self.assertIs(request.scale, DateScale.WEEK)
        self.assertEqual(request.data, (Observation(date=dt.date(2024, 1, 1), count=3.0),))
        self.assertEqual(str(request.date_locale), "en_US")

    def test_dimension_bounds(self) -> None:
        for ok in (30, 2000):
            with self.subTest(width=ok):
                self.assertEqual(_request(width=ok).width, ok)
        for bad in (29, 2001, 0, -5):
            with self.subTest(width=bad):
                with self.assertRaisesRegex(InvalidInput, "width"):
                    _request(width=bad)
        with self.assertRaisesRegex(InvalidInput, "height"):
            _request(height=2001)

    def test_dimensions_must_be_integers(self) -> None:
        for bad in (True, 400.0, "400"):
            with self.subTest(height=bad):
                with self.assertRaisesRegex(InvalidInput, "integer"):
                    _request(height=bad)

    def test_too_many_observations(self) -> None:
        data = [{"date": "2024-01-01", "count": 1}] * (MAX_DATA_POINTS + 1)
        with self.assertRaisesRegex(InvalidInput, "at most"):
            _request(data=data)
        self.assertEqual(len(_request(data=data[:MAX_DATA_POINTS]).data), MAX_DATA_POINTS)

    def test_blank_titles_are_rejected(self) -> None:
        for name in ("chart_title", "trend_title", "x_axis_label", "y_axis_label"):
            with self.subTest(field=name):
                with self.assertRaisesRegex(InvalidInput, f"{name} must not be blank"):
                    _request(**{name: "  "})

    def test_negative_count_is_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidInput, "negative"):
            _request(data=[("2024-01-01", -1)])

    def test_oversized_count_is_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidInput, "finite"):
            _request(data=[{"date": "2024-01-01", "count": 10**400}])
        with self.assertRaisesRegex(InvalidInput, "finite"):
            _request(data=[Observation(date=dt.date(2024, 1, 1), count=10**400)])

    def test_unknown_scale_and_timezone(self) -> None:
        with self.assertRaises(InvalidInput):
            _request(scale="hour")
        with self.assertRaises(InvalidInput):
            _request(timezone="Mars/Olympus")

    def test_missing_data_is_rejected(self) -> None:
        with self.assertRaises(InvalidInput):
            _request(data=None)

    def test_display_timezone(self) -> None:
        self.assertEqual(_request().display_timezone, ZoneInfo("UTC"))
        request = _request(presentation_timezone="America/New_York")
        self.assertEqual(request.display_timezone, ZoneInfo("America/New_York"))
        self.assertEqual(request.timezone, ZoneInfo("UTC"))


if __name__ == "__main__":
    unittest.main()
