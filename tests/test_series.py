from __future__ import annotations

import datetime as dt
import itertools
import math
import unittest

import numpy as np

from countchart.errors import InvalidInput
from countchart.periods import DateScale, truncate
from countchart.series import CountSeries, Observation, aggregate, aggregate_pair


def _obs(y: int, m: int, d: int, count: float) -> Observation:
    return Observation(date=dt.date(y, m, d), count=count)


class AggregateTests(unittest.TestCase):
    def test_weekly_us_buckets_are_sunday_anchored(self) -> None:
        data = [_obs(2024, 1, 1, 3), _obs(2024, 1, 1, 2), _obs(2024, 1, 8, 5)]
        series = aggregate(data, DateScale.WEEK, "UTC", "en_US")
        points = list(series)
        self.assertEqual([p.period.start_date for p in points], [dt.date(2023, 12, 31), dt.date(2024, 1, 7)])
        self.assertEqual([p.value for p in points], [5.0, 5.0])

    def test_monthly_buckets(self) -> None:
        data = [_obs(2024, 1, 5, 1), _obs(2024, 1, 20, 1), _obs(2024, 2, 1, 1)]
        series = aggregate(data, "month", "UTC")
        self.assertEqual([p.period.start_date for p in series], [dt.date(2024, 1, 1), dt.date(2024, 2, 1)])
        self.assertEqual([p.value for p in series], [2.0, 1.0])

    def test_empty_input_gives_empty_series(self) -> None:
        series = aggregate([], DateScale.DAY, "UTC")
        self.assertEqual(len(series), 0)
        self.assertIsNone(series.min_period)
        self.assertIsNone(series.max_period)
        self.assertEqual(list(series), [])

    def test_order_independent_for_every_permutation(self) -> None:
        data = [_obs(2024, 1, 1, 0.1), _obs(2024, 1, 2, 0.2), _obs(2024, 1, 3, 0.3), _obs(2024, 1, 4, 1e16)]
        expected = aggregate(data, DateScale.MONTH, "UTC")
        for perm in itertools.permutations(data):
            got = aggregate(perm, DateScale.MONTH, "UTC")
            self.assertEqual(got, expected)
            self.assertEqual([p.value for p in got], [p.value for p in expected])

    def test_additive_within_one_period(self) -> None:
        series = aggregate([_obs(2024, 3, 4, 7), _obs(2024, 3, 6, 8)], DateScale.WEEK, "UTC", "de_DE")
        self.assertEqual(len(series), 1)
        self.assertEqual(series.points()[0].value, 15.0)

    def test_negative_count_is_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidInput, "negative"):
            aggregate([_obs(2024, 1, 1, 1), _obs(2024, 1, 2, -1)], DateScale.DAY, "UTC")

    def test_nan_and_infinite_counts_are_rejected(self) -> None:
        for bad in (math.nan, math.inf):
            with self.subTest(count=bad):
                with self.assertRaisesRegex(InvalidInput, "finite"):
                    aggregate([_obs(2024, 1, 1, bad)], DateScale.DAY, "UTC")

    def test_count_too_large_for_float_is_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidInput, "finite"):
            aggregate([_obs(2024, 1, 1, 10**400)], DateScale.DAY, "UTC")

    def test_bool_and_missing_values_are_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidInput, "must be a number"):
            aggregate([Observation(date=dt.date(2024, 1, 1), count=True)], DateScale.DAY, "UTC")
        with self.assertRaisesRegex(InvalidInput, "date is required"):
            aggregate([Observation(date=None, count=1)], DateScale.DAY, "UTC")  # type: ignore[arg-type]

    def test_non_observation_items_are_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidInput, "expected Observation"):
            aggregate([(dt.date(2024, 1, 1), 1)], DateScale.DAY, "UTC")  # type: ignore[list-item]

    def test_value_is_zero_for_absent_period(self) -> None:
        series = aggregate([_obs(2024, 1, 1, 4)], DateScale.DAY, "UTC")
        absent = truncate(dt.date(2024, 1, 2), "UTC", DateScale.DAY)
        self.assertEqual(series.value(absent), 0.0)
        self.assertNotIn(absent, series)
        self.assertIn(truncate(dt.date(2024, 1, 1), "UTC", DateScale.DAY), series)

    def test_min_and_max_period(self) -> None:
        series = aggregate([_obs(2024, 5, 1, 1), _obs(2024, 1, 1, 1), _obs(2024, 3, 1, 1)], DateScale.MONTH, "UTC")
        self.assertEqual(series.min_period.start_date, dt.date(2024, 1, 1))
        self.assertEqual(series.max_period.start_date, dt.date(2024, 5, 1))


class CountSeriesTests(unittest.TestCase):
    def test_add_updates_existing_period(self) -> None:
        series = CountSeries(DateScale.DAY, "UTC", name="orders")
        series.add(_obs(2024, 1, 1, 2))
        point = series.add(_obs(2024, 1, 1, 3))
        self.assertEqual(point.value, 5.0)
        self.assertEqual(len(series), 1)

    def test_add_rejects_negative_count(self) -> None:
        series = CountSeries(DateScale.DAY, "UTC")
        with self.assertRaises(InvalidInput):
            series.add(_obs(2024, 1, 1, -1))
        self.assertEqual(len(series), 0)

    def test_to_arrays_follow_chronological_order(self) -> None:
        series = aggregate([_obs(2024, 1, 2, 4), _obs(2024, 1, 1, 1)], DateScale.DAY, "UTC")
        x, y = series.to_arrays()
        self.assertEqual(x.dtype, np.float64)
        self.assertTrue(np.all(np.diff(x) > 0))
        np.testing.assert_array_equal(y, np.asarray([1.0, 4.0]))

    def test_aggregate_pair_shares_periods(self) -> None:
        data = [_obs(2024, 1, 1, 1), _obs(2024, 2, 1, 2)]
        bars, trend = aggregate_pair(data, DateScale.MONTH, "UTC", bar_name="Orders", trend_name="Trend")
        self.assertEqual(bars.periods(), trend.periods())
        self.assertEqual(bars, trend)
        self.assertEqual((bars.name, trend.name), ("Orders", "Trend"))


if __name__ == "__main__":
    unittest.main()
