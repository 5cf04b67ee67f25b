from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import datetime as dt
import logging
import math
import numbers
from typing import Literal

import numpy as np

from countchart.errors import InvalidInput
from countchart.periods import DateScale, LocaleLike, RegularPeriod, TimezoneLike, resolve_locale, resolve_timezone, truncate


LOGGER = logging.getLogger(__name__)

SeriesMode = Literal["bars", "lines+markers"]


@dataclass(frozen=True)
class Observation:
    date: dt.date
    count: float

    def validate(self, index: int | None = None) -> None:
        where = "" if index is None else f" at index {index}"
        if self.date is None:
            raise InvalidInput(f"observation date is required{where}")
        if isinstance(self.count, bool) or not isinstance(self.count, numbers.Real):
            raise InvalidInput(f"observation count must be a number{where}: {self.count!r}")
        try:
            finite = math.isfinite(self.count)
        except OverflowError as exc:
            raise InvalidInput(f"observation count must be finite{where}: too large") from exc
        if not finite:
            raise InvalidInput(f"observation count must be finite{where}: {self.count!r}")
        if self.count < 0:
            raise InvalidInput(f"count cannot be negative{where}: {self.count!r}")


@dataclass(frozen=True)
class AggregatedPoint:
    period: RegularPeriod
    value: float


class CountSeries:
    """Counts keyed by regular period, iterated in chronological order."""

    def __init__(
        self,
        scale: DateScale,
        timezone: TimezoneLike,
        locale: LocaleLike | None = None,
        *,
        name: str | None = None,
    ) -> None:
        self.scale = DateScale.parse(scale)
        self.timezone = resolve_timezone(timezone)
        self.locale = resolve_locale(locale)
        self.name = name
        self._values: dict[RegularPeriod, float] = {}

    def add(self, observation: Observation) -> AggregatedPoint:
        """Add one observation's count to the period its date truncates to."""
        observation.validate()
        period = truncate(observation.date, self.timezone, self.scale, self.locale)
        current = self._values.get(period, 0.0)
        self._values[period] = current + float(observation.count)
        return AggregatedPoint(period=period, value=self._values[period])

    def value(self, period: RegularPeriod) -> float:
        return self._values.get(period, 0.0)

    def periods(self) -> list[RegularPeriod]:
        return sorted(self._values)

    def points(self) -> list[AggregatedPoint]:
        return [AggregatedPoint(period=p, value=self._values[p]) for p in self.periods()]

    @property
    def min_period(self) -> RegularPeriod | None:
        return min(self._values) if self._values else None

    @property
    def max_period(self) -> RegularPeriod | None:
        return max(self._values) if self._values else None

    def to_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        points = self.points()
        x = np.asarray([p.period.start_ms for p in points], dtype=np.float64)
        y = np.asarray([p.value for p in points], dtype=np.float64)
        return x, y

    def __iter__(self) -> Iterator[AggregatedPoint]:
        return iter(self.points())

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, period: object) -> bool:
        return period in self._values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CountSeries):
            return NotImplemented
        return self.scale is other.scale and self._values == other._values

    def __repr__(self) -> str:
        return f"CountSeries(name={self.name!r}, scale={self.scale.value}, points={len(self)})"


def aggregate(
    observations: Iterable[Observation],
    scale: DateScale | str,
    timezone: TimezoneLike,
    locale: LocaleLike | None = None,
    *,
    name: str | None = None,
) -> CountSeries:
    """Fold observations into one point per truncated period.

    All observations are validated before any bucketing, so a bad count
    rejects the whole input. Per-period totals are summed with ``math.fsum``,
    which makes the result independent of input order.
    """
    items = list(observations)
    for index, obs in enumerate(items):
        if not isinstance(obs, Observation):
            raise InvalidInput(f"expected Observation at index {index}, got {type(obs).__name__}")
        obs.validate(index)

    series = CountSeries(scale, timezone, locale, name=name)
    buckets: dict[RegularPeriod, list[float]] = {}
    for obs in items:
        period = truncate(obs.date, series.timezone, series.scale, series.locale)
        buckets.setdefault(period, []).append(float(obs.count))
    for period, counts in buckets.items():
        series._values[period] = math.fsum(counts)
    LOGGER.debug("aggregated %d observations into %d %s periods", len(items), len(series), series.scale.value)
    return series


def aggregate_pair(
    observations: Iterable[Observation],
    scale: DateScale | str,
    timezone: TimezoneLike,
    locale: LocaleLike | None = None,
    *,
    bar_name: str | None = None,
    trend_name: str | None = None,
) -> tuple[CountSeries, CountSeries]:
    """Build the bar and trend series from one observation list."""
    items = list(observations)
    bars = aggregate(items, scale, timezone, locale, name=bar_name)
    trend = aggregate(items, scale, timezone, locale, name=trend_name)
    if bars.periods() != trend.periods():
        raise InvalidInput("bar and trend series must share the same periods")
    return bars, trend


@dataclass(frozen=True)
class SeriesStyle:
    mode: SeriesMode
    color: tuple[int, int, int, int] = (99, 102, 241, 255)
    gradient_to: tuple[int, int, int, int] | None = None
    marker_size: int = 10
    line_width: int = 2
    bar_width: float = 0.3


@dataclass(frozen=True)
class SeriesSpec:
    series: CountSeries
    style: SeriesStyle
    label: str | None = None
