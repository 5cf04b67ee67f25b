from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import datetime as dt
import logging
import math
from typing import Protocol

from countchart.periods import start_of_day_ms
from countchart.scales import generate_nice_ticks
from countchart.series import CountSeries


LOGGER = logging.getLogger(__name__)

DAY_MS = 86_400_000
EPOCH_DATE = dt.date(1970, 1, 1)

LabelFormatter = Callable[[float], str]


@dataclass(frozen=True)
class TickCandidate:
    instant_ms: int
    label: str


def select_ticks(
    series: Sequence[CountSeries],
    visible_start_ms: float,
    visible_end_ms: float,
    label_formatter: LabelFormatter,
) -> list[TickCandidate]:
    """Ticks at the period starts present in ``series`` that fall in the visible range.

    The candidate set is the union of every series' periods; a start instant
    shared by several series yields a single tick. Bounds are inclusive.
    """
    if not series or visible_end_ms < visible_start_ms:
        return []
    seen: set[int] = set()
    ticks: list[TickCandidate] = []
    for s in series:
        for period in s.periods():
            instant = period.start_ms
            if instant < visible_start_ms or instant > visible_end_ms or instant in seen:
                continue
            seen.add(instant)
            ticks.append(TickCandidate(instant_ms=instant, label=label_formatter(instant)))
    ticks.sort(key=lambda t: t.instant_ms)
    return ticks


class TickSource(Protocol):
    def ticks(
        self,
        visible_start_ms: float,
        visible_end_ms: float,
        label_formatter: LabelFormatter,
        *,
        target: int,
    ) -> list[TickCandidate]: ...


@dataclass(frozen=True)
class DatasetTickSource:
    """Restricts ticks to dates that actually carry data."""

    series: tuple[CountSeries, ...]

    def ticks(
        self,
        visible_start_ms: float,
        visible_end_ms: float,
        label_formatter: LabelFormatter,
        *,
        target: int = 0,
    ) -> list[TickCandidate]:
        out = select_ticks(self.series, visible_start_ms, visible_end_ms, label_formatter)
        LOGGER.debug("dataset ticks: %d in [%s, %s]", len(out), visible_start_ms, visible_end_ms)
        return out


@dataclass(frozen=True)
class NiceDateTickSource:
    """Evenly spaced midnight ticks, used when the axis has no dataset.

    Midnights are taken in ``timezone`` (UTC when unset), which should match
    the timezone the labels are printed in.
    """

    min_step_days: int = 1
    timezone: dt.tzinfo | None = None

    def ticks(
        self,
        visible_start_ms: float,
        visible_end_ms: float,
        label_formatter: LabelFormatter,
        *,
        target: int = 5,
    ) -> list[TickCandidate]:
        if visible_end_ms < visible_start_ms:
            return []
        tz = self.timezone if self.timezone is not None else dt.timezone.utc
        lo_days = float(visible_start_ms) / DAY_MS
        hi_days = float(visible_end_ms) / DAY_MS
        raw = generate_nice_ticks(lo_days, hi_days, max(2, target))
        step = float(abs(raw[1] - raw[0])) if raw.size > 1 else float(self.min_step_days)
        step_days = int(max(self.min_step_days, math.ceil(step)))

        first_day = dt.datetime.fromtimestamp(float(visible_start_ms) / 1000.0, tz=tz).date()
        last_day = dt.datetime.fromtimestamp(float(visible_end_ms) / 1000.0, tz=tz).date()
        first_index = math.ceil((first_day - EPOCH_DATE).days / step_days) * step_days
        out: list[TickCandidate] = []
        for index in range(first_index, (last_day - EPOCH_DATE).days + 1, step_days):
            instant = start_of_day_ms(EPOCH_DATE + dt.timedelta(days=index), tz)
            if visible_start_ms <= instant <= visible_end_ms:
                out.append(TickCandidate(instant_ms=instant, label=label_formatter(instant)))
        return out


def resolve_tick_source(series: Sequence[CountSeries] | None, *, timezone: dt.tzinfo | None = None) -> TickSource:
    if series is None:
        return NiceDateTickSource(timezone=timezone)
    return DatasetTickSource(series=tuple(series))
