from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from enum import Enum
from functools import lru_cache
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from babel import Locale, UnknownLocaleError

from countchart.errors import InvalidInput, require


DEFAULT_LOCALE = "en_US"

TimezoneLike = Union[str, dt.tzinfo]
LocaleLike = Union[str, Locale]
DateLike = Union[dt.date, str]


class DateScale(str, Enum):
    """Calendar unit the observation dates are truncated to."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: "DateScale | str") -> "DateScale":
        if isinstance(value, DateScale):
            return value
        if value is None:
            raise InvalidInput("scale is required")
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            choices = ", ".join(s.value for s in cls)
            raise InvalidInput(f"unknown date scale {value!r} (expected one of: {choices})") from exc

    def truncate(self, date: DateLike, timezone: TimezoneLike, locale: LocaleLike | None = None) -> "RegularPeriod":
        return truncate(date, timezone, self, locale)


@dataclass(frozen=True)
class RegularPeriod:
    """Half-open calendar interval ``[start_ms, end_ms)`` in epoch milliseconds.

    Two periods are equal when they share a scale and a start instant; the end
    instant is derived from those and does not take part in comparisons.
    """

    scale: DateScale
    start_ms: int
    end_ms: int = field(compare=False)
    timezone: dt.tzinfo = field(compare=False, repr=False)
    first_week_day: int = field(default=0, compare=False, repr=False)

    @property
    def start(self) -> dt.datetime:
        return dt.datetime.fromtimestamp(self.start_ms / 1000.0, tz=self.timezone)

    @property
    def end(self) -> dt.datetime:
        return dt.datetime.fromtimestamp(self.end_ms / 1000.0, tz=self.timezone)

    @property
    def start_date(self) -> dt.date:
        return self.start.date()

    @property
    def last_millisecond(self) -> int:
        return self.end_ms - 1

    @property
    def duration_days(self) -> int:
        return (self.end.date() - self.start_date).days

    def contains(self, instant_ms: int) -> bool:
        return self.start_ms <= instant_ms < self.end_ms

    def next(self) -> "RegularPeriod":
        return _period_from_start(self.scale, self.end.date(), self.timezone, self.first_week_day)

    def previous(self) -> "RegularPeriod":
        try:
            day_before = self.start_date - dt.timedelta(days=1)
        except OverflowError as exc:
            raise InvalidInput(f"date out of supported range: {self.start_date.isoformat()}") from exc
        return _period_from_start(self.scale, _unit_start(self.scale, day_before, self.first_week_day), self.timezone, self.first_week_day)

    def __lt__(self, other: "RegularPeriod") -> bool:
        if not isinstance(other, RegularPeriod):
            return NotImplemented
        return (self.start_ms, self.scale.value) < (other.start_ms, other.scale.value)


def resolve_timezone(timezone: TimezoneLike | None) -> dt.tzinfo:
    require(timezone, "timezone")
    if isinstance(timezone, dt.tzinfo):
        return timezone
    name = str(timezone).strip()
    if not name:
        raise InvalidInput("timezone is required")
    return _zone(name)


@lru_cache(maxsize=64)
def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidInput(f"unknown timezone: {name!r}") from exc


def resolve_locale(locale: LocaleLike | None) -> Locale:
    if locale is None:
        return _locale(DEFAULT_LOCALE)
    if isinstance(locale, Locale):
        return locale
    name = str(locale).strip()
    if not name:
        raise InvalidInput("locale must not be blank")
    return _locale(name.replace("-", "_"))


@lru_cache(maxsize=64)
def _locale(identifier: str) -> Locale:
    try:
        return Locale.parse(identifier)
    except (UnknownLocaleError, ValueError) as exc:
        raise InvalidInput(f"unknown locale: {identifier!r}") from exc


def coerce_date(value: DateLike | None, timezone: dt.tzinfo | None = None) -> dt.date:
    require(value, "date")
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None and timezone is not None:
            return value.astimezone(timezone).date()
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidInput(f"invalid ISO date: {value!r}") from exc
    raise InvalidInput(f"unsupported date value: {value!r}")


def truncate(
    date: DateLike,
    timezone: TimezoneLike,
    scale: DateScale | str,
    locale: LocaleLike | None = None,
) -> RegularPeriod:
    """Map ``date`` to the regular period of ``scale`` that contains it.

    The period is anchored to zoned midnights in ``timezone``. Weeks start on
    the locale's first day of the week (Sunday for ``en_US``, Monday for most
    European locales); ``DEFAULT_LOCALE`` applies when no locale is given.
    """
    tz = resolve_timezone(timezone)
    day = coerce_date(date, tz)
    unit = DateScale.parse(scale)
    first_week_day = resolve_locale(locale).first_week_day
    return _period_from_start(unit, _unit_start(unit, day, first_week_day), tz, first_week_day)


def _unit_start(scale: DateScale, day: dt.date, first_week_day: int) -> dt.date:
    if scale is DateScale.DAY:
        return day
    if scale is DateScale.WEEK:
        # date.weekday() and Babel's first_week_day both count Monday as 0.
        try:
            return day - dt.timedelta(days=(day.weekday() - first_week_day) % 7)
        except OverflowError as exc:
            raise InvalidInput(f"date out of supported range: {day.isoformat()}") from exc
    if scale is DateScale.MONTH:
        return day.replace(day=1)
    if scale is DateScale.QUARTER:
        return dt.date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
    return dt.date(day.year, 1, 1)


def _next_unit_start(scale: DateScale, start: dt.date) -> dt.date:
    if scale is DateScale.DAY:
        return start + dt.timedelta(days=1)
    if scale is DateScale.WEEK:
        return start + dt.timedelta(days=7)
    if scale is DateScale.YEAR:
        return dt.date(start.year + 1, 1, 1)
    months = 1 if scale is DateScale.MONTH else 3
    index = start.month - 1 + months
    return dt.date(start.year + index // 12, index % 12 + 1, 1)


def _period_from_start(scale: DateScale, start: dt.date, tz: dt.tzinfo, first_week_day: int) -> RegularPeriod:
    try:
        end = _next_unit_start(scale, start)
        start_ms = start_of_day_ms(start, tz)
        end_ms = start_of_day_ms(end, tz)
    except (ValueError, OverflowError) as exc:
        raise InvalidInput(f"date out of supported range: {start.isoformat()}") from exc
    return RegularPeriod(
        scale=scale,
        start_ms=start_ms,
        end_ms=end_ms,
        timezone=tz,
        first_week_day=first_week_day,
    )


def start_of_day_ms(day: dt.date, tz: dt.tzinfo) -> int:
    midnight = dt.datetime(day.year, day.month, day.day, tzinfo=tz)
    return int(round(midnight.timestamp() * 1000))
