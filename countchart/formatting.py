from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt

from babel import Locale
from babel.dates import format_date
from babel.numbers import format_decimal

from countchart.periods import LocaleLike, TimezoneLike, resolve_locale, resolve_timezone


INTEGER_PATTERN = "#,##0"


@dataclass(frozen=True)
class DateLabelFormatter:
    """Formats period-start instants as dates in the presentation timezone.

    Aggregation decides which day an observation belongs to; this formatter
    only decides how an instant is displayed, so its timezone may differ from
    the one the series was bucketed in.
    """

    locale: Locale = field(default_factory=lambda: resolve_locale(None))
    timezone: dt.tzinfo = dt.timezone.utc
    date_format: str = "medium"

    @classmethod
    def create(cls, locale: LocaleLike | None, timezone: TimezoneLike, date_format: str = "medium") -> "DateLabelFormatter":
        return cls(locale=resolve_locale(locale), timezone=resolve_timezone(timezone), date_format=date_format)

    def to_date(self, instant_ms: float) -> dt.date:
        return dt.datetime.fromtimestamp(float(instant_ms) / 1000.0, tz=self.timezone).date()

    def __call__(self, instant_ms: float) -> str:
        return format_date(self.to_date(instant_ms), format=self.date_format, locale=self.locale)


@dataclass(frozen=True)
class CountFormatter:
    """Locale-aware integer formatter for count ticks and bar labels (``1,234`` / ``1.234``)."""

    locale: Locale = field(default_factory=lambda: resolve_locale(None))

    @classmethod
    def create(cls, locale: LocaleLike | None) -> "CountFormatter":
        return cls(locale=resolve_locale(locale))

    def __call__(self, value: float) -> str:
        return format_decimal(int(round(float(value))), format=INTEGER_PATTERN, locale=self.locale)
