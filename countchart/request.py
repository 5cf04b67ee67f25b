from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from typing import Any

from babel import Locale

from countchart.adapters.normalize import normalize_observations
from countchart.errors import InvalidInput
from countchart.periods import DateScale, LocaleLike, TimezoneLike, resolve_locale, resolve_timezone
from countchart.series import Observation


MIN_IMAGE_DIMENSION = 30
MAX_IMAGE_DIMENSION = 2000
MAX_DATA_POINTS = 1000


@dataclass(frozen=True)
class CountByDateChartRequest:
    """Everything needed to render one count-by-date chart.

    Validation runs on construction, so a request that exists is renderable.
    ``presentation_timezone`` only affects how tick dates are printed; it
    defaults to ``timezone``, which drives the bucketing.
    """

    data: tuple[Observation, ...]
    scale: DateScale
    timezone: dt.tzinfo
    width: int
    height: int
    chart_title: str
    trend_title: str
    x_axis_label: str
    y_axis_label: str
    date_locale: Locale = field(default_factory=lambda: resolve_locale(None))
    presentation_timezone: dt.tzinfo | None = None

    def __post_init__(self) -> None:
        if self.data is None:
            raise InvalidInput("data is required")
        data = normalize_observations(self.data)
        if len(data) > MAX_DATA_POINTS:
            raise InvalidInput(f"data must have at most {MAX_DATA_POINTS} items, got {len(data)}")
        for index, obs in enumerate(data):
            obs.validate(index)
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "scale", DateScale.parse(self.scale))
        object.__setattr__(self, "timezone", resolve_timezone(self.timezone))
        object.__setattr__(self, "date_locale", resolve_locale(self.date_locale))
        if self.presentation_timezone is not None:
            object.__setattr__(self, "presentation_timezone", resolve_timezone(self.presentation_timezone))

        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInput(f"{name} must be an integer, got {value!r}")
            if not MIN_IMAGE_DIMENSION <= value <= MAX_IMAGE_DIMENSION:
                raise InvalidInput(f"{name} must be between {MIN_IMAGE_DIMENSION} and {MAX_IMAGE_DIMENSION}, got {value}")

        for name in ("chart_title", "trend_title", "x_axis_label", "y_axis_label"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInput(f"{name} must not be blank")

    @property
    def display_timezone(self) -> dt.tzinfo:
        return self.presentation_timezone if self.presentation_timezone is not None else self.timezone

    @classmethod
    def create(
        cls,
        data: Any,
        *,
        scale: DateScale | str,
        timezone: TimezoneLike,
        width: int,
        height: int,
        chart_title: str,
        trend_title: str,
        x_axis_label: str,
        y_axis_label: str,
        date_locale: LocaleLike | None = None,
        presentation_timezone: TimezoneLike | None = None,
    ) -> "CountByDateChartRequest":
        """Build a request from loose input (mappings, pairs or a DataFrame)."""
        return cls(
            data=normalize_observations(data),
            scale=scale,  # type: ignore[arg-type]
            timezone=timezone,  # type: ignore[arg-type]
            width=width,
            height=height,
            chart_title=chart_title,
            trend_title=trend_title,
            x_axis_label=x_axis_label,
            y_axis_label=y_axis_label,
            date_locale=resolve_locale(date_locale),
            presentation_timezone=presentation_timezone,  # type: ignore[arg-type]
        )
