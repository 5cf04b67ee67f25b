from __future__ import annotations

from collections.abc import Mapping, Sequence
import datetime as dt
from typing import Any

from countchart.errors import InvalidInput
from countchart.periods import coerce_date
from countchart.series import Observation


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]


def normalize_observations(
    data: Any,
    *,
    date_key: str = "date",
    count_key: str = "count",
) -> tuple[Observation, ...]:
    """Coerce loosely typed input into a tuple of ``Observation``.

    Accepted shapes: a sequence of ``Observation``, of ``(date, count)`` pairs or
    of mappings with ``date_key``/``count_key``; or a pandas DataFrame holding
    those two columns. Counts are only coerced to float here; range checks
    happen during aggregation.
    """
    if data is None:
        raise InvalidInput("observations are required")
    if pd is not None and isinstance(data, pd.DataFrame):
        return _from_frame(data, date_key=date_key, count_key=count_key)
    if isinstance(data, (str, bytes, bytearray)) or not isinstance(data, Sequence):
        raise InvalidInput(f"unsupported observations input type: {type(data)!r}")

    out: list[Observation] = []
    for i, raw in enumerate(data):
        if isinstance(raw, Observation):
            out.append(raw)
        elif isinstance(raw, Mapping):
            if date_key not in raw or count_key not in raw:
                raise InvalidInput(f"observation at index {i} must have `{date_key}` and `{count_key}`")
            out.append(_observation(raw[date_key], raw[count_key], index=i))
        elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes, bytearray)) and len(raw) == 2:
            out.append(_observation(raw[0], raw[1], index=i))
        else:
            raise InvalidInput(f"unsupported observation at index {i}: {raw!r}")
    return tuple(out)


def _from_frame(frame: Any, *, date_key: str, count_key: str) -> tuple[Observation, ...]:
    for column in (date_key, count_key):
        if column not in frame.columns:
            raise InvalidInput(f"column not found: {column}")
    out: list[Observation] = []
    for i, (raw_date, raw_count) in enumerate(zip(frame[date_key].tolist(), frame[count_key].tolist(), strict=True)):
        if pd.isna(raw_date):
            raise InvalidInput(f"observation date is required at index {i}")
        if isinstance(raw_date, pd.Timestamp):
            raw_date = raw_date.to_pydatetime()
        out.append(_observation(raw_date, raw_count, index=i))
    return tuple(out)


def _observation(raw_date: Any, raw_count: Any, *, index: int) -> Observation:
    if raw_date is None:
        raise InvalidInput(f"observation date is required at index {index}")
    day = raw_date if isinstance(raw_date, dt.date) else coerce_date(raw_date)
    return Observation(date=day, count=_coerce_count(raw_count, index=index))


def _coerce_count(raw: Any, *, index: int) -> float:
    if raw is None or isinstance(raw, bool):
        raise InvalidInput(f"observation count must be a number at index {index}: {raw!r}")
    try:
        return float(raw)
    except OverflowError as exc:
        raise InvalidInput(f"observation count must be finite at index {index}: too large") from exc
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"observation count must be a number at index {index}: {raw!r}") from exc
