from __future__ import annotations

from dataclasses import dataclass

import numpy as np


DAY_MS = 86_400_000.0


@dataclass(frozen=True)
class DataLimits:
    xmin: float
    xmax: float
    ymin: float
    ymax: float


@dataclass(frozen=True)
class PlotTransform:
    sx: float
    tx: float
    sy: float
    ty: float


def compute_count_limits(
    x: np.ndarray,
    y: np.ndarray,
    *,
    x_pad: float,
    y_buffer_ratio: float = 0.08,
) -> DataLimits:
    """Limits for period starts ``x`` (ms) and counts ``y``, always including zero."""
    if x.size == 0:
        raise ValueError("cannot compute limits of an empty series")
    xmin = float(np.min(x)) - x_pad
    xmax = float(np.max(x)) + x_pad
    if xmin == xmax:
        xmin -= DAY_MS
        xmax += DAY_MS

    ymax = float(np.max(y)) if y.size else 0.0
    ymin = 0.0
    if ymax <= 0.0:
        ymax = 1.0
    else:
        ymax += ymax * y_buffer_ratio
    return DataLimits(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


def build_transform(limits: DataLimits, width: int, height: int) -> PlotTransform:
    if width <= 1 or height <= 1:
        raise ValueError("plot viewport width/height must be > 1")
    sx = (width - 1) / (limits.xmax - limits.xmin)
    tx = -limits.xmin * sx
    sy = (height - 1) / (limits.ymax - limits.ymin)
    ty = -limits.ymin * sy
    return PlotTransform(sx=sx, tx=tx, sy=sy, ty=ty)


def map_to_pixels(x: np.ndarray, y: np.ndarray, transform: PlotTransform, width: int, height: int) -> tuple[np.ndarray, np.ndarray]:
    px = np.rint(x * transform.sx + transform.tx).astype(np.int32)
    py = np.rint(y * transform.sy + transform.ty).astype(np.int32)
    py = (height - 1) - py
    np.clip(px, 0, width - 1, out=px)
    np.clip(py, 0, height - 1, out=py)
    return px, py


def generate_nice_ticks(vmin: float, vmax: float, target: int, preferred_step: float | None = None) -> np.ndarray:
    if target <= 0:
        raise ValueError("target must be > 0")
    if vmin == vmax:
        return np.asarray([vmin], dtype=np.float64)

    span = _nice_number(vmax - vmin, round_result=False)
    step = _nice_number(span / max(target - 1, 1), round_result=True)
    if preferred_step is not None and np.isfinite(preferred_step) and preferred_step > 0:
        est_ticks = int(np.ceil((vmax - vmin) / preferred_step)) + 1
        if preferred_step < step and est_ticks <= max(target * 2, 12):
            step = preferred_step
    tick_min = np.floor(vmin / step) * step
    tick_max = np.ceil(vmax / step) * step

    ticks = np.arange(tick_min, tick_max + 0.5 * step, step, dtype=np.float64)
    # Normalize floating-point drift so values like -4.44e-16 become 0.
    ticks = np.rint(ticks / step) * step
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks


def generate_count_ticks(ymin: float, ymax: float, target: int) -> np.ndarray:
    """Whole-number ticks inside ``[ymin, ymax]`` with a step of at least one."""
    ticks = generate_nice_ticks(ymin, ymax, target)
    step = float(abs(ticks[1] - ticks[0])) if ticks.size > 1 else 1.0
    if step < 1.0:
        ticks = np.arange(np.ceil(ymin), np.floor(ymax) + 0.5, 1.0, dtype=np.float64)
    ticks = ticks[(ticks >= ymin - 1e-9) & (ticks <= ymax + 1e-9)]
    return np.unique(np.rint(ticks))


def _nice_number(value: float, *, round_result: bool) -> float:
    exp = np.floor(np.log10(value))
    frac = value / (10**exp)

    if round_result:
        if frac < 1.5:
            nice_frac = 1.0
        elif frac < 3.0:
            nice_frac = 2.0
        elif frac < 7.0:
            nice_frac = 5.0
        else:
            nice_frac = 10.0
    else:
        if frac <= 1.0:
            nice_frac = 1.0
        elif frac <= 2.0:
            nice_frac = 2.0
        elif frac <= 5.0:
            nice_frac = 5.0
        else:
            nice_frac = 10.0

    return float(nice_frac * (10**exp))
