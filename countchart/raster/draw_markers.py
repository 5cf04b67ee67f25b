from __future__ import annotations

from typing import Literal

import numpy as np

from countchart.raster.canvas import RGBA, draw_pixel


MarkerShape = Literal["square", "diamond"]


def draw_markers(
    dst: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    color: RGBA,
    size: int = 1,
    *,
    shape: MarkerShape = "square",
    fill: RGBA | None = None,
    outline_px: int = 2,
) -> None:
    """Stamp a marker centred on every ``(x, y)``.

    With ``fill`` set, the marker interior uses ``fill`` and an ``outline_px``
    rim keeps ``color``.
    """
    radius = max(0, size // 2)
    for x, y in zip(xs.tolist(), ys.tolist(), strict=False):
        _draw_marker(dst, int(x), int(y), color=color, radius=radius, shape=shape, fill=fill, outline_px=outline_px)


def _draw_marker(
    dst: np.ndarray,
    x: int,
    y: int,
    color: RGBA,
    radius: int,
    *,
    shape: MarkerShape,
    fill: RGBA | None,
    outline_px: int,
) -> None:
    for yy in range(y - radius, y + radius + 1):
        for xx in range(x - radius, x + radius + 1):
            if shape == "diamond":
                dist = abs(xx - x) + abs(yy - y)
            else:
                dist = max(abs(xx - x), abs(yy - y))
            if dist > radius:
                continue
            inner = fill is not None and dist <= radius - max(1, outline_px)
            draw_pixel(dst, xx, yy, fill if inner else color)  # type: ignore[arg-type]
