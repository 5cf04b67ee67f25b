from __future__ import annotations

import numpy as np


RGBA = tuple[int, int, int, int]


def new_canvas(width: int, height: int, color: RGBA = (0, 0, 0, 255)) -> np.ndarray:
    canvas = np.zeros((height, width, 4), dtype=np.uint8)
    canvas[:, :, 0] = color[0]
    canvas[:, :, 1] = color[1]
    canvas[:, :, 2] = color[2]
    canvas[:, :, 3] = color[3]
    return canvas


def draw_pixel(dst: np.ndarray, x: int, y: int, color: RGBA) -> None:
    if y < 0 or y >= dst.shape[0] or x < 0 or x >= dst.shape[1]:
        return
    a = color[3] / 255.0
    inv = 1.0 - a
    current = dst[y, x, :3].astype(np.float32)
    dst[y, x, 0:3] = (np.asarray(color[0:3], dtype=np.float32) * a + current * inv).astype(np.uint8)
    dst[y, x, 3] = 255


def draw_hline(dst: np.ndarray, x0: int, x1: int, y: int, color: RGBA) -> None:
    if y < 0 or y >= dst.shape[0]:
        return
    xa = max(0, min(x0, x1))
    xb = min(dst.shape[1] - 1, max(x0, x1))
    if xa > xb:
        return
    segment = dst[y, xa : xb + 1]
    a = color[3] / 255.0
    inv = 1.0 - a
    segment[:, :3] = (np.asarray(color[0:3], dtype=np.float32) * a + segment[:, :3].astype(np.float32) * inv).astype(np.uint8)
    segment[:, 3] = 255


def fill_rect(
    dst: np.ndarray,
    x0: int,
    y0: int,
    x1: int,
    y1: int,
    color: RGBA,
    *,
    gradient_to: RGBA | None = None,
    gradient_span: int | None = None,
) -> None:
    """Fill the inclusive rectangle, optionally blending top-to-bottom into ``gradient_to``.

    ``gradient_span`` is the pixel distance over which the gradient runs; rows
    beyond it keep the end color.
    """
    left = max(0, min(int(x0), int(x1)))
    right = min(dst.shape[1] - 1, max(int(x0), int(x1)))
    top = max(0, min(int(y0), int(y1)))
    bottom = min(dst.shape[0] - 1, max(int(y0), int(y1)))
    if right < left or bottom < top:
        return
    span = max(1, int(gradient_span) if gradient_span is not None else (bottom - top))
    for yy in range(top, bottom + 1):
        if gradient_to is None:
            row_color = color
        else:
            t = min(1.0, max(0.0, (yy - int(min(y0, y1))) / span))
            row_color = tuple(int(round(a + (b - a) * t)) for a, b in zip(color, gradient_to, strict=True))  # type: ignore[assignment]
        draw_hline(dst, left, right, yy, row_color)
