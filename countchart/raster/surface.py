from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
import math
from typing import Literal, Union

import numpy as np

from countchart.raster.canvas import RGBA, fill_rect
from countchart.raster.draw_lines import draw_line
from countchart.raster.draw_text import DEFAULT_FONT_FAMILY, TextMetrics, draw_rotated_text, text_metrics


TextAnchor = Literal[
    "top_left",
    "top_center",
    "top_right",
    "center_left",
    "center",
    "center_right",
    "bottom_left",
    "bottom_center",
    "bottom_right",
    "baseline_left",
    "baseline_right",
]


@dataclass(frozen=True)
class Transform:
    """Rotation by ``angle_rad`` (clockwise on screen) about ``(pivot_x, pivot_y)``."""

    angle_rad: float = 0.0
    pivot_x: float = 0.0
    pivot_y: float = 0.0

    @property
    def is_identity(self) -> bool:
        return self.angle_rad == 0.0

    def apply(self, x: float, y: float) -> tuple[float, float]:
        if self.is_identity:
            return (float(x), float(y))
        cos_a = math.cos(self.angle_rad)
        sin_a = math.sin(self.angle_rad)
        dx = x - self.pivot_x
        dy = y - self.pivot_y
        return (self.pivot_x + dx * cos_a - dy * sin_a, self.pivot_y + dx * sin_a + dy * cos_a)


IDENTITY = Transform()


@dataclass(frozen=True)
class GraphicsState:
    paint: RGBA = (0, 0, 0, 255)
    stroke_px: int = 1
    font_family: str = DEFAULT_FONT_FAMILY
    font_size_px: float = 10.0
    bold: bool = False
    transform: Transform = IDENTITY


@dataclass(frozen=True)
class LineCommand:
    x0: float
    y0: float
    x1: float
    y1: float
    paint: RGBA
    stroke_px: int


@dataclass(frozen=True)
class TextCommand:
    text: str
    x: float
    y: float
    anchor: TextAnchor
    local_anchor: tuple[float, float]
    angle_rad: float
    paint: RGBA
    font_family: str
    font_size_px: float
    bold: bool


@dataclass(frozen=True)
class RectCommand:
    x0: float
    y0: float
    x1: float
    y1: float
    paint: RGBA
    gradient_to: RGBA | None
    gradient_span: int | None


DrawCommand = Union[LineCommand, TextCommand, RectCommand]


def anchor_offset(metrics: TextMetrics, anchor: TextAnchor) -> tuple[float, float]:
    """Position of ``anchor`` inside a text box, relative to its top-left corner."""
    w = float(metrics.width)
    h = float(metrics.height)
    vertical, _, horizontal = anchor.partition("_")
    if anchor == "center":
        vertical, horizontal = "center", "center"
    if horizontal == "left":
        ax = 0.0
    elif horizontal == "right":
        ax = w
    else:
        ax = w / 2.0
    if vertical == "top":
        ay = 0.0
    elif vertical == "bottom":
        ay = h
    elif vertical == "baseline":
        ay = float(metrics.baseline)
    else:
        ay = h / 2.0
    return (ax, ay)


class Surface(ABC):
    """Stateful 2-D drawing context.

    Paint, stroke, font and transform live in a ``GraphicsState``; ``save`` and
    ``restore`` push and pop it, and ``scoped`` pairs them around a block.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("surface width and height must be > 0")
        self.width = int(width)
        self.height = int(height)
        self._state = GraphicsState()
        self._stack: list[GraphicsState] = []

    @property
    def state(self) -> GraphicsState:
        return self._state

    @property
    def depth(self) -> int:
        return len(self._stack)

    def set_paint(self, paint: RGBA) -> None:
        self._state = replace(self._state, paint=tuple(paint))  # type: ignore[arg-type]

    def set_stroke(self, stroke_px: int) -> None:
        if stroke_px <= 0:
            raise ValueError("stroke_px must be > 0")
        self._state = replace(self._state, stroke_px=int(stroke_px))

    def set_font(self, *, family: str | None = None, size_px: float | None = None, bold: bool | None = None) -> None:
        self._state = replace(
            self._state,
            font_family=self._state.font_family if family is None else family,
            font_size_px=self._state.font_size_px if size_px is None else float(size_px),
            bold=self._state.bold if bold is None else bool(bold),
        )

    def set_transform(self, transform: Transform) -> None:
        self._state = replace(self._state, transform=transform)

    def rotate(self, angle_rad: float, pivot_x: float, pivot_y: float) -> None:
        if not math.isfinite(angle_rad):
            raise ValueError("angle_rad must be finite")
        current = self._state.transform
        if not current.is_identity and (current.pivot_x, current.pivot_y) != (pivot_x, pivot_y):
            raise ValueError("nested rotations must share a pivot")
        self.set_transform(Transform(angle_rad=current.angle_rad + angle_rad, pivot_x=pivot_x, pivot_y=pivot_y))

    def save(self) -> None:
        self._stack.append(self._state)

    def restore(self) -> None:
        if not self._stack:
            raise RuntimeError("restore() without matching save()")
        self._state = self._stack.pop()

    @contextmanager
    def scoped(self) -> Iterator["Surface"]:
        self.save()
        try:
            yield self
        finally:
            self.restore()

    def measure_text(self, text: str) -> TextMetrics:
        metrics = text_metrics(text, font_family=self._state.font_family, font_size_px=self._state.font_size_px)
        if self._state.bold and metrics.width > 0:
            return TextMetrics(width=metrics.width + 1, height=metrics.height, baseline=metrics.baseline)
        return metrics

    def line(self, x0: float, y0: float, x1: float, y1: float) -> None:
        t = self._state.transform
        dx0, dy0 = t.apply(x0, y0)
        dx1, dy1 = t.apply(x1, y1)
        self._emit(LineCommand(dx0, dy0, dx1, dy1, self._state.paint, self._state.stroke_px))

    def text(self, x: float, y: float, text: str, anchor: TextAnchor = "baseline_left") -> None:
        """Draw ``text`` so its ``anchor`` point sits at ``(x, y)`` before the current transform."""
        if not text:
            return
        s = self._state
        local = anchor_offset(self.measure_text(text), anchor)
        dx, dy = s.transform.apply(x, y)
        self._emit(
            TextCommand(
                text=text,
                x=dx,
                y=dy,
                anchor=anchor,
                local_anchor=local,
                angle_rad=s.transform.angle_rad,
                paint=s.paint,
                font_family=s.font_family,
                font_size_px=s.font_size_px,
                bold=s.bold,
            )
        )

    def fill_rect(
        self,
        x0: float,
        y0: float,
        x1: float,
        y1: float,
        *,
        gradient_to: RGBA | None = None,
        gradient_span: int | None = None,
    ) -> None:
        if not self._state.transform.is_identity:
            raise ValueError("fill_rect does not support rotated transforms")
        self._emit(RectCommand(x0, y0, x1, y1, self._state.paint, gradient_to, gradient_span))

    @abstractmethod
    def _emit(self, command: DrawCommand) -> None: ...


class RasterSurface(Surface):
    """Draws straight into an RGBA ``uint8`` canvas of shape ``(H, W, 4)``."""

    def __init__(self, canvas: np.ndarray) -> None:
        if canvas.dtype != np.uint8 or canvas.ndim != 3 or canvas.shape[2] != 4:
            raise ValueError("canvas must be a uint8 array of shape (H, W, 4)")
        super().__init__(width=canvas.shape[1], height=canvas.shape[0])
        self.canvas = canvas

    def _emit(self, command: DrawCommand) -> None:
        render_command(self.canvas, command)


class RecordingSurface(Surface):
    """Keeps drawing commands instead of pixels; ``replay`` rasterises them later."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(width=width, height=height)
        self.commands: list[DrawCommand] = []

    def _emit(self, command: DrawCommand) -> None:
        self.commands.append(command)

    def lines(self) -> list[LineCommand]:
        return [c for c in self.commands if isinstance(c, LineCommand)]

    def texts(self) -> list[TextCommand]:
        return [c for c in self.commands if isinstance(c, TextCommand)]

    def replay(self, canvas: np.ndarray) -> None:
        for command in self.commands:
            render_command(canvas, command)


def render_command(canvas: np.ndarray, command: DrawCommand) -> None:
    if isinstance(command, LineCommand):
        draw_line(canvas, command.x0, command.y0, command.x1, command.y1, command.paint, width=command.stroke_px)
    elif isinstance(command, TextCommand):
        draw_rotated_text(
            canvas,
            command.x,
            command.y,
            command.text,
            command.paint,
            angle_rad=command.angle_rad,
            local_anchor=command.local_anchor,
            font_family=command.font_family,
            font_size_px=command.font_size_px,
            embolden_px=2 if command.bold else 1,
        )
    else:
        fill_rect(
            canvas,
            int(round(command.x0)),
            int(round(command.y0)),
            int(round(command.x1)),
            int(round(command.y1)),
            command.paint,
            gradient_to=command.gradient_to,
            gradient_span=command.gradient_span,
        )
