from __future__ import annotations

import io
import logging
from typing import BinaryIO

import numpy as np
from PIL import Image

from countchart.chart import CountByDateChart
from countchart.errors import ChartError, RenderFailure
from countchart.request import CountByDateChartRequest
from countchart.style import DEFAULT_STYLE, ChartStyle


LOGGER = logging.getLogger(__name__)


class ChartService:
    """Turns validated chart requests into PNG images.

    Holds no per-request state; one instance can serve any number of requests.
    """

    def __init__(self, style: ChartStyle = DEFAULT_STYLE) -> None:
        self.style = style

    def generate_count_by_date_png(self, request: CountByDateChartRequest, stream: BinaryIO) -> None:
        """Render ``request`` and write the PNG bytes to ``stream``."""
        LOGGER.debug("generating PNG chart for %d data points: %r", len(request.data), request.chart_title)
        frame = self.render_rgba(request)
        write_png(frame, stream)

    def render_png(self, request: CountByDateChartRequest) -> bytes:
        buffer = io.BytesIO()
        self.generate_count_by_date_png(request, buffer)
        return buffer.getvalue()

    def render_rgba(self, request: CountByDateChartRequest) -> np.ndarray:
        chart = CountByDateChart.from_request(request, style=self.style)
        try:
            return chart.render()
        except ChartError:
            raise
        except (ValueError, OSError, MemoryError) as exc:
            raise RenderFailure(f"failed to draw chart {request.chart_title!r}: {exc}") from exc


def write_png(frame: np.ndarray, stream: BinaryIO) -> None:
    if frame.dtype != np.uint8 or frame.ndim != 3 or frame.shape[2] != 4:
        raise RenderFailure("frame must be a uint8 array of shape (H, W, 4)")
    try:
        image = Image.fromarray(frame)
        image.save(stream, format="PNG")
    except (ValueError, OSError, TypeError) as exc:
        raise RenderFailure(f"failed to encode PNG: {exc}") from exc
