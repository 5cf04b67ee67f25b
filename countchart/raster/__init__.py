from .canvas import draw_hline, fill_rect, new_canvas
from .draw_lines import draw_line, draw_polyline
from .draw_markers import draw_markers
from .draw_text import draw_rotated_text, rotated_placement, text_metrics
from .surface import GraphicsState, RasterSurface, RecordingSurface, Surface, Transform

__all__ = [
    "GraphicsState",
    "RasterSurface",
    "RecordingSurface",
    "Surface",
    "Transform",
    "draw_hline",
    "draw_line",
    "draw_markers",
    "draw_polyline",
    "draw_rotated_text",
    "fill_rect",
    "new_canvas",
    "rotated_placement",
    "text_metrics",
]
