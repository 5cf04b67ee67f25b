from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
import math
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from countchart.raster.canvas import RGBA


LOGGER = logging.getLogger(__name__)

DEFAULT_FONT_FAMILY = "DejaVu Sans"
DEFAULT_FONT_SIZE_PX = 10.0
SANS_FONT_FALLBACK_PATTERNS = (
    "segoeui",
    "segoe ui",
    "dejavusans",
    "dejavu sans",
    "liberationsans",
    "liberation sans",
    "arial",
    "helvetica",
)


@dataclass(frozen=True)
class TextMetrics:
    width: int
    height: int
    baseline: int


@dataclass(frozen=True)
class RotatedPlacement:
    """Where a rotated text box lands on the canvas.

    ``corners`` are the canvas coordinates of the unrotated box corners in the
    order top-left, top-right, bottom-right, bottom-left. ``origin_x`` and
    ``origin_y`` locate the integer-aligned bounding box of those corners.
    """

    anchor_x: float
    anchor_y: float
    angle_rad: float
    corners: tuple[tuple[float, float], ...]
    origin_x: int
    origin_y: int
    width: int
    height: int


def rotated_placement(
    width: int,
    height: int,
    *,
    anchor_x: float,
    anchor_y: float,
    local_anchor: tuple[float, float],
    angle_rad: float,
) -> RotatedPlacement:
    """Rigidly rotate a ``width`` x ``height`` box about one of its points.

    ``local_anchor`` is the pivot in box coordinates (``(width, 0)`` is the
    top-right corner); it lands on ``(anchor_x, anchor_y)`` whatever the angle.
    Angles follow screen coordinates: positive turns clockwise.
    """
    if not math.isfinite(angle_rad):
        raise ValueError("angle_rad must be finite")
    cos_a = math.cos(angle_rad)
    sin_a = math.sin(angle_rad)
    lx, ly = local_anchor
    corners: list[tuple[float, float]] = []
    for cx, cy in ((0.0, 0.0), (float(width), 0.0), (float(width), float(height)), (0.0, float(height))):
        dx = cx - lx
        dy = cy - ly
        corners.append((anchor_x + dx * cos_a - dy * sin_a, anchor_y + dx * sin_a + dy * cos_a))
    xs = [c[0] for c in corners]
    ys = [c[1] for c in corners]
    origin_x = int(math.floor(min(xs)))
    origin_y = int(math.floor(min(ys)))
    out_w = max(1, int(math.ceil(max(xs))) - origin_x)
    out_h = max(1, int(math.ceil(max(ys))) - origin_y)
    return RotatedPlacement(
        anchor_x=float(anchor_x),
        anchor_y=float(anchor_y),
        angle_rad=float(angle_rad),
        corners=tuple(corners),
        origin_x=origin_x,
        origin_y=origin_y,
        width=out_w,
        height=out_h,
    )


def draw_rotated_text(
    dst: np.ndarray,
    anchor_x: float,
    anchor_y: float,
    text: str,
    color: RGBA,
    *,
    angle_rad: float,
    local_anchor: tuple[float, float] | None = None,
    font_family: str = DEFAULT_FONT_FAMILY,
    font_size_px: float = DEFAULT_FONT_SIZE_PX,
    embolden_px: int = 1,
) -> RotatedPlacement | None:
    """Draw ``text`` rotated by ``angle_rad`` about a point of its box.

    Without ``local_anchor`` the pivot is the top-right corner of the text.
    """
    if not text:
        return None
    font = _load_font(font_family=font_family, font_size_px=font_size_px)
    mask = _render_mask(text=text, font=font)
    if embolden_px > 1:
        mask = _embolden(mask, embolden_px)
    h, w = mask.shape
    pivot = (float(w), 0.0) if local_anchor is None else local_anchor
    placement = rotated_placement(w, h, anchor_x=anchor_x, anchor_y=anchor_y, local_anchor=pivot, angle_rad=angle_rad)
    if angle_rad == 0.0:
        _blend_mask(dst, int(round(anchor_x - pivot[0])), int(round(anchor_y - pivot[1])), mask, color)
        return placement

    # Inverse mapping from output pixels back into the unrotated mask.
    cos_a = math.cos(angle_rad)
    sin_a = math.sin(angle_rad)
    ox = placement.origin_x - anchor_x
    oy = placement.origin_y - anchor_y
    coeffs = (
        cos_a,
        sin_a,
        cos_a * ox + sin_a * oy + pivot[0],
        -sin_a,
        cos_a,
        -sin_a * ox + cos_a * oy + pivot[1],
    )
    rotated = Image.fromarray(mask).transform(
        (placement.width, placement.height),
        Image.Transform.AFFINE,
        coeffs,
        resample=Image.Resampling.BILINEAR,
    )
    _blend_mask(dst, placement.origin_x, placement.origin_y, np.asarray(rotated, dtype=np.uint8), color)
    return placement


def text_metrics(
    text: str,
    *,
    font_family: str = DEFAULT_FONT_FAMILY,
    font_size_px: float = DEFAULT_FONT_SIZE_PX,
) -> TextMetrics:
    font = _load_font(font_family=font_family, font_size_px=font_size_px)
    ascent, descent = font.getmetrics()
    if not text:
        return TextMetrics(width=0, height=max(1, int(ascent + descent)), baseline=int(ascent))
    left, top, right, bottom = font.getbbox(text)
    w = max(0, int(right - left))
    h = max(1, int(bottom - top))
    return TextMetrics(width=w, height=h, baseline=int(ascent - top))


def _blend_mask(
    dst: np.ndarray,
    x: int,
    y: int,
    mask: np.ndarray,
    color: RGBA,
) -> None:
    h, w = mask.shape
    if h <= 0 or w <= 0:
        return

    x0 = max(0, x)
    y0 = max(0, y)
    x1 = min(dst.shape[1], x + w)
    y1 = min(dst.shape[0], y + h)
    if x1 <= x0 or y1 <= y0:
        return

    sx0 = x0 - x
    sy0 = y0 - y
    sx1 = sx0 + (x1 - x0)
    sy1 = sy0 + (y1 - y0)

    cov = mask[sy0:sy1, sx0:sx1].astype(np.float32) / 255.0
    if not np.any(cov > 0):
        return

    patch = dst[y0:y1, x0:x1]
    dst_rgb = patch[:, :, :3].astype(np.float32)
    dst_alpha = patch[:, :, 3].astype(np.float32) / 255.0

    src_alpha = (color[3] / 255.0) * cov
    src_rgb = np.asarray(color[:3], dtype=np.float32).reshape(1, 1, 3)
    out_alpha = src_alpha + dst_alpha * (1.0 - src_alpha)
    out_rgb_num = src_rgb * src_alpha[:, :, None] + dst_rgb * dst_alpha[:, :, None] * (1.0 - src_alpha[:, :, None])
    safe_alpha = np.where(out_alpha > 1e-6, out_alpha, 1.0)
    out_rgb = out_rgb_num / safe_alpha[:, :, None]

    patch[:, :, :3] = np.clip(out_rgb, 0, 255).astype(np.uint8)
    patch[:, :, 3] = np.clip(out_alpha * 255.0, 0, 255).astype(np.uint8)


def _embolden(mask: np.ndarray, embolden_px: int) -> np.ndarray:
    if embolden_px <= 1:
        return mask
    out = mask.copy()
    for shift in range(1, embolden_px):
        src = mask[:, : max(0, mask.shape[1] - shift)]
        dst = out[:, shift:]
        if src.size == 0 or dst.size == 0:
            break
        np.maximum(dst, src, out=dst)
    return out


@lru_cache(maxsize=256)
def _render_mask(text: str, font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> np.ndarray:
    if not text:
        return np.zeros((1, 1), dtype=np.uint8)
    left, top, right, bottom = font.getbbox(text)
    width = max(1, int(right - left))
    height = max(1, int(bottom - top))
    image = Image.new("L", (width, height), 0)
    draw = ImageDraw.Draw(image)
    draw.text((-left, -top), text, fill=255, font=font)
    return np.asarray(image, dtype=np.uint8)


@lru_cache(maxsize=64)
def _load_font(font_family: str, font_size_px: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(round(font_size_px)))
    font_path = _resolve_font_path(font_family)
    if font_path is None:
        LOGGER.warning("no font file found for %r, using Pillow's built-in font", font_family)
        return ImageFont.load_default(size=size)
    try:
        return ImageFont.truetype(str(font_path), size=size)
    except OSError:
        LOGGER.warning("unable to load font %s, using Pillow's built-in font", font_path)
        return ImageFont.load_default(size=size)


@lru_cache(maxsize=16)
def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.strip().lower() if font_family.strip() else DEFAULT_FONT_FAMILY.lower()
    patterns = (wanted,) + SANS_FONT_FALLBACK_PATTERNS

    font_dirs = [
        Path.home() / "Library" / "Fonts",
        Path("/Library/Fonts"),
        Path("/System/Library/Fonts"),
        Path("/System/Library/Fonts/Supplemental"),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path("C:/Windows/Fonts"),
    ]

    candidates: list[Path] = []
    for base in font_dirs:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(base.rglob(ext))
    # Prefer regular faces over bold/italic/mono variants of the same family.
    candidates.sort(key=lambda p: (any(tag in p.stem.lower() for tag in ("bold", "italic", "oblique", "mono", "condensed")), p.name))

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            name = path.name.lower().replace(" ", "")
            if p in stem or p in name:
                return path
    return None
