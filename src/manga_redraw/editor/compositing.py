"""
Compositing rules for the paint layer.

The paint layer is an RGBA ``uint8`` array of shape ``(height, width, 4)``
with straight (non premultiplied) alpha. ``source_over`` and
``destination_out`` follow the canvas compositing operators of the same
name and return new arrays; they never modify their inputs.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from manga_redraw.editor.transform import Point

Color = Tuple[int, int, int, int]


def disc_coverage(
    height: int, width: int, center: Point, radius: float
) -> Optional[Tuple[slice, slice, np.ndarray]]:
    """
    Rasterize a filled disc.

    A pixel is covered when its centre lies within ``radius`` of ``center``.
    Returns the bounding slices and the boolean coverage inside them, or
    ``None`` when the disc does not touch the buffer.
    """
    cx, cy = center
    x0 = max(0, int(math.floor(cx - radius)))
    x1 = min(width, int(math.ceil(cx + radius)) + 1)
    y0 = max(0, int(math.floor(cy - radius)))
    y1 = min(height, int(math.ceil(cy + radius)) + 1)
    if x0 >= x1 or y0 >= y1:
        return None

    ys = np.arange(y0, y1, dtype=np.float64)[:, None] + 0.5
    xs = np.arange(x0, x1, dtype=np.float64)[None, :] + 0.5
    covered = (xs - cx) ** 2 + (ys - cy) ** 2 <= radius * radius
    if not covered.any():
        return None
    return slice(y0, y1), slice(x0, x1), covered


def source_over(dst: np.ndarray, color: Color, coverage: np.ndarray) -> np.ndarray:
    """Paint ``color`` over ``dst`` wherever ``coverage`` is set."""
    out = dst.copy()
    if not coverage.any():
        return out

    src_a = color[3] / 255.0
    px = dst[coverage].astype(np.float64)
    dst_a = px[:, 3] / 255.0
    out_a = src_a + dst_a * (1.0 - src_a)

    src_rgb = np.asarray(color[:3], dtype=np.float64)
    weighted = src_rgb * src_a + px[:, :3] * (dst_a * (1.0 - src_a))[:, None]
    safe_a = np.where(out_a > 0, out_a, 1.0)
    rgb = np.where(out_a[:, None] > 0, weighted / safe_a[:, None], 0.0)

    result = np.empty_like(px)
    result[:, :3] = rgb
    result[:, 3] = out_a * 255.0
    out[coverage] = np.clip(np.rint(result), 0, 255).astype(np.uint8)
    return out


def destination_out(dst: np.ndarray, coverage: np.ndarray, alpha: int = 255) -> np.ndarray:
    """Remove existing alpha from ``dst`` wherever ``coverage`` is set."""
    out = dst.copy()
    if not coverage.any():
        return out

    px = dst[coverage].astype(np.float64)
    out_a = np.rint(px[:, 3] * (1.0 - alpha / 255.0))
    px[:, 3] = out_a
    px[out_a == 0, :3] = 0
    out[coverage] = px.astype(np.uint8)
    return out


def interpolate(start: Point, end: Point, spacing: float) -> List[Point]:
    """
    Points from ``start`` (exclusive) to ``end`` (inclusive) no more than
    ``spacing`` apart.
    """
    if spacing <= 0:
        raise ValueError("Spacing must be positive")
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    steps = max(1, int(math.ceil(math.hypot(dx, dy) / spacing)))
    return [(start[0] + dx * i / steps, start[1] + dy * i / steps) for i in range(1, steps + 1)]


def polygon_coverage(height: int, width: int, polygons: Sequence[Sequence[Point]]) -> np.ndarray:
    """Boolean ``(height, width)`` union of the even-odd interiors of ``polygons``."""
    covered = np.zeros((height, width), dtype=bool)
    for polygon in polygons:
        if len(polygon) < 3:
            continue
        xs = [p[0] for p in polygon]
        ys = [p[1] for p in polygon]
        x0 = max(0, int(math.floor(min(xs))))
        x1 = min(width, int(math.ceil(max(xs))) + 1)
        y0 = max(0, int(math.floor(min(ys))))
        y1 = min(height, int(math.ceil(max(ys))) + 1)
        if x0 >= x1 or y0 >= y1:
            continue

        cy = np.arange(y0, y1, dtype=np.float64)[:, None] + 0.5
        cx = np.arange(x0, x1, dtype=np.float64)[None, :] + 0.5
        inside = np.zeros((y1 - y0, x1 - x0), dtype=bool)
        for (ax, ay), (bx, by) in zip(polygon, list(polygon[1:]) + [polygon[0]]):
            if ay == by:
                continue
            spans = (ay > cy) != (by > cy)
            x_cross = ax + (cy - ay) * (bx - ax) / (by - ay)
            inside ^= spans & (cx < x_cross)
        covered[y0:y1, x0:x1] |= inside
    return covered
