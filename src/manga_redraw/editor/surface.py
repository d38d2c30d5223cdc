"""
Raster paint layer for freehand masking.

The layer is an owned RGBA buffer the size of the source image. Brush
strokes are composited with ``source_over`` as a sequence of filled discs,
eraser strokes with ``destination_out``. Every finished stroke (and every
clear) is committed to the surface's :class:`HistoryStack`.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

import numpy as np
from PIL import Image

from manga_redraw.config import (BRUSH_COLOR, BRUSH_DEFAULT, BRUSH_MAX,
                                 BRUSH_MIN, BRUSH_STEP, MAX_HISTORY)
from manga_redraw.editor.compositing import (Color, destination_out,
                                             disc_coverage, interpolate,
                                             source_over)
from manga_redraw.editor.history import HistoryStack
from manga_redraw.editor.transform import Point

logger = logging.getLogger(__name__)


class Tool(str, Enum):
    BRUSH = "brush"
    ERASER = "eraser"
    PAN = "pan"


def snap_brush_size(size: float) -> int:
    """Clamp to the brush range and round to the nearest step."""
    snapped = int(round(size / BRUSH_STEP)) * BRUSH_STEP
    return max(BRUSH_MIN, min(BRUSH_MAX, snapped))


class MaskSurface:
    def __init__(
        self,
        width: int,
        height: int,
        brush_size: int = BRUSH_DEFAULT,
        color: Color = BRUSH_COLOR,
        max_history: Optional[int] = MAX_HISTORY,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid surface size {width}x{height}")
        self.width = width
        self.height = height
        self.color = color
        self._brush_size = snap_brush_size(brush_size)
        self._pixels = np.zeros((height, width, 4), dtype=np.uint8)
        self.history: HistoryStack[np.ndarray] = HistoryStack(
            self._pixels.copy(), max_entries=max_history
        )
        self._tool: Optional[Tool] = None
        self._last_point: Optional[Point] = None
        self._listeners: List[Callable[["MaskSurface"], None]] = []

    @property
    def pixels(self) -> np.ndarray:
        view = self._pixels.view()
        view.flags.writeable = False
        return view

    @property
    def brush_size(self) -> int:
        return self._brush_size

    @brush_size.setter
    def brush_size(self, size: float) -> None:
        self._brush_size = snap_brush_size(size)

    @property
    def radius(self) -> float:
        return self._brush_size / 2.0

    @property
    def is_drawing(self) -> bool:
        return self._tool is not None

    @property
    def is_empty(self) -> bool:
        return not bool((self._pixels[..., 3] > 0).any())

    def coverage(self) -> np.ndarray:
        """Boolean ``(height, width)`` array, True where the mask is painted."""
        return self._pixels[..., 3] > 0

    def add_listener(self, callback: Callable[["MaskSurface"], None]) -> None:
        """Register a callback run after every commit, undo, redo and clear."""
        self._listeners.append(callback)

    def _changed(self) -> None:
        for callback in self._listeners:
            callback(self)

    def _stamp(self, point: Point) -> None:
        disc = disc_coverage(self.height, self.width, point, self.radius)
        if disc is None:
            return
        rows, cols, covered = disc
        region = self._pixels[rows, cols]
        if self._tool is Tool.ERASER:
            self._pixels[rows, cols] = destination_out(region, covered)
        else:
            self._pixels[rows, cols] = source_over(region, self.color, covered)

    def begin_stroke(self, tool: Tool, point: Point) -> None:
        tool = Tool(tool)
        if tool is Tool.PAN:
            raise ValueError("The pan tool does not paint")
        if self.is_drawing:
            self.end_stroke()
        self._tool = tool
        self._last_point = point
        self._stamp(point)

    def extend_stroke(self, point: Point) -> bool:
        """Stamp discs from the previous point up to ``point``; no-op outside a stroke."""
        if self._tool is None or self._last_point is None:
            return False
        spacing = max(self.radius / 2.0, 0.5)
        for sample in interpolate(self._last_point, point, spacing):
            self._stamp(sample)
        self._last_point = point
        return True

    def end_stroke(self) -> bool:
        if self._tool is None:
            return False
        self._tool = None
        self._last_point = None
        self.history.commit(self._pixels.copy())
        self._changed()
        return True

    def clear(self) -> None:
        self._tool = None
        self._last_point = None
        self._pixels[...] = 0
        self.history.commit(self._pixels.copy())
        self._changed()

    def restore(self, snapshot: np.ndarray) -> None:
        if snapshot.shape != self._pixels.shape:
            raise ValueError(
                f"Snapshot shape {snapshot.shape} does not match surface {self._pixels.shape}"
            )
        self._pixels[...] = snapshot

    def undo(self) -> bool:
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self.restore(snapshot)
        self._changed()
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self.restore(snapshot)
        self._changed()
        return True

    def overlay(self, image: Image.Image) -> Image.Image:
        """Composite the paint layer over ``image`` for display."""
        if image.size != (self.width, self.height):
            raise ValueError(
                f"Image size {image.size} does not match surface {(self.width, self.height)}"
            )
        layer = Image.fromarray(self._pixels.copy())
        return Image.alpha_composite(image.convert("RGBA"), layer)
