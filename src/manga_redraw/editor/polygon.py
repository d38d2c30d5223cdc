"""
Click-to-place polygon masking.

Clicking appends a vertex to the current polygon; clicking within
``close_radius`` of the first vertex of a polygon with more than two points
closes it and moves it to the completed list. Completed polygons are
rasterized with the even-odd rule, sampled at pixel centres.

Every click, close, cancel and clear commits a :class:`PolygonState`
snapshot to a :class:`HistoryStack`. Stepping back one click-built snapshot
pops the last vertex, or reopens the last completed polygon when the
snapshot was a close.
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from manga_redraw.config import MAX_HISTORY, POLYGON_CLOSE_RADIUS
from manga_redraw.editor.compositing import polygon_coverage
from manga_redraw.editor.exporter import export_polygon_mask
from manga_redraw.editor.history import HistoryStack
from manga_redraw.editor.transform import Point

logger = logging.getLogger(__name__)

Polygon = Tuple[Point, ...]

FILL_COLOR = (168, 85, 247, 51)
STROKE_COLOR = (168, 85, 247, 255)
FIRST_VERTEX_COLOR = (16, 185, 129, 255)
VERTEX_RADIUS = 5


class PolygonMode(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"


class ClickResult(str, Enum):
    ADDED = "added"
    CLOSED = "closed"


@dataclass(frozen=True)
class PolygonState:
    completed: Tuple[Polygon, ...] = ()
    current: Polygon = ()

    @property
    def is_empty(self) -> bool:
        return not self.completed and not self.current


@dataclass
class CompletedMask:
    polygons: List[Polygon]
    mask: str = field(repr=False)


class PolygonEditor:
    def __init__(
        self,
        width: int,
        height: int,
        close_radius: float = POLYGON_CLOSE_RADIUS,
        max_history: Optional[int] = MAX_HISTORY,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid editor size {width}x{height}")
        self.width = width
        self.height = height
        self.close_radius = close_radius
        self.history: HistoryStack[PolygonState] = HistoryStack(
            PolygonState(), max_entries=max_history
        )
        self._listeners: List[Callable[["PolygonEditor"], None]] = []

    @property
    def state(self) -> PolygonState:
        return self.history.current

    @property
    def mode(self) -> PolygonMode:
        return PolygonMode.DRAWING if self.state.current else PolygonMode.IDLE

    @property
    def completed(self) -> List[Polygon]:
        return list(self.state.completed)

    @property
    def current(self) -> List[Point]:
        return list(self.state.current)

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def add_listener(self, callback: Callable[["PolygonEditor"], None]) -> None:
        """Register a callback run after every edit, undo and redo."""
        self._listeners.append(callback)

    def _changed(self) -> None:
        for callback in self._listeners:
            callback(self)

    def _edit(self, state: PolygonState) -> None:
        self.history.commit(state)
        self._changed()

    def click(self, point: Point) -> ClickResult:
        point = (float(point[0]), float(point[1]))
        state = self.state
        current = state.current
        if len(current) > 2:
            first = current[0]
            if math.hypot(point[0] - first[0], point[1] - first[1]) < self.close_radius:
                self._edit(PolygonState(state.completed + (current,), ()))
                logger.debug("Closed polygon with %d vertices", len(current))
                return ClickResult.CLOSED
        self._edit(PolygonState(state.completed, current + (point,)))
        return ClickResult.ADDED

    def cancel(self) -> None:
        """Drop the polygon being drawn."""
        if self.state.current:
            self._edit(PolygonState(self.state.completed, ()))

    def clear(self) -> None:
        if not self.state.is_empty:
            self._edit(PolygonState())

    def undo(self) -> bool:
        if self.history.undo() is None:
            return False
        self._changed()
        return True

    def redo(self) -> bool:
        if self.history.redo() is None:
            return False
        self._changed()
        return True

    def eligible_polygons(self) -> List[Polygon]:
        polygons = list(self.state.completed)
        if len(self.state.current) > 2:
            polygons.append(self.state.current)
        return polygons

    def coverage(self) -> np.ndarray:
        return polygon_coverage(self.height, self.width, self.eligible_polygons())

    def complete(self) -> Optional[CompletedMask]:
        """Polygons plus their encoded mask, or None when nothing is closeable."""
        polygons = self.eligible_polygons()
        if not polygons:
            logger.info("Polygon completion rejected: no eligible polygons")
            return None
        return CompletedMask(polygons, export_polygon_mask(self.width, self.height, polygons))

    def render(self, image: Image.Image) -> Image.Image:
        """Draw completed and in-progress polygons over ``image``."""
        if image.size != (self.width, self.height):
            raise ValueError(
                f"Image size {image.size} does not match editor {(self.width, self.height)}"
            )
        base = image.convert("RGBA")
        layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)

        for polygon in self.state.completed:
            draw.polygon(polygon, fill=FILL_COLOR, outline=STROKE_COLOR, width=2)
            self._draw_vertices(draw, polygon)

        current = self.state.current
        if len(current) > 1:
            draw.line(current, fill=STROKE_COLOR, width=2)
        self._draw_vertices(draw, current)

        return Image.alpha_composite(base, layer)

    @staticmethod
    def _draw_vertices(draw: ImageDraw.ImageDraw, points: Sequence[Point]) -> None:
        for i, (x, y) in enumerate(points):
            color = FIRST_VERTEX_COLOR if i == 0 else STROKE_COLOR
            draw.ellipse(
                (x - VERTEX_RADIUS, y - VERTEX_RADIUS, x + VERTEX_RADIUS, y + VERTEX_RADIUS),
                fill=color,
            )
