"""
Viewport coordinate mapping for the mask editor.

Pointer events arrive in screen space. The rendered image sits at
``origin`` on screen, is panned by ``(tx, ty)`` and zoomed by ``scale``, and
may itself be displayed at a different size than its pixel buffer (responsive
sizing). Drawing code always works in image-pixel space, so every pointer
position goes through :func:`screen_to_image` first.

Canonical order, applied everywhere:

    screen -> subtract origin -> undo pan/zoom -> multiply by buffer/rendered ratio
"""

from dataclasses import dataclass
from typing import Tuple

from manga_redraw.config import MAX_ZOOM, MIN_ZOOM

Point = Tuple[float, float]


@dataclass(frozen=True)
class DisplayGeometry:
    """Where and how large the image element is rendered, before pan/zoom."""

    buffer_width: int
    buffer_height: int
    rendered_width: float
    rendered_height: float
    origin_x: float = 0.0
    origin_y: float = 0.0

    def __post_init__(self):
        if self.buffer_width <= 0 or self.buffer_height <= 0:
            raise ValueError("Buffer dimensions must be positive")
        if self.rendered_width <= 0 or self.rendered_height <= 0:
            raise ValueError("Rendered dimensions must be positive")

    @classmethod
    def unscaled(cls, width: int, height: int) -> "DisplayGeometry":
        return cls(width, height, float(width), float(height))

    @property
    def ratio_x(self) -> float:
        return self.buffer_width / self.rendered_width

    @property
    def ratio_y(self) -> float:
        return self.buffer_height / self.rendered_height


@dataclass
class ViewportTransform:
    """Pan/zoom state. Mutated by gestures only, read by the drawing code."""

    scale: float = 1.0
    tx: float = 0.0
    ty: float = 0.0
    min_scale: float = MIN_ZOOM
    max_scale: float = MAX_ZOOM

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError("Viewport scale must be positive")

    def pan(self, dx: float, dy: float) -> None:
        self.tx += dx
        self.ty += dy

    def zoom_at(self, factor: float, anchor: Point, origin: Point = (0.0, 0.0)) -> None:
        """Zoom by ``factor`` keeping the screen point ``anchor`` fixed."""
        if factor <= 0:
            raise ValueError("Zoom factor must be positive")
        new_scale = min(self.max_scale, max(self.min_scale, self.scale * factor))
        local_x = (anchor[0] - origin[0] - self.tx) / self.scale
        local_y = (anchor[1] - origin[1] - self.ty) / self.scale
        self.tx = anchor[0] - origin[0] - new_scale * local_x
        self.ty = anchor[1] - origin[1] - new_scale * local_y
        self.scale = new_scale

    def reset(self) -> None:
        self.scale = 1.0
        self.tx = 0.0
        self.ty = 0.0


def screen_to_image(
    point: Point, viewport: ViewportTransform, geometry: DisplayGeometry
) -> Point:
    """Map a pointer position on screen to image-pixel coordinates."""
    local_x = (point[0] - geometry.origin_x - viewport.tx) / viewport.scale
    local_y = (point[1] - geometry.origin_y - viewport.ty) / viewport.scale
    return local_x * geometry.ratio_x, local_y * geometry.ratio_y


def image_to_screen(
    point: Point, viewport: ViewportTransform, geometry: DisplayGeometry
) -> Point:
    """Inverse of :func:`screen_to_image`."""
    local_x = point[0] / geometry.ratio_x
    local_y = point[1] / geometry.ratio_y
    return (
        local_x * viewport.scale + viewport.tx + geometry.origin_x,
        local_y * viewport.scale + viewport.ty + geometry.origin_y,
    )
