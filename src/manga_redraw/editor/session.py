"""
Editing session: one source image, one active masking modality.

Brush and polygon masking sit behind the same capability set
(``begin_stroke``, ``extend_stroke``, ``end_stroke``, ``undo``, ``redo``,
``clear``, ``export_mask``). Each modality keeps its own history, so
switching between them never mixes snapshots; the exported mask is the only
thing that crosses over.

Toolbar buttons and keyboard shortcuts both go through :meth:`EditorSession.dispatch`.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

import numpy as np
from PIL import Image

from manga_redraw.config import BRUSH_DEFAULT
from manga_redraw.editor.exporter import (MaskEncoding, export_polygon_mask,
                                          export_raster_mask)
from manga_redraw.editor.polygon import CompletedMask, PolygonEditor
from manga_redraw.editor.surface import MaskSurface, Tool
from manga_redraw.editor.transform import (DisplayGeometry, Point,
                                           ViewportTransform, screen_to_image)

logger = logging.getLogger(__name__)


class EditingMode(str, Enum):
    BRUSH = "brush"
    POLYGON = "polygon"


class Command(str, Enum):
    UNDO = "undo"
    REDO = "redo"
    CLEAR = "clear"
    BRUSH = "brush"
    ERASER = "eraser"
    PAN = "pan"
    RESET_VIEW = "reset_view"


# (key, ctrl, shift) -> command
KEY_BINDINGS: Dict[Tuple[str, bool, bool], Command] = {
    ("z", True, False): Command.UNDO,
    ("z", True, True): Command.REDO,
    ("y", True, False): Command.REDO,
    ("b", False, False): Command.BRUSH,
    ("e", False, False): Command.ERASER,
    ("h", False, False): Command.PAN,
    ("0", True, False): Command.RESET_VIEW,
}


class MaskEditor(ABC):
    width: int
    height: int

    @abstractmethod
    def begin_stroke(self, tool: Tool, point: Point) -> bool: ...

    @abstractmethod
    def extend_stroke(self, point: Point) -> bool: ...

    @abstractmethod
    def end_stroke(self) -> bool: ...

    @abstractmethod
    def undo(self) -> bool: ...

    @abstractmethod
    def redo(self) -> bool: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def coverage(self) -> np.ndarray: ...

    @abstractmethod
    def export_mask(self, encoding: MaskEncoding = MaskEncoding.BINARY) -> str: ...

    @property
    @abstractmethod
    def can_undo(self) -> bool: ...

    @property
    @abstractmethod
    def can_redo(self) -> bool: ...


class BrushMaskEditor(MaskEditor):
    """Freehand brush/eraser strokes on a :class:`MaskSurface`."""

    def __init__(self, width: int, height: int, brush_size: Optional[int] = None):
        self.width = width
        self.height = height
        self.surface = MaskSurface(width, height, brush_size=brush_size or BRUSH_DEFAULT)

    def begin_stroke(self, tool: Tool, point: Point) -> bool:
        self.surface.begin_stroke(tool, point)
        return True

    def extend_stroke(self, point: Point) -> bool:
        return self.surface.extend_stroke(point)

    def end_stroke(self) -> bool:
        return self.surface.end_stroke()

    def undo(self) -> bool:
        return self.surface.undo()

    def redo(self) -> bool:
        return self.surface.redo()

    def clear(self) -> None:
        self.surface.clear()

    def coverage(self) -> np.ndarray:
        return self.surface.coverage()

    def export_mask(self, encoding: MaskEncoding = MaskEncoding.BINARY) -> str:
        return export_raster_mask(self.surface.pixels, encoding)

    @property
    def can_undo(self) -> bool:
        return self.surface.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.surface.history.can_redo


class PolygonMaskEditor(MaskEditor):
    """Polygon masking; a press places a vertex, drags and releases do nothing."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.polygons = PolygonEditor(width, height)

    def begin_stroke(self, tool: Tool, point: Point) -> bool:
        self.polygons.click(point)
        return True

    def extend_stroke(self, point: Point) -> bool:
        return False

    def end_stroke(self) -> bool:
        return False

    def undo(self) -> bool:
        return self.polygons.undo()

    def redo(self) -> bool:
        return self.polygons.redo()

    def clear(self) -> None:
        self.polygons.clear()

    def coverage(self) -> np.ndarray:
        return self.polygons.coverage()

    def export_mask(self, encoding: MaskEncoding = MaskEncoding.BINARY) -> str:
        return export_polygon_mask(
            self.width, self.height, self.polygons.eligible_polygons(), encoding
        )

    @property
    def can_undo(self) -> bool:
        return self.polygons.can_undo

    @property
    def can_redo(self) -> bool:
        return self.polygons.can_redo


class EditorSession:
    """
    Owns the mask editors, viewport and tool state for one loaded image.

    ``on_mask_change`` receives the active editor's freshly exported mask
    whenever it changes: after brush commits, polygon clicks, undo, redo,
    clear and mode switches. It receives None once the active editor has
    nothing masked, so a cleared or fully undone mask is never kept around.
    """

    def __init__(
        self,
        image: Image.Image,
        on_mask_change: Optional[Callable[[Optional[str]], None]] = None,
        encoding: MaskEncoding = MaskEncoding.BINARY,
    ):
        self.image = image.convert("RGBA")
        self.width, self.height = self.image.size
        self.encoding = encoding
        self.on_mask_change = on_mask_change
        self.viewport = ViewportTransform()
        self.geometry = DisplayGeometry.unscaled(self.width, self.height)
        self.mode = EditingMode.BRUSH
        self.tool = Tool.BRUSH
        self.mask: Optional[str] = None

        self.brush = BrushMaskEditor(self.width, self.height)
        self.polygon = PolygonMaskEditor(self.width, self.height)
        self.brush.surface.add_listener(lambda _surface: self._publish())
        self.polygon.polygons.add_listener(lambda _polygons: self._publish())

        self._pan_anchor: Optional[Point] = None

    @property
    def editor(self) -> MaskEditor:
        return self.polygon if self.mode is EditingMode.POLYGON else self.brush

    @property
    def can_undo(self) -> bool:
        return self.editor.can_undo

    @property
    def can_redo(self) -> bool:
        return self.editor.can_redo

    @property
    def has_edits(self) -> bool:
        return bool(self.editor.coverage().any())

    def set_mode(self, mode: EditingMode) -> None:
        mode = EditingMode(mode)
        if mode is self.mode:
            return
        if self.brush.surface.is_drawing:
            self.brush.end_stroke()
        self.mode = mode
        self._pan_anchor = None
        logger.debug("Editing mode set to %s", mode.value)
        self._publish()

    def set_tool(self, tool: Tool) -> None:
        self.tool = Tool(tool)

    def set_brush_size(self, size: int) -> int:
        self.brush.surface.brush_size = size
        return self.brush.surface.brush_size

    def set_display(self, geometry: DisplayGeometry) -> None:
        if (geometry.buffer_width, geometry.buffer_height) != (self.width, self.height):
            raise ValueError("Display geometry buffer size does not match the image")
        self.geometry = geometry

    def to_image(self, screen_point: Point) -> Point:
        return screen_to_image(screen_point, self.viewport, self.geometry)

    # Pointer input, in screen coordinates

    def pointer_down(self, screen_point: Point) -> None:
        if self.tool is Tool.PAN:
            self._pan_anchor = screen_point
            return
        tool = self.tool if self.mode is EditingMode.BRUSH else Tool.BRUSH
        self.editor.begin_stroke(tool, self.to_image(screen_point))

    def pointer_move(self, screen_point: Point) -> None:
        if self._pan_anchor is not None:
            self.viewport.pan(
                screen_point[0] - self._pan_anchor[0], screen_point[1] - self._pan_anchor[1]
            )
            self._pan_anchor = screen_point
            return
        self.editor.extend_stroke(self.to_image(screen_point))

    def pointer_up(self) -> None:
        if self._pan_anchor is not None:
            self._pan_anchor = None
            return
        self.editor.end_stroke()

    def wheel(self, factor: float, anchor: Point) -> None:
        self.viewport.zoom_at(factor, anchor, (self.geometry.origin_x, self.geometry.origin_y))

    # Commands

    def undo(self) -> bool:
        return self.editor.undo()

    def redo(self) -> bool:
        return self.editor.redo()

    def clear(self) -> None:
        self.editor.clear()

    def cancel_polygon(self) -> None:
        """Drop the polygon being drawn, keeping completed ones."""
        self.polygon.polygons.cancel()

    def dispatch(self, command: Command) -> bool:
        command = Command(command)
        if command is Command.UNDO:
            return self.undo()
        if command is Command.REDO:
            return self.redo()
        if command is Command.CLEAR:
            self.clear()
            return True
        if command is Command.RESET_VIEW:
            self.viewport.reset()
            return True
        self.set_tool(Tool(command.value))
        return True

    def handle_key(self, key: str, ctrl: bool = False, shift: bool = False) -> bool:
        """Run the command bound to a key press; False when unbound."""
        command = KEY_BINDINGS.get((key.lower(), ctrl, shift))
        if command is None:
            return False
        self.dispatch(command)
        return True

    # Mask output

    def export_mask(self) -> str:
        return self.editor.export_mask(self.encoding)

    def complete_polygons(self) -> Optional[CompletedMask]:
        """Finish polygon masking and publish the mask; None when no polygon qualifies."""
        result = self.polygon.polygons.complete()
        if result is None:
            return None
        if self.encoding is not MaskEncoding.BINARY:
            result.mask = self.polygon.export_mask(self.encoding)
        self._set_mask(result.mask)
        return result

    def preview(self) -> Image.Image:
        """Source image with the active modality's mask drawn over it."""
        if self.mode is EditingMode.POLYGON:
            return self.polygon.polygons.render(self.image)
        return self.brush.surface.overlay(self.image)

    def _publish(self) -> None:
        self._set_mask(self.export_mask() if self.has_edits else None)

    def _set_mask(self, mask: Optional[str]) -> None:
        if mask == self.mask:
            return
        self.mask = mask
        if self.on_mask_change is not None:
            self.on_mask_change(mask)
