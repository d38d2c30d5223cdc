"""
Canonical mask serialization.

Whatever the editing modality, the mask sent downstream is a PNG the size of
the source image, base64 encoded, where:

- ``MaskEncoding.BINARY``: edit = opaque black, preserve = opaque white
- ``MaskEncoding.ALPHA``: edit = fully transparent, preserve = opaque white

Encoding is deterministic: identical editor state always yields identical
bytes.
"""

import base64
from enum import Enum
from io import BytesIO
from typing import Sequence

import numpy as np
from PIL import Image

from manga_redraw.editor.compositing import polygon_coverage
from manga_redraw.editor.transform import Point

EDIT_PIXEL = (0, 0, 0, 255)
PRESERVE_PIXEL = (255, 255, 255, 255)
ALPHA_EDIT_PIXEL = (0, 0, 0, 0)


class MaskEncoding(str, Enum):
    BINARY = "binary"
    ALPHA = "alpha"


def coverage_to_image(coverage: np.ndarray, encoding: MaskEncoding = MaskEncoding.BINARY) -> Image.Image:
    if coverage.ndim != 2:
        raise ValueError(f"Coverage must be two dimensional, got shape {coverage.shape}")
    edit = ALPHA_EDIT_PIXEL if MaskEncoding(encoding) is MaskEncoding.ALPHA else EDIT_PIXEL
    out = np.empty(coverage.shape + (4,), dtype=np.uint8)
    out[...] = PRESERVE_PIXEL
    out[coverage.astype(bool)] = edit
    return Image.fromarray(out)


def encode_png(image: Image.Image) -> str:
    """PNG-encode ``image`` and return it as a base64 string without header."""
    buffer = BytesIO()
    image.save(buffer, format="PNG", compress_level=6)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


def export_raster_mask(pixels: np.ndarray, encoding: MaskEncoding = MaskEncoding.BINARY) -> str:
    """Every pixel with alpha > 0 in the paint layer becomes an edit pixel."""
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        raise ValueError(f"Paint layer must be RGBA, got shape {pixels.shape}")
    return encode_png(coverage_to_image(pixels[..., 3] > 0, encoding))


def export_polygon_mask(
    width: int,
    height: int,
    polygons: Sequence[Sequence[Point]],
    encoding: MaskEncoding = MaskEncoding.BINARY,
) -> str:
    """Rasterize ``polygons`` (even-odd fill, pixel centres) into an encoded mask."""
    return encode_png(coverage_to_image(polygon_coverage(height, width, polygons), encoding))
