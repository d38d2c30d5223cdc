"""
Shared fixtures for the manga_redraw tests.
"""

import base64
from io import BytesIO

import pytest
from PIL import Image


def _make_png(width=40, height=30, color=(200, 200, 200, 255)) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def _decode_mask(mask_b64: str) -> Image.Image:
    return Image.open(BytesIO(base64.b64decode(mask_b64)))


@pytest.fixture
def make_png():
    """Factory building a solid-colour PNG of the given size."""
    return _make_png


@pytest.fixture
def decode_mask():
    """Decode an exported base64 mask back into a PIL image."""
    return _decode_mask


@pytest.fixture
def png_bytes():
    return _make_png()


@pytest.fixture
def png_b64(png_bytes):
    return base64.b64encode(png_bytes).decode("ascii")
