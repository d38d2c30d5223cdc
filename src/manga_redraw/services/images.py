"""
Image handling services

Decodes, validates and re-encodes the images that travel between the
editor, the API and the generative model.

Features:
- base64 / data URL decoding with descriptive errors
- Image decoding and mime type detection with Pillow
- Mask/image dimension checks
"""

import base64
import binascii
import logging
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

from manga_redraw.config import ACCEPTED_MIME_TYPES
from manga_redraw.errors import ImageDecodeError
from manga_redraw.utils import remove_b64_header

logger = logging.getLogger(__name__)

FORMAT_MIME = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}


def decode_b64(img_data: str, img_type: str) -> bytes:
    if not img_data:
        raise ImageDecodeError(f"No data provided for {img_type}")
    try:
        return base64.b64decode(remove_b64_header(img_data), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 for {img_type}: {e}") from e


def open_image(img_bytes: bytes, img_type: str = "image") -> Image.Image:
    try:
        img = Image.open(BytesIO(img_bytes))
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Could not decode {img_type}: {e}") from e
    return img


def detect_mime(img: Image.Image) -> str:
    mime = FORMAT_MIME.get(img.format or "")
    if mime is None or mime not in ACCEPTED_MIME_TYPES:
        raise ImageDecodeError(
            f"Unsupported image type '{img.format}'. Use one of: {', '.join(ACCEPTED_MIME_TYPES)}"
        )
    return mime


def load_upload(img_bytes: bytes, declared_mime: Optional[str] = None) -> Tuple[Image.Image, str]:
    """Decode an uploaded file; the returned mime type is the detected one."""
    img = open_image(img_bytes, "upload")
    mime = detect_mime(img)
    if declared_mime and declared_mime != mime:
        logger.warning("Upload declared as %s but decoded as %s", declared_mime, mime)
    return img, mime


def check_mask_size(image: Image.Image, mask: Image.Image) -> None:
    if image.size != mask.size:
        raise ImageDecodeError(
            f"Mask size {mask.size[0]}x{mask.size[1]} does not match "
            f"image size {image.size[0]}x{image.size[1]}"
        )


def prepare_inputs(image_data: str, mask_data: Optional[str]) -> Tuple[str, Optional[str], str]:
    """
    Decode and check the image and mask of a request.

    Returns the bare base64 image, the bare base64 mask (or None) and the
    detected image mime type.
    """
    image_bytes = decode_b64(image_data, "image")
    image = open_image(image_bytes, "image")
    mime = detect_mime(image)

    mask_b64 = None
    if mask_data:
        mask_bytes = decode_b64(mask_data, "mask")
        check_mask_size(image, open_image(mask_bytes, "mask"))
        mask_b64 = base64.b64encode(mask_bytes).decode("ascii")

    return base64.b64encode(image_bytes).decode("ascii"), mask_b64, mime
