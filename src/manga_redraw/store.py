"""
Application state for one user: the loaded page, its mask, the processing
parameters and the result.

The store sequences upload -> mask -> submit -> result, and from a result
either back to masking ("edit mask") or straight to another submit
("regenerate"). It never touches pixels itself; masks come from the
:class:`EditorSession` it creates for each upload.

Only one submit can be in flight; ``is_processing`` is the single source of
truth for that.
"""

import asyncio
import base64
import json
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from PIL import Image

from manga_redraw.client import InpaintingService
from manga_redraw.config import CREDENTIAL_FILE
from manga_redraw.editor.session import EditorSession
from manga_redraw.errors import (ImageDecodeError, InpaintingError,
                                 SubmitRejected)
from manga_redraw.presets import DEFAULT_MODE, get_preset_params
from manga_redraw.schemas import (ModelType, ProcessImageRequest,
                                  ProcessingParams, RedrawMode)
from manga_redraw.services.images import decode_b64, load_upload, open_image

logger = logging.getLogger(__name__)

NO_IMAGE_MESSAGE = "Upload a manga image before generating."
NO_MASK_MESSAGE = "Please draw a mask over the text areas to remove."
NO_CREDENTIAL_MESSAGE = "Enter your Gemini API key to process images."
IN_FLIGHT_MESSAGE = "A redraw is already in progress."


class ProcessingStatus(str, Enum):
    IDLE = "idle"
    IMAGE_LOADED = "image_loaded"
    MASKING = "masking"
    SUBMITTING = "submitting"
    RESULT = "result"


class CredentialStore:
    """API key persisted in a small JSON settings file."""

    KEY = "apiKey"

    def __init__(self, path: Path = CREDENTIAL_FILE):
        self.path = Path(path)

    def load(self) -> str:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ""
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)
            return ""
        value = data.get(self.KEY, "") if isinstance(data, dict) else ""
        return value if isinstance(value, str) else ""

    def save(self, api_key: str) -> None:
        data: dict = {}
        if self.path.exists():
            try:
                loaded = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(loaded, dict):
                    data = loaded
            except (OSError, ValueError):
                data = {}
        data[self.KEY] = api_key
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")


class ProcessingStore:

    def __init__(
        self,
        service: InpaintingService,
        credentials: Optional[CredentialStore] = None,
        model: ModelType = ModelType.NANO_BANANA_PRO,
    ):
        self.service = service
        self.credentials = credentials
        self.api_key = credentials.load() if credentials is not None else ""
        self.model = ModelType(model)
        self.mode = DEFAULT_MODE
        self.params = get_preset_params(DEFAULT_MODE)
        self._clear_images()

    def _clear_images(self) -> None:
        self.status = ProcessingStatus.IDLE
        self.image: Optional[Image.Image] = None
        self.image_bytes: Optional[bytes] = None
        self.mime_type: Optional[str] = None
        self.session: Optional[EditorSession] = None
        self.mask: Optional[str] = None
        self.result: Optional[str] = None
        self.error: Optional[str] = None
        self.is_processing = False

    # Settings

    def set_api_key(self, api_key: str, persist: bool = True) -> None:
        self.api_key = api_key.strip()
        if persist and self.credentials is not None:
            self.credentials.save(self.api_key)

    def set_model(self, model: ModelType) -> None:
        self.model = ModelType(model)

    def set_mode(self, mode: RedrawMode) -> None:
        """Select a redraw mode and reset the parameters to its preset."""
        self.mode = RedrawMode(mode)
        self.params = get_preset_params(self.mode)

    def update_params(self, **overrides: Any) -> ProcessingParams:
        """Override individual parameters; raises ``pydantic.ValidationError`` on bad values."""
        merged = {**self.params.model_dump(), **overrides}
        self.params = ProcessingParams.model_validate(merged)
        return self.params

    # Image and mask

    async def load_image(self, data: bytes, mime_type: Optional[str] = None) -> bool:
        """
        Decode an upload and start a new editing session.

        On failure the previously loaded image, mask and session are kept and
        the reason is left in ``error``.
        """
        try:
            image, detected = await asyncio.to_thread(load_upload, data, mime_type)
        except ImageDecodeError as e:
            logger.warning("Upload rejected: %s", e)
            self.error = str(e)
            return False

        self.image = image
        self.image_bytes = data
        self.mime_type = detected
        self.mask = None
        self.result = None
        self.error = None
        self.session = EditorSession(image, on_mask_change=self.set_mask)
        self.status = ProcessingStatus.IMAGE_LOADED
        logger.info("Loaded %s image %dx%d", detected, image.width, image.height)
        return True

    def set_mask(self, mask: Optional[str]) -> None:
        self.mask = mask or None
        if self.status is ProcessingStatus.IMAGE_LOADED:
            self.status = ProcessingStatus.MASKING

    # Processing

    def check_submit(self) -> None:
        """Raise ``SubmitRejected`` if a submit cannot be sent right now."""
        if self.is_processing:
            raise SubmitRejected(IN_FLIGHT_MESSAGE)
        if self.image_bytes is None:
            raise SubmitRejected(NO_IMAGE_MESSAGE)
        if not self.mask:
            raise SubmitRejected(NO_MASK_MESSAGE)
        if not self.api_key:
            raise SubmitRejected(NO_CREDENTIAL_MESSAGE)

    def build_request(self) -> ProcessImageRequest:
        return ProcessImageRequest(
            apiKey=self.api_key,
            image=base64.b64encode(self.image_bytes).decode("ascii"),
            mask=self.mask,
            mimeType=self.mime_type,
            modelId=self.model.value,
            params=self.params,
        )

    async def submit(self) -> bool:
        """
        Send the image, mask and parameters to the inpainting service.

        Raises ``SubmitRejected`` before any network call when the submit is
        not allowed. Returns True when a result was stored; on failure the
        message is in ``error`` and the store is back in ``MASKING``.
        """
        self.check_submit()
        request = self.build_request()

        self.is_processing = True
        self.status = ProcessingStatus.SUBMITTING
        self.error = None
        try:
            response = await self.service.process(request)
            if not response.success or not response.processedImage:
                raise InpaintingError(response.error or "Processing failed")
            decode_b64(response.processedImage, "processed image")
        except Exception as e:
            message = e.message if isinstance(e, InpaintingError) else str(e)
            logger.error("Processing failed: %s", message)
            self.error = message or "An error occurred while processing the image."
            self.status = ProcessingStatus.MASKING
            return False
        finally:
            self.is_processing = False

        self.result = response.processedImage
        self.status = ProcessingStatus.RESULT
        logger.info("Processing finished")
        return True

    def edit_mask(self) -> None:
        """Discard the result and go back to masking with the same image and mask."""
        if self.status is not ProcessingStatus.RESULT:
            return
        self.result = None
        self.status = ProcessingStatus.MASKING

    async def regenerate(self) -> bool:
        """Resubmit the current image, mask and parameters."""
        if self.status is not ProcessingStatus.RESULT:
            raise SubmitRejected("Nothing to regenerate yet.")
        return await self.submit()

    def reset(self) -> None:
        """Drop the image, mask and result ("new image")."""
        self._clear_images()

    # Result

    def result_image(self) -> Optional[Image.Image]:
        if self.result is None:
            return None
        return open_image(decode_b64(self.result, "processed image"), "processed image")

    def save_result(self, directory: Path) -> Path:
        image = self.result_image()
        if image is None:
            raise RuntimeError("No processed image to save")
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"manga-redraw-{int(time.time() * 1000)}.png"
        image.save(path, format="PNG")
        logger.info("Saved result to %s", path)
        return path
