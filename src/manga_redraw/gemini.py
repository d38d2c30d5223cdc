"""
Client for the Gemini image generation API.

This module holds all communication with the generative model: it builds
the ``generateContent`` request from an image, an optional mask and the
processing parameters, sends it, and extracts the generated image.

Responsibilities:
- Map model selections to Gemini model ids
- Assemble the text instruction from the processing parameters
- Send the request over HTTP
- Normalize every failure into an ``InpaintingError`` with a user-facing message
"""

import logging
from typing import Optional

import requests

from manga_redraw.config import GEMINI_ENDPOINT, GEMINI_MODEL, REQUEST_TIMEOUT
from manga_redraw.errors import InpaintingError
from manga_redraw.schemas import (InpaintArea, MaskContent, ModelType,
                                  ProcessingParams)

logger = logging.getLogger(__name__)

MODEL_IDS = {
    ModelType.NANO_BANANA_PRO.value: "gemini-2.5-flash-image",
}

BASE_INSTRUCTION = (
    "You are a professional manga image editor. Look at this manga image carefully. "
    "Generate a new version of this exact same image with the text inside the masked regions "
    "completely removed. The areas where text existed should be naturally filled in with "
    "manga-style backgrounds, patterns, or art that seamlessly matches the surrounding area. "
    "Maintain the exact same art style, shading, line work, composition and image size."
)

MASK_INSTRUCTION = (
    "The second image is a mask of the same size: black pixels mark the regions to redraw, "
    "white pixels must be preserved unchanged."
)

MASK_CONTENT_HINTS = {
    MaskContent.ORIGINAL: "Start from the original content of the masked area.",
    MaskContent.FILL: "Fill the masked area with the surrounding colours before redrawing.",
    MaskContent.LATENT_NOISE: "Redraw the masked area from scratch.",
}

INPAINT_AREA_HINTS = {
    InpaintArea.ONLY_MASKED: "Only modify the masked area.",
    InpaintArea.WHOLE_PICTURE: "Keep the whole picture consistent with the redrawn area.",
}

INVALID_KEY_MESSAGE = "Invalid API key. Please check your Gemini API key."
QUOTA_MESSAGE = "API quota exceeded. Please check your Gemini API usage."
INVALID_STRUCTURE_MESSAGE = "Invalid response structure from Gemini"


def resolve_model_id(model: Optional[str]) -> str:
    if not model:
        return GEMINI_MODEL
    return MODEL_IDS.get(model, model)


def build_prompt(params: Optional[ProcessingParams], has_mask: bool) -> str:
    parts = [BASE_INSTRUCTION]
    if has_mask:
        parts.append(MASK_INSTRUCTION)
    if params is not None:
        if params.prompt:
            parts.append(f"Desired result: {params.prompt}")
        if params.negativePrompt:
            parts.append(f"Avoid: {params.negativePrompt}")
        parts.append(
            f"Change strength: {params.denoisingStrength:.2f} (0 keeps the original, 1 fully redraws)."
        )
        parts.append(
            f"Blend the mask edges over {params.maskBlur}px and use {params.padding}px of "
            "surrounding context."
        )
        parts.append(MASK_CONTENT_HINTS[params.maskContent])
        parts.append(INPAINT_AREA_HINTS[params.inpaintArea])
    return "\n".join(parts)


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason or f"HTTP {resp.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message") or error.get("status") or str(error)
    return str(body)


class GeminiClient:

    def __init__(self, endpoint: str = GEMINI_ENDPOINT, timeout: int = REQUEST_TIMEOUT):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    def generate_url(self, model_id: str) -> str:
        if not model_id.startswith("models/"):
            model_id = f"models/{model_id}"
        return f"{self.endpoint}/{model_id}:generateContent"

    def build_payload(
        self,
        image_b64: str,
        mime_type: str,
        mask_b64: Optional[str] = None,
        params: Optional[ProcessingParams] = None,
    ) -> dict:
        parts = [{"inlineData": {"mimeType": mime_type, "data": image_b64}}]
        if mask_b64:
            parts.append({"inlineData": {"mimeType": "image/png", "data": mask_b64}})
        parts.append({"text": build_prompt(params, bool(mask_b64))})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"responseModalities": ["TEXT", "IMAGE"]},
        }

    def process_image(
        self,
        api_key: str,
        image_b64: str,
        mime_type: str,
        mask_b64: Optional[str] = None,
        params: Optional[ProcessingParams] = None,
        model_id: Optional[str] = None,
    ) -> str:
        """Send the image (and mask) to Gemini and return the generated image as base64."""
        model = resolve_model_id(model_id)
        payload = self.build_payload(image_b64, mime_type, mask_b64, params)
        try:
            resp = requests.post(
                self.generate_url(model),
                json=payload,
                headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Error contacting Gemini: %s", e)
            raise InpaintingError(f"Gemini API error: {e}") from e

        if resp.status_code != 200:
            raise self._http_error(resp)

        try:
            data = resp.json()
        except ValueError as e:
            raise InpaintingError("Gemini API error: malformed response") from e
        return self.extract_image(data)

    def _http_error(self, resp: requests.Response) -> InpaintingError:
        detail = _error_detail(resp)
        logger.error("Gemini HTTP error %s: %s", resp.status_code, detail)
        lowered = detail.lower()
        if resp.status_code == 429 or "quota" in lowered or "resource_exhausted" in lowered:
            return InpaintingError(QUOTA_MESSAGE, status_code=429)
        if "api key" in lowered or resp.status_code in (401, 403):
            return InpaintingError(INVALID_KEY_MESSAGE, status_code=401)
        return InpaintingError(f"Gemini API error: {detail}")

    @staticmethod
    def extract_image(data: dict) -> str:
        if not isinstance(data, dict):
            raise InpaintingError(INVALID_STRUCTURE_MESSAGE)
        candidates = data.get("candidates")
        if not candidates:
            feedback = data.get("promptFeedback")
            if isinstance(feedback, dict) and feedback.get("blockReason"):
                raise InpaintingError(f"Gemini API error: request blocked ({feedback['blockReason']})")
            raise InpaintingError("No response generated from Gemini")

        candidate = candidates[0] if isinstance(candidates, list) else None
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        if not parts or not isinstance(parts, list):
            raise InpaintingError(INVALID_STRUCTURE_MESSAGE)

        for part in parts:
            if not isinstance(part, dict):
                raise InpaintingError(INVALID_STRUCTURE_MESSAGE)
            inline = part.get("inlineData") or part.get("inline_data")
            if isinstance(inline, dict) and inline.get("data"):
                return inline["data"]

        raise InpaintingError("No image data found in Gemini response")
