"""
Image generation services

Application logic between the API endpoint and the Gemini client.

Responsibilities:
- Decode and cross-check the image and mask of a validated request
- Hand them to the inpainting client
- Turn the result into the uniform response shape
"""

import logging

from manga_redraw.gemini import GeminiClient
from manga_redraw.schemas import ProcessImageRequest, ProcessImageResponse
from manga_redraw.services.images import prepare_inputs

logger = logging.getLogger(__name__)


def process_image_request(req: ProcessImageRequest, client: GeminiClient) -> ProcessImageResponse:
    """
    Run one inpainting request.

    Raises ``ImageDecodeError`` for unusable image data and ``InpaintingError``
    when the model call fails.
    """
    image_b64, mask_b64, detected_mime = prepare_inputs(req.image, req.mask)
    if detected_mime != req.mimeType:
        logger.warning("Request declared %s but image is %s", req.mimeType, detected_mime)

    logger.info(
        "Sending image (%s, mask=%s) to model %s",
        detected_mime,
        "yes" if mask_b64 else "no",
        req.modelId or "default",
    )
    processed = client.process_image(
        req.apiKey,
        image_b64,
        detected_mime,
        mask_b64=mask_b64,
        params=req.params,
        model_id=req.modelId,
    )
    return ProcessImageResponse(success=True, processedImage=processed)
