import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from manga_redraw.deps import get_inpainting_client
from manga_redraw.errors import ImageDecodeError, InpaintingError
from manga_redraw.gemini import GeminiClient
from manga_redraw.presets import MODE_PRESETS
from manga_redraw.schemas import (PresetConfig, ProcessImageRequest,
                                  ProcessImageResponse)
from manga_redraw.services.generation import process_image_request

logger = logging.getLogger(__name__)

router = APIRouter()


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ProcessImageResponse(success=False, error=message).model_dump(exclude_none=True),
    )


@router.post("/process-image", response_model=ProcessImageResponse, response_model_exclude_none=True)
async def process_image(
    req: ProcessImageRequest, client: GeminiClient = Depends(get_inpainting_client)
):
    """Remove text from the masked regions of a manga image."""
    try:
        return await run_in_threadpool(process_image_request, req, client)
    except ImageDecodeError as e:
        logger.warning("Rejected image data: %s", e)
        return _failure(400, str(e))
    except InpaintingError as e:
        logger.error("Inpainting failed: %s", e.message)
        return _failure(500, e.message)
    except Exception as e:
        logger.exception("Unexpected error processing image")
        return _failure(500, f"Failed to process image: {e}")


@router.get("/presets", response_model=List[PresetConfig])
async def get_presets():
    """Lists the parameter presets for each redraw mode."""
    return list(MODE_PRESETS.values())


def get_router():
    return router
