"""
HTTP client for the processing API, used by the orchestrator as its
inpainting collaborator.
"""

import asyncio
import logging
from typing import Protocol

import requests

from manga_redraw.config import API_BASE_URL, REQUEST_TIMEOUT
from manga_redraw.errors import InpaintingError
from manga_redraw.schemas import ProcessImageRequest, ProcessImageResponse

logger = logging.getLogger(__name__)


class InpaintingService(Protocol):
    async def process(self, request: ProcessImageRequest) -> ProcessImageResponse: ...


class ApiInpaintingService:

    def __init__(self, base_url: str = API_BASE_URL, timeout: int = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.process_url = f"{self.base_url}/api/process-image"
        self.timeout = timeout

    def post_request(self, request: ProcessImageRequest) -> ProcessImageResponse:
        try:
            resp = requests.post(
                self.process_url,
                json=request.model_dump(mode="json", exclude_none=True),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Error contacting processing API: %s", e)
            raise InpaintingError(f"Could not reach the processing server: {e}") from e

        try:
            return ProcessImageResponse.model_validate(resp.json())
        except ValueError as e:
            raise InpaintingError(
                f"Malformed response from the processing server (HTTP {resp.status_code})"
            ) from e

    async def process(self, request: ProcessImageRequest) -> ProcessImageResponse:
        return await asyncio.to_thread(self.post_request, request)
