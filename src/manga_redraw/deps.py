"""
Shared service instances that can be injected anywhere in the application.

Keeps a single Gemini client so it is not rebuilt per request; tests swap it
through ``app.dependency_overrides[get_inpainting_client]``.
"""

from manga_redraw.config import GEMINI_ENDPOINT, REQUEST_TIMEOUT
from manga_redraw.gemini import GeminiClient

gemini_client = GeminiClient(GEMINI_ENDPOINT, timeout=REQUEST_TIMEOUT)


def get_inpainting_client() -> GeminiClient:
    return gemini_client
