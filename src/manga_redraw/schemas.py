"""
Data models and validation

Defines the Pydantic models used to:
- Validate the payload of the image processing endpoint before anything reaches the model
- Carry the processing parameters between the orchestrator, the API and the presets
- Document the API automatically through OpenAPI
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from manga_redraw.config import ACCEPTED_MIME_TYPES
from manga_redraw.utils import is_valid_base64


class MaskContent(str, Enum):
    ORIGINAL = "original"
    FILL = "fill"
    LATENT_NOISE = "latent_noise"


class InpaintArea(str, Enum):
    ONLY_MASKED = "only_masked"
    WHOLE_PICTURE = "whole_picture"


class RedrawMode(str, Enum):
    STANDARD_BUBBLE = "standard_bubble"
    TRANSPARENT_BUBBLE = "transparent_bubble"
    NARRATIVE_BOX = "narrative_box"


class ModelType(str, Enum):
    NANO_BANANA_PRO = "nano-banana-pro"
    STABLE_DIFFUSION_STANDARD = "stable-diffusion-standard"


class ProcessingParams(BaseModel):
    prompt: str = ""
    negativePrompt: str = ""
    denoisingStrength: float = Field(0.4, ge=0.0, le=1.0)
    maskBlur: int = Field(4, ge=0)
    padding: int = Field(32, ge=0)
    maskContent: MaskContent = MaskContent.ORIGINAL
    inpaintArea: InpaintArea = InpaintArea.ONLY_MASKED


class ProcessImageRequest(BaseModel):
    apiKey: str
    image: str
    mask: Optional[str] = None
    mimeType: str = "image/png"
    modelId: Optional[str] = None
    params: Optional[ProcessingParams] = None

    @field_validator("apiKey")
    @classmethod
    def api_key_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("API key is required")
        return value.strip()

    @field_validator("image")
    @classmethod
    def image_required(cls, value: str) -> str:
        if not value:
            raise ValueError("Image is required")
        if not is_valid_base64(value):
            raise ValueError("Image must be valid base64 data")
        return value

    @field_validator("mask")
    @classmethod
    def mask_well_formed(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not is_valid_base64(value):
            raise ValueError("Mask must be valid base64 data")
        return value

    @field_validator("mimeType")
    @classmethod
    def mime_type_supported(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ACCEPTED_MIME_TYPES:
            raise ValueError(
                f"Unsupported image type '{value}'. Use one of: {', '.join(ACCEPTED_MIME_TYPES)}"
            )
        return value


class ProcessImageResponse(BaseModel):
    success: bool
    processedImage: Optional[str] = None
    error: Optional[str] = None


class PresetConfig(BaseModel):
    mode: RedrawMode
    label: str
    description: str
    params: ProcessingParams
