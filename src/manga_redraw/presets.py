"""
Default processing parameters for each redraw mode.

Selecting a mode resets the parameters to its preset; the user can then
override individual values.
"""

from typing import Dict

from manga_redraw.schemas import (InpaintArea, MaskContent, PresetConfig,
                                  ProcessingParams, RedrawMode)

DEFAULT_MODE = RedrawMode.STANDARD_BUBBLE

MODE_PRESETS: Dict[RedrawMode, PresetConfig] = {
    RedrawMode.STANDARD_BUBBLE: PresetConfig(
        mode=RedrawMode.STANDARD_BUBBLE,
        label="Standard Bubble",
        description="White speech bubbles with standard text",
        params=ProcessingParams(
            prompt=(
                "(masterpiece, best quality, ultra-detailed:1.2), manga style, clean lineart, "
                "(context aware inpainting:1.4), seamless texture blending, matching surrounding "
                "background, restore background pattern, highres."
            ),
            negativePrompt=(
                "(text, signature, watermark, sfx):1.4, (low quality:1.4), (gray residue), "
                "(dirty spots), deformed."
            ),
            denoisingStrength=0.4,
            padding=64,
            maskBlur=4,
            maskContent=MaskContent.ORIGINAL,
            inpaintArea=InpaintArea.ONLY_MASKED,
        ),
    ),
    RedrawMode.TRANSPARENT_BUBBLE: PresetConfig(
        mode=RedrawMode.TRANSPARENT_BUBBLE,
        label="Transparent Bubble",
        description="Transparent speech bubbles overlaying artwork",
        params=ProcessingParams(
            prompt=(
                "(masterpiece:1.2), manga style, (translucent layer:1.3), (see-through "
                "background:1.3), visible background pattern behind text area, continuity of "
                "background lines."
            ),
            negativePrompt=(
                "(opaque fill:1.4), (white background fill:1.4), (solid color block), "
                "(text, sfx):1.4."
            ),
            denoisingStrength=0.45,
            padding=32,
            maskBlur=4,
            maskContent=MaskContent.ORIGINAL,
            inpaintArea=InpaintArea.ONLY_MASKED,
        ),
    ),
    RedrawMode.NARRATIVE_BOX: PresetConfig(
        mode=RedrawMode.NARRATIVE_BOX,
        label="Narrative Box",
        description="Square text boxes with heavy text",
        params=ProcessingParams(
            prompt=(
                "(clean inside text box:1.4), (clean rectangular box), (keep box border:1.4), "
                "manga style, clean lineart."
            ),
            negativePrompt=(
                "(remaining text residue:1.3), (erasing box outline:1.4), (broken border), "
                "(text):1.5."
            ),
            denoisingStrength=0.55,
            padding=32,
            maskBlur=4,
            maskContent=MaskContent.FILL,
            inpaintArea=InpaintArea.ONLY_MASKED,
        ),
    ),
}


def get_preset_params(mode: RedrawMode) -> ProcessingParams:
    """A fresh copy of the preset parameters for ``mode``."""
    return MODE_PRESETS[RedrawMode(mode)].params.model_copy(deep=True)
