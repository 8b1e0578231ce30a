"""Image generation and editing via the Google Gen AI SDK.

Generation tries the Imagen model first and falls back once to the Gemini
image model on any failure. Editing goes straight to the Gemini image model.
"""

import base64
import binascii
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from google import genai
from google.genai import types as genai_types

logger = logging.getLogger(__name__)

STYLE_HINTS = {
    "photorealistic": "photorealistic, high detail, professional photography",
    "artistic": "artistic, painterly, creative interpretation",
    "cartoon": "cartoon style, animated, colorful",
    "sketch": "pencil sketch, hand-drawn, artistic",
    "3d-render": "3D rendered, CGI, computer graphics",
}


class ToolExecutionFailed(Exception):
    """The generative model call did not produce an image."""


@dataclass(frozen=True)
class GeneratedImage:
    image_base64: str
    mime_type: str

    def to_dict(self) -> dict:
        return asdict(self)


def styled_prompt(prompt: str, style: Optional[str] = None) -> str:
    if not style:
        return prompt
    return f"{prompt}, {STYLE_HINTS.get(style, style)}"


def _first_inline_image(response) -> Optional[GeneratedImage]:
    """Pull the first inline image part out of a generate_content response."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or not candidates[0].content:
        return None
    for part in candidates[0].content.parts or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return GeneratedImage(
                image_base64=base64.b64encode(inline.data).decode(),
                mime_type=inline.mime_type or "image/png",
            )
    return None


class ImageGenerator:
    """Thin async wrapper over the genai client."""

    def __init__(self, client: genai.Client, imagen_model: str = "imagen-3.0-generate-002",
                 gemini_model: str = "gemini-2.0-flash-exp"):
        self.client = client
        self.imagen_model = imagen_model
        self.gemini_model = gemini_model

    @classmethod
    def from_api_key(cls, api_key: str, **kwargs) -> "ImageGenerator":
        return cls(genai.Client(api_key=api_key), **kwargs)

    async def generate(self, prompt: str, aspect_ratio: str = "1:1",
                       style: Optional[str] = None) -> GeneratedImage:
        try:
            return await self._generate_with_imagen(styled_prompt(prompt, style), aspect_ratio)
        except Exception as primary_error:
            logger.warning(f"[TOOL] Imagen failed ({primary_error}), trying fallback model")
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.gemini_model,
                    contents=f"Generate an image: {prompt}",
                    config=genai_types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
                )
                image = _first_inline_image(response)
            except Exception as fallback_error:
                logger.warning(f"[TOOL] Fallback model failed: {fallback_error}")
                image = None
            if image is None:
                raise ToolExecutionFailed(f"Image generation failed: {primary_error}") from primary_error
            return image

    async def _generate_with_imagen(self, prompt: str, aspect_ratio: str) -> GeneratedImage:
        response = await self.client.aio.models.generate_images(
            model=self.imagen_model,
            prompt=prompt,
            config=genai_types.GenerateImagesConfig(number_of_images=1, aspect_ratio=aspect_ratio),
        )
        generated = response.generated_images or []
        if not generated or generated[0].image is None or not generated[0].image.image_bytes:
            raise ToolExecutionFailed("No image generated")
        image = generated[0].image
        return GeneratedImage(
            image_base64=base64.b64encode(image.image_bytes).decode(),
            mime_type=image.mime_type or "image/png",
        )

    async def edit(self, image_base64: str, edit_prompt: str) -> GeneratedImage:
        try:
            image_bytes = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ToolExecutionFailed(f"image_base64 is not valid base64: {e}") from e

        response = await self.client.aio.models.generate_content(
            model=self.gemini_model,
            contents=[
                genai_types.Part.from_bytes(data=image_bytes, mime_type="image/png"),
                f"Edit this image: {edit_prompt}. Return the edited image.",
            ],
            config=genai_types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
        )
        image = _first_inline_image(response)
        if image is None:
            raise ToolExecutionFailed("Image editing failed")
        return image
