"""Image rendering via Google Gemini (google-genai SDK)."""

from __future__ import annotations

import logging

from google import genai
from google.genai import types

from pressroom.config import ImagesSectionConfig
from pressroom.images.models import RenderedImage

logger = logging.getLogger(__name__)


class ImageRenderError(Exception):
    """The image model returned no image."""


class ImageRenderer:
    """Turns a final prompt into raster bytes."""

    def __init__(self, config: ImagesSectionConfig) -> None:
        self._config = config
        self._client: genai.Client | None = None

    def is_configured(self) -> bool:
        return self._config.is_configured

    def _get_client(self) -> genai.Client:
        """Lazy-create and cache the genai Client."""
        if self._client is None:
            self._client = genai.Client(api_key=self._config.api_key)
        return self._client

    def render(self, prompt: str, *, aspect_ratio: str | None = None) -> RenderedImage:
        """Generate one image.

        Raises:
            ImageRenderError: When the call fails or returns no image part.
        """
        try:
            response = self._get_client().models.generate_content(
                model=self._config.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                    image_config=types.ImageConfig(
                        aspect_ratio=aspect_ratio or self._config.aspect_ratio,
                    ),
                ),
            )
        except Exception as exc:
            raise ImageRenderError(f"image model call failed: {exc}") from exc

        for part in response.parts or []:
            if part.inline_data is not None and part.inline_data.data:
                logger.info("Rendered image (%d bytes)", len(part.inline_data.data))
                return RenderedImage(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "image/png",
                )

        raise ImageRenderError(f"no image data in response for prompt: {prompt[:80]}")
