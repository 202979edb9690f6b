"""Gemini image provider via the ``google-genai`` SDK.

Calls a Gemini image model through the async client
(``client.aio.models.generate_content``), requesting both text and image
output with an explicit aspect ratio and image size.
"""

from __future__ import annotations

import base64
import os
from typing import Any

from spritestudio.logging import get_logger
from spritestudio.providers._base import (
    GeneratedImage,
    ImageInput,
    ImageProvider,
    ProviderError,
)
from spritestudio.providers._retry import with_retries

logger = get_logger("providers")

DEFAULT_GEMINI_MODEL = "gemini-3-pro-image-preview"


class GeminiImageProvider(ImageProvider):
    """Image generation and editing with a Gemini image model.

    Implements the :class:`~spritestudio.providers.ImageProvider` interface.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_GEMINI_MODEL,
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        """Initialize the Gemini provider.

        Args:
            api_key: Gemini API key.  If ``None``, reads ``GEMINI_API_KEY``
                and then ``GOOGLE_API_KEY`` from the environment.
            model: Gemini image model name.
            max_attempts: Attempts per call, including retries of
                transient failures.
            retry_base_delay: Delay before the first retry, in seconds.

        Raises:
            ProviderError: If no API key is available.
        """
        self._api_key = (
            api_key
            or os.environ.get("GEMINI_API_KEY", "")
            or os.environ.get("GOOGLE_API_KEY", "")
        )
        if not self._api_key:
            raise ProviderError(
                "Gemini API key is required. "
                "Pass api_key or set GEMINI_API_KEY."
            )
        self._model = model
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._client: Any | None = None

    @property
    def model(self) -> str:
        return self._model

    def _get_client(self) -> Any:
        """Lazily create and return the ``google.genai`` client."""
        if self._client is None:
            try:
                from google import genai
            except ImportError as exc:
                raise ImportError(
                    "google-genai is required for GeminiImageProvider. "
                    "Install with: pip install google-genai"
                ) from exc
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _build_config(self, aspect_ratio: str, resolution: str) -> Any:
        from google.genai import types

        return types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(
                aspect_ratio=aspect_ratio,
                image_size=resolution,
            ),
        )

    @staticmethod
    def _image_part(image: ImageInput) -> Any:
        from google.genai import types

        return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)

    async def _generate(
        self,
        contents: list[Any],
        aspect_ratio: str,
        resolution: str,
    ) -> GeneratedImage:
        logger.info(
            "Generating image via %s (aspect %s, size %s)",
            self._model,
            aspect_ratio,
            resolution,
            extra={"provider": self.name},
        )
        client = self._get_client()
        config = self._build_config(aspect_ratio, resolution)

        try:
            response = await with_retries(
                lambda: client.aio.models.generate_content(
                    model=self._model,
                    contents=contents,
                    config=config,
                ),
                attempts=self._max_attempts,
                base_delay=self._retry_base_delay,
            )
        except Exception as exc:
            logger.error("Image generation failed: %s", exc)
            raise ProviderError(f"Image generation failed: {exc}") from exc

        return parse_gemini_response(response)

    async def generate_image(
        self,
        prompt: str,
        reference_images: list[ImageInput] | None = None,
        aspect_ratio: str = "1:1",
        resolution: str = "1K",
    ) -> GeneratedImage:
        contents: list[Any] = [prompt]
        contents.extend(self._image_part(img) for img in reference_images or [])
        return await self._generate(contents, aspect_ratio, resolution)

    async def edit_image(
        self,
        source_image: ImageInput,
        prompt: str,
        reference_images: list[ImageInput] | None = None,
        aspect_ratio: str = "1:1",
        resolution: str = "1K",
    ) -> GeneratedImage:
        # Source image first, then the instruction, then any extra references.
        contents: list[Any] = [self._image_part(source_image), prompt]
        contents.extend(self._image_part(img) for img in reference_images or [])
        return await self._generate(contents, aspect_ratio, resolution)

    async def close(self) -> None:
        """Close the underlying async HTTP client, if one was created."""
        if self._client is None:
            return
        aclose = getattr(getattr(self._client, "aio", None), "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as exc:
                logger.debug("Ignoring error while closing Gemini client: %s", exc)
        self._client = None


def parse_gemini_response(response: Any) -> GeneratedImage:
    """Extract the last image part and last text part from a response.

    Raises:
        ProviderError: If the response contains no image.
    """
    image: bytes | None = None
    mime_type = "image/png"
    text = ""

    candidates = getattr(response, "candidates", None) or []
    content = getattr(candidates[0], "content", None) if candidates else None
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            image = inline.data
            mime_type = getattr(inline, "mime_type", None) or mime_type
        elif getattr(part, "text", None):
            text = part.text

    if not image:
        raise ProviderError("No image generated")
    if isinstance(image, str):
        image = base64.b64decode(image)

    logger.info("Image generated (%d bytes)", len(image))
    return GeneratedImage(image=image, text=text or None, mime_type=mime_type)
