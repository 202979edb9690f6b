"""GPT-Image provider via Azure OpenAI.

Uses ``AsyncAzureOpenAI`` from the ``openai`` package to call a GPT-Image
deployment with Entra ID (``DefaultAzureCredential``) bearer token
authentication.  GPT-Image only accepts three fixed output sizes, so the
requested aspect ratio is mapped to the nearest one.
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

SQUARE_SIZE = "1024x1024"
LANDSCAPE_SIZE = "1536x1024"
PORTRAIT_SIZE = "1024x1536"

# Resolution tier -> GPT-Image quality setting.
QUALITY_BY_RESOLUTION: dict[str, str] = {"1K": "medium", "2K": "high", "4K": "high"}


def size_for_aspect_ratio(aspect_ratio: str) -> str:
    """Map an aspect ratio string to the closest supported GPT-Image size."""
    try:
        width, height = (float(part) for part in aspect_ratio.split(":"))
        ratio = width / height
    except (ValueError, ZeroDivisionError):
        return SQUARE_SIZE
    if ratio >= 1.25:
        return LANDSCAPE_SIZE
    if ratio <= 0.8:
        return PORTRAIT_SIZE
    return SQUARE_SIZE


class GPTImageProvider(ImageProvider):
    """Image generation using an Azure-hosted GPT-Image deployment.

    Implements the :class:`~spritestudio.providers.ImageProvider` interface.
    """

    name = "gpt-image"

    def __init__(
        self,
        azure_endpoint: str | None = None,
        credential: Any | None = None,
        model_deployment: str = "gpt-image-1.5",
        api_version: str = "2025-04-01-preview",
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        """Initialize GPT-Image provider.

        Args:
            azure_endpoint: Azure OpenAI resource endpoint URL.  If ``None``,
                reads ``AZURE_OPENAI_GPT_IMAGE_ENDPOINT``.
            credential: Azure credential instance.  If ``None``, a
                ``DefaultAzureCredential`` is created and owned by this
                provider.
            model_deployment: Model deployment name in Azure OpenAI.
            api_version: Azure OpenAI API version.
            max_attempts: Attempts per call, including retries.
            retry_base_delay: Delay before the first retry, in seconds.

        Raises:
            ProviderError: If endpoint is missing.
        """
        self._endpoint: str = azure_endpoint or os.environ.get(
            "AZURE_OPENAI_GPT_IMAGE_ENDPOINT", ""
        )
        if not self._endpoint:
            raise ProviderError(
                "Azure OpenAI endpoint is required. "
                "Pass azure_endpoint or set AZURE_OPENAI_GPT_IMAGE_ENDPOINT."
            )

        self._user_credential = credential
        self._owns_credential = credential is None
        self._credential: Any | None = None

        self._model = model_deployment
        self._api_version = api_version
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay
        self._client: Any | None = None

    def _get_client(self) -> Any:
        """Lazily create and return the Azure OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncAzureOpenAI
            except ImportError as exc:
                raise ImportError(
                    "OpenAI SDK package is required for GPTImageProvider. "
                    "Install with: pip install openai"
                ) from exc

            try:
                from azure.identity.aio import (
                    DefaultAzureCredential,
                    get_bearer_token_provider,
                )
            except ImportError as exc:
                raise ImportError(
                    "Azure Identity package is required for GPTImageProvider. "
                    "Install with: pip install azure-identity"
                ) from exc

            if self._user_credential is not None:
                self._credential = self._user_credential
            else:
                self._credential = DefaultAzureCredential()

            token_provider = get_bearer_token_provider(
                self._credential,
                "https://cognitiveservices.azure.com/.default",
            )

            self._client = AsyncAzureOpenAI(
                azure_ad_token_provider=token_provider,
                azure_endpoint=str(self._endpoint),
                api_version=self._api_version,
            )
        return self._client

    async def _call(self, method: str, **kwargs: Any) -> GeneratedImage:
        logger.info(
            "Generating image via %s (%s, size %s)",
            self._model,
            method,
            kwargs["size"],
            extra={"provider": self.name},
        )
        try:
            client = self._get_client()
            api = getattr(client.images, method)
            response = await with_retries(
                lambda: api(model=self._model, n=1, output_format="png", **kwargs),
                attempts=self._max_attempts,
                base_delay=self._retry_base_delay,
            )
        except Exception as exc:
            logger.error("Image generation failed: %s", exc)
            raise ProviderError(f"Image generation failed: {exc}") from exc

        try:
            # GPT Image models always return base64-encoded images.
            image_b64: str = response.data[0].b64_json
            image_bytes = base64.b64decode(image_b64, validate=True)
        except Exception as exc:
            logger.error("Failed to decode generated image: %s", exc)
            raise ProviderError(f"Failed to decode generated image: {exc}") from exc

        return GeneratedImage(image=image_bytes)

    async def generate_image(
        self,
        prompt: str,
        reference_images: list[ImageInput] | None = None,
        aspect_ratio: str = "1:1",
        resolution: str = "1K",
    ) -> GeneratedImage:
        size = size_for_aspect_ratio(aspect_ratio)
        quality = QUALITY_BY_RESOLUTION.get(resolution, "high")
        if reference_images:
            # Reference-guided generation goes through the edit endpoint.
            return await self._call(
                "edit",
                prompt=prompt,
                image=[_as_file(img, i) for i, img in enumerate(reference_images)],
                size=size,
                quality=quality,
            )
        return await self._call("generate", prompt=prompt, size=size, quality=quality)

    async def edit_image(
        self,
        source_image: ImageInput,
        prompt: str,
        reference_images: list[ImageInput] | None = None,
        aspect_ratio: str = "1:1",
        resolution: str = "1K",
    ) -> GeneratedImage:
        images = [source_image, *(reference_images or [])]
        return await self._call(
            "edit",
            prompt=prompt,
            image=[_as_file(img, i) for i, img in enumerate(images)],
            size=size_for_aspect_ratio(aspect_ratio),
            quality=QUALITY_BY_RESOLUTION.get(resolution, "high"),
            input_fidelity="high",
        )

    async def close(self) -> None:
        """Close the Azure OpenAI client and any owned credential.

        User-supplied credentials are NOT closed.
        """
        if self._client is not None:
            try:
                await self._client.close()
            except Exception as exc:
                logger.debug("Ignoring error while closing OpenAI client: %s", exc)
            self._client = None

        if self._owns_credential and self._credential is not None:
            try:
                await self._credential.close()
            except Exception as exc:
                logger.debug("Ignoring error while closing credential: %s", exc)
            self._credential = None


def _as_file(image: ImageInput, index: int) -> tuple[str, bytes, str]:
    # Raw bytes are sent as application/octet-stream, which the API rejects.
    extension = image.mime_type.rsplit("/", 1)[-1]
    return (f"image_{index}.{extension}", image.data, image.mime_type)
