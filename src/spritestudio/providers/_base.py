"""Base class and shared types for image generation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from spritestudio.errors import ProviderError

__all__ = ["GeneratedImage", "ImageInput", "ImageProvider", "ProviderError"]


@dataclass(frozen=True)
class ImageInput:
    """An image sent to the generator.

    Attributes:
        data: Raw image bytes.
        mime_type: MIME type of *data*.
    """

    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class GeneratedImage:
    """An image returned by the generator.

    Attributes:
        image: Raw image bytes.
        text: Optional text the model returned alongside the image.
        mime_type: MIME type of *image*.
    """

    image: bytes
    text: str | None = None
    mime_type: str = "image/png"


class ImageProvider(ABC):
    """Abstract base for image generation and editing backends."""

    name: str = "base"

    @abstractmethod
    async def generate_image(
        self,
        prompt: str,
        reference_images: list[ImageInput] | None = None,
        aspect_ratio: str = "1:1",
        resolution: str = "1K",
    ) -> GeneratedImage:
        """Generate an image from text and optional reference images.

        Args:
            prompt: Text prompt.
            reference_images: Optional images that guide the output.
            aspect_ratio: Output aspect ratio (e.g. ``"16:9"``).
            resolution: Output resolution tier (``"1K"``, ``"2K"``, ``"4K"``).

        Returns:
            The generated image.

        Raises:
            ProviderError: If the generation fails or returns no image.
        """

    @abstractmethod
    async def edit_image(
        self,
        source_image: ImageInput,
        prompt: str,
        reference_images: list[ImageInput] | None = None,
        aspect_ratio: str = "1:1",
        resolution: str = "1K",
    ) -> GeneratedImage:
        """Produce a new image from *source_image* and a text instruction.

        Args:
            source_image: The image to edit or build upon.
            prompt: Text instruction.
            reference_images: Optional extra guide images.
            aspect_ratio: Output aspect ratio.
            resolution: Output resolution tier.

        Returns:
            The generated image.

        Raises:
            ProviderError: If the generation fails or returns no image.
        """

    async def close(self) -> None:
        """Clean up provider resources.

        Default implementation does nothing.
        """

    async def __aenter__(self) -> "ImageProvider":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
