"""Image generation providers.

This package contains the abstract provider interface and concrete
implementations for Gemini image models and Azure-hosted GPT-Image.
"""

from __future__ import annotations

from typing import Any

from spritestudio.providers._base import (
    GeneratedImage,
    ImageInput,
    ImageProvider,
    ProviderError,
)
from spritestudio.providers._retry import is_transient, with_retries

PROVIDER_NAMES: tuple[str, ...] = ("gemini", "gpt-image")


def create_provider(name: str, **kwargs: Any) -> ImageProvider:
    """Build a provider by name.

    Args:
        name: ``"gemini"`` or ``"gpt-image"``.
        **kwargs: Passed to the provider constructor.

    Raises:
        ProviderError: If *name* is unknown or the provider cannot be
            configured.
    """
    if name == "gemini":
        from spritestudio.providers.gemini_image import GeminiImageProvider

        return GeminiImageProvider(**kwargs)
    if name == "gpt-image":
        from spritestudio.providers.gpt_image import GPTImageProvider

        return GPTImageProvider(**kwargs)
    raise ProviderError(
        f"Unknown provider {name!r}; expected one of {', '.join(PROVIDER_NAMES)}"
    )


# Lazy imports for SDK-dependent providers
def __getattr__(name: str) -> Any:
    if name == "GeminiImageProvider":
        from spritestudio.providers.gemini_image import GeminiImageProvider

        return GeminiImageProvider
    if name == "GPTImageProvider":
        from spritestudio.providers.gpt_image import GPTImageProvider

        return GPTImageProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GPTImageProvider",
    "GeminiImageProvider",
    "GeneratedImage",
    "ImageInput",
    "ImageProvider",
    "PROVIDER_NAMES",
    "ProviderError",
    "create_provider",
    "is_transient",
    "with_retries",
]
