"""SpriteStudio: sprite-sheet layout, prompt synthesis and image generation."""

from typing import Any

from spritestudio.assets import AssetFileStore
from spritestudio.config import (
    GenerationSettingsConfig,
    StorageConfig,
    StudioConfig,
    default_config,
    load_config,
)
from spritestudio.errors import (
    AssetNotFoundError,
    ConfigError,
    GenerationError,
    ProviderError,
    RecordNotFoundError,
    SlicingError,
    SpriteStudioError,
    StoreError,
)
from spritestudio.layout import (
    LAYOUT_BUCKETS,
    AspectRatio,
    LayoutBucket,
    SheetLayout,
    resolve_layout,
    supported_aspect_ratios,
)
from spritestudio.logging import get_logger, setup_logging
from spritestudio.models import (
    Animation,
    Asset,
    AssetType,
    Character,
    CharacterDetail,
    CharacterRequest,
    Frame,
    Project,
    ProjectDetail,
    SpriteSheet,
    SpritesheetRequest,
    SpritesheetResult,
)
from spritestudio.presets import (
    AnglePreset,
    BackgroundPreset,
    StylePreset,
    angle_fragment,
    preset_options,
)
from spritestudio.prompts import (
    SpritesheetGenerationRequest,
    build_character_prompt,
    build_character_system_prompt,
    build_generation_request,
    build_spritesheet_prompt,
)
from spritestudio.providers import (
    GeneratedImage,
    ImageInput,
    ImageProvider,
    create_provider,
)
from spritestudio.slicer import frame_to_png_bytes, frames_to_png_bytes, slice_sheet
from spritestudio.store import ProjectStore
from spritestudio.workflow import StudioWorkflow


def __getattr__(name: str) -> Any:
    """Lazy loading for SDK-dependent providers."""
    if name == "GeminiImageProvider":
        from spritestudio.providers import GeminiImageProvider

        return GeminiImageProvider
    if name == "GPTImageProvider":
        from spritestudio.providers import GPTImageProvider

        return GPTImageProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "LAYOUT_BUCKETS",
    "Animation",
    "AnglePreset",
    "AspectRatio",
    "Asset",
    "AssetFileStore",
    "AssetNotFoundError",
    "AssetType",
    "BackgroundPreset",
    "Character",
    "CharacterDetail",
    "CharacterRequest",
    "ConfigError",
    "Frame",
    "GPTImageProvider",
    "GeminiImageProvider",
    "GeneratedImage",
    "GenerationError",
    "GenerationSettingsConfig",
    "ImageInput",
    "ImageProvider",
    "LayoutBucket",
    "Project",
    "ProjectDetail",
    "ProjectStore",
    "ProviderError",
    "RecordNotFoundError",
    "SheetLayout",
    "SlicingError",
    "SpriteSheet",
    "SpriteStudioError",
    "SpritesheetGenerationRequest",
    "SpritesheetRequest",
    "SpritesheetResult",
    "StorageConfig",
    "StoreError",
    "StudioConfig",
    "StudioWorkflow",
    "StylePreset",
    "angle_fragment",
    "build_character_prompt",
    "build_character_system_prompt",
    "build_generation_request",
    "build_spritesheet_prompt",
    "create_provider",
    "default_config",
    "frame_to_png_bytes",
    "frames_to_png_bytes",
    "get_logger",
    "load_config",
    "preset_options",
    "resolve_layout",
    "setup_logging",
    "slice_sheet",
    "supported_aspect_ratios",
]
