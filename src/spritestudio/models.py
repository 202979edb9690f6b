"""Pydantic data models for projects, characters, animations, and assets."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from spritestudio.layout import AspectRatio, SheetLayout


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AssetType(str, Enum):
    """Kind of image stored as an asset."""

    REFERENCE = "reference"
    CHARACTER = "character"
    FRAME = "frame"
    SPRITESHEET = "spritesheet"


# ---------------------------------------------------------------------------
# Generation settings (provenance only, never read back)
# ---------------------------------------------------------------------------


class SpriteSheetGenerationSettings(BaseModel):
    """Settings recorded on a sprite sheet.

    Attributes:
        character_asset_id: Asset the sheet was generated from.
        angle_preset: Angle preset key used for the prompt.
        frame_count: Requested number of frames.
        aspect_ratio: Output aspect ratio sent to the generator.
        cols: Grid columns.
        rows: Grid rows.
    """

    character_asset_id: str
    angle_preset: str | None = None
    frame_count: int
    aspect_ratio: str
    cols: int
    rows: int


class SpritesheetAssetSettings(BaseModel):
    """Settings recorded on the asset produced for a sprite sheet."""

    description: str
    frame_count: int
    angle_preset: str | None = None
    aspect_ratio: str
    cols: int
    rows: int

    @classmethod
    def from_layout(
        cls,
        layout: SheetLayout,
        description: str,
        frame_count: int,
        angle_preset: str | None,
    ) -> "SpritesheetAssetSettings":
        return cls(
            description=description,
            frame_count=frame_count,
            angle_preset=angle_preset,
            aspect_ratio=layout.aspect_ratio.value,
            cols=layout.cols,
            rows=layout.rows,
        )


class AnimationGenerationSettings(BaseModel):
    """Settings recorded on an animation."""

    character_asset_id: str
    angle_preset: str | None = None


class CharacterAssetSettings(BaseModel):
    """Settings recorded on a generated character asset."""

    background_preset: str | None = None
    style_preset: str | None = None
    angle_preset: str | None = None
    aspect_ratio: str = AspectRatio.SQUARE.value
    resolution: str | None = None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class Project(BaseModel):
    """A container for characters and their assets."""

    id: str = Field(default_factory=_new_id)
    name: str
    description: str | None = None
    thumbnail_id: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Character(BaseModel):
    """A character within a project.

    Attributes:
        primary_asset_id: Asset shown as the character's main image.
        user_prompt: The description the character was generated from.
    """

    id: str = Field(default_factory=_new_id)
    project_id: str
    name: str
    user_prompt: str | None = None
    primary_asset_id: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Asset(BaseModel):
    """A stored image plus the prompts and settings that produced it.

    Attributes:
        file_path: Public path of the image (``/assets/...``).
        system_prompt: Full prompt sent to the generator, if generated.
        user_prompt: The user's own input, if any.
        reference_asset_ids: Assets passed to the generator as inputs.
        generation_settings: Free-form provenance metadata.
    """

    id: str = Field(default_factory=_new_id)
    project_id: str
    file_path: str
    type: AssetType
    system_prompt: str | None = None
    user_prompt: str | None = None
    reference_asset_ids: list[str] = []
    generation_settings: dict[str, Any] = {}
    character_id: str | None = None
    created_at: datetime = Field(default_factory=_now)


class Animation(BaseModel):
    """An animation made of ordered frames."""

    id: str = Field(default_factory=_new_id)
    project_id: str
    character_id: str
    name: str
    description: str | None = None
    frame_count: int = Field(default=4, ge=0)
    generation_settings: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Frame(BaseModel):
    """One frame of an animation, backed by an asset."""

    id: str = Field(default_factory=_new_id)
    animation_id: str
    asset_id: str
    frame_index: int = Field(..., ge=0)
    created_at: datetime = Field(default_factory=_now)


class SpriteSheet(BaseModel):
    """A generated sprite sheet for a character."""

    id: str = Field(default_factory=_new_id)
    project_id: str
    character_id: str
    asset_id: str
    name: str
    description: str | None = None
    generation_settings: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


# ---------------------------------------------------------------------------
# Nested views
# ---------------------------------------------------------------------------


class FrameWithAsset(BaseModel):
    frame: Frame
    asset: Asset


class AnimationWithFrames(BaseModel):
    animation: Animation
    frames: list[FrameWithAsset] = []


class SpriteSheetWithAsset(BaseModel):
    spritesheet: SpriteSheet
    asset: Asset


class CharacterDetail(BaseModel):
    """A character with its primary asset, assets, animations and sheets."""

    character: Character
    primary_asset: Asset | None = None
    assets: list[Asset] = []
    animations: list[AnimationWithFrames] = []
    spritesheets: list[SpriteSheetWithAsset] = []


class ProjectDetail(BaseModel):
    project: Project
    characters: list[CharacterDetail] = []


# ---------------------------------------------------------------------------
# Requests (validated at the boundary)
# ---------------------------------------------------------------------------


class SpritesheetRequest(BaseModel):
    """Input for sprite-sheet generation.

    ``frame_count`` must be positive; the layout resolver itself does not
    check.
    """

    character_id: str = Field(..., min_length=1)
    character_asset_id: str = Field(..., min_length=1)
    name: str
    description: str
    frame_count: int = Field(..., ge=1)
    angle_preset: str | None = "front"

    @field_validator("name", "description")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class CharacterRequest(BaseModel):
    """Input for character generation or editing.

    Attributes:
        prompt: The user's description of the character (or the edit).
        reference_images: Extra input images as data URLs or base64.
        aspect_ratio: Output aspect ratio.
        resolution: Output resolution tier.
        background_preset: Background preset key.
        style_preset: Style preset key.
        angle_preset: Angle preset key.
    """

    prompt: str
    reference_images: list[str] = []
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    resolution: str = "1K"
    background_preset: str | None = "white"
    style_preset: str | None = "pixel-art"
    angle_preset: str | None = "front"

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("prompt is required")
        return v


class SpritesheetResult(BaseModel):
    """Outcome of a sprite-sheet generation."""

    spritesheet: SpriteSheet
    asset: Asset
    layout: SheetLayout
    prompt: str
    text: str | None = None
