"""Prompt constants and builders for SpriteStudio image generation.

This package holds every prompt string sent to the image generator:
sprite-sheet generation and character generation.

All prompts are Python format-string constants or builder functions; no
template engines are used.
"""

from __future__ import annotations

from spritestudio.prompts.character import (
    CHARACTER_SYSTEM_PROMPT,
    build_character_prompt,
    build_character_system_prompt,
)
from spritestudio.prompts.spritesheet import (
    SPRITESHEET_PROMPT,
    SpritesheetGenerationRequest,
    build_generation_request,
    build_progression_narrative,
    build_spritesheet_prompt,
    describe_grid,
    describe_progression_step,
)

__all__ = [
    "CHARACTER_SYSTEM_PROMPT",
    "SPRITESHEET_PROMPT",
    "SpritesheetGenerationRequest",
    "build_character_prompt",
    "build_character_system_prompt",
    "build_generation_request",
    "build_progression_narrative",
    "build_spritesheet_prompt",
    "describe_grid",
    "describe_progression_step",
]
