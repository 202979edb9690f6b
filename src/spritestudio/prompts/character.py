"""Prompt builders for character generation and character variations."""

from __future__ import annotations

from spritestudio.presets import (
    AnglePreset,
    BackgroundPreset,
    StylePreset,
    angle_fragment,
    background_fragment,
    style_fragment,
)

CHARACTER_SYSTEM_PROMPT: str = """\
Create a single game character asset.
- Style: {style}
- Pose: full body, {angle}, neutral standing pose, centered in the frame
- Background: {background}, with no scenery, shadows or text
- Keep the silhouette readable and the proportions consistent so the \
character can be animated later"""


def build_character_system_prompt(
    background: str | BackgroundPreset | None = BackgroundPreset.WHITE,
    style: str | StylePreset | None = StylePreset.PIXEL_ART,
    angle: str | AnglePreset | None = AnglePreset.FRONT,
) -> str:
    """Build the system prompt for a character or character variation.

    Unknown preset keys fall back to the defaults (white, pixel art, front)
    so the prompt never has an empty slot.
    """
    return CHARACTER_SYSTEM_PROMPT.format(
        style=style_fragment(style) or style_fragment(StylePreset.PIXEL_ART),
        angle=angle_fragment(angle) or angle_fragment(AnglePreset.FRONT),
        background=background_fragment(background)
        or background_fragment(BackgroundPreset.WHITE),
    )


def build_character_prompt(user_prompt: str, system_prompt: str = "") -> str:
    """Combine the preset system prompt with the user's description.

    Args:
        user_prompt: What the user asked for (e.g. "a knight with a red cape").
        system_prompt: Output of :func:`build_character_system_prompt`, or
            empty to send the user prompt alone.

    Returns:
        The text sent to the image generator.
    """
    user_prompt = user_prompt.strip()
    if not system_prompt:
        return user_prompt
    return f"{system_prompt}\n\nCharacter: {user_prompt}"
