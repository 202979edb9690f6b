"""Character presets: viewing angles, art styles, and background colors.

Each category is a closed ``str`` enum paired with a phrase table.  Lookups
by raw string key are total: an unknown key yields an empty phrase rather
than an error, so stale keys stored in older generation settings keep
working.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class AnglePreset(str, Enum):
    """Viewing angle for the generated character."""

    FRONT = "front"
    THREE_QUARTER = "three-quarter"
    SIDE = "side"
    BACK = "back"


class StylePreset(str, Enum):
    """Rendering style for the generated character."""

    PIXEL_ART = "pixel-art"
    ANIME = "anime"
    CARTOON = "cartoon"
    PAINTERLY = "painterly"
    REALISTIC = "realistic"


class BackgroundPreset(str, Enum):
    """Solid background color behind the character."""

    WHITE = "white"
    BLACK = "black"
    GRAY = "gray"
    GREEN = "green"
    MAGENTA = "magenta"


class PresetOption(BaseModel):
    """A preset entry as shown to users.

    Attributes:
        value: The preset key stored in generation settings.
        label: Human-readable label.
        prompt_fragment: Phrase inserted into generation prompts.
    """

    value: str
    label: str
    prompt_fragment: str


ANGLE_PHRASES: dict[AnglePreset, tuple[str, str]] = {
    AnglePreset.FRONT: ("Front", "facing the viewer, front view"),
    AnglePreset.THREE_QUARTER: (
        "Three-quarter",
        "in a three-quarter view, turned slightly to the side",
    ),
    AnglePreset.SIDE: ("Side", "in side profile view, facing right"),
    AnglePreset.BACK: ("Back", "seen from behind, facing away from the viewer"),
}

STYLE_PHRASES: dict[StylePreset, tuple[str, str]] = {
    StylePreset.PIXEL_ART: (
        "Pixel art",
        "crisp pixel art with a limited palette and clean outlines",
    ),
    StylePreset.ANIME: ("Anime", "anime style with cel shading and bold line art"),
    StylePreset.CARTOON: (
        "Cartoon",
        "cartoon style with simple shapes and flat vibrant colors",
    ),
    StylePreset.PAINTERLY: (
        "Painterly",
        "hand-painted style with soft brush strokes",
    ),
    StylePreset.REALISTIC: (
        "Realistic",
        "realistic rendering with detailed lighting and materials",
    ),
}

BACKGROUND_PHRASES: dict[BackgroundPreset, tuple[str, str]] = {
    BackgroundPreset.WHITE: ("White", "plain solid white background"),
    BackgroundPreset.BLACK: ("Black", "plain solid black background"),
    BackgroundPreset.GRAY: ("Gray", "plain solid neutral gray background"),
    BackgroundPreset.GREEN: ("Green screen", "plain solid chroma-key green (#00FF00) background"),
    BackgroundPreset.MAGENTA: ("Magenta", "plain solid magenta (#FF00FF) background"),
}


def _lookup(
    enum_cls: type[Enum], table: dict, key: str | Enum | None
) -> str:
    if key is None or key == "":
        return ""
    try:
        member = enum_cls(key)
    except ValueError:
        return ""
    return table[member][1]


def angle_fragment(key: str | AnglePreset | None) -> str:
    """Return the prompt phrase for an angle preset, or ``""`` if unknown."""
    return _lookup(AnglePreset, ANGLE_PHRASES, key)


def style_fragment(key: str | StylePreset | None) -> str:
    """Return the prompt phrase for a style preset, or ``""`` if unknown."""
    return _lookup(StylePreset, STYLE_PHRASES, key)


def background_fragment(key: str | BackgroundPreset | None) -> str:
    """Return the prompt phrase for a background preset, or ``""`` if unknown."""
    return _lookup(BackgroundPreset, BACKGROUND_PHRASES, key)


def preset_options() -> dict[str, list[PresetOption]]:
    """List every preset category with its options, in declaration order."""

    def _options(table: dict) -> list[PresetOption]:
        return [
            PresetOption(value=member.value, label=label, prompt_fragment=phrase)
            for member, (label, phrase) in table.items()
        ]

    return {
        "angles": _options(ANGLE_PHRASES),
        "styles": _options(STYLE_PHRASES),
        "backgrounds": _options(BACKGROUND_PHRASES),
    }
