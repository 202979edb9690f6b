"""Prompt template and builders for sprite-sheet generation.

The image model is best-effort: it miscounts frames and drifts the
character's look between cells unless told otherwise, repeatedly.  The
template therefore restates the frame count and grid several times and
spells out a frame-by-frame storyboard.
"""

from __future__ import annotations

from pydantic import BaseModel

from spritestudio.layout import SheetLayout, resolve_layout
from spritestudio.presets import angle_fragment as lookup_angle_fragment

# ---------------------------------------------------------------------------
# Template
# ---------------------------------------------------------------------------

SPRITESHEET_PROMPT: str = """\
EXACTLY {frame_count} FRAMES. NOT {fewer}, NOT {more}. EXACTLY {frame_count}.

Create a sprite sheet: {frame_count} animation frames of this character \
performing "{animation_name}" ({description}).

LAYOUT: {grid_description}
{reading_order}- Uniform grid, all cells IDENTICAL size, edge-to-edge with NO gaps
- NO borders, NO lines, NO dividers, NO separators between frames
- Solid background color fills everything, frames touch seamlessly

CHARACTER CONSISTENCY (preserve in EVERY frame):
- Character{angle} centered in cell at same scale and baseline
- IDENTICAL face, colors, proportions, art style and rendering quality in all \
{frame_count} frames
- ONLY the pose and position may change between frames

FRAME-BY-FRAME PROGRESSION:
{progression}

The motion must loop seamlessly: frame {frame_count} flows directly back into \
frame 1, with evenly spaced poses in between.
Background: one single solid color, consistent and identical across all \
{frame_count} frames.

MANDATORY: Output EXACTLY {frame_count} frames in a {grid_description} layout. \
Count them."""

READING_ORDER_LINE: str = "- Read frames left-to-right, top-to-bottom\n"

START_POSE = "Start pose"
END_POSE = "End pose (ready to loop back to frame 1)"
SINGLE_POSE = "Start pose and end pose (ready to loop back to frame 1)"


class SpritesheetGenerationRequest(BaseModel):
    """Everything the image generator needs for one sprite sheet.

    Attributes:
        prompt: The synthesized instruction text.
        aspect_ratio: Output aspect ratio string (e.g. ``"21:9"``).
        resolution: Output resolution tier (e.g. ``"2K"``).
        layout: The grid layout the prompt was built for.
    """

    prompt: str
    aspect_ratio: str
    resolution: str
    layout: SheetLayout


# ---------------------------------------------------------------------------
# Builder functions
# ---------------------------------------------------------------------------


def describe_grid(layout: SheetLayout) -> str:
    """Describe the grid in words (e.g. ``"5 columns, 2 rows"``)."""
    if layout.is_single_row:
        return f"{layout.cols} columns, 1 row (single horizontal strip)"
    return f"{layout.cols} columns, {layout.rows} rows"


def describe_progression_step(index: int, frame_count: int) -> str:
    """Label for 1-based frame *index* within a cycle of *frame_count* frames.

    Intermediate frames are annotated with how far through the cycle they
    sit, where the cycle ends back at frame 1.
    """
    if frame_count <= 1:
        return SINGLE_POSE
    if index <= 1:
        return START_POSE
    if index >= frame_count:
        return END_POSE
    pct = round((index - 1) / frame_count * 100)
    phase = "Early motion" if pct < 50 else "Late motion"
    return f"{phase} ({pct}% through)"


def build_progression_narrative(frame_count: int) -> list[str]:
    """Return one ``"Frame i: ..."`` line per frame."""
    return [
        f"Frame {i}: {describe_progression_step(i, frame_count)}"
        for i in range(1, frame_count + 1)
    ]


def build_spritesheet_prompt(
    animation_name: str,
    description: str,
    frame_count: int,
    angle_fragment: str = "",
    layout: SheetLayout | None = None,
) -> str:
    """Build the sprite-sheet generation prompt.

    Args:
        animation_name: Name of the animation (e.g., "Walk Cycle").
        description: What the character does in the animation.
        frame_count: Number of frames to generate (>= 1).
        angle_fragment: Viewing-angle phrase placed next to "Character";
            empty for none.
        layout: Grid layout; resolved from *frame_count* when omitted.

    Returns:
        Prompt text for the image generator.
    """
    if layout is None:
        layout = resolve_layout(frame_count)
    angle = angle_fragment.strip()

    return SPRITESHEET_PROMPT.format(
        frame_count=frame_count,
        fewer=frame_count - 1,
        more=frame_count + 1,
        animation_name=animation_name,
        description=description,
        grid_description=describe_grid(layout),
        reading_order="" if layout.is_single_row else READING_ORDER_LINE,
        angle=f" {angle}" if angle else "",
        progression="\n".join(build_progression_narrative(frame_count)),
    )


def build_generation_request(
    animation_name: str,
    description: str,
    frame_count: int,
    angle_preset: str | None = None,
    resolution: str = "2K",
) -> SpritesheetGenerationRequest:
    """Resolve the layout and prompt for one sprite-sheet request.

    Args:
        animation_name: Name of the animation.
        description: Animation description.
        frame_count: Number of frames (callers validate ``>= 1``).
        angle_preset: Angle preset key; unknown keys add no angle phrase.
        resolution: Output resolution tier.

    Returns:
        The prompt, aspect ratio, resolution, and layout bundle.
    """
    layout = resolve_layout(frame_count)
    prompt = build_spritesheet_prompt(
        animation_name,
        description,
        frame_count,
        angle_fragment=lookup_angle_fragment(angle_preset),
        layout=layout,
    )
    return SpritesheetGenerationRequest(
        prompt=prompt,
        aspect_ratio=layout.aspect_ratio.value,
        resolution=resolution,
        layout=layout,
    )
