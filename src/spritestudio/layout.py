"""Sprite-sheet grid layout resolution.

Maps a requested animation frame count to a grid geometry (columns x rows)
and one of the aspect ratios the image generator accepts.  The mapping is a
hand-tuned bucket table, not a formula: the generator only accepts a small
set of ratios and gets unreliable with elongated grids, so the table below
is the source of truth and its thresholds must not drift.
"""

from __future__ import annotations

import math
from enum import Enum

from pydantic import BaseModel, Field

from spritestudio.logging import get_logger

logger = get_logger("layout")


class AspectRatio(str, Enum):
    """Output aspect ratios supported by the image generator."""

    SQUARE = "1:1"
    PORTRAIT_2_3 = "2:3"
    LANDSCAPE_3_2 = "3:2"
    PORTRAIT_3_4 = "3:4"
    LANDSCAPE_4_3 = "4:3"
    PORTRAIT_4_5 = "4:5"
    LANDSCAPE_5_4 = "5:4"
    PORTRAIT_9_16 = "9:16"
    WIDESCREEN = "16:9"
    ULTRAWIDE = "21:9"

    @property
    def ratio(self) -> float:
        """Width divided by height."""
        width, height = self.value.split(":")
        return int(width) / int(height)


class SheetLayout(BaseModel):
    """Grid geometry and aspect ratio for one generated sprite sheet.

    Attributes:
        aspect_ratio: Output image aspect ratio sent to the generator.
        cols: Number of frame columns (>= 1).
        rows: Number of frame rows (>= 1).
    """

    aspect_ratio: AspectRatio
    cols: int = Field(..., ge=1)
    rows: int = Field(..., ge=1)

    model_config = {"frozen": True}

    @property
    def cells(self) -> int:
        """Total number of grid cells."""
        return self.cols * self.rows

    @property
    def is_single_row(self) -> bool:
        """True when the layout is a single horizontal strip."""
        return self.rows == 1

    def fits(self, frame_count: int) -> bool:
        """Return True if every requested frame has a cell."""
        return self.cells >= frame_count


class LayoutBucket(BaseModel):
    """One row of the layout bucket table.

    Attributes:
        max_frames: Inclusive upper bound (or the exact value when *exact*).
            ``None`` marks the catch-all bucket.
        exact: Match only when the frame count equals *max_frames*.
        aspect_ratio: Aspect ratio assigned to the bucket.
        cols: Fixed column count, or ``None`` for one column per frame.
        rows: Fixed row count.
    """

    max_frames: int | None
    exact: bool = False
    aspect_ratio: AspectRatio
    cols: int | None
    rows: int = Field(..., ge=1)

    model_config = {"frozen": True}

    def matches(self, frame_count: int) -> bool:
        if self.max_frames is None:
            return True
        if self.exact:
            return frame_count == self.max_frames
        return frame_count <= self.max_frames


# Evaluated top to bottom; first match wins.
LAYOUT_BUCKETS: tuple[LayoutBucket, ...] = (
    LayoutBucket(max_frames=4, exact=True, aspect_ratio=AspectRatio.SQUARE, cols=2, rows=2),
    LayoutBucket(max_frames=8, aspect_ratio=AspectRatio.ULTRAWIDE, cols=None, rows=1),
    LayoutBucket(max_frames=10, aspect_ratio=AspectRatio.ULTRAWIDE, cols=5, rows=2),
    LayoutBucket(max_frames=12, aspect_ratio=AspectRatio.ULTRAWIDE, cols=6, rows=2),
    LayoutBucket(max_frames=16, aspect_ratio=AspectRatio.WIDESCREEN, cols=8, rows=2),
    LayoutBucket(max_frames=None, aspect_ratio=AspectRatio.LANDSCAPE_3_2, cols=8, rows=3),
)

MIN_FRAME_COUNT = 1


def supported_aspect_ratios() -> list[str]:
    """Return the aspect ratio strings accepted by the generator."""
    return [ratio.value for ratio in AspectRatio]


def closest_aspect_ratio(width: float, height: float) -> AspectRatio:
    """Return the supported aspect ratio nearest to ``width:height``.

    Distance is measured on a log scale so that 2:1 and 1:2 are equally far
    from 1:1.
    """
    if width <= 0 or height <= 0:
        return AspectRatio.SQUARE
    target = math.log(width / height)
    return min(AspectRatio, key=lambda r: abs(math.log(r.ratio) - target))


def resolve_layout(frame_count: int) -> SheetLayout:
    """Choose the grid geometry and aspect ratio for *frame_count* frames.

    Counts below 1 are clamped to 1.  The catch-all bucket covers up to
    ``cols * rows`` frames; beyond that the column count is kept and rows are
    added so every frame still has a cell.

    Args:
        frame_count: Requested number of animation frames.

    Returns:
        The resolved ``SheetLayout``.
    """
    if frame_count < MIN_FRAME_COUNT:
        logger.debug(
            "Clamping frame count %d to %d", frame_count, MIN_FRAME_COUNT
        )
        frame_count = MIN_FRAME_COUNT

    bucket = next(b for b in LAYOUT_BUCKETS if b.matches(frame_count))
    cols = bucket.cols if bucket.cols is not None else frame_count
    layout = SheetLayout(aspect_ratio=bucket.aspect_ratio, cols=cols, rows=bucket.rows)

    if not layout.fits(frame_count):
        rows = math.ceil(frame_count / cols)
        layout = SheetLayout(
            aspect_ratio=closest_aspect_ratio(cols, rows), cols=cols, rows=rows
        )
        logger.debug(
            "Frame count %d exceeds the largest bucket; using %dx%d (%s)",
            frame_count,
            layout.cols,
            layout.rows,
            layout.aspect_ratio.value,
        )

    return layout
