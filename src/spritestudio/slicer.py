"""Slicing generated sprite sheets back into individual frames."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image

from spritestudio.errors import SlicingError
from spritestudio.layout import SheetLayout


def open_sheet(source: bytes | str | Path) -> Image.Image:
    """Open a sheet image from raw bytes or a file path.

    Args:
        source: Raw image bytes, a string path, or a ``Path`` object.

    Returns:
        A Pillow ``Image`` in RGBA mode.

    Raises:
        FileNotFoundError: If *source* is a path that does not exist.
        SlicingError: If the data cannot be decoded as an image.
    """
    if isinstance(source, (str, Path)):
        p = Path(source)
        if not p.exists():
            raise FileNotFoundError(f"Sheet image not found: {p}")
        source = p.read_bytes()
    try:
        return Image.open(io.BytesIO(source)).convert("RGBA")
    except (OSError, Image.DecompressionBombError) as exc:
        raise SlicingError(f"Cannot decode sheet image: {exc}") from exc


def slice_sheet(
    image: Image.Image,
    layout: SheetLayout,
    frame_count: int | None = None,
) -> list[Image.Image]:
    """Cut *image* into the cells of *layout*.

    Cells are read left-to-right, top-to-bottom.  Cell sizes are the image
    size floor-divided by the grid, so any remainder on the right and
    bottom edges is dropped.

    Args:
        image: The generated sheet.
        layout: Grid the sheet was generated with.
        frame_count: How many cells to return.  Defaults to every cell;
            trailing empty cells of a partially filled grid are skipped.

    Returns:
        The frames in reading order.

    Raises:
        SlicingError: If the image is smaller than the grid or
            *frame_count* is out of range.
    """
    count = layout.cells if frame_count is None else frame_count
    if not 1 <= count <= layout.cells:
        raise SlicingError(
            f"Frame count {count} does not fit a {layout.cols}x{layout.rows} grid"
        )

    cell_w = image.width // layout.cols
    cell_h = image.height // layout.rows
    if cell_w < 1 or cell_h < 1:
        raise SlicingError(
            f"Image {image.width}x{image.height}px is too small for a "
            f"{layout.cols}x{layout.rows} grid"
        )

    frames: list[Image.Image] = []
    for index in range(count):
        row, col = divmod(index, layout.cols)
        box = (col * cell_w, row * cell_h, (col + 1) * cell_w, (row + 1) * cell_h)
        frames.append(image.crop(box))
    return frames


def frame_to_png_bytes(frame: Image.Image) -> bytes:
    """Encode a single frame as PNG."""
    buf = io.BytesIO()
    frame.save(buf, format="PNG")
    return buf.getvalue()


def frames_to_png_bytes(frames: list[Image.Image]) -> list[bytes]:
    return [frame_to_png_bytes(f) for f in frames]
