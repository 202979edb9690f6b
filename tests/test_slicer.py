"""Tests for spritestudio.slicer — cutting sheets into frames."""

from __future__ import annotations

import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from spritestudio.errors import SlicingError
from spritestudio.layout import AspectRatio, SheetLayout, resolve_layout
from spritestudio.slicer import (
    frame_to_png_bytes,
    frames_to_png_bytes,
    open_sheet,
    slice_sheet,
)


def _layout(cols: int, rows: int) -> SheetLayout:
    return SheetLayout(aspect_ratio=AspectRatio.ULTRAWIDE, cols=cols, rows=rows)


class TestOpenSheet:
    def test_from_bytes(self, png_factory: Callable[..., bytes]) -> None:
        img = open_sheet(png_factory(20, 10))
        assert img.size == (20, 10)
        assert img.mode == "RGBA"

    def test_from_path(self, tmp_path: Path, png_factory: Callable[..., bytes]) -> None:
        path = tmp_path / "sheet.png"
        path.write_bytes(png_factory(4, 4))
        assert open_sheet(path).size == (4, 4)
        assert open_sheet(str(path)).size == (4, 4)

    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            open_sheet(tmp_path / "missing.png")

    def test_undecodable_bytes(self) -> None:
        with pytest.raises(SlicingError, match="Cannot decode"):
            open_sheet(b"definitely not an image")

    def test_converts_to_rgba(self) -> None:
        buf = io.BytesIO()
        Image.new("RGB", (3, 3), (1, 2, 3)).save(buf, format="PNG")
        assert open_sheet(buf.getvalue()).getpixel((0, 0)) == (1, 2, 3, 255)


class TestSliceSheet:
    def test_single_row_reading_order(
        self, grid_png_factory: Callable[..., bytes]
    ) -> None:
        image = open_sheet(grid_png_factory(8, 1))
        frames = slice_sheet(image, resolve_layout(8))
        assert len(frames) == 8
        for i, frame in enumerate(frames):
            assert frame.size == (10, 10)
            assert frame.getpixel((5, 5)) == (i, 0, 0, 255)

    def test_multi_row_reads_left_to_right_top_to_bottom(
        self, grid_png_factory: Callable[..., bytes]
    ) -> None:
        image = open_sheet(grid_png_factory(5, 2))
        frames = slice_sheet(image, _layout(5, 2))
        assert [f.getpixel((0, 0))[0] for f in frames] == list(range(10))

    def test_partial_grid_skips_trailing_cells(
        self, grid_png_factory: Callable[..., bytes]
    ) -> None:
        layout = resolve_layout(9)
        assert layout.cells == 10
        image = open_sheet(grid_png_factory(layout.cols, layout.rows))
        frames = slice_sheet(image, layout, 9)
        assert [f.getpixel((0, 0))[0] for f in frames] == list(range(9))

    def test_remainder_pixels_are_dropped(self) -> None:
        image = Image.new("RGBA", (23, 11))
        frames = slice_sheet(image, _layout(2, 1))
        assert {f.size for f in frames} == {(11, 11)}

    @pytest.mark.parametrize("frame_count", [0, 11, -1])
    def test_frame_count_out_of_range(self, frame_count: int) -> None:
        image = Image.new("RGBA", (50, 20))
        with pytest.raises(SlicingError, match="does not fit"):
            slice_sheet(image, _layout(5, 2), frame_count)

    def test_image_too_small_for_grid(self) -> None:
        image = Image.new("RGBA", (4, 4))
        with pytest.raises(SlicingError, match="too small"):
            slice_sheet(image, _layout(8, 1))


def test_png_encoding(grid_png_factory: Callable[..., bytes]) -> None:
    frames = slice_sheet(open_sheet(grid_png_factory(2, 1)), _layout(2, 1))
    encoded = frames_to_png_bytes(frames)
    assert len(encoded) == 2
    assert encoded[0] == frame_to_png_bytes(frames[0])
    assert Image.open(io.BytesIO(encoded[1])).getpixel((0, 0)) == (1, 0, 0, 255)
