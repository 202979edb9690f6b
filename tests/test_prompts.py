"""Tests for spritestudio.prompts — sprite-sheet and character prompts."""

from __future__ import annotations

import pytest

from spritestudio.layout import AspectRatio, SheetLayout, resolve_layout
from spritestudio.prompts import (
    SPRITESHEET_PROMPT,
    build_character_prompt,
    build_character_system_prompt,
    build_generation_request,
    build_progression_narrative,
    build_spritesheet_prompt,
    describe_grid,
    describe_progression_step,
)
from spritestudio.prompts.spritesheet import END_POSE, SINGLE_POSE, START_POSE

# ---------------------------------------------------------------------------
# Progression narrative
# ---------------------------------------------------------------------------


class TestProgression:
    """Tests for the frame-by-frame storyboard lines."""

    @pytest.mark.parametrize("frame_count", range(1, 25))
    def test_one_line_per_frame_in_order(self, frame_count: int) -> None:
        lines = build_progression_narrative(frame_count)
        assert len(lines) == frame_count
        for i, line in enumerate(lines, start=1):
            assert line.startswith(f"Frame {i}: ")

    @pytest.mark.parametrize("frame_count", range(2, 25))
    def test_first_and_last_frames_are_labeled(self, frame_count: int) -> None:
        lines = build_progression_narrative(frame_count)
        assert lines[0] == f"Frame 1: {START_POSE}"
        assert lines[-1] == f"Frame {frame_count}: {END_POSE}"

    def test_single_frame_is_start_and_end(self) -> None:
        assert build_progression_narrative(1) == [f"Frame 1: {SINGLE_POSE}"]

    def test_intermediate_percentages(self) -> None:
        assert describe_progression_step(3, 8) == "Early motion (25% through)"
        assert describe_progression_step(5, 8) == "Late motion (50% through)"
        assert describe_progression_step(7, 8) == "Late motion (75% through)"

    def test_intermediate_frames_mention_percentage(self) -> None:
        lines = build_progression_narrative(10)
        for line in lines[1:-1]:
            assert "% through)" in line


# ---------------------------------------------------------------------------
# Grid description
# ---------------------------------------------------------------------------


def test_describe_grid_single_row() -> None:
    layout = SheetLayout(aspect_ratio=AspectRatio.ULTRAWIDE, cols=6, rows=1)
    assert describe_grid(layout) == "6 columns, 1 row (single horizontal strip)"


def test_describe_grid_multi_row() -> None:
    layout = SheetLayout(aspect_ratio=AspectRatio.ULTRAWIDE, cols=5, rows=2)
    assert describe_grid(layout) == "5 columns, 2 rows"


# ---------------------------------------------------------------------------
# Sprite-sheet prompt
# ---------------------------------------------------------------------------


class TestSpritesheetPrompt:
    """Tests for build_spritesheet_prompt and build_generation_request."""

    def test_template_is_nonempty(self) -> None:
        assert "{frame_count}" in SPRITESHEET_PROMPT

    @pytest.mark.parametrize("frame_count", [1, 4, 8, 10, 16, 24])
    def test_frame_count_is_stated_repeatedly(self, frame_count: int) -> None:
        prompt = build_spritesheet_prompt("Idle", "breathing", frame_count)
        assert prompt.startswith(f"EXACTLY {frame_count} FRAMES.")
        assert f"NOT {frame_count - 1}, NOT {frame_count + 1}" in prompt
        assert prompt.count(f"EXACTLY {frame_count}") >= 3
        assert f"Output EXACTLY {frame_count} frames" in prompt

    def test_grid_appears_in_layout_and_mandatory_lines(self) -> None:
        prompt = build_spritesheet_prompt("Jump", "jumping", 10)
        assert "LAYOUT: 5 columns, 2 rows" in prompt
        assert "in a 5 columns, 2 rows layout" in prompt

    def test_reading_order_only_for_multi_row(self) -> None:
        assert "left-to-right, top-to-bottom" in build_spritesheet_prompt("a", "b", 10)
        assert "left-to-right, top-to-bottom" not in build_spritesheet_prompt(
            "a", "b", 6
        )

    def test_angle_fragment_follows_character(self) -> None:
        prompt = build_spritesheet_prompt(
            "Walk", "walking", 6, angle_fragment="in side profile view"
        )
        assert "- Character in side profile view centered in cell" in prompt

    def test_empty_angle_fragment(self) -> None:
        prompt = build_spritesheet_prompt("Walk", "walking", 6)
        assert "- Character centered in cell" in prompt

    def test_leading_space_in_fragment_is_normalized(self) -> None:
        prompt = build_spritesheet_prompt("Walk", "walking", 6, angle_fragment=" front")
        assert "- Character front centered" in prompt

    def test_consistency_requirements(self) -> None:
        prompt = build_spritesheet_prompt("Walk", "walking", 6)
        assert "IDENTICAL face, colors, proportions" in prompt
        assert "ONLY the pose and position may change" in prompt
        assert "NO gaps" in prompt
        assert "NO borders" in prompt
        assert "loop seamlessly" in prompt

    def test_explicit_layout_overrides_resolution(self) -> None:
        layout = SheetLayout(aspect_ratio=AspectRatio.SQUARE, cols=3, rows=3)
        prompt = build_spritesheet_prompt("Spin", "spinning", 9, layout=layout)
        assert "3 columns, 3 rows" in prompt

    def test_walk_cycle_end_to_end(self) -> None:
        request = build_generation_request(
            "Walk Cycle", "walking forward", 8, angle_preset="side"
        )
        assert request.aspect_ratio == "21:9"
        assert request.resolution == "2K"
        assert (request.layout.cols, request.layout.rows) == (8, 1)
        assert request.layout == resolve_layout(8)

        prompt = request.prompt
        assert "EXACTLY 8 FRAMES" in prompt
        assert '"Walk Cycle" (walking forward)' in prompt
        assert "8 columns, 1 row (single horizontal strip)" in prompt
        assert "Frame 1: Start pose" in prompt
        assert "Frame 8: End pose (ready to loop back to frame 1)" in prompt
        assert "Frame 9:" not in prompt
        assert "Character in side profile view, facing right centered" in prompt

    def test_walk_in_place_front_view(self) -> None:
        request = build_generation_request(
            "Walk Cycle", "character walking in place", 8, angle_preset="front"
        )
        assert (request.layout.cols, request.layout.rows) == (8, 1)

        prompt = request.prompt
        assert "8 FRAMES" in prompt
        assert "Walk Cycle" in prompt
        assert "character walking in place" in prompt
        assert "Frame 8: End pose (ready to loop back to frame 1)" in prompt
        assert "- Character facing the viewer, front view centered in cell" in prompt

    @pytest.mark.parametrize("frame_count", [1, 4, 8, 10, 16, 24, 30])
    def test_prompt_has_one_frame_line_per_frame(self, frame_count: int) -> None:
        prompt = build_generation_request(
            "Walk Cycle", "character walking in place", frame_count, angle_preset="front"
        ).prompt
        lines = prompt.splitlines()
        assert sum(line.startswith("Frame ") for line in lines) == frame_count
        frame_lines = [line for line in lines if line.startswith("Frame ")]
        assert [line.split(":", 1)[0] for line in frame_lines] == [
            f"Frame {i}" for i in range(1, frame_count + 1)
        ]

    def test_unknown_angle_preset_adds_nothing(self) -> None:
        unknown = build_generation_request("Walk", "walking", 6, angle_preset="diagonal")
        none = build_generation_request("Walk", "walking", 6, angle_preset=None)
        assert unknown.prompt == none.prompt

    def test_same_inputs_same_prompt(self) -> None:
        a = build_generation_request("Walk", "walking", 12, angle_preset="front")
        b = build_generation_request("Walk", "walking", 12, angle_preset="front")
        assert a == b

    def test_resolution_is_passed_through(self) -> None:
        assert build_generation_request("a", "b", 4, resolution="4K").resolution == "4K"


# ---------------------------------------------------------------------------
# Character prompts
# ---------------------------------------------------------------------------


class TestCharacterPrompts:
    """Tests for the character system prompt and user prompt assembly."""

    def test_defaults(self) -> None:
        prompt = build_character_system_prompt()
        assert "pixel art" in prompt
        assert "facing the viewer, front view" in prompt
        assert "plain solid white background" in prompt

    def test_presets_are_substituted(self) -> None:
        prompt = build_character_system_prompt("magenta", "anime", "back")
        assert "magenta" in prompt
        assert "anime style" in prompt
        assert "seen from behind" in prompt

    def test_unknown_presets_fall_back_to_defaults(self) -> None:
        assert build_character_system_prompt(
            "plaid", "cubist", "upside-down"
        ) == build_character_system_prompt()

    def test_user_prompt_alone(self) -> None:
        assert build_character_prompt("  a knight  ") == "a knight"

    def test_user_prompt_with_system_prompt(self) -> None:
        prompt = build_character_prompt("a knight", "SYSTEM")
        assert prompt == "SYSTEM\n\nCharacter: a knight"
