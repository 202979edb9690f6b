"""Tests for the spritestudio CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from mock_image_provider import MockImageProvider

from spritestudio.cli import main
from spritestudio.models import Asset, Character
from spritestudio.store import ProjectStore


@pytest.fixture
def cli_runner() -> CliRunner:
    """Fixture providing a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def studio_env(studio_root: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at the test storage root."""
    monkeypatch.setenv("SPRITESTUDIO_ROOT", str(studio_root))
    return studio_root


@pytest.fixture
def patched_provider(
    monkeypatch: pytest.MonkeyPatch, mock_provider: MockImageProvider
) -> MockImageProvider:
    """Make the CLI build the mock provider instead of a real one."""
    monkeypatch.setattr(
        "spritestudio.cli.create_provider", lambda name, **kwargs: mock_provider
    )
    return mock_provider


def _last_line(output: str) -> str:
    return output.strip().splitlines()[-1].strip()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def test_cli_help_flag(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "SpriteStudio" in result.output
    for command in ("layout", "prompt", "presets", "project", "character", "spritesheet"):
        assert command in result.output


def test_cli_version_flag(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


# ---------------------------------------------------------------------------
# Layout and prompt inspection
# ---------------------------------------------------------------------------


class TestLayoutCommand:
    def test_json(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(main, ["layout", "8", "--json"])
        assert result.exit_code == 0
        assert json.loads(_last_line(result.output)) == {
            "aspect_ratio": "21:9",
            "cols": 8,
            "rows": 1,
        }

    def test_text(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(main, ["layout", "4"])
        assert result.exit_code == 0
        assert "2 columns x 2 rows at 1:1 (4 cells)" in result.output

    def test_zero_is_clamped(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(main, ["layout", "0", "--json"])
        assert result.exit_code == 0
        assert json.loads(_last_line(result.output))["cols"] == 1


class TestPromptCommand:
    def test_walk_cycle(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            main,
            [
                "prompt",
                "8",
                "--name",
                "Walk Cycle",
                "--description",
                "walking forward",
                "--angle",
                "side",
            ],
        )
        assert result.exit_code == 0
        assert result.output.startswith("EXACTLY 8 FRAMES.")
        assert "Frame 8: End pose (ready to loop back to frame 1)" in result.output
        assert "side profile view" in result.output

    def test_rejects_zero_frames(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(main, ["prompt", "0", "-n", "Walk", "-d", "walking"])
        assert result.exit_code == 2

    def test_rejects_unknown_angle(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            main, ["prompt", "4", "-n", "Walk", "-d", "walking", "--angle", "diagonal"]
        )
        assert result.exit_code == 2


def test_presets_command(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["presets"])
    assert result.exit_code == 0
    for text in ("Angles", "Styles", "Backgrounds", "pixel-art", "magenta"):
        assert text in result.output


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class TestProjectCommands:
    def test_create_and_list(self, cli_runner: CliRunner, studio_env: Path) -> None:
        created = cli_runner.invoke(main, ["project", "create", "My Game", "-d", "demo"])
        assert created.exit_code == 0
        project_id = _last_line(created.output)
        assert ProjectStore(studio_env).get_project(project_id).name == "My Game"

        listed = cli_runner.invoke(main, ["project", "list"])
        assert listed.exit_code == 0
        assert "My Game" in listed.output

    def test_empty_list(self, cli_runner: CliRunner, studio_env: Path) -> None:
        result = cli_runner.invoke(main, ["project", "list"])
        assert result.exit_code == 0
        assert "No projects yet." in result.output

    def test_config_file_sets_root(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        root = tmp_path / "from-config"
        config = tmp_path / "studio.yaml"
        config.write_text(f"storage:\n  root: {root.as_posix()}\n", encoding="utf-8")

        result = cli_runner.invoke(main, ["--config", str(config), "project", "create", "X"])

        assert result.exit_code == 0
        assert (root / "studio.json").is_file()

    def test_malformed_config(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "bad.yaml"
        config.write_text("storage: [1, 2\n", encoding="utf-8")
        result = cli_runner.invoke(main, ["--config", str(config), "project", "list"])
        assert result.exit_code == 1
        assert "Malformed YAML" in result.output


# ---------------------------------------------------------------------------
# Sprite sheets
# ---------------------------------------------------------------------------


class TestSpritesheetCommands:
    def test_generate_and_slice(
        self,
        cli_runner: CliRunner,
        studio_env: Path,
        patched_provider: MockImageProvider,
        character_with_asset: tuple[Character, Asset],
    ) -> None:
        character, asset = character_with_asset

        generated = cli_runner.invoke(
            main,
            [
                "spritesheet",
                "generate",
                character.id,
                "--asset",
                asset.id,
                "--name",
                "Walk Cycle",
                "--description",
                "walking forward",
                "--frames",
                "8",
                "--angle",
                "side",
            ],
        )
        assert generated.exit_code == 0, generated.output
        assert "Layout: 8x1 at 21:9" in generated.output
        sheet_line = _last_line(generated.output)
        assert sheet_line.startswith("spritesheet: ")
        sheet_id = sheet_line.split(": ", 1)[1]
        assert patched_provider.call_history[0]["aspect_ratio"] == "21:9"
        assert patched_provider.closed

        sliced = cli_runner.invoke(
            main, ["spritesheet", "slice", sheet_id, "--animation-name", "Walk Right"]
        )
        assert sliced.exit_code == 0, sliced.output
        animation_id = _last_line(sliced.output).split(": ", 1)[1]
        store = ProjectStore(studio_env)
        assert store.get_animation(animation_id).name == "Walk Right"
        assert len(store.list_frames(animation_id)) == 8

        shown = cli_runner.invoke(main, ["character", "show", character.id])
        assert shown.exit_code == 0
        assert "Walk Cycle" in shown.output
        assert "Walk Right" in shown.output

    def test_generate_missing_character(
        self,
        cli_runner: CliRunner,
        studio_env: Path,
        patched_provider: MockImageProvider,
    ) -> None:
        result = cli_runner.invoke(
            main,
            [
                "spritesheet",
                "generate",
                "missing",
                "--asset",
                "also-missing",
                "-n",
                "Walk",
                "-d",
                "walking",
                "--frames",
                "6",
            ],
        )
        assert result.exit_code == 1
        assert "not found" in result.output
        assert patched_provider.call_history == []

    def test_generate_rejects_zero_frames(
        self, cli_runner: CliRunner, studio_env: Path
    ) -> None:
        result = cli_runner.invoke(
            main,
            ["spritesheet", "generate", "c", "--asset", "a", "-n", "W", "-d", "w", "--frames", "0"],
        )
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# Reference images
# ---------------------------------------------------------------------------


class TestReferenceCommands:
    def test_add_and_delete(
        self, cli_runner: CliRunner, studio_env: Path, tmp_path: Path, png_factory
    ) -> None:
        project = ProjectStore(studio_env).create_project("Game")
        image = tmp_path / "armor.png"
        image.write_bytes(png_factory(4, 4))

        added = cli_runner.invoke(main, ["reference", "add", project.id, str(image)])
        assert added.exit_code == 0, added.output
        asset_id = _last_line(added.output)
        asset = ProjectStore(studio_env).get_asset(asset_id)
        assert asset.user_prompt == "armor"

        deleted = cli_runner.invoke(main, ["reference", "delete", project.id, asset_id])
        assert deleted.exit_code == 0, deleted.output
        assert ProjectStore(studio_env).list_assets(project.id) == []

    def test_delete_unknown(self, cli_runner: CliRunner, studio_env: Path) -> None:
        project = ProjectStore(studio_env).create_project("Game")
        result = cli_runner.invoke(main, ["reference", "delete", project.id, "nope"])
        assert result.exit_code == 1
        assert "not found" in result.output


# ---------------------------------------------------------------------------
# Characters
# ---------------------------------------------------------------------------


def test_character_create(
    cli_runner: CliRunner,
    studio_env: Path,
    patched_provider: MockImageProvider,
    tmp_path: Path,
    png_factory,
) -> None:
    store = ProjectStore(studio_env)
    project = store.create_project("Game")
    reference = tmp_path / "ref.png"
    reference.write_bytes(png_factory(4, 4))

    result = cli_runner.invoke(
        main,
        [
            "character",
            "create",
            project.id,
            "--name",
            "Knight",
            "--prompt",
            "a knight with a red cape",
            "--reference",
            str(reference),
            "--style",
            "anime",
        ],
    )

    assert result.exit_code == 0, result.output
    character_line, asset_line = result.output.strip().splitlines()[-2:]
    character_id = character_line.split(": ", 1)[1]
    asset_id = asset_line.split(": ", 1)[1]
    reloaded = ProjectStore(studio_env)
    assert reloaded.get_character(character_id).name == "Knight"
    assert reloaded.get_character(character_id).primary_asset_id == asset_id
    call = patched_provider.call_history[0]
    assert call["method"] == "generate_image"
    assert "anime style" in call["prompt"]
    assert call["reference_images"][0].data == reference.read_bytes()


def test_character_show_missing(cli_runner: CliRunner, studio_env: Path) -> None:
    result = cli_runner.invoke(main, ["character", "show", "nope"])
    assert result.exit_code == 1
    assert "Character not found" in result.output
