"""Shared fixtures for spritestudio tests."""

from __future__ import annotations

import io
import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from dotenv import load_dotenv
from PIL import Image

# Auto-load .env from project root (gitignored).
# This provides GEMINI_API_KEY and other env vars for integration tests.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env", override=False)

from mock_image_provider import MockImageProvider  # noqa: E402

from spritestudio.assets import AssetFileStore  # noqa: E402
from spritestudio.models import Asset, AssetType, Character, Project  # noqa: E402
from spritestudio.store import ProjectStore  # noqa: E402

# ---------------------------------------------------------------------------
# Auto-skip integration tests when provider credentials are unavailable
# ---------------------------------------------------------------------------


def _integration_enabled() -> bool:
    """Integration tests need an explicit opt-in and a Gemini API key."""
    if os.environ.get("SPRITESTUDIO_RUN_INTEGRATION", "").strip().lower() not in (
        "1",
        "true",
        "yes",
        "on",
    ):
        return False
    return bool(os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"))


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip integration tests when they are not enabled."""
    if _integration_enabled():
        return
    skip_marker = pytest.mark.skip(
        reason=(
            "Integration test skipped: set SPRITESTUDIO_RUN_INTEGRATION=1 and "
            "GEMINI_API_KEY."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep env overrides and logging handlers from leaking between tests."""
    monkeypatch.delenv("SPRITESTUDIO_ROOT", raising=False)
    yield
    logger = logging.getLogger("spritestudio")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------


def make_png(
    width: int = 64, height: int = 64, color: tuple[int, int, int, int] = (255, 255, 255, 255)
) -> bytes:
    """Encode a solid-color RGBA image as PNG bytes."""
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def make_grid_png(cols: int, rows: int, cell: int = 10) -> bytes:
    """A sheet whose cell ``i`` (reading order) is filled with red value ``i``."""
    img = Image.new("RGBA", (cols * cell, rows * cell), (0, 0, 0, 255))
    for index in range(cols * rows):
        row, col = divmod(index, cols)
        img.paste(
            (index, 0, 0, 255),
            (col * cell, row * cell, (col + 1) * cell, (row + 1) * cell),
        )
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture()
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture()
def grid_png_factory() -> Callable[..., bytes]:
    return make_grid_png


@pytest.fixture()
def character_png() -> bytes:
    return make_png(32, 32, (200, 50, 50, 255))


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def studio_root(tmp_path: Path) -> Path:
    root = tmp_path / "studio"
    root.mkdir()
    return root


@pytest.fixture()
def store(studio_root: Path) -> ProjectStore:
    return ProjectStore(studio_root)


@pytest.fixture()
def asset_store(studio_root: Path) -> AssetFileStore:
    return AssetFileStore(studio_root)


@pytest.fixture()
def project(store: ProjectStore) -> Project:
    return store.create_project("Test Game", "A test project")


@pytest.fixture()
def character_with_asset(
    store: ProjectStore,
    asset_store: AssetFileStore,
    project: Project,
    character_png: bytes,
) -> tuple[Character, Asset]:
    """A character whose primary asset image exists on disk."""
    character = store.create_character(project.id, "Knight", user_prompt="a knight")
    path = asset_store.save_image(project.id, "characters", "Knight", character_png)
    asset = store.create_asset(
        project_id=project.id,
        file_path=path,
        type=AssetType.CHARACTER,
        user_prompt="a knight",
        character_id=character.id,
    )
    character = store.update_character(character.id, primary_asset_id=asset.id)
    return character, asset


@pytest.fixture()
def mock_provider() -> MockImageProvider:
    return MockImageProvider(images=[make_grid_png(8, 1)], text="Here is your sheet")
