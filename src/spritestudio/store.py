"""JSON-file record store for projects, characters, animations, and assets.

The whole store is one JSON document::

    {root}/studio.json
        version
        projects      {id: Project}
        characters    {id: Character}
        assets        {id: Asset}
        animations    {id: Animation}
        frames        {id: Frame}
        spritesheets  {id: SpriteSheet}

Every mutation rewrites the document atomically (same-directory temp file,
then replace), so a crash never leaves a half-written file.  A failed write
rolls the in-memory records back to the last saved state.  Deletes cascade
the way the relations imply.  Image files are not touched here; see
:mod:`spritestudio.assets`.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from spritestudio.errors import RecordNotFoundError, StoreError
from spritestudio.logging import get_logger
from spritestudio.models import (
    Animation,
    AnimationWithFrames,
    Asset,
    AssetType,
    Character,
    CharacterDetail,
    Frame,
    FrameWithAsset,
    Project,
    ProjectDetail,
    SpriteSheet,
    SpriteSheetWithAsset,
)

logger = get_logger("store")

STORE_FILENAME = "studio.json"

M = TypeVar("M", bound=BaseModel)

_COLLECTIONS: dict[str, type[BaseModel]] = {
    "projects": Project,
    "characters": Character,
    "assets": Asset,
    "animations": Animation,
    "frames": Frame,
    "spritesheets": SpriteSheet,
}

_KIND_NAMES: dict[str, str] = {
    "projects": "Project",
    "characters": "Character",
    "assets": "Asset",
    "animations": "Animation",
    "frames": "Frame",
    "spritesheets": "SpriteSheet",
}


# Default for optional updates where an explicit None means "clear".
_UNSET: Any = object()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectStore:
    """Persists SpriteStudio records to a single JSON file."""

    STORE_VERSION = 1

    def __init__(self, root: str | Path) -> None:
        """Open (or create) the store under *root*.

        Args:
            root: Directory holding ``studio.json``.  Created if missing.

        Raises:
            StoreError: If an existing store file is corrupt or from an
                unsupported version.
        """
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.path = self.root / STORE_FILENAME
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, BaseModel]] = {
            name: {} for name in _COLLECTIONS
        }
        if self.path.exists():
            self._load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StoreError(f"Store file {self.path} is corrupt: {exc}") from exc
        if not isinstance(raw, dict):
            raise StoreError(
                f"Store file {self.path} has unexpected type {type(raw).__name__}"
            )
        version = raw.get("version")
        if version != self.STORE_VERSION:
            raise StoreError(
                f"Unsupported store version {version!r} "
                f"(expected {self.STORE_VERSION})"
            )
        try:
            for name, model in _COLLECTIONS.items():
                self._data[name] = {
                    record_id: model.model_validate(record)
                    for record_id, record in raw.get(name, {}).items()
                }
        except ValidationError as exc:
            raise StoreError(f"Store file {self.path} has invalid records: {exc}") from exc
        logger.debug(
            "Loaded store %s (%d projects)", self.path, len(self._data["projects"])
        )

    def _save(self) -> None:
        payload: dict[str, Any] = {"version": self.STORE_VERSION}
        for name, records in self._data.items():
            payload[name] = {
                record_id: record.model_dump(mode="json")
                for record_id, record in records.items()
            }
        tmp = self.path.with_name(
            f".{self.path.name}.tmp-{os.getpid()}-{threading.get_ident()}"
        )
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Hold the lock for a mutation and persist it on exit.

        If the body or the write raises, the in-memory collections are
        rolled back so they keep matching the file on disk.
        """
        with self._lock:
            snapshot = {name: dict(records) for name, records in self._data.items()}
            try:
                yield
                self._save()
            except BaseException:
                self._data = snapshot
                raise

    def _get(self, collection: str, record_id: str) -> Any:
        record = self._data[collection].get(record_id)
        if record is None:
            raise RecordNotFoundError(_KIND_NAMES[collection], record_id)
        return record

    def _put(self, collection: str, record: M) -> M:
        self._data[collection][record.id] = record  # type: ignore[attr-defined]
        return record

    def _touch(self, record: M, **changes: Any) -> M:
        if "updated_at" in type(record).model_fields:
            changes["updated_at"] = _now()
        return record.model_copy(update=changes)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, name: str, description: str | None = None) -> Project:
        with self._transaction():
            project = self._put("projects", Project(name=name, description=description))
        logger.info("Created project %s", name, extra={"project_id": project.id})
        return project

    def get_project(self, project_id: str) -> Project:
        with self._lock:
            return self._get("projects", project_id)

    def list_projects(self) -> list[Project]:
        """All projects, most recently updated first."""
        with self._lock:
            return sorted(
                self._data["projects"].values(),
                key=lambda p: p.updated_at,
                reverse=True,
            )

    def update_project(
        self,
        project_id: str,
        name: str | None = None,
        description: str | None = None,
        thumbnail_id: str | None = None,
    ) -> Project:
        changes = {
            k: v
            for k, v in (
                ("name", name),
                ("description", description),
                ("thumbnail_id", thumbnail_id),
            )
            if v is not None
        }
        with self._transaction():
            project = self._touch(self._get("projects", project_id), **changes)
            self._put("projects", project)
        return project

    def delete_project(self, project_id: str) -> None:
        """Delete a project and everything that belongs to it."""
        with self._transaction():
            self._get("projects", project_id)
            for character in [
                c
                for c in self._data["characters"].values()
                if c.project_id == project_id
            ]:
                self._delete_character(character.id)
            for asset_id in [
                a.id for a in self._data["assets"].values() if a.project_id == project_id
            ]:
                del self._data["assets"][asset_id]
            del self._data["projects"][project_id]
        logger.info("Deleted project", extra={"project_id": project_id})

    # ------------------------------------------------------------------
    # Characters
    # ------------------------------------------------------------------

    def create_character(
        self,
        project_id: str,
        name: str,
        user_prompt: str | None = None,
        primary_asset_id: str | None = None,
    ) -> Character:
        with self._transaction():
            self._get("projects", project_id)
            character = self._put(
                "characters",
                Character(
                    project_id=project_id,
                    name=name,
                    user_prompt=user_prompt,
                    primary_asset_id=primary_asset_id,
                ),
            )
        logger.info(
            "Created character %s",
            name,
            extra={"project_id": project_id, "character_id": character.id},
        )
        return character

    def get_character(self, character_id: str) -> Character:
        with self._lock:
            return self._get("characters", character_id)

    def update_character(
        self,
        character_id: str,
        name: str | None = None,
        user_prompt: str | None = None,
        primary_asset_id: str | None = _UNSET,
    ) -> Character:
        """Update a character.

        *name* and *user_prompt* are left unchanged when None.  Passing
        ``primary_asset_id=None`` clears the primary asset; omitting it
        leaves the primary asset unchanged.
        """
        changes: dict[str, Any] = {}
        if name:
            changes["name"] = name
        if user_prompt is not None:
            changes["user_prompt"] = user_prompt
        if primary_asset_id is not _UNSET:
            changes["primary_asset_id"] = primary_asset_id
        with self._transaction():
            if primary_asset_id:
                self._get("assets", primary_asset_id)
            character = self._touch(self._get("characters", character_id), **changes)
            self._put("characters", character)
        return character

    def _delete_character(self, character_id: str) -> None:
        for animation_id in [
            a.id
            for a in self._data["animations"].values()
            if a.character_id == character_id
        ]:
            self._delete_animation(animation_id)
        for sheet_id in [
            s.id
            for s in self._data["spritesheets"].values()
            if s.character_id == character_id
        ]:
            del self._data["spritesheets"][sheet_id]
        for asset in list(self._data["assets"].values()):
            if asset.character_id == character_id:
                self._put("assets", asset.model_copy(update={"character_id": None}))
        del self._data["characters"][character_id]

    def delete_character(self, character_id: str) -> None:
        """Delete a character with its animations and sprite sheets.

        The character's assets stay in the project, unlinked.
        """
        with self._transaction():
            self._get("characters", character_id)
            self._delete_character(character_id)

    def list_characters(self, project_id: str) -> list[Character]:
        with self._lock:
            return sorted(
                (c for c in self._data["characters"].values() if c.project_id == project_id),
                key=lambda c: c.created_at,
            )

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def create_asset(
        self,
        project_id: str,
        file_path: str,
        type: AssetType,
        system_prompt: str | None = None,
        user_prompt: str | None = None,
        reference_asset_ids: list[str] | None = None,
        generation_settings: dict[str, Any] | None = None,
        character_id: str | None = None,
    ) -> Asset:
        with self._transaction():
            self._get("projects", project_id)
            if character_id:
                self._get("characters", character_id)
            asset = self._put(
                "assets",
                Asset(
                    project_id=project_id,
                    file_path=file_path,
                    type=type,
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    reference_asset_ids=reference_asset_ids or [],
                    generation_settings=generation_settings or {},
                    character_id=character_id,
                ),
            )
        logger.info(
            "Created %s asset %s",
            asset.type.value,
            file_path,
            extra={"project_id": project_id, "record_id": asset.id},
        )
        return asset

    def get_asset(self, asset_id: str) -> Asset:
        with self._lock:
            return self._get("assets", asset_id)

    def list_assets(
        self,
        project_id: str,
        type: AssetType | None = None,
        exclude_type: AssetType | None = None,
        character_id: str | None = None,
    ) -> list[Asset]:
        """Assets of a project, newest first, optionally filtered."""
        with self._lock:
            assets = [
                a
                for a in self._data["assets"].values()
                if a.project_id == project_id
                and (type is None or a.type == type)
                and (exclude_type is None or a.type != exclude_type)
                and (character_id is None or a.character_id == character_id)
            ]
        return sorted(assets, key=lambda a: a.created_at, reverse=True)

    def delete_asset(self, asset_id: str) -> Asset:
        """Delete an asset record and return it (the file is left alone).

        Frames showing the asset are removed and their animations
        reindexed.  Sprite sheets backed by it are deleted.  Characters and
        projects that used it as primary image or thumbnail lose the link.
        """
        with self._transaction():
            asset = self._get("assets", asset_id)
            del self._data["assets"][asset_id]
            for frame in [
                f for f in self._data["frames"].values() if f.asset_id == asset_id
            ]:
                self._remove_frame(frame.id)
            for sheet_id in [
                s.id
                for s in self._data["spritesheets"].values()
                if s.asset_id == asset_id
            ]:
                del self._data["spritesheets"][sheet_id]
            for character in list(self._data["characters"].values()):
                if character.primary_asset_id == asset_id:
                    self._put(
                        "characters",
                        self._touch(character, primary_asset_id=None),
                    )
            for project in list(self._data["projects"].values()):
                if project.thumbnail_id == asset_id:
                    self._put("projects", self._touch(project, thumbnail_id=None))
        logger.info("Deleted asset", extra={"record_id": asset_id})
        return asset

    # ------------------------------------------------------------------
    # Animations and frames
    # ------------------------------------------------------------------

    def create_animation(
        self,
        character_id: str,
        name: str,
        description: str | None = None,
        frame_count: int | None = None,
        generation_settings: dict[str, Any] | None = None,
    ) -> Animation:
        with self._transaction():
            character = self._get("characters", character_id)
            animation = self._put(
                "animations",
                Animation(
                    project_id=character.project_id,
                    character_id=character_id,
                    name=name,
                    description=description or None,
                    frame_count=frame_count or 4,
                    generation_settings=generation_settings,
                ),
            )
        return animation

    def get_animation(self, animation_id: str) -> Animation:
        with self._lock:
            return self._get("animations", animation_id)

    def update_animation(
        self,
        animation_id: str,
        name: str | None = None,
        description: str | None = None,
        frame_count: int | None = None,
    ) -> Animation:
        changes = {
            k: v
            for k, v in (
                ("name", name),
                ("description", description),
                ("frame_count", frame_count),
            )
            if v is not None
        }
        with self._transaction():
            animation = self._touch(self._get("animations", animation_id), **changes)
            self._put("animations", animation)
        return animation

    def _delete_animation(self, animation_id: str) -> None:
        for frame_id in [
            f.id for f in self._data["frames"].values() if f.animation_id == animation_id
        ]:
            del self._data["frames"][frame_id]
        del self._data["animations"][animation_id]

    def delete_animation(self, animation_id: str) -> None:
        with self._transaction():
            self._get("animations", animation_id)
            self._delete_animation(animation_id)

    def add_frame(
        self, animation_id: str, asset_id: str, frame_index: int | None = None
    ) -> Frame:
        """Attach an asset as a frame; appends when *frame_index* is None."""
        with self._transaction():
            self._get("animations", animation_id)
            self._get("assets", asset_id)
            if frame_index is None:
                frame_index = len(self._frames_of(animation_id))
            frame = self._put(
                "frames",
                Frame(animation_id=animation_id, asset_id=asset_id, frame_index=frame_index),
            )
        return frame

    def _frames_of(self, animation_id: str) -> list[Frame]:
        return sorted(
            (f for f in self._data["frames"].values() if f.animation_id == animation_id),
            key=lambda f: f.frame_index,
        )

    def list_frames(self, animation_id: str) -> list[Frame]:
        """Frames of an animation in ``frame_index`` order."""
        with self._lock:
            self._get("animations", animation_id)
            return self._frames_of(animation_id)

    def _remove_frame(self, frame_id: str) -> None:
        frame = self._get("frames", frame_id)
        del self._data["frames"][frame_id]
        remaining = self._frames_of(frame.animation_id)
        for other in remaining:
            if other.frame_index > frame.frame_index:
                self._put(
                    "frames",
                    other.model_copy(update={"frame_index": other.frame_index - 1}),
                )
        animation = self._get("animations", frame.animation_id)
        self._put("animations", self._touch(animation, frame_count=len(remaining)))

    def delete_frame(self, frame_id: str) -> None:
        """Delete a frame, close the index gap, and resync the frame count."""
        with self._transaction():
            self._remove_frame(frame_id)

    # ------------------------------------------------------------------
    # Sprite sheets
    # ------------------------------------------------------------------

    def create_spritesheet(
        self,
        character_id: str,
        asset_id: str,
        name: str,
        description: str | None = None,
        generation_settings: dict[str, Any] | None = None,
    ) -> SpriteSheet:
        with self._transaction():
            character = self._get("characters", character_id)
            self._get("assets", asset_id)
            sheet = self._put(
                "spritesheets",
                SpriteSheet(
                    project_id=character.project_id,
                    character_id=character_id,
                    asset_id=asset_id,
                    name=name,
                    description=description,
                    generation_settings=generation_settings,
                ),
            )
        logger.info(
            "Created sprite sheet %s",
            name,
            extra={"character_id": character_id, "record_id": sheet.id},
        )
        return sheet

    def get_spritesheet(self, spritesheet_id: str) -> SpriteSheet:
        with self._lock:
            return self._get("spritesheets", spritesheet_id)

    def update_spritesheet(
        self,
        spritesheet_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> SpriteSheet:
        changes = {
            k: v for k, v in (("name", name), ("description", description)) if v is not None
        }
        with self._transaction():
            sheet = self._touch(self._get("spritesheets", spritesheet_id), **changes)
            self._put("spritesheets", sheet)
        return sheet

    def list_spritesheets(self, character_id: str) -> list[SpriteSheet]:
        """Sprite sheets of a character, most recently updated first."""
        with self._lock:
            return sorted(
                (
                    s
                    for s in self._data["spritesheets"].values()
                    if s.character_id == character_id
                ),
                key=lambda s: s.updated_at,
                reverse=True,
            )

    def delete_spritesheet(self, spritesheet_id: str) -> None:
        with self._transaction():
            self._get("spritesheets", spritesheet_id)
            del self._data["spritesheets"][spritesheet_id]

    # ------------------------------------------------------------------
    # Nested views
    # ------------------------------------------------------------------

    def character_detail(self, character_id: str) -> CharacterDetail:
        """A character with its assets, animations (with frames) and sheets."""
        with self._lock:
            character = self._get("characters", character_id)
            primary = (
                self._data["assets"].get(character.primary_asset_id)
                if character.primary_asset_id
                else None
            )
            assets = self.list_assets(
                character.project_id,
                exclude_type=AssetType.SPRITESHEET,
                character_id=character_id,
            )
            animations = [
                AnimationWithFrames(
                    animation=animation,
                    frames=[
                        FrameWithAsset(frame=f, asset=self._get("assets", f.asset_id))
                        for f in self._frames_of(animation.id)
                    ],
                )
                for animation in sorted(
                    (
                        a
                        for a in self._data["animations"].values()
                        if a.character_id == character_id
                    ),
                    key=lambda a: a.updated_at,
                    reverse=True,
                )
            ]
            sheets = [
                SpriteSheetWithAsset(spritesheet=s, asset=self._get("assets", s.asset_id))
                for s in self.list_spritesheets(character_id)
            ]
        return CharacterDetail(
            character=character,
            primary_asset=primary,
            assets=assets,
            animations=animations,
            spritesheets=sheets,
        )

    def project_detail(self, project_id: str) -> ProjectDetail:
        with self._lock:
            project = self._get("projects", project_id)
            characters = [
                self.character_detail(c.id) for c in self.list_characters(project_id)
            ]
        return ProjectDetail(project=project, characters=characters)
