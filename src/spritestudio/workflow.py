"""Studio workflow: generation requests in, persisted records out.

Each operation reads its inputs from the stores, calls the image provider,
and only then writes files and records, so a failed generation leaves
nothing behind.
"""

from __future__ import annotations

from collections.abc import Callable

from spritestudio.assets import (
    AssetFileStore,
    decode_image_payload,
    mime_type_for_path,
    payload_mime_type,
)
from spritestudio.errors import GenerationError, RecordNotFoundError, SlicingError
from spritestudio.layout import AspectRatio, SheetLayout
from spritestudio.logging import get_logger
from spritestudio.models import (
    AnimationGenerationSettings,
    AnimationWithFrames,
    Asset,
    AssetType,
    CharacterAssetSettings,
    CharacterRequest,
    FrameWithAsset,
    SpriteSheetGenerationSettings,
    SpritesheetAssetSettings,
    SpritesheetRequest,
    SpritesheetResult,
)
from spritestudio.prompts import (
    build_character_prompt,
    build_character_system_prompt,
    build_generation_request,
)
from spritestudio.providers import GeneratedImage, ImageInput, ImageProvider
from spritestudio.slicer import frames_to_png_bytes, open_sheet, slice_sheet
from spritestudio.store import ProjectStore

logger = get_logger("workflow")

SPRITESHEET_FOLDER = "spritesheets"
CHARACTER_FOLDER = "characters"
REFERENCE_FOLDER = "references"
FRAME_FOLDER = "frames"

ProgressCallback = Callable[[str, int, int], None]


def _extension(mime_type: str) -> str:
    subtype = mime_type.rsplit("/", 1)[-1].lower()
    return "jpg" if subtype == "jpeg" else subtype


class StudioWorkflow:
    """Coordinates the record store, the asset files and an image provider.

    Use as an async context manager so the provider is closed::

        async with StudioWorkflow(store, assets, provider) as workflow:
            result = await workflow.generate_spritesheet(request)
    """

    def __init__(
        self,
        store: ProjectStore,
        assets: AssetFileStore,
        provider: ImageProvider | None = None,
        resolution: str = "2K",
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            store: Record store.
            assets: Image file store.
            provider: Image generation provider, closed with the workflow.
                Only slicing and reference uploads work without one.
            resolution: Resolution tier used for sprite sheets.
            progress_callback: Optional ``(stage, current, total)`` hook.
        """
        self.store = store
        self.assets = assets
        self.provider = provider
        self.resolution = resolution
        self.progress_callback = progress_callback
        self._closed = False

    async def __aenter__(self) -> "StudioWorkflow":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the provider.  Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        if self.provider is not None:
            await self.provider.close()

    def _require_provider(self) -> ImageProvider:
        if self.provider is None:
            raise GenerationError("No image provider configured")
        return self.provider

    def _progress(self, stage: str, current: int, total: int) -> None:
        if self.progress_callback:
            self.progress_callback(stage, current, total)

    def _asset_input(self, asset: Asset) -> ImageInput:
        return ImageInput(
            data=self.assets.read_image(asset.file_path),
            mime_type=mime_type_for_path(asset.file_path),
        )

    @staticmethod
    def _reference_inputs(payloads: list[str]) -> list[ImageInput]:
        inputs = []
        for i, payload in enumerate(payloads):
            try:
                data = decode_image_payload(payload)
            except ValueError as exc:
                raise GenerationError(f"Reference image {i} is invalid: {exc}") from exc
            inputs.append(ImageInput(data=data, mime_type=payload_mime_type(payload)))
        return inputs

    # ------------------------------------------------------------------
    # Sprite sheets
    # ------------------------------------------------------------------

    async def generate_spritesheet(
        self, request: SpritesheetRequest
    ) -> SpritesheetResult:
        """Generate a sprite sheet from a character image.

        The character image is sent as the edit source together with the
        synthesized prompt and the resolved layout's aspect ratio.

        Args:
            request: Validated sprite-sheet request.

        Returns:
            The new sprite sheet, its asset, the layout and the prompt.

        Raises:
            RecordNotFoundError: If the character or its asset is missing.
            AssetNotFoundError: If the character image file is missing.
            ProviderError: If generation fails.
        """
        character = self.store.get_character(request.character_id)
        source_asset = self.store.get_asset(request.character_asset_id)
        source = self._asset_input(source_asset)

        generation = build_generation_request(
            request.name,
            request.description,
            request.frame_count,
            angle_preset=request.angle_preset,
            resolution=self.resolution,
        )
        layout = generation.layout
        log_extra = {
            "project_id": character.project_id,
            "character_id": character.id,
            "frame_count": request.frame_count,
        }
        logger.info(
            "Generating sprite sheet %r: %dx%d at %s",
            request.name,
            layout.cols,
            layout.rows,
            layout.aspect_ratio.value,
            extra=log_extra,
        )
        self._progress("generate", 0, 1)

        generated = await self._require_provider().edit_image(
            source,
            generation.prompt,
            [],
            aspect_ratio=generation.aspect_ratio,
            resolution=generation.resolution,
        )
        self._progress("generate", 1, 1)

        file_path = self.assets.save_image(
            character.project_id,
            SPRITESHEET_FOLDER,
            request.name,
            generated.image,
            extension=_extension(generated.mime_type),
        )
        asset = self.store.create_asset(
            project_id=character.project_id,
            file_path=file_path,
            type=AssetType.SPRITESHEET,
            system_prompt=generation.prompt,
            user_prompt=request.name,
            reference_asset_ids=[request.character_asset_id],
            generation_settings=SpritesheetAssetSettings.from_layout(
                layout,
                description=request.description,
                frame_count=request.frame_count,
                angle_preset=request.angle_preset,
            ).model_dump(),
            character_id=character.id,
        )
        spritesheet = self.store.create_spritesheet(
            character_id=character.id,
            asset_id=asset.id,
            name=request.name,
            description=request.description,
            generation_settings=SpriteSheetGenerationSettings(
                character_asset_id=request.character_asset_id,
                angle_preset=request.angle_preset,
                frame_count=request.frame_count,
                aspect_ratio=layout.aspect_ratio.value,
                cols=layout.cols,
                rows=layout.rows,
            ).model_dump(),
        )
        logger.info(
            "Saved sprite sheet %s", file_path, extra={**log_extra, "record_id": spritesheet.id}
        )
        return SpritesheetResult(
            spritesheet=spritesheet,
            asset=asset,
            layout=layout,
            prompt=generation.prompt,
            text=generated.text,
        )

    async def slice_spritesheet_frames(
        self, spritesheet_id: str, animation_name: str | None = None
    ) -> AnimationWithFrames:
        """Cut a stored sprite sheet into frame assets and an animation.

        Raises:
            RecordNotFoundError: If the sheet or its asset is missing.
            SlicingError: If the sheet has no recorded grid or the image
                does not fit it.
        """
        sheet = self.store.get_spritesheet(spritesheet_id)
        asset = self.store.get_asset(sheet.asset_id)
        try:
            settings = SpriteSheetGenerationSettings.model_validate(
                sheet.generation_settings or {}
            )
        except ValueError as exc:
            raise SlicingError(
                f"Sprite sheet {spritesheet_id} has no recorded grid layout"
            ) from exc
        layout = SheetLayout(
            aspect_ratio=AspectRatio(settings.aspect_ratio),
            cols=settings.cols,
            rows=settings.rows,
        )

        image = open_sheet(self.assets.read_image(asset.file_path))
        frames = slice_sheet(image, layout, settings.frame_count)
        png_frames = frames_to_png_bytes(frames)

        frame_assets = []
        for index, data in enumerate(png_frames):
            self._progress("slice", index, len(png_frames))
            path = self.assets.save_image(
                sheet.project_id, FRAME_FOLDER, f"{sheet.name}_{index}", data
            )
            frame_assets.append(
                self.store.create_asset(
                    project_id=sheet.project_id,
                    file_path=path,
                    type=AssetType.FRAME,
                    reference_asset_ids=[asset.id],
                    character_id=sheet.character_id,
                )
            )
        self._progress("slice", len(png_frames), len(png_frames))

        animation = self.store.create_animation(
            sheet.character_id,
            animation_name or sheet.name,
            description=sheet.description,
            frame_count=len(frame_assets),
            generation_settings=AnimationGenerationSettings(
                character_asset_id=settings.character_asset_id,
                angle_preset=settings.angle_preset,
            ).model_dump(),
        )
        frames_with_assets = [
            FrameWithAsset(
                frame=self.store.add_frame(animation.id, frame_asset.id, index),
                asset=frame_asset,
            )
            for index, frame_asset in enumerate(frame_assets)
        ]
        logger.info(
            "Sliced sprite sheet into %d frames",
            len(frames_with_assets),
            extra={"character_id": sheet.character_id, "record_id": animation.id},
        )
        return AnimationWithFrames(animation=animation, frames=frames_with_assets)

    # ------------------------------------------------------------------
    # Characters and references
    # ------------------------------------------------------------------

    def _save_character_asset(
        self,
        project_id: str,
        name: str,
        generated: GeneratedImage,
        request: CharacterRequest,
        system_prompt: str,
        reference_asset_ids: list[str],
        character_id: str | None,
    ) -> Asset:
        file_path = self.assets.save_image(
            project_id,
            CHARACTER_FOLDER,
            name,
            generated.image,
            extension=_extension(generated.mime_type),
        )
        return self.store.create_asset(
            project_id=project_id,
            file_path=file_path,
            type=AssetType.CHARACTER,
            system_prompt=system_prompt,
            user_prompt=request.prompt,
            reference_asset_ids=reference_asset_ids,
            generation_settings=CharacterAssetSettings(
                background_preset=request.background_preset,
                style_preset=request.style_preset,
                angle_preset=request.angle_preset,
                aspect_ratio=request.aspect_ratio.value,
                resolution=request.resolution,
            ).model_dump(),
            character_id=character_id,
        )

    async def generate_character(
        self,
        request: CharacterRequest,
        project_id: str,
        character_id: str | None = None,
        name: str | None = None,
    ) -> Asset:
        """Generate a character image from text and optional references.

        With no *character_id* a new character is created with the image as
        its primary asset.

        Returns:
            The new character asset.
        """
        self.store.get_project(project_id)
        if character_id:
            self.store.get_character(character_id)
        references = self._reference_inputs(request.reference_images)
        system_prompt = build_character_system_prompt(
            request.background_preset, request.style_preset, request.angle_preset
        )

        generated = await self._require_provider().generate_image(
            build_character_prompt(request.prompt, system_prompt),
            references,
            aspect_ratio=request.aspect_ratio.value,
            resolution=request.resolution,
        )

        display_name = name or request.prompt[:40]
        if not character_id:
            character_id = self.store.create_character(
                project_id, display_name, user_prompt=request.prompt
            ).id
            asset = self._save_character_asset(
                project_id, display_name, generated, request, system_prompt, [], character_id
            )
            self.store.update_character(character_id, primary_asset_id=asset.id)
        else:
            asset = self._save_character_asset(
                project_id, display_name, generated, request, system_prompt, [], character_id
            )
        return asset

    async def edit_character(
        self, source_asset_id: str, request: CharacterRequest
    ) -> Asset:
        """Generate a variation of an existing character image.

        The new asset belongs to the source asset's project and character.
        """
        source_asset = self.store.get_asset(source_asset_id)
        source = self._asset_input(source_asset)
        references = self._reference_inputs(request.reference_images)
        system_prompt = build_character_system_prompt(
            request.background_preset, request.style_preset, request.angle_preset
        )

        generated = await self._require_provider().edit_image(
            source,
            build_character_prompt(request.prompt, system_prompt),
            references,
            aspect_ratio=request.aspect_ratio.value,
            resolution=request.resolution,
        )
        return self._save_character_asset(
            source_asset.project_id,
            request.prompt[:40],
            generated,
            request,
            system_prompt,
            [source_asset_id],
            source_asset.character_id,
        )

    def add_reference(self, project_id: str, data: bytes, name: str) -> Asset:
        """Store an uploaded reference image as an asset."""
        self.store.get_project(project_id)
        file_path = self.assets.save_image(project_id, REFERENCE_FOLDER, name, data)
        return self.store.create_asset(
            project_id=project_id,
            file_path=file_path,
            type=AssetType.REFERENCE,
            user_prompt=name,
        )

    def delete_reference(self, project_id: str, asset_id: str) -> Asset:
        """Delete a reference image of *project_id*, file and record.

        Raises:
            RecordNotFoundError: If *asset_id* is not a reference asset of
                that project.
        """
        asset = self.store.get_asset(asset_id)
        if asset.type != AssetType.REFERENCE or asset.project_id != project_id:
            raise RecordNotFoundError("Reference", asset_id)
        if not self.assets.delete_image(asset.file_path):
            logger.warning(
                "Reference file already missing: %s",
                asset.file_path,
                extra={"project_id": project_id, "record_id": asset_id},
            )
        return self.store.delete_asset(asset_id)
