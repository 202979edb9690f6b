"""Command-line interface for SpriteStudio.

Provides commands for inspecting sprite-sheet layouts and prompts, managing
projects, and generating characters and sprite sheets.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from spritestudio.assets import AssetFileStore, encode_image, mime_type_for_path
from spritestudio.config import StudioConfig, default_config, load_config
from spritestudio.errors import SpriteStudioError
from spritestudio.layout import AspectRatio, resolve_layout
from spritestudio.logging import setup_logging
from spritestudio.models import CharacterRequest, SpritesheetRequest
from spritestudio.presets import (
    AnglePreset,
    BackgroundPreset,
    StylePreset,
    preset_options,
)
from spritestudio.prompts import build_generation_request
from spritestudio.providers import create_provider
from spritestudio.store import ProjectStore
from spritestudio.workflow import StudioWorkflow

console = Console()

_ANGLES = click.Choice([p.value for p in AnglePreset])
_STYLES = click.Choice([p.value for p in StylePreset])
_BACKGROUNDS = click.Choice([p.value for p in BackgroundPreset])


@contextmanager
def _cli_errors(action: str, verbose: bool = False) -> Iterator[None]:
    """Map failures to exit codes: 1 for errors, 130 for Ctrl-C."""
    try:
        yield
    except (SpriteStudioError, ValidationError, FileNotFoundError) as e:
        console.print(f"[bold red]✗[/] {action} failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print(f"\n[bold yellow]⚠[/] {action} interrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print(f"[bold red]✗[/] Unexpected error: {e}")
        if verbose:
            console.print_exception()
        sys.exit(1)


def _config(ctx: click.Context) -> StudioConfig:
    path: Path | None = ctx.obj["config_path"]
    return load_config(path) if path else default_config()


def _store(config: StudioConfig) -> ProjectStore:
    return ProjectStore(config.storage.root)


def _workflow(config: StudioConfig, with_provider: bool = True) -> StudioWorkflow:
    root = config.storage.root
    provider = (
        create_provider(
            config.generation.provider, **config.generation.provider_kwargs()
        )
        if with_provider
        else None
    )
    return StudioWorkflow(
        ProjectStore(root),
        AssetFileStore(root),
        provider,
        resolution=config.generation.resolution,
    )


@click.group()
@click.version_option(package_name="spritestudio")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """SpriteStudio: AI sprite-sheet and character generation for 2D games."""
    load_dotenv(override=False)
    setup_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        verbose=verbose,
        rich_console=True,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# Layout and prompt inspection (no provider needed)
# ---------------------------------------------------------------------------


@main.command()
@click.argument("frame_count", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the layout as JSON")
def layout(frame_count: int, as_json: bool) -> None:
    """Show the grid and aspect ratio chosen for FRAME_COUNT frames.

    Example:

        \b
        spritestudio layout 8
        spritestudio layout 12 --json
    """
    sheet = resolve_layout(frame_count)
    if as_json:
        click.echo(json.dumps(sheet.model_dump(mode="json")))
        return
    console.print(
        f"[bold]{sheet.cols}[/] columns x [bold]{sheet.rows}[/] rows "
        f"at [bold]{sheet.aspect_ratio.value}[/] ({sheet.cells} cells)"
    )


@main.command()
@click.argument("frame_count", type=click.IntRange(min=1))
@click.option("--name", "-n", required=True, help="Animation name, e.g. 'Walk Cycle'")
@click.option("--description", "-d", required=True, help="What the character does")
@click.option("--angle", type=_ANGLES, default=None, help="Viewing angle preset")
def prompt(frame_count: int, name: str, description: str, angle: str | None) -> None:
    """Print the sprite-sheet prompt for FRAME_COUNT frames.

    Example:

        \b
        spritestudio prompt 8 --name "Walk Cycle" \\
            --description "walking forward" --angle side
    """
    request = build_generation_request(name, description, frame_count, angle_preset=angle)
    click.echo(request.prompt)


@main.command()
def presets() -> None:
    """List the angle, style and background presets."""
    for category, options in preset_options().items():
        table = Table(title=category.capitalize())
        table.add_column("Key", style="bold")
        table.add_column("Label")
        table.add_column("Prompt phrase")
        for option in options:
            table.add_row(option.value, option.label, option.prompt_fragment)
        console.print(table)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@main.group()
def project() -> None:
    """Create and list projects."""


@project.command("create")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Project description")
@click.pass_context
def project_create(ctx: click.Context, name: str, description: str | None) -> None:
    """Create a project called NAME."""
    with _cli_errors("Project creation", ctx.obj["verbose"]):
        created = _store(_config(ctx)).create_project(name, description)
        console.print(f"[bold green]✓[/] Created project [bold]{created.name}[/]")
        click.echo(created.id)


@project.command("list")
@click.pass_context
def project_list(ctx: click.Context) -> None:
    """List projects, most recently updated first."""
    with _cli_errors("Listing projects", ctx.obj["verbose"]):
        projects = _store(_config(ctx)).list_projects()
        if not projects:
            console.print("No projects yet.")
            return
        table = Table(title="Projects")
        table.add_column("ID", no_wrap=True)
        table.add_column("Name", style="bold")
        table.add_column("Updated")
        for p in projects:
            table.add_row(p.id, p.name, p.updated_at.strftime("%Y-%m-%d %H:%M"))
        console.print(table)


# ---------------------------------------------------------------------------
# Reference images
# ---------------------------------------------------------------------------


@main.group()
def reference() -> None:
    """Upload and remove project reference images."""


@reference.command("add")
@click.argument("project_id")
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", "-n", default=None, help="Display name (defaults to file name)")
@click.pass_context
def reference_add(
    ctx: click.Context, project_id: str, image: Path, name: str | None
) -> None:
    """Store IMAGE as a reference image of PROJECT_ID."""
    with _cli_errors("Reference upload", ctx.obj["verbose"]):
        workflow = _workflow(_config(ctx), with_provider=False)
        asset = workflow.add_reference(project_id, image.read_bytes(), name or image.stem)
        console.print(f"[bold green]✓[/] Reference saved: [bold]{asset.file_path}[/]")
        click.echo(asset.id)


@reference.command("delete")
@click.argument("project_id")
@click.argument("asset_id")
@click.pass_context
def reference_delete(ctx: click.Context, project_id: str, asset_id: str) -> None:
    """Delete reference ASSET_ID of PROJECT_ID, image file included."""
    with _cli_errors("Reference deletion", ctx.obj["verbose"]):
        workflow = _workflow(_config(ctx), with_provider=False)
        asset = workflow.delete_reference(project_id, asset_id)
        console.print(f"[bold green]✓[/] Deleted reference {asset.file_path}")


# ---------------------------------------------------------------------------
# Characters
# ---------------------------------------------------------------------------


@main.group()
def character() -> None:
    """Generate and inspect characters."""


@character.command("create")
@click.argument("project_id")
@click.option("--name", "-n", required=True, help="Character name")
@click.option("--prompt", "-p", "user_prompt", required=True, help="Character description")
@click.option(
    "--reference",
    "-r",
    "references",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Reference image (repeatable)",
)
@click.option("--background", type=_BACKGROUNDS, default=BackgroundPreset.WHITE.value)
@click.option("--style", type=_STYLES, default=StylePreset.PIXEL_ART.value)
@click.option("--angle", type=_ANGLES, default=AnglePreset.FRONT.value)
@click.option(
    "--aspect-ratio",
    type=click.Choice([r.value for r in AspectRatio]),
    default=AspectRatio.SQUARE.value,
)
@click.option("--resolution", type=click.Choice(["1K", "2K", "4K"]), default="1K")
@click.pass_context
def character_create(
    ctx: click.Context,
    project_id: str,
    name: str,
    user_prompt: str,
    references: tuple[Path, ...],
    background: str,
    style: str,
    angle: str,
    aspect_ratio: str,
    resolution: str,
) -> None:
    """Generate a new character in PROJECT_ID.

    Example:

        \b
        spritestudio character create <project-id> --name Knight \\
            --prompt "a knight with a red cape" --style pixel-art
    """
    with _cli_errors("Character generation", ctx.obj["verbose"]):
        request = CharacterRequest(
            prompt=user_prompt,
            reference_images=[
                f"data:{mime_type_for_path(str(p))};base64,"
                + encode_image(p.read_bytes())
                for p in references
            ],
            aspect_ratio=AspectRatio(aspect_ratio),
            resolution=resolution,
            background_preset=background,
            style_preset=style,
            angle_preset=angle,
        )
        asset = asyncio.run(_run_character(_config(ctx), request, project_id, name))
        console.print(f"[bold green]✓[/] Character image saved: [bold]{asset.file_path}[/]")
        click.echo(f"character: {asset.character_id}")
        click.echo(f"asset: {asset.id}")


async def _run_character(config, request, project_id, name):
    async with _workflow(config) as workflow:
        with console.status("[bold blue]Generating character..."):
            return await workflow.generate_character(request, project_id, name=name)


@character.command("show")
@click.argument("character_id")
@click.pass_context
def character_show(ctx: click.Context, character_id: str) -> None:
    """Show a character with its assets, animations and sprite sheets."""
    with _cli_errors("Loading character", ctx.obj["verbose"]):
        detail = _store(_config(ctx)).character_detail(character_id)
        console.print(f"[bold]{detail.character.name}[/] ({detail.character.id})")
        if detail.primary_asset:
            console.print(f"  Primary image: {detail.primary_asset.file_path}")
        console.print(f"  Assets: {len(detail.assets)}")
        for sheet in detail.spritesheets:
            settings = sheet.spritesheet.generation_settings or {}
            console.print(
                f"  Sprite sheet [bold]{sheet.spritesheet.name}[/] "
                f"({settings.get('cols', '?')}x{settings.get('rows', '?')}): "
                f"{sheet.asset.file_path}"
            )
        for anim in detail.animations:
            console.print(
                f"  Animation [bold]{anim.animation.name}[/]: {len(anim.frames)} frames"
            )


# ---------------------------------------------------------------------------
# Sprite sheets
# ---------------------------------------------------------------------------


@main.group()
def spritesheet() -> None:
    """Generate and slice sprite sheets."""


@spritesheet.command("generate")
@click.argument("character_id")
@click.option("--asset", "asset_id", required=True, help="Character asset to animate")
@click.option("--name", "-n", required=True, help="Animation name, e.g. 'Walk Cycle'")
@click.option("--description", "-d", required=True, help="What the character does")
@click.option("--frames", "frame_count", required=True, type=click.IntRange(min=1))
@click.option("--angle", type=_ANGLES, default=AnglePreset.FRONT.value)
@click.pass_context
def spritesheet_generate(
    ctx: click.Context,
    character_id: str,
    asset_id: str,
    name: str,
    description: str,
    frame_count: int,
    angle: str,
) -> None:
    """Generate a sprite sheet for CHARACTER_ID.

    Example:

        \b
        spritestudio spritesheet generate <character-id> --asset <asset-id> \\
            --name "Walk Cycle" --description "walking forward" --frames 8
    """
    with _cli_errors("Sprite sheet generation", ctx.obj["verbose"]):
        request = SpritesheetRequest(
            character_id=character_id,
            character_asset_id=asset_id,
            name=name,
            description=description,
            frame_count=frame_count,
            angle_preset=angle,
        )
        sheet = resolve_layout(frame_count)
        console.print(
            f"  Layout: {sheet.cols}x{sheet.rows} at {sheet.aspect_ratio.value}"
        )
        result = asyncio.run(_run_spritesheet(_config(ctx), request))
        console.print(
            f"[bold green]✓[/] Sprite sheet generated: [bold]{result.asset.file_path}[/]"
        )
        click.echo(f"spritesheet: {result.spritesheet.id}")


async def _run_spritesheet(config, request):
    async with _workflow(config) as workflow:
        with console.status("[bold blue]Generating sprite sheet..."):
            return await workflow.generate_spritesheet(request)


@spritesheet.command("slice")
@click.argument("spritesheet_id")
@click.option("--animation-name", default=None, help="Name for the new animation")
@click.pass_context
def spritesheet_slice(
    ctx: click.Context, spritesheet_id: str, animation_name: str | None
) -> None:
    """Cut SPRITESHEET_ID into frames and save them as an animation."""
    with _cli_errors("Slicing", ctx.obj["verbose"]):
        result = asyncio.run(
            _run_slice(_config(ctx), spritesheet_id, animation_name)
        )
        console.print(
            f"[bold green]✓[/] Animation [bold]{result.animation.name}[/] "
            f"with {len(result.frames)} frames"
        )
        click.echo(f"animation: {result.animation.id}")


async def _run_slice(config, spritesheet_id, animation_name):
    async with _workflow(config, with_provider=False) as workflow:
        return await workflow.slice_spritesheet_frames(spritesheet_id, animation_name)


if __name__ == "__main__":
    main()
