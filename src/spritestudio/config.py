"""YAML configuration loading and validation for SpriteStudio."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from spritestudio.errors import ConfigError
from spritestudio.logging import get_logger
from spritestudio.providers import PROVIDER_NAMES

logger = get_logger("config")

ROOT_ENV_VAR = "SPRITESTUDIO_ROOT"
DEFAULT_ROOT = "./studio-data"
RESOLUTIONS: tuple[str, ...] = ("1K", "2K", "4K")


class StorageConfig(BaseModel):
    """Where records and image files are kept.

    Attributes:
        root: Asset root directory.  Records live in ``{root}/studio.json``.
    """

    root: Path = Path(DEFAULT_ROOT)


class GenerationSettingsConfig(BaseModel):
    """Image generation settings.

    Attributes:
        provider: Provider name (``gemini`` or ``gpt-image``).
        model: Model or deployment name passed to the provider.  Unset
            means the provider's default.
        resolution: Resolution tier for sprite sheets.
        max_attempts: Attempts per provider call, including retries.
        retry_base_delay: Delay before the first retry, in seconds.
    """

    provider: str = "gemini"
    model: str | None = None
    resolution: str = "2K"
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0.0)

    @field_validator("provider")
    @classmethod
    def _known_provider(cls, v: str) -> str:
        if v not in PROVIDER_NAMES:
            raise ValueError(
                f"provider must be one of {', '.join(PROVIDER_NAMES)}, got {v!r}"
            )
        return v

    @field_validator("resolution")
    @classmethod
    def _known_resolution(cls, v: str) -> str:
        v = v.upper()
        if v not in RESOLUTIONS:
            raise ValueError(
                f"resolution must be one of {', '.join(RESOLUTIONS)}, got {v!r}"
            )
        return v

    def provider_kwargs(self) -> dict[str, Any]:
        """Constructor arguments for :func:`spritestudio.providers.create_provider`."""
        kwargs: dict[str, Any] = {
            "max_attempts": self.max_attempts,
            "retry_base_delay": self.retry_base_delay,
        }
        if self.model and self.provider == "gemini":
            kwargs["model"] = self.model
        elif self.model:
            kwargs["model_deployment"] = self.model
        return kwargs


class StudioConfig(BaseModel):
    """Top-level SpriteStudio configuration."""

    storage: StorageConfig = StorageConfig()
    generation: GenerationSettingsConfig = GenerationSettingsConfig()


def validate_config_path(path: str | Path) -> Path:
    """Resolve and validate that a config file path exists.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    resolved = Path(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"Config file not found: {resolved}")
    return resolved


def _parse_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    An empty file parses as an empty mapping.

    Raises:
        ConfigError: If the YAML is malformed or not a mapping.
    """
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Malformed YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}"
        )
    return data


def _apply_env(config: StudioConfig) -> StudioConfig:
    root = os.environ.get(ROOT_ENV_VAR)
    if not root:
        return config
    logger.debug("Storage root overridden by %s: %s", ROOT_ENV_VAR, root)
    return config.model_copy(
        update={"storage": config.storage.model_copy(update={"root": Path(root)})}
    )


def default_config() -> StudioConfig:
    """Configuration used when no file is given (environment still applies)."""
    return _apply_env(StudioConfig())


def load_config(path: str | Path) -> StudioConfig:
    """Load and validate a SpriteStudio configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A validated ``StudioConfig``, with environment overrides applied.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist.
        ConfigError: If the YAML is malformed or a section has the wrong
            shape.
        ValidationError: If the YAML content fails Pydantic validation.
    """
    resolved = validate_config_path(path)
    data = _parse_yaml(resolved)

    for section in ("storage", "generation"):
        if section in data and not isinstance(data[section], dict):
            raise ConfigError(
                f"'{section}' section must be a YAML mapping, "
                f"got {type(data[section]).__name__}"
            )

    config = _apply_env(StudioConfig(**data))
    logger.info(
        "Loaded config %s (provider %s, root %s)",
        resolved,
        config.generation.provider,
        config.storage.root,
    )
    return config
