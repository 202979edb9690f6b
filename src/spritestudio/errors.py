"""SpriteStudio error hierarchy.

All custom exceptions inherit from SpriteStudioError, enabling callers
to catch the base class for blanket error handling or specific
subclasses for targeted recovery.
"""


class SpriteStudioError(Exception):
    """Base exception for all SpriteStudio errors."""


class ConfigError(SpriteStudioError):
    """Raised when configuration loading or validation fails."""


class ProviderError(SpriteStudioError):
    """Raised when an image generation provider fails."""


class GenerationError(SpriteStudioError):
    """Raised when a generation request cannot be completed."""


class SlicingError(SpriteStudioError):
    """Raised when a sprite sheet cannot be cut into its frame grid."""


class StoreError(SpriteStudioError):
    """Raised when the record or asset store cannot complete an operation."""


class RecordNotFoundError(StoreError):
    """Raised when a record id does not exist in the store."""

    def __init__(self, kind: str, record_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class AssetNotFoundError(StoreError):
    """Raised when an asset file is missing from disk."""
