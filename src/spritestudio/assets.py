"""File-system storage for generated and uploaded images.

Images live under ``{root}/assets/{project_id}/{folder}/`` and are addressed
by their public path, ``/assets/{project_id}/{folder}/{filename}``, which is
what asset records store.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import os
import re
import threading
import time
from pathlib import Path, PurePosixPath

from spritestudio.errors import AssetNotFoundError, StoreError
from spritestudio.logging import get_logger

logger = get_logger("assets")

ASSETS_DIR = "assets"

_DATA_URL_PREFIX = re.compile(r"^data:image/[\w.+-]+;base64,")
_DATA_URL_MIME = re.compile(r"^data:(image/[\w.+-]+);base64,")
_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^\w.-]+")


def slugify(name: str) -> str:
    """Turn a display name into a file-name-safe slug.

    Whitespace runs become ``-``; other unsafe characters are dropped.
    """
    slug = _WHITESPACE.sub("-", name.strip()).lower()
    slug = _UNSAFE.sub("", slug)
    return slug or "image"


def strip_data_url(value: str) -> str:
    """Remove a ``data:image/...;base64,`` prefix if present."""
    return _DATA_URL_PREFIX.sub("", value.strip())


def payload_mime_type(value: str, default: str = "image/png") -> str:
    """Return the MIME type named by a data URL, or *default*."""
    match = _DATA_URL_MIME.match(value.strip())
    return match.group(1) if match else default


def mime_type_for_path(file_path: str) -> str:
    guessed, _ = mimetypes.guess_type(file_path)
    return guessed if guessed and guessed.startswith("image/") else "image/png"


def decode_image_payload(value: str) -> bytes:
    """Decode a data URL or bare base64 string into raw bytes.

    Raises:
        ValueError: If the payload is not valid base64.
    """
    try:
        return base64.b64decode(strip_data_url(value), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 image payload: {exc}") from exc


def encode_image(data: bytes) -> str:
    """Base64-encode raw image bytes."""
    return base64.b64encode(data).decode("ascii")


class AssetFileStore:
    """Reads and writes asset image files under a root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()

    def _resolve(self, file_path: str) -> Path:
        """Map a public ``/assets/...`` path to a file under the root."""
        parts = PurePosixPath(file_path.lstrip("/")).parts
        if not parts or parts[0] != ASSETS_DIR or ".." in parts:
            raise StoreError(f"Not an asset path: {file_path!r}")
        return self.root.joinpath(*parts)

    def save_image(
        self,
        project_id: str,
        folder: str,
        name: str,
        data: bytes,
        extension: str = "png",
    ) -> str:
        """Write *data* to a new timestamped file and return its public path.

        Args:
            project_id: Owning project.
            folder: Sub-folder (``"spritesheets"``, ``"characters"``, ...).
            name: Display name, slugified into the file name.
            data: Raw image bytes.
            extension: File extension without the dot.

        Returns:
            The public path, e.g. ``/assets/p1/spritesheets/walk_1700000000000.png``.
        """
        directory = self.root / ASSETS_DIR / project_id / folder
        directory.mkdir(parents=True, exist_ok=True)

        with self._lock:
            stamp = int(time.time() * 1000)
            filename = f"{slugify(name)}_{stamp}.{extension}"
            target = directory / filename
            while target.exists():
                stamp += 1
                filename = f"{slugify(name)}_{stamp}.{extension}"
                target = directory / filename
            tmp = target.with_name(f".{filename}.tmp-{os.getpid()}")
            tmp.write_bytes(data)
            tmp.replace(target)

        public_path = f"/{ASSETS_DIR}/{project_id}/{folder}/{filename}"
        logger.debug("Saved %d bytes to %s", len(data), public_path)
        return public_path

    def read_image(self, file_path: str) -> bytes:
        """Read the image at public path *file_path*.

        Raises:
            AssetNotFoundError: If the file does not exist.
        """
        path = self._resolve(file_path)
        if not path.is_file():
            raise AssetNotFoundError(f"Asset file not found: {file_path}")
        return path.read_bytes()

    def delete_image(self, file_path: str) -> bool:
        """Delete the image at *file_path*; return False if it was absent."""
        path = self._resolve(file_path)
        if not path.is_file():
            return False
        path.unlink()
        logger.debug("Deleted %s", file_path)
        return True

    def exists(self, file_path: str) -> bool:
        return self._resolve(file_path).is_file()
