"""Save generated images to disk and prune the directory to the newest files.

Files are named `{epochMillis}_{sanitizedPromptPrefix}.{ext}` under the
configured directory (served at `/generated`). The extension is sniffed from
the image bytes with Pillow. After each save only the `keep` most recently
written artifacts remain; older ones are deleted.
"""

from __future__ import annotations

import asyncio
import io
import logging
import re
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from PIL import Image, UnidentifiedImageError

LOGGER = logging.getLogger(__name__)

DEFAULT_RETENTION = 10
PROMPT_PREFIX_LENGTH = 30
FORMAT_EXTENSIONS = {"PNG": "png", "JPEG": "jpg", "WEBP": "webp", "GIF": "gif"}
ARTIFACT_NAME_PATTERN = re.compile(r"^\d+_[a-z0-9_]+\.(png|jpg|webp|gif)$")


@dataclass(frozen=True)
class StoredArtifact:
    filename: str
    path: Path


def sanitize_prompt(prompt: str, limit: int = PROMPT_PREFIX_LENGTH) -> str:
    """Lowercase prompt prefix with runs of non-alphanumerics collapsed to `_`."""
    cleaned = re.sub(r"[^a-z0-9]+", "_", prompt[:limit].lower()).strip("_")
    return cleaned or "image"


def detect_extension(image_bytes: bytes) -> str:
    """Return the file extension for the image bytes, defaulting to png."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return FORMAT_EXTENSIONS.get((img.format or "").upper(), "png")
    except (UnidentifiedImageError, OSError):
        return "png"


class ArtifactStore:
    """Directory of generated images with keep-newest-N retention.

    Save and prune run under one lock. Files whose names do not look like
    artifacts are left alone.
    """

    def __init__(self, directory: Path | str, keep: int = DEFAULT_RETENTION) -> None:
        self.directory = Path(directory)
        self.keep = keep
        self._lock = threading.Lock()

    def ensure_directory(self) -> None:
        """Create the artifact directory.

        Raises:
            RuntimeError: If the configured path exists and is not a directory.
        """
        if self.directory.exists() and not self.directory.is_dir():
            raise RuntimeError(f"GENERATED_DIR {self.directory} exists and is not a directory")
        self.directory.mkdir(parents=True, exist_ok=True)

    def _target_path(self, prompt: str, extension: str) -> Path:
        stem = f"{int(time.time() * 1000)}_{sanitize_prompt(prompt)}"
        path = self.directory / f"{stem}.{extension}"
        counter = 1
        while path.exists():
            path = self.directory / f"{stem}_{counter}.{extension}"
            counter += 1
        return path

    def save_sync(self, image_bytes: bytes, prompt: str) -> StoredArtifact:
        """Write the image, prune older artifacts, and return where it landed.

        Raises:
            ValueError: If `image_bytes` is empty.
        """
        if not image_bytes:
            raise ValueError("Image bytes are required for saving.")
        extension = detect_extension(image_bytes)
        with self._lock:
            self.ensure_directory()
            path = self._target_path(prompt, extension)
            path.write_bytes(image_bytes)
            LOGGER.info("Saved generated image to %s", path)
            self._prune_locked()
        return StoredArtifact(filename=path.name, path=path)

    async def save(self, image_bytes: bytes, prompt: str) -> StoredArtifact:
        # disk writes and Pillow are blocking -> run in thread
        return await asyncio.to_thread(self.save_sync, image_bytes, prompt)

    def list_files(self) -> List[Path]:
        """Artifact files in the directory, newest first; vanished files are skipped."""
        if not self.directory.is_dir():
            return []
        keyed: List[Tuple[int, str, Path]] = []
        for path in self.directory.iterdir():
            if not ARTIFACT_NAME_PATTERN.match(path.name):
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            if path.is_file():
                keyed.append((stat.st_mtime_ns, path.name, path))
        keyed.sort(reverse=True)
        return [path for _, _, path in keyed]

    def prune(self) -> int:
        """Delete everything but the `keep` newest artifacts and return the count removed."""
        with self._lock:
            return self._prune_locked()

    def _prune_locked(self) -> int:
        removed = 0
        for stale in self.list_files()[self.keep:]:
            try:
                stale.unlink()
                removed += 1
            except FileNotFoundError:
                continue
        if removed:
            LOGGER.info("Pruned %d old generated image(s) from %s", removed, self.directory)
        return removed
