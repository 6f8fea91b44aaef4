"""Filesystem-backed blob storage for uploaded resources."""

import logging
from pathlib import Path, PurePosixPath

from ..utils.error_handlers import StorageError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """
    Stores blobs under a root directory, addressed by slash-separated paths.

    Files are served by the API under ``base_url`` (see ``semsync.main``).
    """

    def __init__(self, root_dir: str, base_url: str = "/files"):
        self.root = Path(root_dir)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        parts = PurePosixPath(path).parts
        if not parts or any(part in ("..", "/") for part in parts):
            raise StorageError(f"Invalid blob path: {path}")
        return self.root.joinpath(*parts)

    def save(self, path: str, data: bytes) -> str:
        """Write a blob and return its download URL."""
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write blob {path}: {e}") from e
        logger.info(f"Stored blob {path} ({len(data)} bytes)")
        return self.url(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageError(f"Blob not found: {path}")
        return target.read_bytes()

    def delete(self, path: str) -> bool:
        """Remove a blob. Returns False if it was already gone."""
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning(f"Blob {path} already deleted")
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete blob {path}: {e}") from e
        return True

    def url(self, path: str) -> str:
        return f"{self.base_url}/{PurePosixPath(path).as_posix()}"
