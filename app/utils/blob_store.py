from __future__ import annotations

import mimetypes
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from loguru import logger

from app.core.config import settings


_STORAGE_ID_RE = re.compile(r"^[0-9a-f]{32}(\.[a-z0-9]{1,8})?$")


class BlobStoreError(Exception):
    """Raised when the underlying storage cannot complete an operation."""


class BlobStore(ABC):
    """Opaque image/archive storage addressed by storage ids."""

    @abstractmethod
    def store(
        self,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        """Persist bytes and return a new storage id."""

    @abstractmethod
    def get_url(self, storage_id: str) -> Optional[str]:
        """Fetchable URL for the blob, or None when it does not exist."""

    @abstractmethod
    def fetch(self, storage_id: str) -> bytes:
        """Read the blob contents. Raises FileNotFoundError when absent."""

    @abstractmethod
    def delete(self, storage_id: str) -> None:
        """Remove the blob. Deleting a missing blob is not an error."""


def _extension_for(content_type: str) -> str:
    if content_type == "image/jpeg":
        return ".jpg"
    ext = mimetypes.guess_extension(content_type or "") or ""
    return ext.lower() if len(ext) <= 9 else ""


class FileSystemBlobStore(BlobStore):
    """
    Blobs kept as files under ``<root>/blobs``.

    The root directory is the one mounted at ``/uploads`` by the API, so
    URLs are served by the static files handler.
    """

    def __init__(self, root_dir: str | Path, base_url: str) -> None:
        self.blob_dir = Path(root_dir) / "blobs"
        self.base_url = base_url.rstrip("/")
        self.blob_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, storage_id: str) -> Optional[Path]:
        if not _STORAGE_ID_RE.match(storage_id or ""):
            return None
        return self.blob_dir / storage_id

    def store(
        self,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> str:
        storage_id = f"{uuid.uuid4().hex}{_extension_for(content_type)}"
        path = self.blob_dir / storage_id
        try:
            path.write_bytes(content)
        except OSError as exc:
            raise BlobStoreError(f"Failed to store blob {storage_id}") from exc
        logger.debug("Stored blob", storage_id=storage_id, size=len(content))
        return storage_id

    def get_url(self, storage_id: str) -> Optional[str]:
        path = self._path(storage_id)
        if path is None or not path.is_file():
            return None
        return f"{self.base_url}/blobs/{storage_id}"

    def fetch(self, storage_id: str) -> bytes:
        path = self._path(storage_id)
        if path is None or not path.is_file():
            raise FileNotFoundError(f"Blob not found: {storage_id}")
        return path.read_bytes()

    def delete(self, storage_id: str) -> None:
        path = self._path(storage_id)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise BlobStoreError(f"Failed to delete blob {storage_id}") from exc


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    global _blob_store
    if _blob_store is None:
        _blob_store = FileSystemBlobStore(
            root_dir=settings.uploads_dir,
            base_url=settings.uploads_base_url,
        )
    return _blob_store


__all__ = [
    "BlobStore",
    "BlobStoreError",
    "FileSystemBlobStore",
    "get_blob_store",
]
