"""Photo storage backends.

A storage provider turns photo bytes into an opaque path, deletes blobs
by path and derives the public URL for a path. Paths, not URLs, are what
the database keeps.
"""

import io
import logging
import os
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Protocol

import cloudinary
from cloudinary.exceptions import Error as CloudinaryError
import cloudinary.uploader
import cloudinary.utils

from .core import get_settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({"jpeg", "jpg", "png", "gif"})
PHOTO_FOLDER = "contacts"


class StorageError(Exception):
    """Raised when a blob cannot be stored or removed."""


class StorageProvider(Protocol):
    """Operations the contact service needs from blob storage."""

    def put(self, content: bytes, extension: str) -> str:
        ...

    def delete(self, path: str) -> None:
        ...

    def url_for(self, path: str) -> str:
        ...


def _new_path(extension: str) -> str:
    extension = extension.lower().lstrip(".")
    if extension not in ALLOWED_EXTENSIONS:
        raise StorageError(f"Extension not allowed: {extension!r}")
    return f"{PHOTO_FOLDER}/{uuid.uuid4().hex}.{extension}"


class LocalStorage:
    """Stores photos on the local filesystem, served by the app at ``/storage``."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageError(f"Path escapes storage root: {path!r}")
        return target

    def put(self, content: bytes, extension: str) -> str:
        path = _new_path(extension)
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            raise StorageError(f"Could not write {path}") from exc
        logger.debug("Stored photo %s (%d bytes)", path, len(content))
        return path

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not delete {path}") from exc
        logger.debug("Deleted photo %s", path)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/storage/{path}"


class CloudinaryStorage:
    """Stores photos in Cloudinary; the path is the Cloudinary public id."""

    def __init__(self, cloudinary_url: str):
        cloudinary.config(cloudinary_url=cloudinary_url)

    def put(self, content: bytes, extension: str) -> str:
        path = _new_path(extension)
        public_id = os.path.splitext(path)[0]
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(content),
                public_id=public_id,
                resource_type="image",
                overwrite=False,
            )
        except CloudinaryError as exc:
            raise StorageError(f"Cloudinary upload failed for {public_id}") from exc
        stored = result.get("public_id")
        if not stored:
            raise StorageError("Cloudinary did not return a public id")
        return stored

    def delete(self, path: str) -> None:
        try:
            # "not found" is a regular result here, so deletes are idempotent
            cloudinary.uploader.destroy(path, resource_type="image")
        except CloudinaryError as exc:
            raise StorageError(f"Cloudinary delete failed for {path}") from exc

    def url_for(self, path: str) -> str:
        url, _ = cloudinary.utils.cloudinary_url(path, secure=True)
        return url


@dataclass
class InMemoryStorage:
    """Dict-backed storage for development and tests.

    ``deleted`` lists every path passed to :meth:`delete`, in call order.
    """

    base_url: str = "http://localhost:8000/storage"
    blobs: dict[str, bytes] = field(default_factory=dict)
    deleted: list[str] = field(default_factory=list)

    def put(self, content: bytes, extension: str) -> str:
        path = _new_path(extension)
        self.blobs[path] = content
        return path

    def delete(self, path: str) -> None:
        self.deleted.append(path)
        self.blobs.pop(path, None)

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path}"


def build_storage(settings=None) -> StorageProvider:
    """Create the storage backend selected by ``STORAGE_BACKEND``."""
    settings = settings or get_settings()
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "cloudinary":
        if not settings.CLOUDINARY_URL:
            raise RuntimeError("STORAGE_BACKEND=cloudinary requires CLOUDINARY_URL")
        return CloudinaryStorage(settings.CLOUDINARY_URL)
    if backend == "memory":
        return InMemoryStorage(base_url=f"{settings.BASE_URL.rstrip('/')}/storage")
    if backend == "local":
        return LocalStorage(settings.STORAGE_ROOT, settings.BASE_URL)
    raise RuntimeError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND}")


@lru_cache()
def get_storage() -> StorageProvider:
    """FastAPI dependency returning the process-wide storage backend."""
    return build_storage()
