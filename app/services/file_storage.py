"""
Object storage for submitted artifacts.

Objects are addressed only by their path inside a bucket; the store keeps
no versions of its own (letters in the filename do that).  ``put`` has
upsert semantics.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from app.config import get_settings
from app.utils.exceptions import StorageError

logger = logging.getLogger(__name__)


def sanitize_filename(filename: str) -> str:
    """Return filename with spaces replaced by underscores and special chars removed.

    Args:
        filename: Original filename string.

    Returns:
        Sanitized filename safe for filesystem storage.
    """
    name = filename.replace(" ", "_")
    name = re.sub(r"[^\w.\-]", "", name)
    return name


class ObjectStore(Protocol):
    backend: str
    bucket: str

    def put(self, path: str, data: bytes, content_type: str) -> None: ...

    def delete(self, path: str) -> None: ...


class LocalObjectStore:
    """Filesystem-backed store rooted at ``root/bucket``.

    The layout mirrors the bucket paths one to one::

        root/{bucket}/tramite-{id}/{letter}{tipo}-{codigo}.{ext}
    """

    backend = "local"

    def __init__(self, root: Path, bucket: str) -> None:
        self.root = Path(root)
        self.bucket = bucket
        self._base = (self.root / bucket).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self._base / path).resolve()
        if self._base not in target.parents:
            raise StorageError(f"Ruta de almacenamiento inválida: '{path}'.")
        return target

    def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Error al subir el archivo: {exc}") from exc
        logger.debug(
            "LocalObjectStore.put: %s/%s (%d bytes, %s)",
            self.bucket, path, len(data), content_type,
        )

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Error al eliminar el archivo: {exc}") from exc
        logger.debug("LocalObjectStore.delete: %s/%s", self.bucket, path)


@lru_cache
def get_object_store() -> ObjectStore:
    """FastAPI dependency returning the configured object store."""
    settings = get_settings()
    if settings.STORAGE_BACKEND != "local":
        raise ValueError(
            f"STORAGE_BACKEND '{settings.STORAGE_BACKEND}' no soportado."
        )
    return LocalObjectStore(settings.STORAGE_DIR, settings.STORAGE_BUCKET)
