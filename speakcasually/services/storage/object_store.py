"""Filesystem-backed object storage.

Objects live under ``<storage_dir>/<bucket>/<path>`` and are exposed
publicly through the ``/storage/{bucket}/{path}`` route, so the public
reference for a path is stable across overwrites.
"""

import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

from speakcasually.core.config import get_settings
from speakcasually.core.exceptions import (
    InvalidObjectPathError,
    ObjectExistsError,
    ObjectNotFoundError,
)

logger = logging.getLogger(__name__)


class ObjectStore:
    """Bucketed blob storage on the local filesystem.

    Args:
        root: Directory holding one subfolder per bucket.
        public_base_url: Base URL of the server that serves ``/storage``.
    """

    def __init__(self, root: str | Path, public_base_url: str) -> None:
        self._root = Path(root).resolve()
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        """Map *bucket*/*path* to a file, refusing anything outside the bucket."""
        bucket_dir = (self._root / bucket).resolve()
        if bucket_dir.parent != self._root:
            raise InvalidObjectPathError(f"{bucket}/{path}")
        target = (bucket_dir / path).resolve()
        if not path or not target.is_relative_to(bucket_dir) or target == bucket_dir:
            raise InvalidObjectPathError(f"{bucket}/{path}")
        return target

    def upload(self, bucket: str, path: str, data: bytes, upsert: bool = False) -> int:
        """Store *data* at *path*; replace an existing object only if *upsert*.

        The write goes through a temporary file and ``os.replace`` so readers
        never observe a half-written object.

        Returns:
            Number of bytes stored.
        """
        target = self._resolve(bucket, path)
        if target.exists() and not upsert:
            raise ObjectExistsError(f"{bucket}/{path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Stored object %s/%s (%d bytes)", bucket, path, len(data))
        return len(data)

    def open_path(self, bucket: str, path: str) -> Path:
        """Return the file backing an existing object."""
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise ObjectNotFoundError(f"{bucket}/{path}")
        return target

    def public_url(self, bucket: str, path: str) -> str:
        """Return the stable public reference of a previously uploaded object."""
        self.open_path(bucket, path)
        return f"{self._public_base_url}/storage/{quote(bucket)}/{quote(path)}"


_store: ObjectStore | None = None


def get_object_store() -> ObjectStore:
    """Return the process-wide object store built from settings."""
    global _store
    if _store is None:
        settings = get_settings()
        _store = ObjectStore(settings.storage_dir, settings.public_base_url)
    return _store


def reset_object_store(store: ObjectStore | None = None) -> None:
    """Replace (or clear) the process-wide store. Used by tests."""
    global _store
    _store = store
