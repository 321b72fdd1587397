"""Object storage for generated images and re-hosted media.

A bucket is a directory under the storage root; files are served by
whatever static host fronts that directory (``public_base_url``).
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from pressroom.config import StorageSectionConfig

logger = logging.getLogger(__name__)


class ObjectStorage:
    """Directory-backed bucket store."""

    def __init__(self, config: StorageSectionConfig) -> None:
        self._root = Path(config.root).expanduser()
        self._bucket = config.bucket
        self._public_base_url = config.public_base_url.rstrip("/")
        self._bucket_ready = False

    @property
    def bucket_dir(self) -> Path:
        return self._root / self._bucket

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        if not self.bucket_dir.exists():
            logger.info("Creating storage bucket %s", self.bucket_dir)
            self.bucket_dir.mkdir(parents=True, exist_ok=True)
        self._bucket_ready = True

    def upload(self, data: bytes, path: str, content_type: str = "") -> str:
        """Store ``data`` at ``path`` inside the bucket and return its public URL.

        Raises:
            ValueError: If ``path`` escapes the bucket.
            OSError: On write failure.
        """
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"Invalid storage path: {path!r}")

        self._ensure_bucket()
        target = self.bucket_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

        logger.info(
            "Uploaded %d bytes (%s) to %s/%s",
            len(data),
            content_type or "unknown type",
            self._bucket,
            relative,
        )
        return self.public_url(str(relative))

    def public_url(self, path: str) -> str:
        if self._public_base_url:
            return f"{self._public_base_url}/{self._bucket}/{path}"
        return (self.bucket_dir / path).resolve().as_uri()
