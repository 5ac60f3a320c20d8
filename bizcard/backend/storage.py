"""Blob storage: uploaded files are addressed by path and served from a public URL."""
from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath

from bizcard.core.config import Settings, get_settings
from bizcard.core.urls import absolute_url
from bizcard.domain.errors import UploadFailedError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/static/uploads"


class BlobStore:
    """Interface of the backend's object storage."""

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        raise NotImplementedError

    def get_public_url(self, path: str) -> str:
        raise NotImplementedError


def _safe_relative(path: str) -> PurePosixPath:
    rel = PurePosixPath((path or "").replace("\\", "/").lstrip("/"))
    if not rel.parts or any(part in ("", ".", "..") for part in rel.parts):
        raise UploadFailedError(f"Invalid storage path: {path!r}", failed=[path])
    return rel


class LocalBlobStore(BlobStore):
    """Stores blobs on disk under ``uploads_dir``; the app mounts that folder at /static/uploads."""

    def __init__(self, uploads_dir: str | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.root = Path(uploads_dir or self.settings.uploads_dir)

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        rel = _safe_relative(path)
        dest = self.root.joinpath(*rel.parts)
        if dest.exists():
            raise UploadFailedError(f"{path} already exists", failed=[path])
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            tmp = dest.with_name(dest.name + ".part")
            tmp.write_bytes(data)
            os.replace(tmp, dest)
        except OSError as exc:
            logger.error("blob upload failed for %s: %s", path, exc)
            raise UploadFailedError(f"Could not store {rel.name}", failed=[path]) from exc
        logger.debug("stored %s (%s, %d bytes)", path, content_type, len(data))

    def get_public_url(self, path: str) -> str:
        rel = _safe_relative(path)
        return absolute_url(f"{PUBLIC_PREFIX}/{rel.as_posix()}", base=self.settings.public_base_url)
