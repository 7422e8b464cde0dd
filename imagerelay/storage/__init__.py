"""Blob storage abstraction (S3-compatible object store or local filesystem)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Callable, Protocol

from imagerelay.timestamps import epoch_millis, iso_timestamp

if TYPE_CHECKING:
    from imagerelay.settings import StorageSettings


IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

NamingFunc = Callable[..., str]


@dataclass(frozen=True)
class StoredBlob:
    stored_name: str
    url: str
    location: str
    size: int


@dataclass(frozen=True)
class BlobEntry:
    name: str
    url: str
    size: int


class BlobStore(Protocol):
    def save(
        self, name: str, data: bytes, content_type: str | None = None, *, now: datetime | None = None
    ) -> StoredBlob:
        ...

    def list(self) -> list[BlobEntry]:
        ...


def is_image_name(name: str) -> bool:
    return PurePosixPath(name).suffix.lower() in IMAGE_EXTENSIONS


def sanitize_filename(name: str) -> str:
    """Reduce a client-supplied filename to a safe single path segment."""
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    cleaned = _UNSAFE_CHARS.sub("_", base).strip(".")
    return cleaned or "upload"


def epoch_millis_name(original_name: str, *, now: datetime | None = None) -> str:
    return f"{epoch_millis(now)}-{sanitize_filename(original_name)}"


def iso_timestamp_name(original_name: str, *, now: datetime | None = None) -> str:
    stamp = re.sub(r"[:.]", "-", iso_timestamp(now))
    return f"{stamp}_{sanitize_filename(original_name)}"


def build_storage(settings: "StorageSettings", naming: NamingFunc = epoch_millis_name) -> BlobStore:
    """Instantiate the backend selected by the deployment-mode flag."""
    if settings.mode == "cloud":
        from imagerelay.storage.s3 import S3Storage

        return S3Storage(
            bucket=settings.bucket or "",
            prefix=settings.prefix,
            region=settings.region,
            endpoint_url=settings.endpoint_url,
            access_key_id=settings.access_key_id,
            secret_access_key=settings.secret_access_key,
            public_base_url=settings.public_base_url,
            naming=naming,
        )

    from imagerelay.storage.local import LocalStorage

    return LocalStorage(settings.uploads_dir, url_prefix=settings.url_prefix, naming=naming)


__all__ = [
    "IMAGE_EXTENSIONS",
    "BlobEntry",
    "BlobStore",
    "NamingFunc",
    "StoredBlob",
    "build_storage",
    "epoch_millis_name",
    "is_image_name",
    "iso_timestamp_name",
    "sanitize_filename",
]
