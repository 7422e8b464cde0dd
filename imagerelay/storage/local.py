from __future__ import annotations

from datetime import datetime
from pathlib import Path

from loguru import logger

from imagerelay.exceptions import StorageUnavailable
from imagerelay.storage import BlobEntry, NamingFunc, StoredBlob, epoch_millis_name, is_image_name


class LocalStorage:
    def __init__(self, root: Path, *, url_prefix: str = "/uploads", naming: NamingFunc = epoch_millis_name) -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.naming = naming

    def ensure_root(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable(
                f"Upload directory could not be created: {exc}",
                {"root": str(self.root)},
            ) from exc
        return self.root

    def _url(self, name: str) -> str:
        return f"{self.url_prefix}/{name}"

    def save(
        self, name: str, data: bytes, content_type: str | None = None, *, now: datetime | None = None
    ) -> StoredBlob:
        root = self.ensure_root()
        stored_name = self.naming(name, now=now)
        path = root / stored_name
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise StorageUnavailable(
                f"Upload could not be written: {exc}",
                {"path": str(path)},
            ) from exc
        logger.debug("Stored {size} bytes at {path}", size=len(data), path=path)
        return StoredBlob(stored_name=stored_name, url=self._url(stored_name), location=str(path.resolve()), size=len(data))

    def list(self) -> list[BlobEntry]:
        if not self.root.is_dir():
            return []
        try:
            entries = [
                BlobEntry(name=path.name, url=self._url(path.name), size=path.stat().st_size)
                for path in self.root.iterdir()
                if path.is_file() and is_image_name(path.name)
            ]
        except OSError as exc:
            raise StorageUnavailable(f"Upload directory could not be read: {exc}", {"root": str(self.root)}) from exc
        return sorted(entries, key=lambda entry: entry.name)


__all__ = ["LocalStorage"]
