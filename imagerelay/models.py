from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

@dataclass(frozen=True)
class UploadedAsset:
    original_name: str
    stored_name: str
    size_bytes: int
    mime_type: str
    storage_location: str
    url: str
    created_at: datetime

    def relay_metadata(self) -> dict[str, Any]:
        """Metadata forwarded alongside the bytes when the asset is relayed."""
        return {
            "mimetype": self.mime_type,
            "size": self.size_bytes,
            "uploadedAt": self.created_at.isoformat(),
            "serverFilename": self.stored_name,
        }

@dataclass(frozen=True)
class ReceivedAsset:
    derived_filename: str
    original_name: str
    saved_path: str
    size_bytes: int
    timestamp: str
    source_metadata: Any = field(default_factory=dict)


__all__ = ["UploadedAsset", "ReceivedAsset"]
