from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from imagerelay.exceptions import (
    RelayError,
    RelayRejected,
    RelayTimeout,
    RelayUnconfigured,
    RelayUnreachable,
)
from imagerelay.timestamps import iso_timestamp

DEFAULT_CONTENT_TYPE = "image/png"

OutcomeKind = Literal["delivered", "unconfigured", "timeout", "unreachable", "rejected"]

_ERROR_TYPES: dict[str, type[RelayError]] = {
    "unconfigured": RelayUnconfigured,
    "timeout": RelayTimeout,
    "unreachable": RelayUnreachable,
    "rejected": RelayRejected,
}


@dataclass
class RelayEnvelope:
    payload: bytes
    original_name: str
    timestamp_iso: str
    metadata: dict[str, Any] = field(default_factory=dict)
    content_type: str = DEFAULT_CONTENT_TYPE

    @classmethod
    def build(cls, payload: bytes, filename: str, metadata: dict[str, Any] | None = None) -> "RelayEnvelope":
        metadata = dict(metadata or {})
        return cls(
            payload=payload,
            original_name=filename,
            timestamp_iso=iso_timestamp(),
            metadata=metadata,
            content_type=str(metadata.get("mimetype") or DEFAULT_CONTENT_TYPE),
        )

    def multipart(self) -> tuple[dict[str, tuple[str, bytes, str]], dict[str, str]]:
        """Split into the ``files``/``data`` pair httpx encodes as multipart/form-data."""
        files = {"image": (self.original_name, self.payload, self.content_type)}
        data = {
            "filename": self.original_name,
            "timestamp": self.timestamp_iso,
            "metadata": json.dumps(self.metadata, default=str),
        }
        return files, data


@dataclass(frozen=True)
class RelayOutcome:
    success: bool
    kind: OutcomeKind
    error: str | None = None
    response_body: str | None = None
    status_code: int | None = None

    @classmethod
    def delivered(cls, status_code: int, body: str) -> "RelayOutcome":
        return cls(success=True, kind="delivered", response_body=body, status_code=status_code)

    @classmethod
    def unconfigured(cls) -> "RelayOutcome":
        return cls(success=False, kind="unconfigured", error="not configured")

    @classmethod
    def failed(
        cls,
        kind: OutcomeKind,
        error: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> "RelayOutcome":
        return cls(success=False, kind=kind, error=error, response_body=body, status_code=status_code)

    def as_error(self) -> RelayError | None:
        """Exception matching this outcome, or None when the relay succeeded."""
        if self.success:
            return None
        details: dict[str, str] = {}
        if self.status_code is not None:
            details["status_code"] = str(self.status_code)
        return _ERROR_TYPES[self.kind](self.error or self.kind, details)


__all__ = ["RelayEnvelope", "RelayOutcome", "OutcomeKind", "DEFAULT_CONTENT_TYPE"]
