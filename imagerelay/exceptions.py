"""Custom exception hierarchy for the image relay application."""

from __future__ import annotations


class ImageRelayError(Exception):
    """Base exception for all image-relay-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ImageRelayError):
    """Raised when configuration is invalid or missing."""
    pass


class ClientError(ImageRelayError):
    """Raised when the client sent a missing or malformed upload."""
    pass


class MissingUploadError(ClientError):
    """Raised when a multipart request carries no file part."""
    pass


class StorageError(ImageRelayError):
    """Raised when storage operations fail."""
    pass


class StorageUnavailable(StorageError):
    """Raised when the blob store cannot be reached, created or authenticated against."""
    pass


class RelayError(ImageRelayError):
    """Base class for relay delivery problems. Never surfaced to uploading clients."""
    pass


class RelayUnconfigured(RelayError):
    """No relay destination is configured. Expected no-op, not a fault."""
    pass


class RelayUnreachable(RelayError):
    """Raised when the relay destination could not be contacted."""
    pass


class RelayTimeout(RelayError):
    """Raised when the relay destination did not answer in time."""
    pass


class RelayRejected(RelayError):
    """Raised when the relay destination answered with a non-2xx status."""
    pass


__all__ = [
    "ImageRelayError",
    "ConfigurationError",
    "ClientError",
    "MissingUploadError",
    "StorageError",
    "StorageUnavailable",
    "RelayError",
    "RelayUnconfigured",
    "RelayUnreachable",
    "RelayTimeout",
    "RelayRejected",
]
