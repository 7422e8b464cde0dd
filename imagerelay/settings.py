from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from imagerelay.exceptions import ConfigurationError

# Load .env file from the working directory
_env_path = Path.cwd() / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


_TRUTHY = {"true", "1", "yes", "on"}


class StorageSettings(BaseModel):
    mode: Literal["local", "cloud"] = "local"
    uploads_dir: Path = Path("uploads")
    url_prefix: str = "/uploads"
    bucket: str | None = None
    prefix: str = "uploads"
    region: str | None = None
    endpoint_url: str | None = None
    public_base_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None

    @field_validator("mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or "local"
        return value

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


class RelaySettings(BaseModel):
    url: str | None = None
    timeout_seconds: float = Field(30.0, gt=0.0, le=600.0)

    @field_validator("url", mode="before")
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @property
    def enabled(self) -> bool:
        return bool(self.url)


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(8080, ge=1, le=65535)


class ReceiverSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(9000, ge=1, le=65535)
    receive_dir: Path = Path("received-images")


class LoggingSettings(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    log_file: Path | None = None


class Settings(BaseModel):
    storage: StorageSettings = Field(default_factory=StorageSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    receiver: ReceiverSettings = Field(default_factory=ReceiverSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from process environment values.

        Args:
            environ: Mapping to read instead of ``os.environ`` (used by tests).

        Returns:
            Settings instance.

        Raises:
            ConfigurationError: If a value is present but invalid.
        """
        env = os.environ if environ is None else environ

        def _get(*names: str) -> str | None:
            for name in names:
                value = env.get(name)
                if value is not None and value.strip():
                    return value.strip()
            return None

        on_vercel = (env.get("VERCEL") or "") == "1"
        default_uploads = Path(tempfile.gettempdir()) / "uploads" if on_vercel else Path("uploads")

        storage: dict[str, object] = {
            "mode": _get("STORAGE_MODE") or "local",
            "uploads_dir": _get("UPLOADS_DIR") or default_uploads,
            "bucket": _get("BLOB_BUCKET"),
            "prefix": _get("BLOB_PREFIX") or "uploads",
            "region": _get("BLOB_REGION"),
            "endpoint_url": _get("BLOB_ENDPOINT_URL"),
            "public_base_url": _get("BLOB_PUBLIC_BASE_URL"),
            "access_key_id": _get("BLOB_ACCESS_KEY_ID"),
            "secret_access_key": _get("BLOB_SECRET_ACCESS_KEY"),
        }
        relay: dict[str, object] = {"url": _get("RELAY_URL", "LOCAL_PC_WEBHOOK_URL")}
        timeout = _get("RELAY_TIMEOUT_SECONDS")
        if timeout is not None:
            relay["timeout_seconds"] = timeout
        server: dict[str, object] = {}
        if _get("API_HOST"):
            server["host"] = _get("API_HOST")
        if _get("API_PORT"):
            server["port"] = _get("API_PORT")
        receiver: dict[str, object] = {}
        if _get("RECEIVER_PORT"):
            receiver["port"] = _get("RECEIVER_PORT")
        if _get("RECEIVED_DIR"):
            receiver["receive_dir"] = _get("RECEIVED_DIR")
        log_file = _get("LOG_FILE")
        logging_cfg = {
            "level": _get("LOG_LEVEL") or "INFO",
            "json_format": (_get("JSON_LOGGING") or "false").lower() in _TRUTHY,
            "log_file": Path(log_file) if log_file else None,
        }

        try:
            return cls(
                storage=StorageSettings(**storage),
                relay=RelaySettings(**relay),
                server=ServerSettings(**server),
                receiver=ReceiverSettings(**receiver),
                logging=LoggingSettings(**logging_cfg),
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


__all__ = [
    "Settings",
    "StorageSettings",
    "RelaySettings",
    "ServerSettings",
    "ReceiverSettings",
    "LoggingSettings",
    "get_settings",
]
