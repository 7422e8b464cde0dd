from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadResponse(CamelModel):
    original_name: str
    stored_name: str
    url: str
    size: int
    mime_type: str
    created_at: datetime
    relay_queued: bool


class ImageEntry(BaseModel):
    name: str
    url: str


class HealthResponse(BaseModel):
    status: str
    storage: str
    relay: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: dict[str, str] = {}
