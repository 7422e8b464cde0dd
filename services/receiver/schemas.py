from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReceiveResponse(CamelModel):
    success: bool = True
    message: str = "Image received successfully"
    saved_filename: str
    saved_path: str
    size: int
    timestamp: str
    metadata: Any


class ReceiverHealthResponse(CamelModel):
    status: str
    message: str
    port: int
    receive_dir: str


class ReceivedImage(BaseModel):
    filename: str
    path: str
    size: int


class ReceivedListResponse(BaseModel):
    count: int
    images: list[ReceivedImage]


class ReceiverErrorResponse(BaseModel):
    error: str
