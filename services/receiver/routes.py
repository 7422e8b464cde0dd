"""Relay receiver endpoints.

The receive endpoint performs no authentication: any caller that can reach
the port can drop an image into the receive directory.
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from loguru import logger

from imagerelay.exceptions import MissingUploadError
from imagerelay.models import ReceivedAsset
from imagerelay.timestamps import iso_timestamp, utc_now
from services.receiver.context import ReceiverContext, get_receiver_context
from services.receiver.schemas import (
    ReceivedImage,
    ReceivedListResponse,
    ReceiveResponse,
    ReceiverErrorResponse,
    ReceiverHealthResponse,
)

router = APIRouter(prefix="/relay", tags=["relay"])
legacy_router = APIRouter(prefix="/webhook", include_in_schema=False)


def _parse_metadata(raw: str | None) -> Any:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Relay metadata is not valid JSON, keeping raw string: {error}", error=exc)
        return raw


async def receive_image(
    context: Annotated[ReceiverContext, Depends(get_receiver_context)],
    image: Annotated[UploadFile | None, File()] = None,
    filename: Annotated[str | None, Form()] = None,
    timestamp: Annotated[str | None, Form()] = None,
    metadata: Annotated[str | None, Form()] = None,
) -> ReceiveResponse:
    if image is None:
        raise MissingUploadError("No image received")

    original_name = filename or image.filename or "upload"
    payload = await image.read()
    received_at = utc_now()
    stored = await asyncio.to_thread(
        context.storage.save, original_name, payload, image.content_type, now=received_at
    )

    asset = ReceivedAsset(
        derived_filename=stored.stored_name,
        original_name=original_name,
        saved_path=stored.location,
        size_bytes=stored.size,
        timestamp=timestamp or iso_timestamp(received_at),
        source_metadata=_parse_metadata(metadata),
    )

    logger.info("=" * 50)
    logger.info("NEW IMAGE RECEIVED")
    logger.info("Filename: {name}", name=asset.original_name)
    logger.info("Saved as: {name}", name=asset.derived_filename)
    logger.info("Size: {kb:.2f} KB", kb=asset.size_bytes / 1024)
    logger.info("Time: {timestamp}", timestamp=asset.timestamp)
    logger.info("Location: {path}", path=asset.saved_path)
    logger.info("=" * 50)

    return ReceiveResponse(
        saved_filename=asset.derived_filename,
        saved_path=asset.saved_path,
        size=asset.size_bytes,
        timestamp=asset.timestamp,
        metadata=asset.source_metadata,
    )


async def receiver_health(
    context: Annotated[ReceiverContext, Depends(get_receiver_context)],
) -> ReceiverHealthResponse:
    return ReceiverHealthResponse(
        status="ok",
        message="Relay receiver is running",
        port=context.settings.port,
        receive_dir=context.receive_dir,
    )


async def list_received(
    context: Annotated[ReceiverContext, Depends(get_receiver_context)],
) -> ReceivedListResponse:
    entries = await asyncio.to_thread(context.storage.list)
    images = [
        ReceivedImage(filename=entry.name, path=str(context.storage.root.resolve() / entry.name), size=entry.size)
        for entry in entries
    ]
    return ReceivedListResponse(count=len(images), images=images)


_errors = {400: {"model": ReceiverErrorResponse}, 500: {"model": ReceiverErrorResponse}}

for _router, _receive_path in ((router, "/receive"), (legacy_router, "/receive-image")):
    _router.add_api_route(_receive_path, receive_image, methods=["POST"], response_model=ReceiveResponse, responses=_errors)
    _router.add_api_route("/health", receiver_health, methods=["GET"], response_model=ReceiverHealthResponse)
    _router.add_api_route("/list", list_received, methods=["GET"], response_model=ReceivedListResponse)
