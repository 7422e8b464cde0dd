from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from loguru import logger

from imagerelay.exceptions import ClientError, MissingUploadError
from imagerelay.models import UploadedAsset
from imagerelay.storage import IMAGE_EXTENSIONS, is_image_name
from imagerelay.timestamps import utc_now
from services.api.context import AppContext, get_context
from services.api.schemas import ErrorResponse, HealthResponse, ImageEntry, UploadResponse

router = APIRouter()


INDEX_HTML = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>Image upload</title></head>
<body>
  <h1>Upload an image</h1>
  <form action="/upload" method="post" enctype="multipart/form-data">
    <input type="file" name="image" accept="image/*" required>
    <button type="submit">Upload</button>
  </form>
  <h2>Gallery</h2>
  <div id="gallery"></div>
  <script>
    fetch("/list").then(r => r.json()).then(items => {
      const gallery = document.getElementById("gallery");
      for (const item of items) {
        const img = document.createElement("img");
        img.src = item.url;
        img.alt = item.name;
        img.style.maxWidth = "240px";
        gallery.appendChild(img);
      }
    });
  </script>
</body>
</html>
"""


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index() -> HTMLResponse:
    return HTMLResponse(INDEX_HTML)


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    tags=["upload"],
)
async def upload_image(
    request: Request,
    context: Annotated[AppContext, Depends(get_context)],
    image: Annotated[UploadFile | None, File(description="Image file (JPG, JPEG, PNG, GIF, WEBP)")] = None,
):
    if image is None or not image.filename:
        raise MissingUploadError("No image uploaded")
    if not is_image_name(image.filename):
        raise ClientError(
            "Only image uploads are allowed",
            {"filename": image.filename, "allowed": ", ".join(sorted(IMAGE_EXTENSIONS))},
        )

    payload = await image.read()
    if not payload:
        raise ClientError("Uploaded file is empty", {"filename": image.filename})
    mime_type = image.content_type or "application/octet-stream"

    created_at = utc_now()
    # StorageUnavailable propagates from here; nothing is relayed after a failed save
    stored = await asyncio.to_thread(context.storage.save, image.filename, payload, mime_type, now=created_at)
    asset = UploadedAsset(
        original_name=image.filename,
        stored_name=stored.stored_name,
        size_bytes=stored.size,
        mime_type=mime_type,
        storage_location=stored.location,
        url=stored.url,
        created_at=created_at,
    )
    logger.info("Uploaded: {name} ({size} bytes)", name=asset.stored_name, size=asset.size_bytes)

    context.dispatcher.submit(payload, asset.original_name, asset.relay_metadata())

    if _wants_html(request):
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)

    body = UploadResponse(
        original_name=asset.original_name,
        stored_name=asset.stored_name,
        url=asset.url,
        size=asset.size_bytes,
        mime_type=asset.mime_type,
        created_at=asset.created_at,
        relay_queued=context.dispatcher.sender.configured,
    )
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=body.model_dump(mode="json", by_alias=True))


@router.get("/list", response_model=list[ImageEntry], tags=["upload"])
async def list_images(context: Annotated[AppContext, Depends(get_context)]) -> list[ImageEntry]:
    entries = await asyncio.to_thread(context.storage.list)
    return [ImageEntry(name=entry.name, url=entry.url) for entry in entries]


@router.get("/healthz", response_model=HealthResponse, tags=["meta"])
async def healthcheck(context: Annotated[AppContext, Depends(get_context)]) -> HealthResponse:
    return HealthResponse(
        status="ok",
        storage=context.settings.storage.mode,
        relay="configured" if context.dispatcher.sender.configured else "off",
    )
