"""FastAPI exception handlers for custom exceptions."""

from __future__ import annotations

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from imagerelay.exceptions import ClientError, ImageRelayError, StorageError


def status_for(exc: ImageRelayError) -> int:
    """Map an exception type to the HTTP status returned to the uploading client."""
    if isinstance(exc, ClientError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, StorageError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def image_relay_exception_handler(request: Request, exc: ImageRelayError) -> JSONResponse:
    """Handle image-relay-specific exceptions."""
    status_code = status_for(exc)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "{type} on {path}: {message}",
        type=type(exc).__name__,
        path=request.url.path,
        message=exc.message,
        details=exc.details,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(exc).__name__,
            "message": exc.message,
            "details": exc.details,
        },
    )


def _invalid_fields(exc: RequestValidationError) -> list[str]:
    return [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request validation failures to a 400 ``ClientError`` response."""
    client_error = ClientError("Malformed upload request", {"fields": ", ".join(_invalid_fields(exc))})
    return await image_relay_exception_handler(request, client_error)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled exception on {path}", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": type(exc).__name__,
            "message": str(exc),
        },
    )
