"""Standalone relay receiver, meant to run on the machine that collects relayed images."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from imagerelay.exceptions import ClientError, ImageRelayError
from imagerelay.logging_config import setup_logging
from imagerelay.network import local_ip
from imagerelay.settings import Settings, get_settings
from imagerelay.storage import iso_timestamp_name
from imagerelay.storage.local import LocalStorage
from services.receiver.context import ReceiverContext
from services.receiver.routes import legacy_router, router


async def receiver_error_handler(request: Request, exc: ImageRelayError) -> JSONResponse:
    if isinstance(exc, ClientError):
        logger.warning("Rejected relay delivery: {message}", message=exc.message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})
    logger.error("Error receiving image: {type} - {message}", type=type(exc).__name__, message=exc.message)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": exc.message})


async def receiver_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(".".join(str(part) for part in error.get("loc", ())) for error in exc.errors())
    logger.warning("Rejected malformed relay delivery: {fields}", fields=fields)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": f"Malformed relay delivery: {fields}"})


async def receiver_unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Error receiving image")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(exc)})


def create_app(settings: Settings | None = None, *, storage: LocalStorage | None = None) -> FastAPI:
    settings = settings or get_settings()

    setup_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=settings.logging.log_file,
    )

    app = FastAPI(
        title="Image Relay Receiver",
        version="0.1.0",
        description="Accepts relayed images and stores them on this machine",
    )

    receiver = settings.receiver
    context = ReceiverContext(
        settings=receiver,
        storage=storage or LocalStorage(receiver.receive_dir, url_prefix="/relay/files", naming=iso_timestamp_name),
    )
    app.state.context = context

    @app.on_event("startup")
    async def _provision() -> None:
        created = not context.storage.root.exists()
        context.storage.ensure_root()
        if created:
            logger.info("Created directory: {path}", path=context.receive_dir)

        ip = local_ip()
        port = receiver.port
        logger.info("=" * 60)
        logger.info("RELAY RECEIVER running")
        logger.info("Local access:   http://localhost:{port}", port=port)
        logger.info("Network access: http://{ip}:{port}", ip=ip, port=port)
        logger.info("Receive endpoint: http://{ip}:{port}/relay/receive", ip=ip, port=port)
        logger.info("Images will be saved to: {path}", path=context.receive_dir)
        logger.info("Set on the upload service: RELAY_URL=http://{ip}:{port}/relay/receive", ip=ip, port=port)
        logger.info("Make sure your firewall allows connections on port {port}", port=port)
        logger.info("=" * 60)

    app.add_exception_handler(ImageRelayError, receiver_error_handler)
    app.add_exception_handler(RequestValidationError, receiver_validation_handler)
    app.add_exception_handler(Exception, receiver_unhandled_handler)

    app.include_router(router)
    app.include_router(legacy_router)
    app.mount(
        "/relay/files",
        StaticFiles(directory=str(receiver.receive_dir), check_dir=False),
        name="received",
    )

    return app


app = create_app()


__all__ = ["app", "create_app"]
