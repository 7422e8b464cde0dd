from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from loguru import logger

from imagerelay.exceptions import ImageRelayError
from imagerelay.logging_config import setup_logging
from imagerelay.network import local_ip
from imagerelay.relay import RelayDispatcher, RelaySender
from imagerelay.settings import Settings, get_settings
from imagerelay.storage import BlobStore, build_storage
from services.api.context import AppContext
from services.api.exception_handlers import (
    image_relay_exception_handler,
    request_validation_exception_handler,
    unhandled_exception_handler,
)
from services.api.routes import router


def create_app(
    settings: Settings | None = None,
    *,
    storage: BlobStore | None = None,
    sender: RelaySender | None = None,
) -> FastAPI:
    """Build the upload service with its storage and relay handles provisioned once."""
    settings = settings or get_settings()

    setup_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=settings.logging.log_file,
    )

    app = FastAPI(
        title="Image Relay API",
        version="0.1.0",
        description="Image upload, listing and best-effort relay to a secondary listener",
    )

    context = AppContext(
        settings=settings,
        storage=storage or build_storage(settings.storage),
        dispatcher=RelayDispatcher(sender or RelaySender.from_settings(settings.relay)),
    )
    app.state.context = context

    @app.on_event("startup")
    async def _announce() -> None:
        port = settings.server.port
        logger.info("=" * 40)
        logger.info("Server running! storage={mode}", mode=settings.storage.mode)
        logger.info("Local:   http://localhost:{port}", port=port)
        logger.info("Friends: http://{ip}:{port}", ip=local_ip(), port=port)
        if settings.storage.mode == "cloud" and not settings.storage.has_credentials:
            logger.warning("Cloud storage selected but no blob store credential is set; uploads will fail")
        if context.dispatcher.sender.configured:
            logger.info("Relaying uploads to {url}", url=context.dispatcher.sender.url)
        logger.info("=" * 40)

    @app.on_event("shutdown")
    async def _drain_relays() -> None:
        if context.dispatcher.pending:
            logger.info("Waiting for {count} in-flight relay(s)", count=context.dispatcher.pending)
        await context.dispatcher.drain()

    app.add_exception_handler(ImageRelayError, image_relay_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router)

    if settings.storage.mode == "local":
        app.mount(
            settings.storage.url_prefix,
            StaticFiles(directory=str(settings.storage.uploads_dir), check_dir=False),
            name="uploads",
        )

    return app


app = create_app()


__all__ = ["app", "create_app"]
