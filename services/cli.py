"""Command line entry points for the upload service and the relay receiver."""

from __future__ import annotations

import argparse

import uvicorn

from imagerelay.settings import get_settings


def _parser(description: str, default_host: str, default_port: int) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--host", default=default_host, help=f"Bind address (default: {default_host})")
    parser.add_argument("--port", type=int, default=default_port, help=f"Port to listen on (default: {default_port})")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    return parser


def api_main(argv: list[str] | None = None) -> None:
    from services.api.main import create_app

    settings = get_settings()
    args = _parser("Run the image upload service", settings.server.host, settings.server.port).parse_args(argv)
    if args.log_level:
        settings.logging.level = args.log_level
    settings.server.port = args.port
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=settings.logging.level.lower())


def receiver_main(argv: list[str] | None = None) -> None:
    from services.receiver.main import create_app

    settings = get_settings()
    args = _parser("Run the relay receiver", settings.receiver.host, settings.receiver.port).parse_args(argv)
    if args.log_level:
        settings.logging.level = args.log_level
    settings.receiver.port = args.port
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level=settings.logging.level.lower())


__all__ = ["api_main", "receiver_main"]
