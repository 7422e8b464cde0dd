from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from imagerelay.relay import RelayDispatcher
from imagerelay.settings import Settings
from imagerelay.storage import BlobStore


@dataclass
class AppContext:
    """Handles provisioned once at startup and shared by every request."""

    settings: Settings
    storage: BlobStore
    dispatcher: RelayDispatcher


def get_context(request: Request) -> AppContext:
    return request.app.state.context
