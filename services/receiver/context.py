from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from imagerelay.settings import ReceiverSettings
from imagerelay.storage.local import LocalStorage


@dataclass
class ReceiverContext:
    settings: ReceiverSettings
    storage: LocalStorage

    @property
    def receive_dir(self) -> str:
        return str(self.storage.root.resolve())


def get_receiver_context(request: Request) -> ReceiverContext:
    return request.app.state.context
