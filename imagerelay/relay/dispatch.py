"""Failure-isolating launch point for relay deliveries."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from imagerelay.relay.envelope import RelayOutcome
from imagerelay.relay.sender import RelaySender


class RelayDispatcher:
    """Runs relay sends as detached tasks whose failures only reach the log.

    The upload response never waits on a relay. Pending tasks are held here
    until they finish so they are not garbage collected mid-flight, and
    ``drain`` lets shutdown (and tests) wait for their outcomes.
    """

    def __init__(self, sender: RelaySender) -> None:
        self.sender = sender
        self._tasks: set[asyncio.Task[RelayOutcome | None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, payload: bytes, filename: str, metadata: dict[str, Any]) -> asyncio.Task[RelayOutcome | None]:
        task = asyncio.create_task(self._run(payload, filename, metadata), name=f"relay:{filename}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, payload: bytes, filename: str, metadata: dict[str, Any]) -> RelayOutcome | None:
        try:
            outcome = await self.sender.send(payload, filename, metadata)
        except asyncio.CancelledError:
            logger.warning("Relay of {filename} cancelled", filename=filename)
            raise
        except Exception as exc:
            logger.exception("Unexpected error relaying {filename}: {error}", filename=filename, error=exc)
            return None

        if outcome.success:
            logger.info("Image also relayed: {filename}", filename=filename)
        elif outcome.kind == "unconfigured":
            logger.debug("Relay disabled, {filename} kept locally only", filename=filename)
        else:
            logger.warning("Could not relay {filename}: {error}", filename=filename, error=outcome.error)
        return outcome

    async def drain(self) -> list[RelayOutcome | None]:
        """Wait for every in-flight relay. Bounded by the sender timeout."""
        if not self._tasks:
            return []
        results = await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return [result if isinstance(result, RelayOutcome) else None for result in results]


__all__ = ["RelayDispatcher"]
