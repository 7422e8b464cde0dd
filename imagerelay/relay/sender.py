from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from imagerelay.relay.envelope import RelayEnvelope, RelayOutcome
from imagerelay.settings import RelaySettings

DEFAULT_TIMEOUT_SECONDS = 30.0


class RelaySender:
    """Single-attempt multipart POST of an uploaded image to the relay destination.

    ``send`` never raises for transport problems; every failure is folded
    into a ``RelayOutcome``. There is no retry.
    """

    def __init__(
        self,
        url: str | None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or None
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: RelaySettings, transport: httpx.AsyncBaseTransport | None = None) -> "RelaySender":
        return cls(settings.url, timeout=settings.timeout_seconds, transport=transport)

    @property
    def configured(self) -> bool:
        return self.url is not None

    async def _post(self, envelope: RelayEnvelope) -> httpx.Response:
        files, data = envelope.multipart()
        # httpx picks plain TCP or TLS from the URL scheme
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(self.url, files=files, data=data)

    async def send(self, payload: bytes, filename: str, metadata: dict[str, Any] | None = None) -> RelayOutcome:
        if not self.url:
            logger.info("Relay URL not set - skipping relay of {filename}", filename=filename)
            return RelayOutcome.unconfigured()

        envelope = RelayEnvelope.build(payload, filename, metadata)
        try:
            # Caps the whole exchange, not just each connect/read phase
            response = await asyncio.wait_for(self._post(envelope), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Relay of {filename} timed out after {timeout}s", filename=filename, timeout=self.timeout)
            return RelayOutcome.failed("timeout", "timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            reason = str(exc) or type(exc).__name__
            logger.warning("Relay error for {filename}: {reason}", filename=filename, reason=reason)
            return RelayOutcome.failed("unreachable", reason)

        body = response.text
        if 200 <= response.status_code < 300:
            logger.info("Image relayed: {filename} ({status})", filename=filename, status=response.status_code)
            return RelayOutcome.delivered(response.status_code, body)

        logger.warning("Relay of {filename} rejected: HTTP {status}", filename=filename, status=response.status_code)
        return RelayOutcome.failed(
            "rejected",
            f"HTTP {response.status_code}",
            status_code=response.status_code,
            body=body,
        )


__all__ = ["RelaySender", "DEFAULT_TIMEOUT_SECONDS"]
