from __future__ import annotations

import asyncio

import httpx
import pytest

from imagerelay.relay import RelayDispatcher, RelayOutcome, RelaySender


class ExplodingSender(RelaySender):
    async def send(self, payload, filename, metadata=None):
        raise RuntimeError("sender bug")


@pytest.mark.asyncio()
async def test_sender_exception_is_contained():
    dispatcher = RelayDispatcher(ExplodingSender("http://relay.test/relay/receive"))

    task = dispatcher.submit(b"data", "cat.png", {})
    result = await task

    assert result is None
    assert dispatcher.pending == 0


@pytest.mark.asyncio()
async def test_failed_outcome_is_returned_not_raised():
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    dispatcher = RelayDispatcher(RelaySender("http://relay.test/relay/receive", transport=transport))

    dispatcher.submit(b"data", "cat.png", {})
    outcomes = await dispatcher.drain()

    assert len(outcomes) == 1
    assert isinstance(outcomes[0], RelayOutcome)
    assert outcomes[0].error == "HTTP 404"


@pytest.mark.asyncio()
async def test_submit_does_not_block_and_drain_waits():
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200, text="ok")

    dispatcher = RelayDispatcher(RelaySender("http://relay.test/relay/receive", transport=httpx.MockTransport(handler)))
    dispatcher.submit(b"data", "cat.png", {})
    await asyncio.sleep(0)

    assert dispatcher.pending == 1

    release.set()
    outcomes = await dispatcher.drain()

    assert outcomes[0].success is True
    assert dispatcher.pending == 0


@pytest.mark.asyncio()
async def test_drain_without_tasks_returns_empty():
    assert await RelayDispatcher(RelaySender(None)).drain() == []
