from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

import httpx
import pytest

from imagerelay.exceptions import StorageUnavailable
from imagerelay.relay import RelaySender
from imagerelay.timestamps import epoch_millis
from services.api.main import create_app
from services.receiver.main import create_app as create_receiver_app
from tests.utils_relay import PNG_BYTES, asgi_client, make_settings


def _image(name: str = "cat.png") -> dict:
    return {"image": (name, PNG_BYTES, "image/png")}


class BrokenStorage:
    def save(self, name, data, content_type=None, *, now=None):
        raise StorageUnavailable("Blob store credential is not configured", {"bucket": "images"})

    def list(self):
        raise StorageUnavailable("Blob store credential is not configured")


@pytest.mark.asyncio()
async def test_upload_then_list(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image("my cat.png"))
        listing = await client.get("/list")
        await app.state.context.dispatcher.drain()

    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["originalName"] == "my cat.png"
    assert payload["storedName"].endswith("-my_cat.png")
    assert payload["url"] == f"/uploads/{payload['storedName']}"
    assert payload["size"] == len(PNG_BYTES)
    assert payload["mimeType"] == "image/png"
    assert payload["relayQueued"] is False

    assert listing.status_code == 200
    assert listing.json() == [{"name": payload["storedName"], "url": payload["url"]}]
    assert (tmp_path / "uploads" / payload["storedName"]).read_bytes() == PNG_BYTES


@pytest.mark.asyncio()
async def test_uploaded_file_is_served(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image())
        served = await client.get(response.json()["url"])

    assert served.status_code == 200
    assert served.content == PNG_BYTES


@pytest.mark.asyncio()
async def test_browser_upload_redirects_home(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image(), headers={"Accept": "text/html"})

    assert response.status_code == 303
    assert response.headers["location"] == "/"


@pytest.mark.asyncio()
async def test_missing_file_is_400(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", data={"note": "no file here"})

    assert response.status_code == 400
    assert response.json()["error"] == "MissingUploadError"
    assert app.state.context.dispatcher.pending == 0


@pytest.mark.asyncio()
async def test_non_image_is_400(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", files={"image": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400
    assert response.json()["error"] == "ClientError"


@pytest.mark.asyncio()
async def test_storage_failure_is_503_and_skips_relay(tmp_path):
    calls: list[httpx.Request] = []
    transport = httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200))
    sender = RelaySender("http://relay.test/relay/receive", transport=transport)
    app = create_app(make_settings(tmp_path), storage=BrokenStorage(), sender=sender)

    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image())
        listing = await client.get("/list")

    assert response.status_code == 503
    assert response.json()["error"] == "StorageUnavailable"
    assert listing.status_code == 503
    assert app.state.context.dispatcher.pending == 0
    assert calls == []


@pytest.mark.asyncio()
async def test_unconfigured_relay_does_not_change_response(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image())
    outcomes = await app.state.context.dispatcher.drain()

    assert response.status_code == 201
    assert all(outcome is None or outcome.error == "not configured" for outcome in outcomes)


@pytest.mark.asyncio()
async def test_failing_relay_does_not_change_response(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sender = RelaySender("http://relay.test/relay/receive", transport=httpx.MockTransport(handler))
    app = create_app(make_settings(tmp_path), sender=sender)
    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image())
    await app.state.context.dispatcher.drain()

    assert response.status_code == 201
    assert response.json()["relayQueued"] is True


@pytest.mark.asyncio()
async def test_response_does_not_wait_for_slow_relay(tmp_path):
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200)

    sender = RelaySender("http://relay.test/relay/receive", transport=httpx.MockTransport(handler))
    app = create_app(make_settings(tmp_path), sender=sender)
    dispatcher = app.state.context.dispatcher

    async with asgi_client(app) as client:
        response = await asyncio.wait_for(client.post("/upload", files=_image()), timeout=5)

    assert response.status_code == 201
    assert dispatcher.pending == 1

    release.set()
    outcomes = await dispatcher.drain()
    assert outcomes[0].success is True


@pytest.mark.asyncio()
async def test_upload_is_relayed_to_receiver(tmp_path):
    receiver_app = create_receiver_app(make_settings(tmp_path))
    sender = RelaySender(
        "http://receiver.test/relay/receive",
        transport=httpx.ASGITransport(app=receiver_app),
    )
    app = create_app(make_settings(tmp_path), sender=sender)

    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image("cat.png"))
    outcomes = await app.state.context.dispatcher.drain()

    assert response.status_code == 201
    assert outcomes[0].success is True

    received = list((tmp_path / "received").iterdir())
    assert len(received) == 1
    assert received[0].name.endswith("_cat.png")
    assert received[0].read_bytes() == PNG_BYTES
    assert Path(tmp_path / "uploads" / response.json()["storedName"]).read_bytes() == PNG_BYTES


@pytest.mark.asyncio()
async def test_image_sent_as_text_field_is_400(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", data={"image": "not a file"})

    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "ClientError"
    assert payload["message"] == "Malformed upload request"
    assert "image" in payload["details"]["fields"]
    assert app.state.context.dispatcher.pending == 0
    assert not (tmp_path / "uploads").exists() or not any((tmp_path / "uploads").iterdir())


@pytest.mark.asyncio()
async def test_stored_name_and_created_at_share_one_moment(tmp_path):
    app = create_app(make_settings(tmp_path))
    async with asgi_client(app) as client:
        response = await client.post("/upload", files=_image("cat.png"))
        await app.state.context.dispatcher.drain()

    payload = response.json()
    created_at = datetime.fromisoformat(payload["createdAt"].replace("Z", "+00:00"))
    assert payload["storedName"] == f"{epoch_millis(created_at)}-cat.png"
