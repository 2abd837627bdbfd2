"""End-to-end client flow: bootstrap against the broker, connect, resolve host."""
from __future__ import annotations

import httpx
import pytest

from livecast.client.bootstrap import BootstrapState
from livecast.client.host_resolution import Participant, TrackRef
from livecast.client.log_channel import LogChannel
from livecast.client.session import build_live_session
from livecast.core.config import ClientSettings
from livecast.main import create_app


class FakeMedia:
    def __init__(self) -> None:
        self.stopped = 0

    async def start(self) -> None:
        return None

    async def stop(self) -> None:
        self.stopped += 1


class FakeTransport:
    def __init__(self, fail: Exception | None = None) -> None:
        self.fail = fail
        self.url: str | None = None
        self.token: str | None = None
        self.listener = None
        self.disconnects = 0

    async def connect(self, url, token, on_participants) -> None:
        if self.fail:
            raise self.fail
        self.url = url
        self.token = token
        self.listener = on_participants

    async def disconnect(self) -> None:
        self.disconnects += 1


def _client_settings(**overrides) -> ClientSettings:
    values = {
        "backend_url": "http://testserver/",
        "livekit_url": "ws://livekit.test:7880/",
        "room_name": "r1",
        "identity": "viewer-1",
        "role": "viewer",
        "retry_delay_ms": 0,
    }
    values.update(overrides)
    return ClientSettings(**values)


@pytest.mark.asyncio
async def test_viewer_session_connects_and_follows_host(settings, encoder):
    broker = create_app(settings)
    media = FakeMedia()
    transport = FakeTransport()
    log = LogChannel()

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=broker)) as http_client:
        session = build_live_session(_client_settings(), media, transport, http_client, log)
        async with session:
            view = await session.start()

            assert view.kind == "connected"
            assert transport.url == "ws://livekit.test:7880"
            assert encoder.verify(transport.token).identity == "viewer-1"
            assert encoder.can_publish(transport.token) is False

            transport.listener([Participant("viewer-1", is_local=True)])
            assert session.resolver.waiting

            transport.listener([Participant("viewer-1", is_local=True), Participant("host-1")])
            assert session.resolver.host == "host-1"
            assert session.visible_tracks([TrackRef("host-1"), TrackRef("other")]) == [TrackRef("host-1")]

    assert transport.disconnects == 1
    assert media.stopped == 1


@pytest.mark.asyncio
async def test_second_client_with_same_identity_fails_after_retries(settings):
    broker = create_app(settings)
    broker.state.issuance.issue("r1", "viewer-1", can_publish=False)
    media = FakeMedia()
    transport = FakeTransport()

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=broker)) as http_client:
        session = build_live_session(_client_settings(), media, transport, http_client)
        view = await session.start()
        await session.disconnect()

    assert view.kind == "error"
    assert "HTTP 409: Conflict" in view.message
    assert transport.token is None
    assert media.stopped == 1


@pytest.mark.asyncio
async def test_transport_error_is_reported_as_failure(settings):
    broker = create_app(settings)
    transport = FakeTransport(fail=ConnectionError("websocket closed"))

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=broker)) as http_client:
        session = build_live_session(_client_settings(role="publisher", identity="pub-1"), FakeMedia(), transport, http_client)
        async with session:
            view = await session.start()

    assert view.kind == "error"
    assert view.message == "LiveKit connection error: websocket closed"
    assert not session.connected
    assert transport.disconnects == 0


@pytest.mark.asyncio
async def test_disconnect_is_safe_in_any_state(settings):
    media = FakeMedia()
    transport = FakeTransport()

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=create_app(settings))) as http_client:
        session = build_live_session(_client_settings(), media, transport, http_client)
        await session.disconnect()
        await session.disconnect()

    assert media.stopped == 0
    assert transport.disconnects == 0
    assert session.view().kind == "loading"


@pytest.mark.asyncio
async def test_participant_updates_after_disconnect_are_ignored(settings):
    transport = FakeTransport()

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=create_app(settings))) as http_client:
        session = build_live_session(_client_settings(identity="late-viewer"), FakeMedia(), transport, http_client)
        await session.start()
        await session.disconnect()

    transport.listener([Participant("late-viewer", is_local=True), Participant("host-1")])

    assert session.resolver.host is None


def test_client_settings_defaults():
    client_settings = ClientSettings()

    assert client_settings.max_attempts == 3
    assert client_settings.retry_delay == 2.0
    assert client_settings.identity.startswith("user-")
    assert _client_settings().backend_url == "http://testserver"
    assert BootstrapState.CONNECTED.value == "connected"
