"""Tests for the room directory and its endpoint."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from livecast.main import create_app
from livecast.services.rooms import RoomDirectory, RoomServiceError


def _room(sid: str, name: str, count: int, created: int, metadata: str = "") -> SimpleNamespace:
    return SimpleNamespace(sid=sid, name=name, num_participants=count, creation_time=created, metadata=metadata)


ROOMS = [
    _room("RM_b", "zeta", 3, 1_700_000_100, json.dumps({"hostName": "Zed"})),
    _room("RM_a", "alpha", 1, 1_700_000_000),
    _room("RM_c", "broken-meta", 0, 1_700_000_200, "not json"),
]


async def _list_rooms():
    return ROOMS


async def _room_service_down():
    raise ConnectionError("room service unreachable")


@pytest.mark.asyncio
async def test_listing_preserves_room_service_order():
    directory = RoomDirectory(_list_rooms)

    listings = await directory.list_active_rooms()

    assert [listing.room_name for listing in listings] == ["zeta", "alpha", "broken-meta"]
    first = listings[0]
    assert first.room_id == "RM_b"
    assert first.host_name == "Zed"
    assert first.participant_count == 3
    assert first.created_at == datetime.fromtimestamp(1_700_000_100, tz=timezone.utc)
    assert listings[1].host_name == ""
    assert listings[2].host_name == ""


@pytest.mark.asyncio
async def test_list_active_rooms_degrades_to_empty():
    directory = RoomDirectory(_room_service_down)

    assert await directory.list_active_rooms() == []


@pytest.mark.asyncio
async def test_fetch_active_rooms_raises_room_service_error():
    directory = RoomDirectory(_room_service_down)

    with pytest.raises(RoomServiceError, match="unreachable"):
        await directory.fetch_active_rooms()


@pytest.mark.asyncio
async def test_room_service_failure_leaves_issuance_untouched(settings):
    app = create_app(settings)
    app.state.room_directory = RoomDirectory(_room_service_down)
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        rooms = await client.get("/getActiveLives")
        token = await client.get("/getToken", params={"roomName": "r1", "identity": "alice"})

    assert rooms.status_code == 500
    assert rooms.json() == {"error": "Failed to fetch active rooms"}
    assert token.status_code == 200
    assert len(app.state.identity_registry) == 1


@pytest.mark.asyncio
async def test_get_active_lives_returns_camel_case_listing(settings):
    app = create_app(settings)
    app.state.room_directory = RoomDirectory(_list_rooms)
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/getActiveLives")

    assert response.status_code == 200
    payload = response.json()
    assert [item["roomId"] for item in payload] == ["RM_b", "RM_a", "RM_c"]
    assert payload[0]["roomName"] == "zeta"
    assert payload[0]["hostName"] == "Zed"
    assert payload[0]["participantCount"] == 3
    assert payload[0]["createdAt"].startswith("2023-11-14T22:")


def test_room_service_url_derived_from_livekit_url(settings):
    assert settings.livekit_url == "ws://livekit.test:7880"
    assert settings.room_service_base_url == "http://livekit.test:7880"
    secure = settings.model_copy(update={"livekit_url": "wss://live.example.com"})
    assert secure.room_service_base_url == "https://live.example.com"
