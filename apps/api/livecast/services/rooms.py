"""Read-through room directory backed by the LiveKit room service."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

from livekit import api

logger = logging.getLogger(__name__)

RoomLister = Callable[[], Awaitable[Sequence[Any]]]


class RoomServiceError(RuntimeError):
    """Raised when the external room service cannot be queried."""


@dataclass(slots=True)
class RoomListing:
    room_id: str
    room_name: str
    host_name: str
    participant_count: int
    created_at: datetime


class LiveKitRoomLister:
    """Fetch raw room records through the LiveKit server API."""

    def __init__(self, url: str, api_key: str, api_secret: str) -> None:
        self._url = url
        self._api_key = api_key
        self._api_secret = api_secret

    async def __call__(self) -> Sequence[api.Room]:
        lkapi = api.LiveKitAPI(self._url, self._api_key, self._api_secret)
        try:
            response = await lkapi.room.list_rooms(api.ListRoomsRequest())
        finally:
            await lkapi.aclose()
        return list(response.rooms)


class RoomDirectory:
    """Project room service records into lightweight listings."""

    def __init__(self, lister: RoomLister) -> None:
        self._lister = lister

    async def fetch_active_rooms(self) -> list[RoomListing]:
        """Return listings in room service order, raising `RoomServiceError` on failure."""

        try:
            rooms = await self._lister()
        except Exception as exc:  # noqa: BLE001 - any transport/API failure is a room service failure
            raise RoomServiceError(str(exc) or exc.__class__.__name__) from exc
        return [_to_listing(room) for room in rooms]

    async def list_active_rooms(self) -> list[RoomListing]:
        """Best-effort variant: failures are logged and yield an empty listing."""

        try:
            return await self.fetch_active_rooms()
        except RoomServiceError as exc:
            logger.warning("Room service query failed, returning no rooms: %s", exc)
            return []


def _to_listing(room: Any) -> RoomListing:
    return RoomListing(
        room_id=room.sid,
        room_name=room.name,
        host_name=_host_name(getattr(room, "metadata", "")),
        participant_count=int(room.num_participants),
        created_at=datetime.fromtimestamp(int(room.creation_time), tz=timezone.utc),
    )


def _host_name(metadata: str) -> str:
    """Read `hostName` from room metadata JSON, tolerating absent or malformed metadata."""

    if not metadata:
        return ""
    try:
        parsed = json.loads(metadata)
    except ValueError:
        return ""
    if not isinstance(parsed, dict):
        return ""
    value = parsed.get("hostName") or parsed.get("host_name") or ""
    return str(value)
