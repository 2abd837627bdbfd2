"""Room directory endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from ..schemas.rooms import RoomListingResponse
from ..schemas.tokens import ErrorResponse
from ..services.rooms import RoomDirectory, RoomServiceError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"])


def get_room_directory(request: Request) -> RoomDirectory:
    return request.app.state.room_directory


@router.get(
    "/getActiveLives",
    response_model=list[RoomListingResponse],
    responses={500: {"model": ErrorResponse}},
)
async def get_active_lives(
    directory: RoomDirectory = Depends(get_room_directory),
) -> list[RoomListingResponse] | JSONResponse:
    """List rooms currently known to the room service."""

    try:
        rooms = await directory.fetch_active_rooms()
    except RoomServiceError as exc:
        logger.error("Failed to list active rooms: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch active rooms"},
        )
    return [
        RoomListingResponse(
            room_id=room.room_id,
            room_name=room.room_name,
            host_name=room.host_name,
            participant_count=room.participant_count,
            created_at=room.created_at,
        )
        for room in rooms
    ]
