"""Data contracts for the room directory."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RoomListingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(..., alias="roomId")
    room_name: str = Field(..., alias="roomName")
    host_name: str = Field(default="", alias="hostName")
    participant_count: int = Field(..., ge=0, alias="participantCount")
    created_at: datetime = Field(..., alias="createdAt")
