"""Data contracts for token endpoints."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_text(value: Any) -> str | None:
    """Coerce JSON scalars to text; structured values count as absent."""

    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


class LivekitTokenRequest(BaseModel):
    """Body of `POST /api/livekit/token`.

    Fields are optional and loosely typed so that missing or odd values surface
    as a 400 from the issuance service rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId", description="Participant identity")
    room_name: str | None = Field(default=None, alias="roomName", description="Room name to join")
    role: str | None = Field(default=None, description="'publisher' grants publish permission")

    @field_validator("user_id", "room_name", "role", mode="before")
    @classmethod
    def _coerce_scalars(cls, value: Any) -> str | None:
        return _as_text(value)

    @property
    def is_publisher(self) -> bool:
        return str(self.role).strip().lower() == "publisher"


class LivekitTokenResponse(BaseModel):
    token: str = Field(..., description="JWT for the LiveKit server")


class ErrorResponse(BaseModel):
    error: str
