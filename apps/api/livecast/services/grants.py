"""Grant encoder for LiveKit access tokens.

Tokens are signed with the configured API key pair and carry a single-room join grant.
Publishing is only granted to publisher-role callers."""
from __future__ import annotations

import logging
from datetime import timedelta

from livekit import api

DEFAULT_TOKEN_TTL = timedelta(minutes=10)

logger = logging.getLogger(__name__)


class GrantConfigurationError(RuntimeError):
    """Raised when the signing key pair is missing."""


class GrantEncoder:
    """Build signed, time-boxed room credentials."""

    def __init__(self, api_key: str, api_secret: str, ttl: timedelta = DEFAULT_TOKEN_TTL) -> None:
        if not api_key or not api_secret:
            raise GrantConfigurationError("LIVEKIT_API_KEY and LIVEKIT_API_SECRET must be set")
        self._api_key = api_key
        self._api_secret = api_secret
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def encode(self, identity: str, room_name: str, can_publish: bool) -> str:
        """Return a JWT admitting `identity` into `room_name`."""

        if not identity:
            raise ValueError("identity must be a non-empty string")
        if not room_name:
            raise ValueError("room_name must be a non-empty string")

        grants = api.VideoGrants(
            room_join=True,
            room=room_name,
            can_publish=can_publish,
            can_subscribe=True,
            can_publish_data=can_publish,
        )
        token = (
            api.AccessToken(self._api_key, self._api_secret)
            .with_identity(identity)
            .with_ttl(self._ttl)
            .with_grants(grants)
            .to_jwt()
        )
        logger.debug("Issued token for %s in room %s (publish=%s)", identity, room_name, can_publish)
        return token

    def verify(self, token: str) -> api.Claims:
        """Validate signature and expiry, returning the decoded claims."""

        return api.TokenVerifier(self._api_key, self._api_secret).verify(token)

    def can_publish(self, token: str) -> bool:
        """Return True only when the token grants publish permission."""

        claims = self.verify(token)
        video = claims.video
        return bool(video and video.room_join and video.can_publish)
