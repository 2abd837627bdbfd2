"""Token issuance: validation, identity reservation and grant encoding."""
from __future__ import annotations

import logging

from fastapi import status

from .grants import GrantEncoder
from .identity_registry import IdentityRegistry

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "Identity must be unique per user"


class TokenRequestError(Exception):
    """Base class for rejected token requests."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingFieldError(TokenRequestError):
    status_code = status.HTTP_400_BAD_REQUEST


class IdentityConflictError(TokenRequestError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, identity: str) -> None:
        super().__init__(CONFLICT_MESSAGE)
        self.identity = identity


class IssuanceService:
    """Issue one token per identity."""

    def __init__(self, registry: IdentityRegistry, encoder: GrantEncoder) -> None:
        self._registry = registry
        self._encoder = encoder

    def issue(self, room_name: str | None, identity: str | None, can_publish: bool, *, identity_field: str = "identity") -> str:
        """Return a token or raise a `TokenRequestError`.

        `identity_field` only changes the wording of the validation message so each
        request shape reports the field name its callers actually send.
        """

        room_name = (room_name or "").strip()
        identity = (identity or "").strip()
        if not room_name or not identity:
            raise MissingFieldError(f"roomName and {identity_field} are required")

        if not self._registry.reserve(identity):
            logger.info("Rejected duplicate identity %s for room %s", identity, room_name)
            raise IdentityConflictError(identity)

        try:
            token = self._encoder.encode(identity, room_name, can_publish)
        except Exception:
            self._registry.release(identity)
            raise

        logger.info("Issued %s token for %s in room %s", "publisher" if can_publish else "viewer", identity, room_name)
        return token
