"""Token issuance endpoints.

Both request shapes share one issuance path; they only differ in how the
caller supplies fields and how the token is wrapped in the response."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..schemas.tokens import ErrorResponse, LivekitTokenRequest, LivekitTokenResponse
from ..services.issuance import IssuanceService, TokenRequestError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tokens"])

TRUTHY = {"true", "1", "yes", "on"}

# Schema failures on these paths are answered like a missing field.
VALIDATION_MESSAGES = {
    "/getToken": "roomName and identity are required",
    "/api/livekit/token": "roomName and userId are required",
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_issuance(request: Request) -> IssuanceService:
    return request.app.state.issuance


def enforce_rate_limit(request: Request) -> None:
    """Apply the per-client token bucket before any issuance work."""

    client_key = request.client.host if request.client else "anonymous"
    request.app.state.rate_limiter.check(client_key)


def _internal_error() -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal server error"})


@router.get(
    "/getToken",
    response_class=PlainTextResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(enforce_rate_limit)],
)
async def get_token(
    room_name: str | None = Query(default=None, alias="roomName"),
    identity: str | None = Query(default=None),
    is_publisher: str | None = Query(default=None, alias="isPublisher"),
    issuance: IssuanceService = Depends(get_issuance),
) -> Response:
    """Return a bare token string for query-style callers."""

    can_publish = (is_publisher or "").strip().lower() in TRUTHY
    try:
        token = issuance.issue(room_name, identity, can_publish)
    except TokenRequestError:
        raise
    except Exception as exc:  # noqa: BLE001 - single 500 path for unexpected failures
        logger.exception("Token issuance failed: %s", exc)
        return _internal_error()
    return PlainTextResponse(token)


@router.post(
    "/api/livekit/token",
    response_model=LivekitTokenResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(enforce_rate_limit)],
)
async def post_livekit_token(
    payload: LivekitTokenRequest | None = Body(default=None),
    issuance: IssuanceService = Depends(get_issuance),
) -> LivekitTokenResponse | JSONResponse:
    """Return `{token}` for body-style callers; `role` decides publish permission."""

    payload = payload or LivekitTokenRequest()
    identity = payload.user_id
    room_name = payload.room_name
    try:
        token = issuance.issue(room_name, identity, payload.is_publisher, identity_field="userId")
    except TokenRequestError:
        raise
    except Exception as exc:  # noqa: BLE001 - single 500 path for unexpected failures
        logger.exception("Token issuance failed: %s", exc)
        return _internal_error()
    return LivekitTokenResponse(token=token)
