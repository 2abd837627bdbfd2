"""FastAPI application for the LiveKit token broker."""
from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .core.config import Settings, get_settings
from .routers import rooms as rooms_router
from .routers import tokens as tokens_router
from .services.grants import GrantEncoder
from .services.identity_registry import IdentityRegistry
from .services.issuance import IssuanceService, TokenRequestError
from .services.rate_limit import RateLimiter
from .services.rooms import LiveKitRoomLister, RoomDirectory

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and its service graph.

    A missing signing key pair raises here, so misconfiguration stops startup
    instead of failing individual requests.
    """

    settings = settings or get_settings()

    encoder = GrantEncoder(
        settings.livekit_api_key,
        settings.livekit_api_secret,
        ttl=timedelta(seconds=settings.token_ttl_seconds),
    )
    hold_seconds = settings.identity_hold_seconds or None
    registry = IdentityRegistry(hold_seconds=hold_seconds)

    app = FastAPI(title="LiveCast Token Broker", version="0.1.0")
    app.state.settings = settings
    app.state.encoder = encoder
    app.state.identity_registry = registry
    app.state.issuance = IssuanceService(registry, encoder)
    app.state.rate_limiter = RateLimiter(settings.token_rate_limit_per_minute)
    app.state.room_directory = RoomDirectory(
        LiveKitRoomLister(settings.room_service_base_url, settings.livekit_api_key, settings.livekit_api_secret)
    )

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(TokenRequestError)
    async def token_request_error_handler(request: Request, exc: TokenRequestError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = tokens_router.VALIDATION_MESSAGES.get(request.url.path)
        if message is None:
            return await request_validation_exception_handler(request, exc)
        logger.info("Rejected malformed token request on %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    app.include_router(tokens_router.router)
    app.include_router(rooms_router.router)

    @app.get("/", response_class=PlainTextResponse, tags=["meta"])
    async def index() -> PlainTextResponse:
        """Identify the service for humans poking at the root URL."""

        return PlainTextResponse("LiveCast token broker is running")

    @app.head("/", tags=["meta"])
    async def index_head() -> Response:
        """Load balancers in front of the broker check the root with HEAD."""

        return Response(status_code=200)

    @app.get("/api/health", tags=["meta"])
    async def health() -> dict[str, str]:
        """Report that the broker process is up; no room service call is made."""

        return {"status": "ok"}

    @app.head("/api/health", tags=["meta"])
    async def health_head() -> Response:
        """Status-only variant of the health check."""

        return Response(status_code=200)

    logger.info(
        "Token broker configured for %s (ttl=%ss, identity hold=%s)",
        settings.livekit_url,
        settings.token_ttl_seconds,
        f"{hold_seconds}s" if hold_seconds else "permanent",
    )
    return app


app = create_app()
