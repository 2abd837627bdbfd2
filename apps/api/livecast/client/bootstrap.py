"""Client bootstrap: media session, token fetch with bounded retry, hand-off.

The sequence is ``IDLE -> ACQUIRING_MEDIA -> FETCHING_CREDENTIAL(n) -> CONNECTED``
or ``FAILED``. Only the token fetch is retried; a media session failure is terminal.
"""
from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Literal, Optional, Protocol

import httpx

from .host_resolution import Role, normalize_role
from .log_channel import LogChannel, LogEntry

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0
MIN_TOKEN_LENGTH = 10

TokenFetch = Callable[[], Awaitable[httpx.Response]]
Sleep = Callable[[float], Awaitable[None]]


class BootstrapState(str, enum.Enum):
    IDLE = "idle"
    ACQUIRING_MEDIA = "acquiring_media"
    FETCHING_CREDENTIAL = "fetching_credential"
    CONNECTED = "connected"
    FAILED = "failed"


class MediaSession(Protocol):
    """Device audio/media session owned by the bootstrap."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class TokenFetchError(RuntimeError):
    """A single token fetch attempt did not yield a usable token."""


@dataclass
class BootstrapSession:
    state: BootstrapState = BootstrapState.IDLE
    credential: Optional[str] = None
    error: Optional[str] = None
    attempt: int = 0
    role: Role = "viewer"
    host_identity: Optional[str] = None


@dataclass(frozen=True)
class ClientView:
    """What the rendering layer should show right now."""

    kind: Literal["loading", "error", "connected"]
    message: Optional[str] = None
    token: Optional[str] = None
    logs: list[LogEntry] = field(default_factory=list)


class HttpTokenFetcher:
    """Request a token from the broker's query-style endpoint."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, room_name: str, identity: str, role: str) -> None:
        self._client = client
        self._url = f"{base_url.rstrip('/')}/getToken"
        self._params = {
            "roomName": room_name,
            "identity": identity,
            "isPublisher": "true" if normalize_role(role) == "host" else "false",
        }

    @property
    def url(self) -> str:
        return self._url

    async def __call__(self) -> httpx.Response:
        return await self._client.get(self._url, params=self._params)


class ClientBootstrap:
    """Drive the bootstrap sequence and own the media session."""

    def __init__(
        self,
        media: MediaSession,
        fetch_token: TokenFetch,
        log: LogChannel,
        *,
        role: str = "viewer",
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._media = media
        self._fetch_token = fetch_token
        self._log = log
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._media_claimed = False
        self._closed = False
        self._run_task: Optional[asyncio.Task] = None
        self.session = BootstrapSession(role=normalize_role(role))

    async def __aenter__(self) -> "ClientBootstrap":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self) -> BootstrapSession:
        """Run the sequence once; the returned session is CONNECTED or FAILED."""

        if self._closed:
            raise RuntimeError("bootstrap has been closed")
        if self.session.state is not BootstrapState.IDLE:
            raise RuntimeError("bootstrap already started")
        self._run_task = asyncio.current_task()

        self._log.log("Starting app initialization...")
        self.session.state = BootstrapState.ACQUIRING_MEDIA
        self._log.log("Starting audio session...")
        self._media_claimed = True
        try:
            await self._media.start()
        except Exception as exc:  # noqa: BLE001 - any media failure ends the sequence
            return self._fail(exc)
        self._log.log("Audio session started")

        try:
            token = await self._fetch_with_retry()
        except TokenFetchError as exc:
            return self._fail(exc)

        self.session.credential = token
        self.session.state = BootstrapState.CONNECTED
        self._log.log(f"Token fetched successfully: {token[:20]}...")
        return self.session

    async def close(self) -> None:
        """Tear down at any point; the media session is released exactly once."""

        if self._closed:
            return
        self._closed = True
        task = self._run_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
        if self._media_claimed:
            self._media_claimed = False
            try:
                await self._media.stop()
            except Exception as exc:  # noqa: BLE001 - teardown must not raise
                self._log.warn(f"Failed to stop audio session: {exc}")
            else:
                self._log.log("Audio session stopped")

    def view(self, log_tail: int = 20) -> ClientView:
        state = self.session.state
        logs = self._log.tail(log_tail)
        if state is BootstrapState.FAILED:
            return ClientView(kind="error", message=self.session.error, logs=logs)
        if state is BootstrapState.CONNECTED:
            return ClientView(kind="connected", token=self.session.credential, logs=logs)
        return ClientView(kind="loading", logs=logs)

    def mark_failed(self, message: str) -> None:
        """Record a failure raised after bootstrap, e.g. by the transport."""

        self.session.state = BootstrapState.FAILED
        self.session.error = message
        self._log.error(message)

    async def _fetch_with_retry(self) -> str:
        last_error = "unknown error"
        for attempt in range(1, self._max_attempts + 1):
            self.session.attempt = attempt
            self.session.state = BootstrapState.FETCHING_CREDENTIAL
            self._log.log(f"Attempt {attempt}/{self._max_attempts}: Fetching token")
            try:
                token = await self._fetch_once()
            except TokenFetchError as exc:
                last_error = str(exc)
                self._log.warn(f"Attempt {attempt} failed: {last_error}")
            else:
                self._log.log(f"Token fetched successfully on attempt {attempt}")
                return token

            if attempt < self._max_attempts:
                self._log.log(f"Retrying in {int(self._retry_delay * 1000)}ms...")
                await self._sleep(self._retry_delay)

        raise TokenFetchError(last_error)

    async def _fetch_once(self) -> str:
        try:
            response = await self._fetch_token()
        except Exception as exc:  # noqa: BLE001 - every fetch failure counts against the attempt budget
            raise TokenFetchError(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            raise TokenFetchError(f"HTTP {response.status_code}: {response.reason_phrase}")
        body = response.text
        if not body or len(body) < MIN_TOKEN_LENGTH:
            raise TokenFetchError("Invalid or empty token response")
        return body

    def _fail(self, exc: Exception) -> BootstrapSession:
        self.mark_failed(f"Initialization error: {exc}")
        return self.session
