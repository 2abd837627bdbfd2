"""Client session: bootstrap, transport connect, host resolution, teardown."""
from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

import httpx

from ..core.config import ClientSettings
from .bootstrap import BootstrapState, ClientBootstrap, ClientView, HttpTokenFetcher, MediaSession
from .host_resolution import HostResolver, Participant, TrackRef
from .log_channel import LogChannel

ParticipantListener = Callable[[Sequence[Participant]], None]


class Transport(Protocol):
    """Real-time transport that authenticates with the issued token."""

    async def connect(self, url: str, token: str, on_participants: ParticipantListener) -> None: ...

    async def disconnect(self) -> None: ...


class LiveSession:
    def __init__(
        self,
        bootstrap: ClientBootstrap,
        transport: Transport,
        resolver: HostResolver,
        log: LogChannel,
        server_url: str,
    ) -> None:
        self._bootstrap = bootstrap
        self._transport = transport
        self._resolver = resolver
        self._log = log
        self._server_url = server_url.rstrip("/")
        self._connected = False
        self._closed = False

    async def __aenter__(self) -> "LiveSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def resolver(self) -> HostResolver:
        return self._resolver

    def view(self) -> ClientView:
        return self._bootstrap.view()

    async def start(self) -> ClientView:
        """Bootstrap, then attach to the transport when a token was obtained."""

        session = await self._bootstrap.run()
        if session.state is not BootstrapState.CONNECTED or self._closed:
            return self.view()

        self._log.log("Connecting to LiveKit server...")
        try:
            await self._transport.connect(self._server_url, session.credential or "", self._on_participants)
        except Exception as exc:  # noqa: BLE001 - surfaced to the user, not raised
            self._bootstrap.mark_failed(f"LiveKit connection error: {exc}")
            return self.view()
        self._connected = True
        return self.view()

    def visible_tracks(self, tracks: Sequence[TrackRef]) -> list[TrackRef]:
        return self._resolver.visible_tracks(tracks)

    async def disconnect(self) -> None:
        """Safe to call in any state and more than once."""

        if self._closed:
            return
        self._closed = True
        self._resolver.close()
        if self._connected:
            self._connected = False
            try:
                await self._transport.disconnect()
            except Exception as exc:  # noqa: BLE001 - teardown continues regardless
                self._log.warn(f"Transport disconnect failed: {exc}")
        await self._bootstrap.close()

    def _on_participants(self, participants: Sequence[Participant]) -> None:
        if self._closed:
            return
        self._bootstrap.session.host_identity = self._resolver.update(participants)


def build_live_session(
    settings: ClientSettings,
    media: MediaSession,
    transport: Transport,
    http_client: httpx.AsyncClient,
    log: Optional[LogChannel] = None,
) -> LiveSession:
    """Wire a session from client settings."""

    log = log or LogChannel()
    log.log(f"Backend URL: {settings.backend_url}")
    log.log(f"LiveKit URL: {settings.livekit_url}")
    fetcher = HttpTokenFetcher(http_client, settings.backend_url, settings.room_name, settings.identity, settings.role)
    bootstrap = ClientBootstrap(
        media,
        fetcher,
        log,
        role=settings.role,
        max_attempts=settings.max_attempts,
        retry_delay=settings.retry_delay,
    )
    resolver = HostResolver(settings.role, log)
    return LiveSession(bootstrap, transport, resolver, log, settings.livekit_url)
