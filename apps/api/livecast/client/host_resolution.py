"""Host resolution and stream filtering for a connected session.

The host is inferred from the participant set rather than declared by the
server:

* viewers take the first remote participant in delivery order;
* publishers take the earliest joiner (self included), breaking ties on
  identity so repeated resolution over the same set is stable.

Once a host is found it is kept for the rest of the connection.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional, Sequence, Set

from .log_channel import LogChannel

Role = Literal["host", "viewer"]

PUBLISHER_ROLES = {"host", "publisher"}


def normalize_role(value: object) -> Role:
    return "host" if str(value).strip().lower() in PUBLISHER_ROLES else "viewer"


@dataclass(frozen=True)
class Participant:
    identity: str
    is_local: bool = False
    joined_at: Optional[float] = None


@dataclass(frozen=True)
class TrackRef:
    participant_identity: str
    source: str = "camera"
    sid: str = ""


def resolve_host(role: Role, participants: Sequence[Participant]) -> Optional[str]:
    """Pure resolution step; None means no host yet."""

    if role == "viewer":
        for participant in participants:
            if not participant.is_local:
                return participant.identity
        return None

    if not participants:
        return None
    earliest = min(
        participants,
        key=lambda p: (p.joined_at is None, p.joined_at if p.joined_at is not None else 0.0, p.identity),
    )
    return earliest.identity


class HostResolver:
    """Track the session host from participant-set notifications."""

    def __init__(self, role: str, log: LogChannel) -> None:
        self._role: Role = normalize_role(role)
        self._log = log
        self._lock = threading.Lock()
        self._host: Optional[str] = None
        self._last_remote_count = 0
        self._seen_remote: Set[str] = set()
        self._closed = False
        self._announced_waiting = False

    @property
    def role(self) -> Role:
        return self._role

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def waiting(self) -> bool:
        """True while a viewer has nobody to watch yet."""

        return self._role == "viewer" and self._host is None

    def update(self, participants: Iterable[Participant]) -> Optional[str]:
        """Feed the current participant set; returns the resolved host, if any."""

        snapshot = list(participants)
        with self._lock:
            if self._closed:
                return self._host
            if self._role == "host":
                self._report_joins(snapshot)
            if self._host is None:
                self._host = resolve_host(self._role, snapshot)
                if self._host is not None:
                    self._log.log(f"Host resolved: {self._host}")
                elif self._role == "viewer" and not self._announced_waiting:
                    self._announced_waiting = True
                    self._log.log("Waiting for host to join...")
            return self._host

    def should_render(self, track: TrackRef) -> bool:
        if self._role == "host":
            return True
        host = self._host
        return host is not None and track.participant_identity == host

    def visible_tracks(self, tracks: Iterable[TrackRef]) -> List[TrackRef]:
        return [track for track in tracks if self.should_render(track)]

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def _report_joins(self, participants: Sequence[Participant]) -> None:
        # Caller holds the lock.
        remote = [p for p in participants if not p.is_local]
        if len(remote) > self._last_remote_count:
            newcomers = [p.identity for p in remote if p.identity not in self._seen_remote]
            if not newcomers:
                newcomers = [remote[-1].identity]
            for identity in newcomers:
                self._log.log(f"Participant joined: {identity}")
        self._seen_remote.update(p.identity for p in remote)
        self._last_remote_count = len(remote)
