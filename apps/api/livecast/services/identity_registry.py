"""In-memory identity reservations for issued tokens."""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional


class IdentityRegistry:
    """At most one live reservation per identity, with TTL eviction.

    ``hold_seconds=None`` keeps reservations for the lifetime of the process.
    """

    def __init__(self, hold_seconds: Optional[float] = 600, time_fn: Callable[[], float] = time.monotonic) -> None:
        self._hold = hold_seconds
        self._time = time_fn
        self._lock = threading.Lock()
        self._expires: Dict[str, float] = {}

    def reserve(self, identity: str) -> bool:
        """Reserve `identity`; False when a live reservation already exists."""

        now = self._time()
        with self._lock:
            self._evict_expired(now)
            if identity in self._expires:
                return False
            self._expires[identity] = now + self._hold if self._hold is not None else float("inf")
            return True

    def release(self, identity: str) -> None:
        with self._lock:
            self._expires.pop(identity, None)

    def is_reserved(self, identity: str) -> bool:
        now = self._time()
        with self._lock:
            expires_at = self._expires.get(identity)
            return expires_at is not None and expires_at > now

    def __len__(self) -> int:
        now = self._time()
        with self._lock:
            self._evict_expired(now)
            return len(self._expires)

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock.
        expired = [key for key, expires_at in self._expires.items() if expires_at <= now]
        for key in expired:
            self._expires.pop(key, None)
