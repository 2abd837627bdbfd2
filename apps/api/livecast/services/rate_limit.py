"""Per-client token bucket for the token endpoints."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import status

from .issuance import TokenRequestError


class RateLimitedError(TokenRequestError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self) -> None:
        super().__init__("Too many token requests, please try again later")


@dataclass
class TokenBucket:
    capacity: float
    refill_rate: float
    tokens: float
    last_refill: float


class RateLimiter:
    """Each request consumes one token; buckets refill continuously.

    ``per_minute=0`` disables limiting.
    """

    def __init__(self, per_minute: int, time_fn: Callable[[], float] = time.monotonic) -> None:
        self._per_minute = per_minute
        self._time = time_fn
        self._lock = threading.Lock()
        self._buckets: Dict[str, TokenBucket] = {}

    @property
    def enabled(self) -> bool:
        return self._per_minute > 0

    def allow(self, key: str) -> bool:
        if not self.enabled:
            return True
        now = self._time()
        capacity = float(self._per_minute)
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(capacity=capacity, refill_rate=capacity / 60.0, tokens=capacity, last_refill=now)
                self._buckets[key] = bucket
            elapsed = max(0.0, now - bucket.last_refill)
            bucket.tokens = min(bucket.capacity, bucket.tokens + elapsed * bucket.refill_rate)
            bucket.last_refill = now
            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return True
            return False

    def check(self, key: str) -> None:
        """Raise `RateLimitedError` when `key` has no tokens left."""

        if not self.allow(key):
            raise RateLimitedError()
