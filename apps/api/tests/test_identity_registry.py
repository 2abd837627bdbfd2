"""Tests for identity reservations."""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from livecast.services.identity_registry import IdentityRegistry


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_reserve_once_then_conflict():
    registry = IdentityRegistry()

    assert registry.reserve("alice") is True
    assert registry.reserve("alice") is False
    assert registry.reserve("bob") is True
    assert len(registry) == 2


def test_concurrent_reserve_same_identity_has_single_winner():
    registry = IdentityRegistry()
    workers = 16
    barrier = threading.Barrier(workers)

    def attempt() -> bool:
        barrier.wait()
        return registry.reserve("shared")

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda _: attempt(), range(workers)))

    assert results.count(True) == 1
    assert registry.reserve("shared") is False


def test_concurrent_reserve_distinct_identities_all_succeed():
    registry = IdentityRegistry()

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda i: registry.reserve(f"user-{i}"), range(50)))

    assert all(results)
    assert len(registry) == 50


def test_reservation_expires_after_hold_period():
    clock = FakeClock()
    registry = IdentityRegistry(hold_seconds=600, time_fn=clock)

    assert registry.reserve("alice") is True
    clock.now += 599
    assert registry.reserve("alice") is False
    assert registry.is_reserved("alice")

    clock.now += 1
    assert not registry.is_reserved("alice")
    assert registry.reserve("alice") is True


def test_permanent_hold_never_expires():
    clock = FakeClock()
    registry = IdentityRegistry(hold_seconds=None, time_fn=clock)

    registry.reserve("alice")
    clock.now += 10**9

    assert registry.reserve("alice") is False


def test_release_frees_identity_and_is_idempotent():
    registry = IdentityRegistry()
    registry.reserve("alice")

    registry.release("alice")
    registry.release("alice")

    assert registry.reserve("alice") is True
