"""Tests for per-key state storage, eviction, and concurrent admission."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from app.adapters.rate_limit.store import BucketStore, TokenBucket, UsageState


def _state(now: float) -> UsageState:
    return UsageState(
        buckets=[TokenBucket(capacity=10, refill_per_second=1.0, tokens=10, last_refill=now)],
        last_seen=now,
    )


def test_checkout_creates_state_once() -> None:
    store = BucketStore()
    created: list[float] = []

    def factory(now: float) -> UsageState:
        created.append(now)
        return _state(now)

    with store.checkout("k", 1.0, factory) as first:
        first.buckets[0].tokens = 3
    with store.checkout("k", 2.0, factory) as second:
        assert second.buckets[0].tokens == 3

    assert created == [1.0]
    assert len(store) == 1


def test_snapshot_is_a_copy() -> None:
    store = BucketStore()
    with store.checkout("k", 1.0, _state):
        pass

    snapshot = store.snapshot("k")
    assert snapshot is not None
    snapshot.buckets[0].tokens = 0

    assert store.snapshot("k").buckets[0].tokens == 10
    assert store.snapshot("missing") is None


def test_sweep_evicts_idle_keys_only() -> None:
    store = BucketStore(idle_ttl_seconds=300, sweep_interval_seconds=60)
    with store.checkout("old", 0.0, _state):
        pass
    with store.checkout("fresh", 250.0, _state):
        pass

    assert store.sweep(now=310.0) == 1
    assert "old" not in store
    assert "fresh" in store
    assert store.stats()["evictions"] == 1


def test_lazy_sweep_runs_on_checkout_after_interval() -> None:
    store = BucketStore(idle_ttl_seconds=300, sweep_interval_seconds=60)
    with store.checkout("old", 0.0, _state):
        pass

    # Within the sweep interval of the first checkout nothing is swept
    with store.checkout("other", 30.0, _state):
        pass
    assert "old" in store

    with store.checkout("other", 400.0, _state):
        pass
    assert "old" not in store
    assert "other" in store


def test_sweep_skips_pinned_entries() -> None:
    store = BucketStore(idle_ttl_seconds=10, sweep_interval_seconds=0)

    with store.checkout("busy", 0.0, _state):
        assert store.sweep(now=1000.0) == 0
        assert "busy" in store

    assert store.sweep(now=1000.0) == 1


def test_growth_is_bounded_under_many_transient_keys() -> None:
    store = BucketStore(idle_ttl_seconds=300, sweep_interval_seconds=60)
    limiter = InMemoryTokenBucketRateLimiter(
        burst_capacity=10, sustained_rate_per_minute=31, store=store, event_sink=None
    )

    for i in range(5000):
        limiter.admit(f"visitor-{i}", now=float(i))

    # Only keys seen within roughly one TTL plus one sweep interval survive
    assert len(store) <= 300 + 60 + 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"idle_ttl_seconds": 0},
        {"idle_ttl_seconds": 10, "sweep_interval_seconds": -1},
    ],
)
def test_invalid_store_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        BucketStore(**kwargs)


def test_concurrent_burst_on_fresh_key_admits_exactly_capacity() -> None:
    limiter = InMemoryTokenBucketRateLimiter(
        burst_capacity=10, sustained_rate_per_minute=31, event_sink=None
    )
    workers = 32
    barrier = threading.Barrier(workers)

    def _fire(_: int) -> bool:
        barrier.wait()
        return limiter.admit("same-user", now=1000.0).admitted

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(_fire, range(workers)))

    assert results.count(True) == 10
    assert results.count(False) == workers - 10
    assert len(limiter.store) == 1


def test_concurrent_keys_are_independent() -> None:
    limiter = InMemoryTokenBucketRateLimiter(
        burst_capacity=5, sustained_rate_per_minute=31, event_sink=None
    )
    keys = [f"user-{i}" for i in range(8)]
    calls = [key for key in keys for _ in range(8)]
    barrier = threading.Barrier(len(calls))

    def _fire(key: str) -> tuple[str, bool]:
        barrier.wait()
        return key, limiter.admit(key, now=1000.0).admitted

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        results = list(pool.map(_fire, calls))

    for key in keys:
        admitted = [ok for k, ok in results if k == key]
        assert admitted.count(True) == 5
