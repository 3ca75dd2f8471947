"""Per-key usage state storage for the in-memory limiter.

Locking model:
- A store-level lock guards the mapping only (lookup, insert, pin, evict).
  It is never held while a caller's policy runs.
- Each entry has its own lock. A caller checks out an entry, holds its lock
  for the read/refill/consume step, and releases it.
- Checked-out entries are pinned so the idle sweep cannot drop a state that
  is being mutated (which would let a second, divergent state appear).

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
"""

from __future__ import annotations

import copy
import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator

logger = logging.getLogger(__name__)


@dataclass
class TokenBucket:
    """Continuous-refill counter bounded by ``capacity``."""

    capacity: float
    refill_per_second: float
    tokens: float
    last_refill: float

    def refill(self, now: float) -> None:
        """Add the tokens earned since the last refill.

        A clock that appears to run backwards earns nothing, and
        ``last_refill`` is never moved back, so no interval is counted twice.
        """
        elapsed = now - self.last_refill
        if elapsed > 0:
            self.tokens += elapsed * self.refill_per_second
            self.last_refill = now
        self.tokens = min(self.capacity, max(0.0, self.tokens))

    def seconds_until_available(self, amount: float = 1.0) -> int:
        """Whole seconds until ``amount`` tokens will be present.

        Rounds up, then corrects for floating-point error so that waiting
        exactly the returned delay is always enough.
        """
        deficit = amount - self.tokens
        if deficit <= 0:
            return 0
        wait = math.ceil(deficit / self.refill_per_second)
        while self.tokens + wait * self.refill_per_second < amount:
            wait += 1
        return max(1, wait)


@dataclass
class UsageState:
    """All buckets tracked for one key, checked together."""

    buckets: list[TokenBucket]
    last_seen: float


@dataclass
class _Entry:
    state: UsageState
    lock: threading.Lock = field(default_factory=threading.Lock)
    pins: int = 0


class BucketStore:
    """Thread-safe mapping from rate limit key to usage state.

    Idle states are evicted lazily: at most once per ``sweep_interval_seconds``
    a checkout also removes every unpinned state untouched for
    ``idle_ttl_seconds``.
    """

    def __init__(
        self,
        *,
        idle_ttl_seconds: float = 300.0,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize an empty store.

        Args:
            idle_ttl_seconds: Idle time after which a key's state is dropped.
            sweep_interval_seconds: Minimum spacing between lazy sweeps
                (0 sweeps on every checkout).

        Raises:
            ValueError: If the TTL is not positive or the interval is negative.
        """
        if idle_ttl_seconds <= 0:
            raise ValueError("idle_ttl_seconds must be > 0")
        if sweep_interval_seconds < 0:
            raise ValueError("sweep_interval_seconds must be >= 0")

        self._idle_ttl = float(idle_ttl_seconds)
        self._sweep_interval = float(sweep_interval_seconds)
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._last_sweep: float | None = None
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    @property
    def idle_ttl_seconds(self) -> float:
        return self._idle_ttl

    def raise_idle_ttl(self, min_seconds: float) -> None:
        """Ensure the idle TTL is at least ``min_seconds``.

        The limiter uses this so an evicted key would have been back at full
        capacity anyway, making eviction invisible to callers.
        """
        with self._lock:
            if self._idle_ttl < min_seconds:
                logger.warning(
                    "rate_limit.idle_ttl_raised",
                    extra={"configured_s": self._idle_ttl, "effective_s": min_seconds},
                )
                self._idle_ttl = float(min_seconds)

    @contextmanager
    def checkout(
        self,
        key: str,
        now: float,
        factory: Callable[[float], UsageState],
    ) -> Iterator[UsageState]:
        """Exclusive access to the state for ``key``, creating it if needed.

        Args:
            key: Rate limit key.
            now: Current time, used for sweeping and ``last_seen``.
            factory: Builds a fresh state for an unseen key.

        Yields:
            The key's UsageState, locked against other checkouts of the same key.
        """
        with self._lock:
            self._maybe_sweep_locked(now)
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry(state=factory(now))
                self._entries[key] = entry
            entry.pins += 1

        try:
            with entry.lock:
                entry.state.last_seen = max(entry.state.last_seen, now)
                yield entry.state
        finally:
            with self._lock:
                entry.pins -= 1

    def snapshot(self, key: str) -> UsageState | None:
        """Return a copy of the state for ``key`` (None when unknown)."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        with entry.lock:
            return copy.deepcopy(entry.state)

    def sweep(self, now: float) -> int:
        """Evict idle, unpinned states.

        Returns:
            Number of keys removed.
        """
        with self._lock:
            return self._sweep_locked(now)

    def stats(self) -> dict[str, int | float]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "evictions": self._evictions,
                "idle_ttl_seconds": self._idle_ttl,
            }

    def _maybe_sweep_locked(self, now: float) -> None:
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep < self._sweep_interval:
            return
        self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        self._last_sweep = now
        cutoff = now - self._idle_ttl
        stale = [
            key
            for key, entry in self._entries.items()
            if entry.pins == 0 and entry.state.last_seen <= cutoff
        ]
        for key in stale:
            del self._entries[key]
        self._evictions += len(stale)

        if stale:
            logger.debug(
                "rate_limit.swept",
                extra={"evicted": len(stale), "entries": len(self._entries)},
            )
        return len(stale)
