"""In-memory token bucket rate limiter.

Each caller gets a bucket holding at most ``burst_capacity`` tokens that
refills continuously at ``sustained_rate_per_minute``. A request costs one
token. Optionally a second, one-second bucket caps how many requests fit in
any single second; a request is admitted only when every bucket has a token,
and then one token is taken from each.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: per-key locking via BucketStore, unrelated keys never wait on
  each other.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, Decision
from app.adapters.rate_limit.store import BucketStore, TokenBucket, UsageState
from app.core.logging import hash_identifier
from app.core.security_events import (
    RATE_LIMIT_BLOCK,
    SecurityEvent,
    SecurityEventSink,
    emit_security_event,
    log_security_event,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BucketPolicy:
    """Capacity and refill rate for one bucket tier."""

    name: str
    capacity: int
    refill_per_second: float

    @property
    def seconds_to_full(self) -> float:
        """Time an empty bucket needs to refill completely."""
        return self.capacity / self.refill_per_second

    def new_bucket(self, now: float) -> TokenBucket:
        return TokenBucket(
            capacity=float(self.capacity),
            refill_per_second=self.refill_per_second,
            tokens=float(self.capacity),
            last_refill=now,
        )


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Token bucket limiter keyed by caller identity.

    Important:
        ``admit`` never raises. Invalid keys and internal faults produce a
        ``validation_error`` decision without touching any state.
    """

    def __init__(
        self,
        *,
        burst_capacity: int,
        sustained_rate_per_minute: float,
        per_second_limit: int | None = None,
        store: BucketStore | None = None,
        clock: Callable[[], float] = time.monotonic,
        event_sink: SecurityEventSink | None = log_security_event,
    ) -> None:
        """Initialize the limiter.

        Args:
            burst_capacity: Maximum instantaneous allowance per key.
            sustained_rate_per_minute: Tokens refilled per minute per key.
            per_second_limit: Optional cap on requests within one second.
            store: State store to use; a private one is created when omitted.
            clock: Time source returning seconds (monotonic by default).
            event_sink: Receives a SecurityEvent for every denial.

        Raises:
            ValueError: If any rate parameter is invalid.
        """
        if burst_capacity < 1:
            raise ValueError("burst_capacity must be >= 1")
        if sustained_rate_per_minute <= 0:
            raise ValueError("sustained_rate_per_minute must be > 0")
        if per_second_limit is not None and per_second_limit < 1:
            raise ValueError("per_second_limit must be >= 1")

        policies = [
            BucketPolicy(
                name="sustained",
                capacity=burst_capacity,
                refill_per_second=sustained_rate_per_minute / 60.0,
            )
        ]
        if per_second_limit is not None:
            policies.append(
                BucketPolicy(
                    name="per_second",
                    capacity=per_second_limit,
                    refill_per_second=float(per_second_limit),
                )
            )

        self._policies = tuple(policies)
        self._limit = burst_capacity
        self._store = store if store is not None else BucketStore()
        self._clock = clock
        self._event_sink = event_sink

        self._store.raise_idle_ttl(max(p.seconds_to_full for p in self._policies))

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def policies(self) -> tuple[BucketPolicy, ...]:
        return self._policies

    @property
    def store(self) -> BucketStore:
        return self._store

    def _new_state(self, now: float) -> UsageState:
        return UsageState(
            buckets=[policy.new_bucket(now) for policy in self._policies],
            last_seen=now,
        )

    def _decide(self, state: UsageState, now: float) -> Decision:
        """Refill every bucket, then admit only if all of them have a token.

        Must be called with the key's entry lock held.
        """
        for bucket in state.buckets:
            bucket.refill(now)

        if all(bucket.tokens >= 1 for bucket in state.buckets):
            for bucket in state.buckets:
                bucket.tokens -= 1
            remaining = int(min(bucket.tokens for bucket in state.buckets))
            return Decision.allow(limit=self._limit, remaining=remaining)

        retry_after = max(bucket.seconds_until_available() for bucket in state.buckets)
        return Decision.deny(limit=self._limit, retry_after_seconds=retry_after)

    def admit(self, key: str, now: float | None = None) -> Decision:
        """Consume one unit for ``key`` if every bucket allows it.

        Args:
            key: Rate limit key (non-empty string).
            now: Timestamp in seconds on the limiter's clock; defaults to
                ``clock()``.

        Returns:
            Decision with retry delay when denied by policy.
        """
        try:
            if not isinstance(key, str) or not key:
                raise ValueError("key must be a non-empty string")

            current = self._clock() if now is None else float(now)
            if math.isnan(current):
                raise ValueError("clock returned NaN")

            with self._store.checkout(key, current, self._new_state) as state:
                decision = self._decide(state, current)
        except Exception as exc:  # noqa: BLE001 - fail closed, never raise
            logger.error(
                "rate_limit.check_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
                exc_info=True,
            )
            return Decision.validation_error(limit=self._limit)

        if not decision.admitted:
            logger.debug(
                "rate_limit.denied",
                extra={
                    "key_hash": hash_identifier(key),
                    "retry_after_s": decision.retry_after_seconds,
                },
            )
            emit_security_event(self._event_sink, SecurityEvent(type=RATE_LIMIT_BLOCK, key=key))

        return decision
