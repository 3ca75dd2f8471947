"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
policy and its storage can change without touching the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

DecisionReason = Literal["admitted", "rate_limited", "validation_error"]

REASON_ADMITTED: DecisionReason = "admitted"
REASON_RATE_LIMITED: DecisionReason = "rate_limited"
REASON_VALIDATION_ERROR: DecisionReason = "validation_error"


@dataclass(frozen=True)
class Decision:
    """Outcome of one admission check.

    Attributes:
        admitted: Whether the request may proceed.
        reason: Machine-readable reason code.
        limit: Configured burst capacity for the caller.
        remaining: Whole units left after this decision (0 when denied).
        retry_after_seconds: Seconds until a retry will be admitted. Set only
            when the policy denied the request.
    """

    admitted: bool
    reason: DecisionReason
    limit: int
    remaining: int
    retry_after_seconds: int | None = None

    @classmethod
    def allow(cls, *, limit: int, remaining: int) -> "Decision":
        return cls(admitted=True, reason=REASON_ADMITTED, limit=limit, remaining=remaining)

    @classmethod
    def deny(cls, *, limit: int, retry_after_seconds: int) -> "Decision":
        return cls(
            admitted=False,
            reason=REASON_RATE_LIMITED,
            limit=limit,
            remaining=0,
            retry_after_seconds=retry_after_seconds,
        )

    @classmethod
    def validation_error(cls, *, limit: int) -> "Decision":
        """Fail-closed decision used when the check itself could not run."""
        return cls(admitted=False, reason=REASON_VALIDATION_ERROR, limit=limit, remaining=0)


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def admit(self, key: str, now: float | None = None) -> Decision:
        """Decide whether one request for ``key`` may proceed.

        Implementations must not raise: internal faults are reported as a
        ``validation_error`` decision.

        Args:
            key: Rate limit key (claimed user id or network origin).
            now: Timestamp in the limiter clock's units (seconds). Defaults
                to the limiter's own clock.

        Returns:
            Decision describing the outcome.
        """
        raise NotImplementedError
