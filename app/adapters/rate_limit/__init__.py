"""Rate limiting adapters.

This package provides a small abstraction layer: the HTTP layer depends on
``AbstractRateLimiter`` and receives a ``Decision``, while the token bucket
policy and its per-key state store live behind it.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, Decision
from app.adapters.rate_limit.in_memory import BucketPolicy, InMemoryTokenBucketRateLimiter
from app.adapters.rate_limit.store import BucketStore

__all__ = [
    "AbstractRateLimiter",
    "BucketPolicy",
    "BucketStore",
    "Decision",
    "InMemoryTokenBucketRateLimiter",
]
