"""Application-level exception types.

This module defines domain errors raised by the security endpoint and the
rate limiting dependency, enabling consistent error handling, logging, and
structured decision responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional to keep shapes consistent without forcing every
    raiser to fill all of them.
    """

    hint: str
    missing_fields: list[str]
    retry_after: int
    limit: int
    remaining: int
    error_type: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable reason, returned to clients as ``reason``.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request fields or limiter input fail validation."""


class RateLimitedAppError(AppError):
    """Raised when the admission policy denies a request."""

    @property
    def retry_after(self) -> int:
        """Seconds the caller should wait before retrying."""
        return int((self.details or {}).get("retry_after", 1))


class ProcessingAppError(AppError):
    """Raised when the downstream sanitization transform fails."""
