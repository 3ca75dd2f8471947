"""Rate limiting dependency for FastAPI routes.

This module wires the identity resolver and the rate limiter into the HTTP
layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Injected state: the limiter (and its store) is built by ``create_app`` and
  lives on ``app.state``; there is no module-level limiter.
- Fail closed: a resolver or limiter fault blocks the request with a
  validation error instead of letting it through.

Rate limiting strategy:
- Token bucket per caller (burst capacity plus sustained refill rate).
- Caller is the claimed ``userId`` from the body, else the client IP.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import Depends, Request

from app.adapters.rate_limit.base import REASON_VALIDATION_ERROR, AbstractRateLimiter, Decision
from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter
from app.adapters.rate_limit.store import BucketStore
from app.core.config import Settings
from app.core.errors import RateLimitedAppError, ValidationAppError
from app.core.identity import client_host_of, resolve_rate_key
from app.core.logging import hash_identifier
from app.core.request_body import read_json_body
from app.core.security_events import SecurityEventSink, log_security_event

logger = logging.getLogger(__name__)


def build_rate_limiter(
    app_settings: Settings,
    *,
    event_sink: SecurityEventSink | None = log_security_event,
) -> AbstractRateLimiter:
    """Create the limiter and its store from configuration.

    Args:
        app_settings: Resolved settings.
        event_sink: Receiver for security events (defaults to the security logger).

    Returns:
        Configured limiter instance.
    """

    cfg = app_settings.app
    store = BucketStore(
        idle_ttl_seconds=cfg.rate_limit_idle_ttl_seconds,
        sweep_interval_seconds=cfg.rate_limit_sweep_interval_seconds,
    )
    return InMemoryTokenBucketRateLimiter(
        burst_capacity=cfg.rate_limit_burst_capacity,
        sustained_rate_per_minute=cfg.rate_limit_sustained_rate_per_minute,
        per_second_limit=cfg.rate_limit_per_second_limit,
        store=store,
        event_sink=event_sink,
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter attached to the running application."""

    return request.app.state.rate_limiter


def _admit(limiter: AbstractRateLimiter, body: Any, request: Request) -> tuple[str | None, Decision]:
    """Resolve the caller and run the admission check without raising."""

    try:
        key = resolve_rate_key(body, client_host_of(request))
    except Exception as exc:  # noqa: BLE001 - fail closed
        logger.error(
            "rate_limit.identity_failed",
            extra={"error_type": type(exc).__name__},
            exc_info=True,
        )
        return None, Decision.validation_error(limit=0)

    return key, limiter.admit(key)


async def enforce_rate_limit(
    request: Request,
    body: Annotated[Any, Depends(read_json_body)],
) -> Decision | None:
    """FastAPI dependency enforcing rate limits.

    When enabled, consumes 1 unit from the caller's budget.

    Args:
        request: FastAPI request.
        body: Parsed JSON body (shared with the endpoint).

    Returns:
        The admitting Decision, or None when rate limiting is disabled.

    Raises:
        RateLimitedAppError: When the caller is over budget (HTTP 429).
        ValidationAppError: When the check itself failed (HTTP 400).
    """

    app_settings: Settings = request.app.state.settings
    if not app_settings.app.rate_limit_enabled:
        return None

    limiter = get_rate_limiter(request)
    key, decision = _admit(limiter, body, request)
    key_hash = hash_identifier(key) if key else None

    if decision.admitted:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
            },
        )
        return decision

    if decision.reason == REASON_VALIDATION_ERROR:
        raise ValidationAppError(
            code="validation_error",
            message="Validation error",
            details={"hint": "Rate limit check could not be evaluated"},
        )

    retry_after = decision.retry_after_seconds or 1
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitedAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded",
        details={
            "retry_after": retry_after,
            "limit": decision.limit,
            "remaining": decision.remaining,
        },
    )
