"""Caller identity resolution for rate limiting.

The rate limit key is the caller-supplied ``userId`` when the request body
carries a usable one, otherwise the network origin of the connection.
Identity is claimed, not verified: a caller can pick any ``userId``.
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import Request

USER_ID_FIELD = "userId"
UNKNOWN_ORIGIN = "unknown"


def _claimed_identity(body: Any) -> str | None:
    """Extract a usable identifier from a parsed JSON body.

    Strings are taken verbatim when non-empty. Numbers are stringified
    (zero excluded). Everything else, booleans included, is ignored.
    """

    if not isinstance(body, Mapping):
        return None

    value = body.get(USER_ID_FIELD)
    if isinstance(value, bool) or not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


def resolve_rate_key(body: Any, client_host: str | None) -> str:
    """Derive the rate limit key for a request.

    Never raises. No case or whitespace normalization is applied, so
    ``"Alice"`` and ``"alice"`` are distinct callers.

    Args:
        body: Parsed JSON body (any JSON value, or None when absent/invalid).
        client_host: Observed network origin of the connection.

    Returns:
        The claimed identity if present, else the origin address.

    Examples:
        >>> resolve_rate_key({"userId": "u1"}, "10.0.0.1")
        'u1'
        >>> resolve_rate_key({"userId": ""}, "10.0.0.1")
        '10.0.0.1'
        >>> resolve_rate_key(None, None)
        'unknown'
    """

    claimed = _claimed_identity(body)
    if claimed is not None:
        return claimed
    return client_host or UNKNOWN_ORIGIN


def client_host_of(request: Request) -> str | None:
    """Return the network origin reported by the transport, if any."""

    return request.client.host if request.client else None
