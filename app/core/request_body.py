"""Lenient JSON body parsing shared by the limiter and the endpoint."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request

logger = logging.getLogger(__name__)


async def read_json_body(request: Request) -> Any:
    """Parse the request body as JSON, caching the result on ``request.state``.

    An empty or malformed body yields None instead of an error: identity
    then falls back to the network origin and field validation reports
    the missing fields.

    Args:
        request: Incoming request.

    Returns:
        The decoded JSON value, or None.
    """

    if hasattr(request.state, "json_body"):
        return request.state.json_body

    raw = await request.body()
    body: Any = None
    if raw:
        try:
            body = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.info(
                "request_body.invalid_json",
                extra={"content_length": len(raw)},
            )

    request.state.json_body = body
    return body
