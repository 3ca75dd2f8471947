"""Structured security events emitted by the admission guard.

Events are facts, not decisions: the limiter hands them to a sink after the
decision has been made, and a failing sink is logged and otherwise ignored.
The default sink writes one WARNING record per event to the
``app.security`` logger, which ``configure_logging`` renders as JSON.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal

from app.core.logging import utc_timestamp

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("app.security")


SecurityEventType = Literal["RATE_LIMIT_BLOCK"]

RATE_LIMIT_BLOCK: SecurityEventType = "RATE_LIMIT_BLOCK"


@dataclass(frozen=True)
class SecurityEvent:
    """A security-relevant fact about one request.

    Attributes:
        type: Event kind (currently only ``RATE_LIMIT_BLOCK``).
        key: Rate limit key the event concerns.
        timestamp: ISO-8601 UTC time the event was produced.
    """

    type: SecurityEventType
    key: str
    timestamp: str = field(default_factory=utc_timestamp)

    def as_dict(self) -> dict[str, str]:
        return {"type": self.type, "key": self.key, "timestamp": self.timestamp}


SecurityEventSink = Callable[[SecurityEvent], None]


def log_security_event(event: SecurityEvent) -> None:
    """Default sink: write the event to the security logger."""

    security_logger.warning(
        "security_event",
        extra={
            "event_type": event.type,
            "key": event.key,
            "event_timestamp": event.timestamp,
        },
    )


def emit_security_event(sink: SecurityEventSink | None, event: SecurityEvent) -> None:
    """Deliver an event to ``sink`` without letting sink faults escape.

    Args:
        sink: Callable receiving the event, or None to drop it.
        event: The event to deliver.
    """

    if sink is None:
        return
    try:
        sink(event)
    except Exception as exc:  # noqa: BLE001 - delivery is fire-and-forget
        logger.error(
            "security_event.delivery_failed",
            extra={
                "event_type": event.type,
                "error_type": type(exc).__name__,
            },
        )
