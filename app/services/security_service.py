"""Security check service behind the admission gate.

Runs only after the rate limiter admitted the request. Validates the
required fields, applies the sanitizer and builds the decision response.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from app.core.errors import ProcessingAppError, ValidationAppError
from app.schemas.security import SecurityDecisionResponse
from app.utils.sanitizer import sanitize

logger = logging.getLogger(__name__)


REQUIRED_FIELDS: tuple[str, ...] = ("userId", "input", "category")

PASSED_REASON = "Input passed all security checks"
PASSED_CONFIDENCE = 0.95


def _missing_fields(payload: Mapping[str, Any]) -> list[str]:
    """Return required fields that are absent or empty (falsy)."""
    return [name for name in REQUIRED_FIELDS if not payload.get(name)]


class SecurityService:
    """Validate and sanitize one security check request."""

    def __init__(self, sanitizer: Callable[[str], str] = sanitize) -> None:
        self._sanitizer = sanitizer

    def inspect(self, body: Any) -> SecurityDecisionResponse:
        """Check a request body and return the sanitized result.

        Args:
            body: Parsed JSON body (non-objects count as empty).

        Returns:
            SecurityDecisionResponse with ``blocked=False``.

        Raises:
            ValidationAppError: If ``userId``, ``input`` or ``category`` is missing.
            ProcessingAppError: If the sanitizer fails.
        """
        payload: Mapping[str, Any] = body if isinstance(body, Mapping) else {}

        missing = _missing_fields(payload)
        if missing:
            logger.info(
                "security.missing_fields",
                extra={"missing_fields": missing},
            )
            raise ValidationAppError(
                code="missing_required_fields",
                message="Missing required fields",
                details={"missing_fields": missing},
            )

        try:
            sanitized = self._sanitizer(str(payload["input"]))
        except Exception as exc:
            logger.error(
                "security.sanitize_failed",
                extra={"error_type": type(exc).__name__},
                exc_info=True,
            )
            raise ProcessingAppError(
                code="processing_error",
                message="Processing error",
                details={"error_type": type(exc).__name__},
            ) from exc

        logger.info(
            "security.inspected",
            extra={
                "category": str(payload["category"])[:64],
                "input_chars": len(str(payload["input"])),
                "removed_chars": len(str(payload["input"])) - len(sanitized),
            },
        )

        return SecurityDecisionResponse(
            blocked=False,
            reason=PASSED_REASON,
            sanitized_output=sanitized,
            confidence=PASSED_CONFIDENCE,
        )
