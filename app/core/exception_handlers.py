"""Global exception handlers for consistent decision responses.

Every failure on the security endpoint is answered with the same JSON shape
as a success (``blocked``, ``reason``, ``sanitizedOutput``, ``confidence``),
so clients never see an unstructured error page.

Design:
- AppError subclasses → 400 or 429, reason taken from the error message
- Unexpected Exception → generic 500 (safety net, nothing leaked)
- Correlation id travels in the X-Request-ID response header
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import AppError, ProcessingAppError, RateLimitedAppError, ValidationAppError
from app.core.logging import get_request_id
from app.schemas.security import SecurityDecisionResponse

logger = logging.getLogger(__name__)


# Confidence reported for each error code; falls back to the class default.
CONFIDENCE_BY_CODE: dict[str, float] = {
    "missing_required_fields": 0.9,
    "validation_error": 0.8,
    "rate_limit_exceeded": 0.99,
    "processing_error": 0.7,
}

_CONFIDENCE_BY_TYPE: tuple[tuple[type[AppError], float], ...] = (
    (RateLimitedAppError, 0.99),
    (ValidationAppError, 0.8),
    (ProcessingAppError, 0.7),
)

INTERNAL_ERROR_REASON = "Internal server error"


def _status_code_for(exc: AppError) -> int:
    if isinstance(exc, RateLimitedAppError):
        return 429
    return 400


def _confidence_for(exc: AppError) -> float:
    if exc.code in CONFIDENCE_BY_CODE:
        return CONFIDENCE_BY_CODE[exc.code]
    for error_type, confidence in _CONFIDENCE_BY_TYPE:
        if isinstance(exc, error_type):
            return confidence
    return 0.5


def _rate_limit_headers(request: Request, exc: RateLimitedAppError) -> dict[str, str]:
    headers = {"Retry-After": str(exc.retry_after)}

    app_settings = getattr(request.app.state, "settings", None)
    if app_settings is not None and app_settings.app.rate_limit_include_headers:
        details = exc.details or {}
        if "limit" in details:
            headers["X-RateLimit-Limit"] = str(details["limit"])
        headers["X-RateLimit-Remaining"] = str(details.get("remaining", 0))
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the structured decision body.

    Routes domain errors to HTTP status codes:
    - ValidationAppError → 400 Bad Request
    - ProcessingAppError → 400 Bad Request
    - RateLimitedAppError → 429 Too Many Requests, with Retry-After

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the decision body and status code.
    """
    status_code = _status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    headers = _rate_limit_headers(request, exc) if isinstance(exc, RateLimitedAppError) else None
    body = SecurityDecisionResponse.blocked_with(exc.message, _confidence_for(exc))

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True),
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs details for debugging while returning a generic decision body.
    No stack traces or exception text reach the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with status 500.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    body = SecurityDecisionResponse.blocked_with(INTERNAL_ERROR_REASON, 0.0)
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with a FastAPI app.

    Order matters: specific handlers registered before general fallback.

    Example:
        >>> from fastapi import FastAPI
        >>> from app.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
