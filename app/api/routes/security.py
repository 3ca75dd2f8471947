from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from app.adapters.rate_limit.base import Decision
from app.core.rate_limit import enforce_rate_limit
from app.core.request_body import read_json_body
from app.schemas.security import SecurityDecisionResponse
from app.services.security_service import SecurityService

router = APIRouter(tags=["Security"])


def get_security_service(request: Request) -> SecurityService:
    """Return the service attached to the running application."""
    return request.app.state.security_service


_BLOCKED_RESPONSE = {"model": SecurityDecisionResponse}


@router.post(
    "/security",
    response_model=SecurityDecisionResponse,
    responses={400: _BLOCKED_RESPONSE, 429: _BLOCKED_RESPONSE},
)
async def check_input(
    body: Annotated[Any, Depends(read_json_body)],
    _decision: Annotated[Decision | None, Depends(enforce_rate_limit)],
    service: Annotated[SecurityService, Depends(get_security_service)],
) -> SecurityDecisionResponse:
    """Sanitize user input once the caller has been admitted.

    Expects a JSON body with ``userId``, ``input`` and ``category``. Rate
    limiting runs first, keyed on ``userId`` (or the client IP when absent).

    Returns:
        SecurityDecisionResponse with the sanitized input.

    Raises:
        RateLimitedAppError: 429 when the caller is over budget.
        ValidationAppError: 400 for missing fields or a failed limiter check.
        ProcessingAppError: 400 when sanitization fails.
    """
    return service.inspect(body)
