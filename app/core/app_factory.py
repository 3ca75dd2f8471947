"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own settings and limiter.
"""

from __future__ import annotations

from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.api.routes import health_router, security_router
from app.core.config import Settings, settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter
from app.services.security_service import SecurityService
from app.utils.sanitizer import sanitize

CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Origin", "X-Requested-With", "Content-Type", "Accept"]


def create_app(
    app_settings: Settings | None = None,
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    sanitizer: Callable[[str], str] = sanitize,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the global settings.
        rate_limiter: Limiter to inject; built from settings when omitted.
        sanitizer: Text transform applied to admitted input.
        configure_logs: Whether to (re)configure root logging.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.
    """
    cfg = app_settings or settings

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log)

    app = FastAPI(
        title="Sanitize Guard API",
        description=(
            "Strips script markup from user-supplied text behind a per-caller "
            "token bucket rate limiter. Every outcome is a structured decision: "
            "blocked, reason, sanitizedOutput and confidence."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # State: one limiter (and store) per application instance
    app.state.settings = cfg
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else build_rate_limiter(cfg)
    app.state.security_service = SecurityService(sanitizer=sanitizer)

    # Middleware (last added runs first)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.app.cors_origins,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(security_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
