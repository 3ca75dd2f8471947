"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins the environment before any app module reads settings.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_BURST_CAPACITY", "10")
os.environ.setdefault("APP_RATE_LIMIT_SUSTAINED_RATE_PER_MINUTE", "31")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.adapters.rate_limit.in_memory import InMemoryTokenBucketRateLimiter  # noqa: E402
from app.core.app_factory import create_app  # noqa: E402
from app.core.config import AppSettings, Settings  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable limiter clock starting at t=1000s."""
    return Mock(return_value=1000.0)


@pytest.fixture
def events() -> list:
    """Collected security events."""
    return []


@pytest.fixture
def limiter(clock: Mock, events: list) -> InMemoryTokenBucketRateLimiter:
    """Limiter with the default policy (10 burst, 31/min) and a fake clock."""
    return InMemoryTokenBucketRateLimiter(
        burst_capacity=10,
        sustained_rate_per_minute=31,
        clock=clock,
        event_sink=events.append,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(app=AppSettings(rate_limit_burst_capacity=10, rate_limit_sustained_rate_per_minute=31))


@pytest.fixture
def app(test_settings: Settings, limiter: InMemoryTokenBucketRateLimiter) -> FastAPI:
    return create_app(test_settings, rate_limiter=limiter, configure_logs=False)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)
