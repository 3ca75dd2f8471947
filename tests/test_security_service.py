"""Unit tests for the security check service."""

from unittest.mock import Mock

import pytest

from app.core.errors import ProcessingAppError, ValidationAppError
from app.services.security_service import PASSED_REASON, SecurityService


@pytest.fixture
def service() -> SecurityService:
    return SecurityService()


def test_inspect_returns_sanitized_output(service: SecurityService) -> None:
    result = service.inspect(
        {"userId": "u1", "input": "hi<script>x()</script>", "category": "comment"}
    )

    assert result.blocked is False
    assert result.reason == PASSED_REASON
    assert result.sanitized_output == "hi"
    assert result.confidence == 0.95


def test_non_string_input_is_stringified(service: SecurityService) -> None:
    result = service.inspect({"userId": "u1", "input": 123, "category": "c"})
    assert result.sanitized_output == "123"


@pytest.mark.parametrize(
    ("body", "missing"),
    [
        ({"userId": "u1"}, ["input", "category"]),
        ({"input": "x", "category": "c"}, ["userId"]),
        ({"userId": "u1", "input": "", "category": "c"}, ["input"]),
        (None, ["userId", "input", "category"]),
        ([1, 2, 3], ["userId", "input", "category"]),
    ],
)
def test_missing_fields_raise_validation_error(service: SecurityService, body, missing) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        service.inspect(body)

    assert exc_info.value.code == "missing_required_fields"
    assert exc_info.value.message == "Missing required fields"
    assert exc_info.value.details == {"missing_fields": missing}


def test_sanitizer_failure_raises_processing_error() -> None:
    service = SecurityService(sanitizer=Mock(side_effect=RuntimeError("regex engine died")))

    with pytest.raises(ProcessingAppError) as exc_info:
        service.inspect({"userId": "u1", "input": "x", "category": "c"})

    assert exc_info.value.code == "processing_error"
    assert isinstance(exc_info.value.__cause__, RuntimeError)
