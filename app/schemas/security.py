"""Pydantic schemas for the security endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SecurityDecisionResponse(BaseModel):
    """Structured decision returned for every ``/security`` outcome.

    Success and every failure kind (missing fields, throttling, validation
    and processing faults) share this shape, so clients never have to parse
    an error page.
    """

    model_config = ConfigDict(populate_by_name=True)

    blocked: bool = Field(
        ..., description="True when the input was not processed."
    )
    reason: str = Field(
        ..., description="Human-readable explanation of the outcome."
    )
    sanitized_output: str | None = Field(
        default=None,
        alias="sanitizedOutput",
        description="Input with disallowed markup removed (null when blocked).",
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence in the outcome, from 0 to 1.",
    )

    @classmethod
    def blocked_with(cls, reason: str, confidence: float) -> "SecurityDecisionResponse":
        return cls(blocked=True, reason=reason, sanitized_output=None, confidence=confidence)
