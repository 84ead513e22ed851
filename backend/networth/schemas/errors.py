# backend/networth/schemas/errors.py
"""
Pydantic schemas for error responses.

Every error leaves the API in the same envelope; the global exception
handlers in main.py build these.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Standard error response format."""

    error: str = Field(
        ...,
        description="Error type/code (e.g., 'ConfigurationError')"
    )
    message: str = Field(
        ...,
        description="Human-readable error message"
    )
    details: dict | None = Field(
        default=None,
        description="Additional error context (optional)"
    )


class ValidationErrorDetail(BaseModel):
    """Request body / query validation failures (422)."""

    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="List of validation errors"
    )
