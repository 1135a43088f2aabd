"""
Error response models.

Standardized error responses for the API. Every handled error is
rendered through ErrorResponse so clients can branch on `error` (the
machine-readable code).
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Machine-readable error code")
    message: str
    details: Optional[dict[str, Any]] = None


class ValidationErrorResponse(BaseModel):
    """Validation error response format."""

    error: str = "VALIDATION_ERROR"
    message: str = "Request validation failed"
    details: dict[str, list[dict[str, Any]]]
