"""
Base exception classes for the CoParent backend.

Each module defines its own exceptions that inherit from these bases.
The API layer maps each base class to one HTTP status, so a new module
error only has to pick the right parent to be surfaced correctly.
"""

from typing import Optional, Any


class CoParentError(Exception):
    """
    Base exception for all CoParent errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(CoParentError):
    """Resource not found."""

    pass


class ValidationError(CoParentError):
    """Input validation failed."""

    pass


class ConflictError(CoParentError):
    """The request conflicts with the current state of a resource."""

    pass


class GoneError(CoParentError):
    """The resource existed but can no longer be used."""

    pass


class AuthenticationError(CoParentError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(CoParentError):
    """Authorization failed (insufficient permissions)."""

    pass


class RateLimitExceededError(CoParentError):
    """
    A request counter tripped.

    The message is identical for every counter so callers cannot probe
    which limit they hit.
    """

    def __init__(self, retry_after: int):
        super().__init__(
            "Too many requests, please try again later",
            code="RATE_LIMITED",
        )
        self.retry_after = retry_after


class ExternalServiceError(CoParentError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class ServiceUnavailableError(ExternalServiceError):
    """A dependency is temporarily unavailable; the caller should retry later."""

    pass


class InvariantViolationError(CoParentError):
    """
    Raised when code attempts a transition the state machines forbid.

    This signals a programming error, never a user-correctable condition.
    """

    pass
