"""
Authentication module exceptions.

These exceptions are raised by the auth module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ServiceUnavailableError,
)


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MalformedTokenError(AuthenticationError):
    """
    Raised when a token cannot be parsed or its claims are wrong.

    Covers bad structure, unknown key id, and issuer, audience or
    required-claim failures.
    """

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="INVALID_TOKEN")


class SignatureInvalidError(AuthenticationError):
    """Raised when the signature does not verify or the algorithm is not allowed."""

    def __init__(self, message: str = "Invalid token signature"):
        super().__init__(message, code="SIGNATURE_INVALID")


class IdentityProviderUnavailableError(ServiceUnavailableError):
    """Raised when the signing keys cannot be fetched."""

    def __init__(self, message: str = "Identity provider unavailable, try again later"):
        super().__init__(
            message,
            service="identity_provider",
            code="IDENTITY_PROVIDER_UNAVAILABLE",
        )


class IdentityNotRegisteredError(AuthorizationError):
    """Raised when a valid identity has no active local user yet."""

    def __init__(self):
        super().__init__(
            "Complete registration before using this endpoint",
            code="IDENTITY_NOT_REGISTERED",
        )


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when another active user already owns the email address."""

    def __init__(self):
        super().__init__(
            "This email address is already registered to another account",
            code="EMAIL_ALREADY_REGISTERED",
        )


class SubjectAlreadyRegisteredError(ConflictError):
    """Raised by storage when a concurrent registration created the user first."""

    def __init__(self):
        super().__init__(
            "A user is already registered for this identity",
            code="SUBJECT_ALREADY_REGISTERED",
        )
