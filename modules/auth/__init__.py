"""
Authentication module.

Handles bearer token verification against the IdP's signing keys and
local user registration.

Public API:
- KeyCache: TTL cache of the IdP's JWKS
- TokenVerifier: raw token -> Identity
- IUserService / UserService: registration and identity -> user lookup
- Identity, User: core models
- Auth exceptions: MissingTokenError, ExpiredTokenError, etc.
"""

from .interfaces import ITokenVerifier, IUserRepository, IUserService
from .keys import KeyCache
from .verifier import TokenVerifier
from .models import Identity, User
from .exceptions import (
    MissingTokenError,
    ExpiredTokenError,
    MalformedTokenError,
    SignatureInvalidError,
    IdentityProviderUnavailableError,
    IdentityNotRegisteredError,
    EmailAlreadyRegisteredError,
)

__all__ = [
    # Interfaces
    "ITokenVerifier",
    "IUserRepository",
    "IUserService",
    # Implementations
    "KeyCache",
    "TokenVerifier",
    # Models
    "Identity",
    "User",
    # Exceptions
    "MissingTokenError",
    "ExpiredTokenError",
    "MalformedTokenError",
    "SignatureInvalidError",
    "IdentityProviderUnavailableError",
    "IdentityNotRegisteredError",
    "EmailAlreadyRegisteredError",
]
