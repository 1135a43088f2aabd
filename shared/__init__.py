"""
Shared infrastructure for the CoParent backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- memory: In-memory storage backend for tests and local development
- exceptions: Base exception classes
- side_effects: Post-commit work with its own retry policy

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    CoParentError,
    NotFoundError,
    ValidationError,
    ConflictError,
    GoneError,
    AuthenticationError,
    AuthorizationError,
    RateLimitExceededError,
    ExternalServiceError,
    ServiceUnavailableError,
    InvariantViolationError,
)
from .models import RequestMeta, utcnow

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "CoParentError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "GoneError",
    "AuthenticationError",
    "AuthorizationError",
    "RateLimitExceededError",
    "ExternalServiceError",
    "ServiceUnavailableError",
    "InvariantViolationError",
    "RequestMeta",
    "utcnow",
]
