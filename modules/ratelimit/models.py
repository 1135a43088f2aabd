"""
Rate limiting data models.
"""

from enum import Enum

from pydantic import BaseModel, Field

from shared.config import Settings


class EndpointClass(str, Enum):
    """Groups of entry points sharing one counter policy."""

    REGISTRATION = "registration"
    FAMILY_CREATION = "family_creation"
    INVITATION_ISSUE = "invitation_issue"
    INVITATION_RESEND = "invitation_resend"
    INVITATION_ACCEPT = "invitation_accept"
    ADMIN_TRANSFER = "admin_transfer"
    INVITATION_PREVIEW = "invitation_preview"
    AUTH_FAILURE = "auth_failure"
    BASELINE = "baseline"


class RateLimitPolicy(BaseModel):
    """At most `limit` hits per `window_seconds` for one key."""

    limit: int = Field(..., ge=1)
    window_seconds: int = Field(..., ge=1)

    model_config = {"frozen": True}


def policies_from_settings(settings: Settings) -> dict[EndpointClass, RateLimitPolicy]:
    """Build the policy table from RATE_LIMIT_* settings."""
    return {
        EndpointClass.REGISTRATION: RateLimitPolicy(
            limit=settings.rate_limit_registration,
            window_seconds=settings.rate_limit_registration_window,
        ),
        EndpointClass.FAMILY_CREATION: RateLimitPolicy(
            limit=settings.rate_limit_family_creation,
            window_seconds=settings.rate_limit_family_creation_window,
        ),
        EndpointClass.INVITATION_ISSUE: RateLimitPolicy(
            limit=settings.rate_limit_invitation_issue,
            window_seconds=settings.rate_limit_invitation_issue_window,
        ),
        EndpointClass.INVITATION_RESEND: RateLimitPolicy(
            limit=settings.rate_limit_invitation_resend,
            window_seconds=settings.rate_limit_invitation_resend_window,
        ),
        EndpointClass.INVITATION_ACCEPT: RateLimitPolicy(
            limit=settings.rate_limit_invitation_accept,
            window_seconds=settings.rate_limit_invitation_accept_window,
        ),
        EndpointClass.ADMIN_TRANSFER: RateLimitPolicy(
            limit=settings.rate_limit_admin_transfer,
            window_seconds=settings.rate_limit_admin_transfer_window,
        ),
        EndpointClass.INVITATION_PREVIEW: RateLimitPolicy(
            limit=settings.rate_limit_invitation_preview,
            window_seconds=settings.rate_limit_invitation_preview_window,
        ),
        EndpointClass.AUTH_FAILURE: RateLimitPolicy(
            limit=settings.rate_limit_auth_failure,
            window_seconds=settings.rate_limit_auth_failure_window,
        ),
        EndpointClass.BASELINE: RateLimitPolicy(
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window,
        ),
    }
