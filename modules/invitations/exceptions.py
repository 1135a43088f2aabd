"""
Invitations module exceptions.

Every user-correctable condition has its own code so the frontend can
show a specific message. None of them are retried automatically.
"""

from typing import Optional

from shared.exceptions import (
    ConflictError,
    CoParentError,
    ExternalServiceError,
    GoneError,
    NotFoundError,
    ValidationError,
)


class DuplicatePendingInvitationError(ConflictError):
    """Raised when a PENDING invitation already exists for the family and email."""

    def __init__(self):
        super().__init__(
            "A pending invitation already exists for this email",
            code="DUPLICATE_PENDING_INVITATION",
        )


class SelfInvitationRejectedError(ConflictError):
    """Raised when an admin invites their own email address."""

    def __init__(self):
        super().__init__(
            "You cannot invite yourself",
            code="SELF_INVITATION_REJECTED",
        )


class AlreadyMemberError(ConflictError):
    """Raised when the invitee already belongs to the family."""

    def __init__(self):
        super().__init__(
            "This person is already a member of this family",
            code="ALREADY_MEMBER",
        )


class EmailMismatchError(ConflictError):
    """Raised when the accepting user's email differs from the invited one."""

    def __init__(self):
        super().__init__(
            "This invitation was sent to a different email address",
            code="EMAIL_MISMATCH",
        )


class InvitationNotFoundError(NotFoundError):
    """Raised when a token or invitation id does not match anything."""

    def __init__(self):
        super().__init__(
            "Invitation not found",
            code="INVITATION_NOT_FOUND",
        )


class InvitationGoneError(GoneError):
    """
    Raised when an invitation exists but can no longer be used.

    details["reason"] is "status" (accepted, revoked or expired by a prior
    observation) or "expired" (past its expiry time).
    """

    def __init__(self, reason: str, status: Optional[str] = None):
        details = {"reason": reason}
        if status:
            details["status"] = status
        super().__init__(
            "This invitation is no longer valid",
            code="INVITATION_GONE",
            details=details,
        )
        self.reason = reason


class CannotResendAcceptedError(ValidationError):
    """Raised when resend is requested for an accepted invitation."""

    def __init__(self):
        super().__init__(
            "An accepted invitation cannot be resent",
            code="CANNOT_RESEND_ACCEPTED",
        )


class InvitationDeliveryError(ExternalServiceError):
    """Raised when the invitation email could not be delivered; the invitation was revoked."""

    def __init__(self):
        super().__init__(
            "The invitation email could not be delivered, please try again",
            service="email",
            code="INVITATION_DELIVERY_FAILED",
        )


class TokenCollisionError(CoParentError):
    """Raised by storage when a generated token already exists. Internal only."""

    def __init__(self):
        super().__init__("Invitation token collision", code="TOKEN_COLLISION")
