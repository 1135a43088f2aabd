"""
Invitations module data models.

The invitation state machine:

    PENDING -> ACCEPTED | EXPIRED | REVOKED
    EXPIRED -> REVOKED   (only when an expired invitation is resent)

Nothing ever returns to PENDING. A resend revokes the old row and
inserts a new one with a fresh token.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from modules.families.models import ChildSummary, Membership


class InvitationStatus(str, Enum):
    """Invitation lifecycle state."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


ALLOWED_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.PENDING: frozenset({
        InvitationStatus.ACCEPTED,
        InvitationStatus.EXPIRED,
        InvitationStatus.REVOKED,
    }),
    InvitationStatus.EXPIRED: frozenset({InvitationStatus.REVOKED}),
}


def can_transition(current: InvitationStatus, target: InvitationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class Invitation(BaseModel):
    """A time-boxed offer for one email address to join one family."""

    id: str = Field(..., description="Invitation ID (UUID)")
    family_id: str
    inviting_membership_id: str
    email: str = Field(..., description="Lowercased invitee address")
    token: str = Field(..., description="Unguessable URL-safe token")
    status: InvitationStatus = InvitationStatus.PENDING
    message: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    accepted_by_user_id: Optional[str] = None
    revoked_at: Optional[datetime] = None
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Expiry is derived from the clock, not from a sweep."""
        return now > self.expires_at

    def is_usable(self, now: datetime) -> bool:
        return self.status == InvitationStatus.PENDING and not self.is_expired(now)


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class CreateInvitationRequest(BaseModel):
    """Request to invite a co-parent by email."""

    email: EmailStr = Field(..., description="Invitee email address")
    message: Optional[str] = Field(None, max_length=500, description="Personal note")


class InvitationResponse(BaseModel):
    """Invitation as shown to the family admin. Never includes the token."""

    id: str
    family_id: str
    email: str
    status: InvitationStatus
    message: Optional[str] = None
    expires_at: datetime
    created_at: datetime
    accepted_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None

    @classmethod
    def from_invitation(cls, invitation: Invitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            family_id=invitation.family_id,
            email=invitation.email,
            status=invitation.status,
            message=invitation.message,
            expires_at=invitation.expires_at,
            created_at=invitation.created_at,
            accepted_at=invitation.accepted_at,
            revoked_at=invitation.revoked_at,
        )


class IssuedInvitationResponse(BaseModel):
    """Response to issue; the URL lets the admin share the link directly."""

    invitation: InvitationResponse
    invitation_url: str


class ResentInvitationResponse(BaseModel):
    """Response to resend: the revoked original and its replacement."""

    revoked: InvitationResponse
    invitation: InvitationResponse
    invitation_url: str


class InvitationListResponse(BaseModel):
    invitations: list[InvitationResponse]


class PreviewFamily(BaseModel):
    id: str
    name: str


class PreviewInviter(BaseModel):
    display_name: str


class PreviewInvitation(BaseModel):
    email: str
    status: InvitationStatus
    message: Optional[str] = None
    expires_at: datetime


class InvitationPreview(BaseModel):
    """
    What an unauthenticated visitor with the token may see.

    Limited to what is needed to decide whether to accept.
    """

    invitation: PreviewInvitation
    family: PreviewFamily
    children: list[ChildSummary] = Field(default_factory=list)
    invited_by: PreviewInviter


class AcceptedInvitation(BaseModel):
    """Result of a successful accept."""

    invitation: InvitationResponse
    membership: Membership
    family: PreviewFamily
