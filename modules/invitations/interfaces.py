"""
Invitations module interfaces.
"""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

from modules.auth.models import Identity
from modules.families.models import Membership, TenantContext

from .models import (
    AcceptedInvitation,
    CreateInvitationRequest,
    Invitation,
    InvitationPreview,
    InvitationStatus,
)


@runtime_checkable
class IInvitationRepository(Protocol):
    """
    Storage contract for invitations.

    State changes are conditional writes: each one names the status it
    expects to find and does nothing if the row has moved on.
    """

    def insert(
        self,
        family_id: str,
        inviting_membership_id: str,
        email: str,
        token: str,
        expires_at: datetime,
        message: Optional[str] = None,
    ) -> Invitation:
        """
        Insert a PENDING invitation.

        Raises:
            DuplicatePendingInvitationError: A PENDING row exists for (family, email)
            TokenCollisionError: The token is already taken
        """
        ...

    def get_by_token(self, token: str) -> Optional[Invitation]:
        ...

    def get(self, invitation_id: str, family_id: str) -> Optional[Invitation]:
        ...

    def find_pending(self, family_id: str, email: str) -> Optional[Invitation]:
        ...

    def list_for_family(
        self,
        family_id: str,
        status: Optional[InvitationStatus] = None,
    ) -> list[Invitation]:
        """Newest first."""
        ...

    def transition(
        self,
        invitation_id: str,
        family_id: str,
        expected: InvitationStatus,
        target: InvitationStatus,
        now: datetime,
    ) -> Optional[Invitation]:
        """
        Move an invitation from `expected` to `target`.

        Returns:
            The updated invitation, or None if its status was no longer `expected`

        Raises:
            InvariantViolationError: The state machine forbids the transition
        """
        ...

    def accept(
        self,
        invitation_id: str,
        user_id: str,
        now: datetime,
    ) -> tuple[Invitation, Membership]:
        """
        Create the CO membership and mark the invitation ACCEPTED, atomically.

        Raises:
            InvitationGoneError: No longer PENDING, or expired (then marked EXPIRED)
            AlreadyMemberError: The user is already in that family
            AlreadyInFamilyError: The user belongs to another family
        """
        ...

    def reissue(
        self,
        invitation_id: str,
        family_id: str,
        inviting_membership_id: str,
        token: str,
        expires_at: datetime,
        now: datetime,
    ) -> tuple[Invitation, Invitation]:
        """
        Revoke an invitation and insert its replacement, atomically.

        Returns:
            (revoked_original, new_invitation)

        Raises:
            InvitationNotFoundError: No such invitation in the family
            CannotResendAcceptedError: The original was accepted
            DuplicatePendingInvitationError: Another PENDING row exists
            TokenCollisionError: The new token is already taken
        """
        ...

    def expire_stale(self, now: datetime) -> int:
        """Mark overdue PENDING invitations EXPIRED; returns how many."""
        ...


@runtime_checkable
class IInvitationLedger(Protocol):
    """The invitation lifecycle as exposed to the API layer."""

    async def issue(
        self,
        context: TenantContext,
        request: CreateInvitationRequest,
    ) -> tuple[Invitation, str]:
        """Returns (invitation, invitation_url)."""
        ...

    async def list(
        self,
        context: TenantContext,
        status: Optional[InvitationStatus] = None,
    ) -> list[Invitation]:
        ...

    async def preview(self, token: str) -> InvitationPreview:
        ...

    async def accept(self, token: str, identity: Identity) -> AcceptedInvitation:
        ...

    async def resend(
        self,
        context: TenantContext,
        invitation_id: str,
    ) -> tuple[Invitation, Invitation, str]:
        """Returns (revoked_original, new_invitation, invitation_url)."""
        ...

    async def revoke(self, context: TenantContext, invitation_id: str) -> Invitation:
        ...

    async def expire_stale(self) -> int:
        ...
