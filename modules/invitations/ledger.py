"""
The invitation lifecycle.

InvitationLedger owns every state change of an invitation: issue,
preview, accept, resend, revoke and the optional expiry sweep. Each state
change is a single conditional repository call; the checks that run
before it exist to produce specific error codes, not to guarantee safety.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from modules.auth.exceptions import IdentityNotRegisteredError
from modules.auth.interfaces import IUserRepository
from modules.auth.models import Identity
from modules.auth.service import normalize_email
from modules.families.exceptions import AlreadyInFamilyError
from modules.families.interfaces import IFamilyRepository, IRoleSyncScheduler
from modules.families.models import ChildSummary, Role, TenantContext
from modules.families.tenancy import RoleGate
from modules.notifications.exceptions import EmailDeliveryError
from modules.notifications.interfaces import INotificationDispatcher
from modules.notifications.models import InvitationEmail
from shared.exceptions import InvariantViolationError
from shared.models import utcnow

from .exceptions import (
    AlreadyMemberError,
    CannotResendAcceptedError,
    DuplicatePendingInvitationError,
    EmailMismatchError,
    InvitationDeliveryError,
    InvitationGoneError,
    InvitationNotFoundError,
    SelfInvitationRejectedError,
    TokenCollisionError,
)
from .interfaces import IInvitationLedger, IInvitationRepository
from .models import (
    AcceptedInvitation,
    CreateInvitationRequest,
    Invitation,
    InvitationPreview,
    InvitationResponse,
    InvitationStatus,
    PreviewFamily,
    PreviewInvitation,
    PreviewInviter,
)
from .tokens import build_invitation_url, expiry_from, generate_token, is_well_formed

logger = logging.getLogger(__name__)

MAX_TOKEN_ATTEMPTS = 3


class InvitationLedger(IInvitationLedger):
    """Implements IInvitationLedger."""

    def __init__(
        self,
        invitations: IInvitationRepository,
        families: IFamilyRepository,
        users: IUserRepository,
        notifications: INotificationDispatcher,
        role_sync: IRoleSyncScheduler,
        frontend_url: str,
        ttl_days: int = 7,
        token_factory: Callable[[], str] = generate_token,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._invitations = invitations
        self._families = families
        self._users = users
        self._notifications = notifications
        self._role_sync = role_sync
        self._frontend_url = frontend_url
        self._ttl_days = ttl_days
        self._new_token = token_factory
        self._now = clock

    def invitation_url(self, invitation: Invitation) -> str:
        return build_invitation_url(self._frontend_url, invitation.token)

    # -------------------------------------------------------------------------
    # Admin operations
    # -------------------------------------------------------------------------

    async def issue(
        self,
        context: TenantContext,
        request: CreateInvitationRequest,
    ) -> tuple[Invitation, str]:
        """
        Invite an email address to the caller's family.

        The email is sent before returning. If it cannot be delivered the
        new invitation is revoked and InvitationDeliveryError is raised:
        nobody would ever learn about it otherwise.

        Raises:
            InsufficientRoleError: Caller is not ADMIN
            SelfInvitationRejectedError: Caller invited their own address
            DuplicatePendingInvitationError: A usable invitation already exists
            AlreadyMemberError: The address belongs to a family member
            InvitationDeliveryError: The email could not be delivered
        """
        RoleGate.require_role(context.membership, Role.ADMIN)
        family_id = context.family_id
        email = normalize_email(request.email)
        now = self._now()

        if email == context.user.email:
            raise SelfInvitationRejectedError()

        existing = self._invitations.find_pending(family_id, email)
        if existing and existing.is_expired(now):
            self._invitations.transition(
                existing.id, family_id, InvitationStatus.PENDING, InvitationStatus.EXPIRED, now
            )
            existing = None
        if existing:
            raise DuplicatePendingInvitationError()

        invitee = self._users.get_active_by_email(email)
        if invitee and self._families.get_membership(invitee.id, family_id):
            raise AlreadyMemberError()

        invitation = self._with_fresh_token(
            lambda token: self._invitations.insert(
                family_id,
                context.membership.id,
                email,
                token,
                expiry_from(now, self._ttl_days),
                request.message,
            )
        )
        logger.info(f"Issued invitation {invitation.id} for family {family_id}")

        await self._deliver_or_revoke(invitation, context)
        return invitation, self.invitation_url(invitation)

    async def list(
        self,
        context: TenantContext,
        status: Optional[InvitationStatus] = None,
    ) -> list[Invitation]:
        RoleGate.require_role(context.membership, Role.ADMIN)
        return self._invitations.list_for_family(context.family_id, status)

    async def resend(
        self,
        context: TenantContext,
        invitation_id: str,
    ) -> tuple[Invitation, Invitation, str]:
        """
        Revoke an invitation and issue a replacement with a new token.

        The old link stops working for good; the new one gets a fresh expiry.

        Raises:
            InsufficientRoleError: Caller is not ADMIN
            InvitationNotFoundError: No such invitation in the family
            CannotResendAcceptedError: The invitation was accepted
            DuplicatePendingInvitationError: Another usable invitation exists
            InvitationDeliveryError: The email could not be delivered
        """
        RoleGate.require_role(context.membership, Role.ADMIN)
        family_id = context.family_id

        original = self._invitations.get(invitation_id, family_id)
        if original is None:
            raise InvitationNotFoundError()
        if original.status == InvitationStatus.ACCEPTED:
            raise CannotResendAcceptedError()

        now = self._now()
        revoked, replacement = self._with_fresh_token(
            lambda token: self._invitations.reissue(
                original.id,
                family_id,
                context.membership.id,
                token,
                expiry_from(now, self._ttl_days),
                now,
            )
        )
        logger.info(f"Invitation {revoked.id} revoked and reissued as {replacement.id}")

        await self._deliver_or_revoke(replacement, context)
        return revoked, replacement, self.invitation_url(replacement)

    async def revoke(self, context: TenantContext, invitation_id: str) -> Invitation:
        """
        Cancel a PENDING invitation.

        Raises:
            InsufficientRoleError: Caller is not ADMIN
            InvitationNotFoundError: No such invitation in the family
            InvitationGoneError: The invitation is no longer PENDING
        """
        RoleGate.require_role(context.membership, Role.ADMIN)
        invitation = self._invitations.get(invitation_id, context.family_id)
        if invitation is None:
            raise InvitationNotFoundError()

        revoked = self._invitations.transition(
            invitation.id,
            context.family_id,
            InvitationStatus.PENDING,
            InvitationStatus.REVOKED,
            self._now(),
        )
        if revoked is None:
            current = self._invitations.get(invitation_id, context.family_id) or invitation
            raise InvitationGoneError("status", current.status.value)
        logger.info(f"Invitation {revoked.id} revoked")
        return revoked

    # -------------------------------------------------------------------------
    # Token holder operations
    # -------------------------------------------------------------------------

    async def preview(self, token: str) -> InvitationPreview:
        """
        Show what an invitation offers, without authentication.

        Raises:
            InvitationNotFoundError: Unknown or malformed token
            InvitationGoneError: Not PENDING, or past its expiry
        """
        invitation = self._usable_invitation(token, self._now())

        family = self._families.get_family(invitation.family_id)
        if family is None:
            raise InvitationNotFoundError()
        children = self._families.list_children(invitation.family_id)

        return InvitationPreview(
            invitation=PreviewInvitation(
                email=invitation.email,
                status=invitation.status,
                message=invitation.message,
                expires_at=invitation.expires_at,
            ),
            family=PreviewFamily(id=family.id, name=family.name),
            children=[ChildSummary.from_child(child) for child in children],
            invited_by=PreviewInviter(display_name=self._inviter_name(invitation)),
        )

    async def accept(self, token: str, identity: Identity) -> AcceptedInvitation:
        """
        Join the invitation's family as CO.

        The membership insert and the PENDING -> ACCEPTED transition are one
        atomic repository call; of two concurrent accepts exactly one wins,
        the other gets InvitationGoneError.

        Raises:
            InvitationNotFoundError: Unknown or malformed token
            InvitationGoneError: Not PENDING, or past its expiry
            IdentityNotRegisteredError: Caller has not registered
            EmailMismatchError: Caller's email differs from the invited one
            AlreadyMemberError: Caller already belongs to this family
            AlreadyInFamilyError: Caller belongs to another family
        """
        user = self._users.get_by_subject(identity.subject)
        if user is None:
            raise IdentityNotRegisteredError()

        now = self._now()
        invitation = self._usable_invitation(token, now, mark_expired=True)

        if user.email != invitation.email:
            raise EmailMismatchError()
        if self._families.get_membership(user.id, invitation.family_id):
            raise AlreadyMemberError()
        if self._families.find_membership_for_user(user.id):
            raise AlreadyInFamilyError()

        accepted, membership = self._invitations.accept(invitation.id, user.id, now)
        logger.info(f"Invitation {accepted.id} accepted by user {user.id}")

        self._role_sync.schedule(user.external_subject_id, Role.CO)

        family = self._families.get_family(accepted.family_id)
        return AcceptedInvitation(
            invitation=InvitationResponse.from_invitation(accepted),
            membership=membership,
            family=PreviewFamily(
                id=accepted.family_id,
                name=family.name if family else "",
            ),
        )

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def expire_stale(self) -> int:
        """
        Mark overdue PENDING invitations EXPIRED.

        Reporting only: preview and accept already treat them as expired.
        """
        count = self._invitations.expire_stale(self._now())
        if count:
            logger.info(f"Expired {count} stale invitation(s)")
        return count

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _usable_invitation(
        self,
        token: str,
        now: datetime,
        mark_expired: bool = False,
    ) -> Invitation:
        if not is_well_formed(token):
            raise InvitationNotFoundError()
        invitation = self._invitations.get_by_token(token)
        if invitation is None:
            raise InvitationNotFoundError()
        if invitation.status != InvitationStatus.PENDING:
            raise InvitationGoneError("status", invitation.status.value)
        if invitation.is_expired(now):
            if mark_expired:
                self._invitations.transition(
                    invitation.id,
                    invitation.family_id,
                    InvitationStatus.PENDING,
                    InvitationStatus.EXPIRED,
                    now,
                )
            raise InvitationGoneError("expired")
        return invitation

    def _with_fresh_token(self, write):
        """Run a write with a new token, retrying on the rare token collision."""
        for attempt in range(1, MAX_TOKEN_ATTEMPTS + 1):
            try:
                return write(self._new_token())
            except TokenCollisionError:
                logger.warning(f"Invitation token collision (attempt {attempt}), regenerating")
        raise InvariantViolationError(
            "Could not generate a unique invitation token",
            code="TOKEN_GENERATION_FAILED",
        )

    def _inviter_name(self, invitation: Invitation) -> str:
        inviter = self._families.get_membership_by_id(
            invitation.inviting_membership_id, invitation.family_id
        )
        if inviter is None:
            return "A CoParent user"
        user = self._users.get_by_id(inviter.user_id)
        return user.display_name if user else "A CoParent user"

    async def _deliver_or_revoke(self, invitation: Invitation, context: TenantContext) -> None:
        family = self._families.get_family(invitation.family_id)
        children = self._families.list_children(invitation.family_id)
        email = InvitationEmail(
            to=invitation.email,
            family_name=family.name if family else "",
            inviter_name=context.user.display_name,
            children=[child.name for child in children],
            message=invitation.message,
            invitation_url=self.invitation_url(invitation),
            expires_at=invitation.expires_at,
        )
        try:
            await self._notifications.send_invitation(email)
        except EmailDeliveryError:
            self._invitations.transition(
                invitation.id,
                invitation.family_id,
                InvitationStatus.PENDING,
                InvitationStatus.REVOKED,
                self._now(),
            )
            logger.error(f"Invitation {invitation.id} revoked: email could not be delivered")
            raise InvitationDeliveryError()
