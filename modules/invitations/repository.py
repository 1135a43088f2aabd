"""
Invitation repository for database access.

The Supabase implementation relies on two unique indexes on `invitations`
(token, and (family_id, email) where status = 'pending') and on the
accept/reissue functions in migrations/003_invitation_functions.sql.
The in-memory implementation reproduces the same guarantees under the
store lock.
"""

from datetime import datetime
from typing import Any, Optional

from postgrest.exceptions import APIError

from modules.families.exceptions import AlreadyInFamilyError
from modules.families.models import Membership, Role
from shared.exceptions import InvariantViolationError
from shared.memory import InMemoryDatabase, new_id
from shared.models import utcnow
from shared.repository import BaseRepository, raised_condition, violated_constraint

from .exceptions import (
    AlreadyMemberError,
    CannotResendAcceptedError,
    DuplicatePendingInvitationError,
    InvitationGoneError,
    InvitationNotFoundError,
    TokenCollisionError,
)
from .models import Invitation, InvitationStatus, can_transition

ONE_PENDING_CONSTRAINT = "invitations_one_pending_per_email"
TOKEN_CONSTRAINT = "invitations_token_key"


def _check_transition(expected: InvitationStatus, target: InvitationStatus) -> None:
    if not can_transition(expected, target):
        raise InvariantViolationError(
            f"Invalid invitation transition {expected.value} -> {target.value}",
            code="INVALID_TRANSITION",
        )


def _transition_fields(target: InvitationStatus, now: datetime) -> dict[str, Any]:
    fields: dict[str, Any] = {"status": target}
    if target == InvitationStatus.REVOKED:
        fields["revoked_at"] = now
    return fields


class InvitationRepository(BaseRepository[Invitation]):
    """Supabase-backed invitation storage."""

    def _translate(self, error: APIError) -> None:
        """Raise the domain error behind an APIError, if there is one."""
        constraint = violated_constraint(error)
        if constraint == ONE_PENDING_CONSTRAINT:
            raise DuplicatePendingInvitationError() from error
        if constraint == TOKEN_CONSTRAINT:
            raise TokenCollisionError() from error

        condition = raised_condition(error)
        if condition is None:
            return
        name, detail = condition
        if name == "INVITATION_NOT_FOUND":
            raise InvitationNotFoundError() from error
        if name == "INVITATION_GONE":
            raise InvitationGoneError("status", detail or None) from error
        if name == "ALREADY_MEMBER":
            raise AlreadyMemberError() from error
        if name == "ALREADY_IN_FAMILY":
            raise AlreadyInFamilyError() from error
        if name == "CANNOT_RESEND_ACCEPTED":
            raise CannotResendAcceptedError() from error

    def insert(
        self,
        family_id: str,
        inviting_membership_id: str,
        email: str,
        token: str,
        expires_at: datetime,
        message: Optional[str] = None,
    ) -> Invitation:
        try:
            result = self._db.table("invitations").insert({
                "family_id": family_id,
                "inviting_membership_id": inviting_membership_id,
                "email": email,
                "token": token,
                "status": InvitationStatus.PENDING.value,
                "message": message,
                "expires_at": expires_at.isoformat(),
            }).execute()
        except APIError as e:
            self._translate(e)
            raise
        return Invitation(**result.data[0])

    def get_by_token(self, token: str) -> Optional[Invitation]:
        row = self._first(self._db.table("invitations").select("*").eq("token", token).execute())
        return Invitation(**row) if row else None

    def get(self, invitation_id: str, family_id: str) -> Optional[Invitation]:
        row = self._first(
            self._db.table("invitations")
            .select("*")
            .eq("id", invitation_id)
            .eq("family_id", family_id)
            .execute()
        )
        return Invitation(**row) if row else None

    def find_pending(self, family_id: str, email: str) -> Optional[Invitation]:
        row = self._first(
            self._db.table("invitations")
            .select("*")
            .eq("family_id", family_id)
            .eq("email", email)
            .eq("status", InvitationStatus.PENDING.value)
            .execute()
        )
        return Invitation(**row) if row else None

    def list_for_family(
        self,
        family_id: str,
        status: Optional[InvitationStatus] = None,
    ) -> list[Invitation]:
        query = self._db.table("invitations").select("*").eq("family_id", family_id)
        if status:
            query = query.eq("status", status.value)
        result = query.order("created_at", desc=True).execute()
        return [Invitation(**row) for row in result.data or []]

    def transition(
        self,
        invitation_id: str,
        family_id: str,
        expected: InvitationStatus,
        target: InvitationStatus,
        now: datetime,
    ) -> Optional[Invitation]:
        _check_transition(expected, target)
        fields: dict[str, Any] = {"status": target.value}
        if target == InvitationStatus.REVOKED:
            fields["revoked_at"] = now.isoformat()

        result = (
            self._db.table("invitations")
            .update(fields)
            .eq("id", invitation_id)
            .eq("family_id", family_id)
            .eq("status", expected.value)
            .execute()
        )
        row = self._first(result)
        return Invitation(**row) if row else None

    def accept(
        self,
        invitation_id: str,
        user_id: str,
        now: datetime,
    ) -> tuple[Invitation, Membership]:
        try:
            data = self._rpc("accept_family_invitation", {
                "p_invitation_id": invitation_id,
                "p_user_id": user_id,
                "p_now": now.isoformat(),
            })
        except APIError as e:
            self._translate(e)
            raise

        if data.get("outcome") == "expired":
            raise InvitationGoneError("expired")
        return Invitation(**data["invitation"]), Membership(**data["membership"])

    def reissue(
        self,
        invitation_id: str,
        family_id: str,
        inviting_membership_id: str,
        token: str,
        expires_at: datetime,
        now: datetime,
    ) -> tuple[Invitation, Invitation]:
        try:
            data = self._rpc("reissue_family_invitation", {
                "p_invitation_id": invitation_id,
                "p_family_id": family_id,
                "p_inviting_membership_id": inviting_membership_id,
                "p_token": token,
                "p_expires_at": expires_at.isoformat(),
                "p_now": now.isoformat(),
            })
        except APIError as e:
            self._translate(e)
            raise
        return Invitation(**data["revoked"]), Invitation(**data["invitation"])

    def expire_stale(self, now: datetime) -> int:
        result = (
            self._db.table("invitations")
            .update({"status": InvitationStatus.EXPIRED.value})
            .eq("status", InvitationStatus.PENDING.value)
            .lt("expires_at", now.isoformat())
            .execute()
        )
        return len(result.data or [])


class InMemoryInvitationRepository:
    """Invitation storage on top of InMemoryDatabase."""

    def __init__(self, store: InMemoryDatabase):
        self._store = store

    def _pending_for(self, family_id: str, email: str) -> Optional[Invitation]:
        for invitation in self._store.invitations.values():
            if (
                invitation.family_id == family_id
                and invitation.email == email
                and invitation.status == InvitationStatus.PENDING
            ):
                return invitation
        return None

    def _token_taken(self, token: str) -> bool:
        return any(i.token == token for i in self._store.invitations.values())

    def _new(
        self,
        family_id: str,
        inviting_membership_id: str,
        email: str,
        token: str,
        expires_at: datetime,
        message: Optional[str],
        now: datetime,
    ) -> Invitation:
        if self._pending_for(family_id, email):
            raise DuplicatePendingInvitationError()
        if self._token_taken(token):
            raise TokenCollisionError()
        return Invitation(
            id=new_id(),
            family_id=family_id,
            inviting_membership_id=inviting_membership_id,
            email=email,
            token=token,
            status=InvitationStatus.PENDING,
            message=message,
            expires_at=expires_at,
            created_at=now,
        )

    def insert(
        self,
        family_id: str,
        inviting_membership_id: str,
        email: str,
        token: str,
        expires_at: datetime,
        message: Optional[str] = None,
    ) -> Invitation:
        with self._store.lock:
            invitation = self._new(
                family_id, inviting_membership_id, email, token, expires_at, message, utcnow()
            )
            self._store.invitations[invitation.id] = invitation
            return invitation

    def get_by_token(self, token: str) -> Optional[Invitation]:
        with self._store.lock:
            for invitation in self._store.invitations.values():
                if invitation.token == token:
                    return invitation
        return None

    def get(self, invitation_id: str, family_id: str) -> Optional[Invitation]:
        with self._store.lock:
            invitation = self._store.invitations.get(invitation_id)
        if invitation is None or invitation.family_id != family_id:
            return None
        return invitation

    def find_pending(self, family_id: str, email: str) -> Optional[Invitation]:
        with self._store.lock:
            return self._pending_for(family_id, email)

    def list_for_family(
        self,
        family_id: str,
        status: Optional[InvitationStatus] = None,
    ) -> list[Invitation]:
        with self._store.lock:
            rows = [
                i for i in self._store.invitations.values()
                if i.family_id == family_id and (status is None or i.status == status)
            ]
        return sorted(rows, key=lambda i: i.created_at, reverse=True)

    def transition(
        self,
        invitation_id: str,
        family_id: str,
        expected: InvitationStatus,
        target: InvitationStatus,
        now: datetime,
    ) -> Optional[Invitation]:
        _check_transition(expected, target)
        with self._store.lock:
            current = self.get(invitation_id, family_id)
            if current is None or current.status != expected:
                return None
            updated = current.model_copy(update=_transition_fields(target, now))
            self._store.invitations[updated.id] = updated
            return updated

    def accept(
        self,
        invitation_id: str,
        user_id: str,
        now: datetime,
    ) -> tuple[Invitation, Membership]:
        with self._store.lock:
            invitation = self._store.invitations.get(invitation_id)
            if invitation is None:
                raise InvitationNotFoundError()
            if invitation.status != InvitationStatus.PENDING:
                raise InvitationGoneError("status", invitation.status.value)
            if invitation.is_expired(now):
                self._store.invitations[invitation.id] = invitation.model_copy(
                    update={"status": InvitationStatus.EXPIRED}
                )
                raise InvitationGoneError("expired")

            for membership in self._store.memberships.values():
                if membership.user_id != user_id:
                    continue
                if membership.family_id == invitation.family_id:
                    raise AlreadyMemberError()
                raise AlreadyInFamilyError()

            membership = Membership(
                id=new_id(),
                user_id=user_id,
                family_id=invitation.family_id,
                role=Role.CO,
                joined_at=now,
                invited_by_membership_id=invitation.inviting_membership_id,
                created_at=now,
            )
            accepted = invitation.model_copy(update={
                "status": InvitationStatus.ACCEPTED,
                "accepted_at": now,
                "accepted_by_user_id": user_id,
            })
            self._store.memberships[membership.id] = membership
            self._store.invitations[accepted.id] = accepted
            return accepted, membership

    def reissue(
        self,
        invitation_id: str,
        family_id: str,
        inviting_membership_id: str,
        token: str,
        expires_at: datetime,
        now: datetime,
    ) -> tuple[Invitation, Invitation]:
        with self._store.lock:
            original = self.get(invitation_id, family_id)
            if original is None:
                raise InvitationNotFoundError()
            if original.status == InvitationStatus.ACCEPTED:
                raise CannotResendAcceptedError()

            revoked = original
            if original.status != InvitationStatus.REVOKED:
                revoked = original.model_copy(update=_transition_fields(InvitationStatus.REVOKED, now))

            # Validate the replacement against the table as it will be once
            # the original is revoked, before writing anything.
            self._store.invitations[revoked.id] = revoked
            try:
                replacement = self._new(
                    family_id,
                    inviting_membership_id,
                    original.email,
                    token,
                    expires_at,
                    original.message,
                    now,
                )
            except (DuplicatePendingInvitationError, TokenCollisionError):
                self._store.invitations[original.id] = original
                raise

            self._store.invitations[replacement.id] = replacement
            return revoked, replacement

    def expire_stale(self, now: datetime) -> int:
        with self._store.lock:
            stale = [
                i for i in self._store.invitations.values()
                if i.status == InvitationStatus.PENDING and i.is_expired(now)
            ]
            for invitation in stale:
                self._store.invitations[invitation.id] = invitation.model_copy(
                    update={"status": InvitationStatus.EXPIRED}
                )
            return len(stale)
