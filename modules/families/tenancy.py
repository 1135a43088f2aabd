"""
Tenant resolution and role gating.

Query-time filtering on family_id in the repositories is the primary
isolation mechanism. The resolver is the second check: it refuses to
build a TenantContext for a family the caller does not belong to, and
records every such attempt as a security event.
"""

import logging

from modules.auth.interfaces import IUserRepository
from modules.auth.exceptions import IdentityNotRegisteredError
from modules.auth.models import Identity, User
from shared.models import RequestMeta

from .exceptions import InsufficientRoleError, NotAMemberError
from .interfaces import IFamilyRepository, ITenantResolver
from .models import Membership, Role, TenantContext

logger = logging.getLogger(__name__)


class TenantResolver(ITenantResolver):
    """Identity -> User -> Membership for one requested family."""

    def __init__(self, users: IUserRepository, families: IFamilyRepository):
        self._users = users
        self._families = families

    async def resolve_user(self, identity: Identity) -> User:
        user = self._users.get_by_subject(identity.subject)
        if user is None:
            raise IdentityNotRegisteredError()
        return user

    async def resolve(
        self,
        identity: Identity,
        family_id: str,
        meta: RequestMeta,
    ) -> TenantContext:
        user = await self.resolve_user(identity)
        membership = self._families.get_membership(user.id, family_id)
        if membership is None:
            logger.warning(
                f"cross_family_access_attempt subject={identity.subject} "
                f"family_id={family_id} endpoint={meta.method} {meta.endpoint} "
                f"source={meta.source_address}",
                extra={
                    "event": "cross_family_access_attempt",
                    "subject": identity.subject,
                    "family_id": family_id,
                    "endpoint": meta.endpoint,
                    "method": meta.method,
                    "source_address": meta.source_address,
                },
            )
            raise NotAMemberError()
        return TenantContext(identity=identity, user=user, membership=membership, meta=meta)


class RoleGate:
    """
    The single place role requirements are checked.

    Always called with an already-resolved membership, so "wrong tenant"
    and "wrong role" stay distinguishable.
    """

    @staticmethod
    def require_role(membership: Membership, role: Role) -> Membership:
        """
        Raises:
            InsufficientRoleError: If membership.role != role
        """
        if membership.role != role:
            logger.warning(
                f"insufficient_role membership={membership.id} family_id={membership.family_id} "
                f"has={membership.role.value} required={role.value}",
                extra={
                    "event": "insufficient_role",
                    "membership_id": membership.id,
                    "family_id": membership.family_id,
                },
            )
            raise InsufficientRoleError(role.value)
        return membership
