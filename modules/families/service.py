"""
Family service implementation.

Family creation and tenant-scoped reads.
"""

import logging
from typing import Optional

from modules.auth.interfaces import IUserRepository
from modules.auth.models import User

from .exceptions import AlreadyInFamilyError, FamilyNotFoundError
from .interfaces import IFamilyRepository, IFamilyService, IRoleSyncScheduler
from .models import (
    Child,
    ChildSummary,
    CreateFamilyRequest,
    Family,
    FamilyDetail,
    MemberSummary,
    Membership,
    Role,
    TenantContext,
)

logger = logging.getLogger(__name__)


class FamilyService(IFamilyService):
    """Implements IFamilyService on top of an IFamilyRepository."""

    def __init__(
        self,
        families: IFamilyRepository,
        users: IUserRepository,
        role_sync: IRoleSyncScheduler,
    ):
        self._families = families
        self._users = users
        self._role_sync = role_sync

    async def create_family(self, user: User, request: CreateFamilyRequest) -> FamilyDetail:
        """
        Create the family, its children and the caller's ADMIN membership.

        The repository re-checks "one family per user" inside the same
        transaction, so two concurrent calls cannot both succeed.
        """
        if self._families.find_membership_for_user(user.id):
            raise AlreadyInFamilyError()

        family, membership, children = self._families.create_family_with_admin(user.id, request)
        logger.info(f"Created family {family.id} with admin user {user.id}")

        self._role_sync.schedule(user.external_subject_id, Role.ADMIN)
        return self._detail(family, membership, children, [membership])

    async def get_family(self, context: TenantContext) -> FamilyDetail:
        family = self._families.get_family(context.family_id)
        if family is None:
            raise FamilyNotFoundError(context.family_id)
        return self._detail(
            family,
            context.membership,
            self._families.list_children(context.family_id),
            self._families.list_memberships(context.family_id),
        )

    async def find_family_for_user(self, user: User) -> Optional[tuple[Family, Membership]]:
        membership = self._families.find_membership_for_user(user.id)
        if membership is None:
            return None
        family = self._families.get_family(membership.family_id)
        if family is None:
            return None
        return family, membership

    def _detail(
        self,
        family: Family,
        membership: Membership,
        children: list[Child],
        memberships: list[Membership],
    ) -> FamilyDetail:
        members = []
        for member in memberships:
            user = self._users.get_by_id(member.user_id)
            if user is None:
                continue
            members.append(MemberSummary(
                membership_id=member.id,
                user_id=user.id,
                display_name=user.display_name,
                email=user.email,
                role=member.role,
                joined_at=member.joined_at,
            ))

        return FamilyDetail(
            id=family.id,
            name=family.name,
            created_at=family.created_at,
            your_role=membership.role,
            children=[ChildSummary.from_child(c) for c in children],
            members=members,
        )
