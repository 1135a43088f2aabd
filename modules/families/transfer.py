"""
Two-party admin role transfer.
"""

import logging

from modules.auth.interfaces import IUserRepository

from .exceptions import CannotTransferToSelfError, TargetMustBeCoParentError
from .interfaces import IFamilyRepository, IRoleSyncScheduler
from .models import Membership, Role, TenantContext
from .tenancy import RoleGate

logger = logging.getLogger(__name__)


class AdminTransferProtocol:
    """
    Hands the ADMIN role from the requester to a co-parent.

    The swap is one conditional write in the repository, so a family never
    has zero or two committed admins. IdP role sync runs afterwards as a
    deferred side effect and never rolls the swap back.

    Retrying a transfer that already committed is harmless: the target is
    ADMIN by then, so the retry fails with TargetMustBeCoParentError and
    changes nothing. For that reason the target is checked before the
    requester's role.
    """

    def __init__(
        self,
        families: IFamilyRepository,
        users: IUserRepository,
        role_sync: IRoleSyncScheduler,
    ):
        self._families = families
        self._users = users
        self._role_sync = role_sync

    async def transfer(
        self,
        context: TenantContext,
        target_user_id: str,
    ) -> tuple[Membership, Membership]:
        """
        Transfer the ADMIN role to target_user_id.

        Returns:
            (new_admin, new_co_parent)

        Raises:
            CannotTransferToSelfError: Target is the requester
            TargetMustBeCoParentError: Target is not a CO member of the family
            InsufficientRoleError: Requester is not ADMIN
        """
        if target_user_id == context.user.id:
            raise CannotTransferToSelfError()

        target = self._families.get_membership(target_user_id, context.family_id)
        if target is None or target.role != Role.CO:
            raise TargetMustBeCoParentError()

        RoleGate.require_role(context.membership, Role.ADMIN)

        new_admin, new_co = self._families.swap_admin(
            context.family_id,
            context.membership.id,
            target.id,
        )
        logger.info(
            f"Admin role of family {context.family_id} transferred "
            f"from membership {new_co.id} to {new_admin.id}"
        )

        self._schedule_sync(new_admin)
        self._schedule_sync(new_co)
        return new_admin, new_co

    def _schedule_sync(self, membership: Membership) -> None:
        user = self._users.get_by_id(membership.user_id)
        if user is None:
            logger.error(f"No user {membership.user_id} for membership {membership.id}; skipping role sync")
            return
        self._role_sync.schedule(user.external_subject_id, membership.role)
