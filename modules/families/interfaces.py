"""
Families module interfaces.

The API layer and the invitations module depend on these protocols,
not on the Supabase or in-memory implementations.
"""

from typing import Optional, Protocol, runtime_checkable

from modules.auth.models import Identity, User
from shared.models import RequestMeta

from .models import (
    Child,
    CreateFamilyRequest,
    Family,
    FamilyDetail,
    Membership,
    Role,
    TenantContext,
)


@runtime_checkable
class IFamilyRepository(Protocol):
    """
    Storage contract for families, children and memberships.

    Every tenant read takes the family id as an explicit filter.
    """

    def create_family_with_admin(
        self,
        user_id: str,
        request: CreateFamilyRequest,
    ) -> tuple[Family, Membership, list[Child]]:
        """
        Create family, children and the creator's ADMIN membership atomically.

        Raises:
            AlreadyInFamilyError: The user already has a membership
        """
        ...

    def get_family(self, family_id: str) -> Optional[Family]:
        ...

    def list_children(self, family_id: str) -> list[Child]:
        ...

    def list_memberships(self, family_id: str) -> list[Membership]:
        ...

    def get_membership(self, user_id: str, family_id: str) -> Optional[Membership]:
        """Return the membership of a user in one family."""
        ...

    def get_membership_by_id(self, membership_id: str, family_id: str) -> Optional[Membership]:
        ...

    def find_membership_for_user(self, user_id: str) -> Optional[Membership]:
        """Return the user's membership in any family."""
        ...

    def swap_admin(
        self,
        family_id: str,
        requester_membership_id: str,
        target_membership_id: str,
    ) -> tuple[Membership, Membership]:
        """
        Make the target ADMIN and the requester CO in one conditional write.

        Applies only if the requester is still ADMIN and the target still CO
        in that family; otherwise nothing changes.

        Returns:
            (new_admin, new_co_parent)

        Raises:
            TargetMustBeCoParentError: The conditions no longer hold
        """
        ...


@runtime_checkable
class IRoleSyncScheduler(Protocol):
    """Schedules a best-effort push of a local role to the IdP."""

    def schedule(self, subject: str, role: Role) -> None:
        """Queue the sync after the local commit; never raises."""
        ...


@runtime_checkable
class ITenantResolver(Protocol):
    """Maps a verified identity to its user and family membership."""

    async def resolve_user(self, identity: Identity) -> User:
        """
        Raises:
            IdentityNotRegisteredError: No active user for the subject
        """
        ...

    async def resolve(
        self,
        identity: Identity,
        family_id: str,
        meta: RequestMeta,
    ) -> TenantContext:
        """
        Raises:
            IdentityNotRegisteredError: No active user for the subject
            NotAMemberError: The user has no membership in family_id
        """
        ...


@runtime_checkable
class IFamilyService(Protocol):
    """Family creation and tenant-scoped reads."""

    async def create_family(self, user: User, request: CreateFamilyRequest) -> FamilyDetail:
        """
        Create a family with the caller as ADMIN.

        Raises:
            AlreadyInFamilyError: The caller already belongs to a family
        """
        ...

    async def get_family(self, context: TenantContext) -> FamilyDetail:
        ...

    async def find_family_for_user(self, user: User) -> Optional[tuple[Family, Membership]]:
        """Return the caller's family and membership, if any."""
        ...
