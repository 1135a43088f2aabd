"""
IdP module interfaces.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IManagementClient(Protocol):
    """The management API calls role sync needs."""

    @property
    def is_configured(self) -> bool:
        ...

    async def role_ids(self) -> dict[str, str]:
        ...

    async def get_user_role_ids(self, subject: str) -> set[str]:
        ...

    async def assign_roles(self, subject: str, role_ids: list[str]) -> None:
        ...

    async def remove_roles(self, subject: str, role_ids: list[str]) -> None:
        ...


@runtime_checkable
class IIdPRoleSync(Protocol):
    """Best-effort push of a local role ("ADMIN" or "CO") to the IdP."""

    async def sync_role(self, subject: str, role: str) -> None:
        """
        Raises:
            IdPManagementError: The IdP call failed (the caller retries)
        """
        ...
