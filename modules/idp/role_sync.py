"""
Pushes local membership roles to the identity provider.

The local role is authoritative. The IdP copy only exists so tokens carry
an informational roles claim; a failed sync is logged and retried by the
side-effect runner, never surfaced to the user.
"""

import logging

from shared.side_effects import SideEffectRunner

from .exceptions import UnknownIdPRoleError
from .interfaces import IIdPRoleSync, IManagementClient

logger = logging.getLogger(__name__)


class IdPRoleSync(IIdPRoleSync):
    """
    Makes the IdP's grants for a subject match one local role.

    Local roles map to IdP role names: ADMIN -> admin_role_name,
    CO -> co_role_name. The matching IdP role is added if missing and the
    other family role is removed if present. Roles unrelated to families
    are left alone.
    """

    def __init__(
        self,
        client: IManagementClient,
        admin_role_name: str = "ADMIN_PARENT",
        co_role_name: str = "CO_PARENT",
    ):
        self._client = client
        self._role_names = {"ADMIN": admin_role_name, "CO": co_role_name}

    def idp_role_name(self, role: str) -> str:
        return self._role_names[role]

    async def sync_role(self, subject: str, role: str) -> None:
        if not self._client.is_configured:
            logger.debug(f"IdP management not configured, skipping role sync for {subject}")
            return

        known = await self._client.role_ids()
        wanted_name = self._role_names[role]
        wanted = known.get(wanted_name)
        if wanted is None:
            raise UnknownIdPRoleError(wanted_name)

        family_roles = {known[name] for name in self._role_names.values() if name in known}
        current = await self._client.get_user_role_ids(subject)
        stale = sorted((current & family_roles) - {wanted})

        if wanted not in current:
            await self._client.assign_roles(subject, [wanted])
        if stale:
            await self._client.remove_roles(subject, stale)
        logger.info(f"Synced IdP role {wanted_name} for {subject}")


class DeferredRoleSync:
    """
    Schedules IdPRoleSync calls on the side-effect runner.

    Satisfies modules.families.interfaces.IRoleSyncScheduler.
    """

    def __init__(self, role_sync: IIdPRoleSync, runner: SideEffectRunner):
        self._role_sync = role_sync
        self._runner = runner

    def schedule(self, subject: str, role: str) -> None:
        role_name = getattr(role, "value", role)
        self._runner.submit(
            f"idp-role-sync:{role_name}",
            lambda: self._role_sync.sync_role(subject, role_name),
        )
