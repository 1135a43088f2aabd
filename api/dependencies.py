"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Everything with state (the key cache, rate-limit counters, HTTP clients,
the side-effect runner) is owned by the container rather than living in
module globals, so tests build a container with fakes and throw it away.
"""

from typing import TYPE_CHECKING, Optional

import httpx

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import ITokenVerifier, IUserRepository, IUserService
    from modules.auth.keys import KeyCache
    from modules.families.interfaces import (
        IFamilyRepository,
        IFamilyService,
        IRoleSyncScheduler,
        ITenantResolver,
    )
    from modules.families.transfer import AdminTransferProtocol
    from modules.idp.interfaces import IIdPRoleSync
    from modules.idp.management import IdPManagementClient
    from modules.invitations.interfaces import IInvitationLedger, IInvitationRepository
    from modules.notifications.interfaces import IEmailTransport, INotificationDispatcher
    from modules.ratelimit.governor import AbuseGovernor
    from shared.memory import InMemoryDatabase
    from shared.side_effects import SideEffectRunner


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached for the
    lifetime of the container. Constructor arguments replace the pieces
    that talk to the outside world; anything not given is built from
    settings.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: "InMemoryDatabase | None" = None,
        email_transport: "IEmailTransport | None" = None,
        role_sync: "IRoleSyncScheduler | None" = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            settings: Settings to use instead of get_settings()
            store: In-memory tables (memory backend only)
            email_transport: Transport to use instead of SendGrid
            role_sync: Scheduler to use instead of the deferred IdP sync
            http_client: Shared client for JWKS and IdP management calls
        """
        self._settings = settings
        self._store = store
        self._email_transport = email_transport
        self._role_sync = role_sync
        self._http_client = http_client

        self._user_repository: "IUserRepository | None" = None
        self._family_repository: "IFamilyRepository | None" = None
        self._invitation_repository: "IInvitationRepository | None" = None
        self._key_cache: "KeyCache | None" = None
        self._token_verifier: "ITokenVerifier | None" = None
        self._user_service: "IUserService | None" = None
        self._tenant_resolver: "ITenantResolver | None" = None
        self._family_service: "IFamilyService | None" = None
        self._admin_transfer: "AdminTransferProtocol | None" = None
        self._invitation_ledger: "IInvitationLedger | None" = None
        self._notifications: "INotificationDispatcher | None" = None
        self._idp_client: "IdPManagementClient | None" = None
        self._idp_role_sync: "IIdPRoleSync | None" = None
        self._side_effects: "SideEffectRunner | None" = None
        self._rate_limiter: "AbuseGovernor | None" = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    @property
    def uses_memory(self) -> bool:
        return self.settings.storage_backend == "memory"

    @property
    def store(self) -> "InMemoryDatabase":
        """In-memory tables, created on first use."""
        if self._store is None:
            from shared.memory import InMemoryDatabase
            self._store = InMemoryDatabase()
        return self._store

    @property
    def user_repository(self) -> "IUserRepository":
        if self._user_repository is None:
            if self.uses_memory:
                from modules.auth.repository import InMemoryUserRepository
                self._user_repository = InMemoryUserRepository(self.store)
            else:
                from modules.auth.repository import UserRepository
                from shared.database import get_supabase_client
                self._user_repository = UserRepository(get_supabase_client())
        return self._user_repository

    @property
    def family_repository(self) -> "IFamilyRepository":
        if self._family_repository is None:
            if self.uses_memory:
                from modules.families.repository import InMemoryFamilyRepository
                self._family_repository = InMemoryFamilyRepository(self.store)
            else:
                from modules.families.repository import FamilyRepository
                from shared.database import get_supabase_client
                self._family_repository = FamilyRepository(get_supabase_client())
        return self._family_repository

    @property
    def invitation_repository(self) -> "IInvitationRepository":
        if self._invitation_repository is None:
            if self.uses_memory:
                from modules.invitations.repository import InMemoryInvitationRepository
                self._invitation_repository = InMemoryInvitationRepository(self.store)
            else:
                from modules.invitations.repository import InvitationRepository
                from shared.database import get_supabase_client
                self._invitation_repository = InvitationRepository(get_supabase_client())
        return self._invitation_repository

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    @property
    def key_cache(self) -> "KeyCache":
        if self._key_cache is None:
            from modules.auth.keys import KeyCache
            self._key_cache = KeyCache(
                jwks_url=self.settings.jwks_url,
                ttl_seconds=self.settings.jwks_cache_ttl_seconds,
                min_refresh_seconds=self.settings.jwks_min_refresh_seconds,
                timeout=self.settings.external_http_timeout_seconds,
                http_client=self._http_client,
            )
        return self._key_cache

    @property
    def token_verifier(self) -> "ITokenVerifier":
        if self._token_verifier is None:
            from modules.auth.verifier import TokenVerifier
            self._token_verifier = TokenVerifier(
                key_cache=self.key_cache,
                issuer=self.settings.issuer,
                audience=self.settings.idp_audience,
                algorithm=self.settings.idp_algorithm,
                roles_claim=self.settings.roles_claim,
            )
        return self._token_verifier

    @property
    def users(self) -> "IUserService":
        if self._user_service is None:
            from modules.auth.service import UserService
            self._user_service = UserService(self.user_repository)
        return self._user_service

    # -------------------------------------------------------------------------
    # Families
    # -------------------------------------------------------------------------

    @property
    def tenant_resolver(self) -> "ITenantResolver":
        if self._tenant_resolver is None:
            from modules.families.tenancy import TenantResolver
            self._tenant_resolver = TenantResolver(self.user_repository, self.family_repository)
        return self._tenant_resolver

    @property
    def families(self) -> "IFamilyService":
        if self._family_service is None:
            from modules.families.service import FamilyService
            self._family_service = FamilyService(
                families=self.family_repository,
                users=self.user_repository,
                role_sync=self.role_sync,
            )
        return self._family_service

    @property
    def admin_transfer(self) -> "AdminTransferProtocol":
        if self._admin_transfer is None:
            from modules.families.transfer import AdminTransferProtocol
            self._admin_transfer = AdminTransferProtocol(
                families=self.family_repository,
                users=self.user_repository,
                role_sync=self.role_sync,
            )
        return self._admin_transfer

    # -------------------------------------------------------------------------
    # Invitations and notifications
    # -------------------------------------------------------------------------

    @property
    def email_transport(self) -> "IEmailTransport":
        if self._email_transport is None:
            if self.settings.sendgrid_api_key:
                from modules.notifications.transport import SendGridTransport
                self._email_transport = SendGridTransport(
                    api_key=self.settings.sendgrid_api_key,
                    from_address=self.settings.email_from_address,
                    from_name=self.settings.email_from_name,
                    api_url=self.settings.sendgrid_api_url,
                    timeout=self.settings.external_http_timeout_seconds,
                )
            else:
                from modules.notifications.transport import LoggingTransport
                self._email_transport = LoggingTransport()
        return self._email_transport

    @property
    def notifications(self) -> "INotificationDispatcher":
        if self._notifications is None:
            from modules.notifications.dispatcher import NotificationDispatcher
            self._notifications = NotificationDispatcher(
                transport=self.email_transport,
                max_attempts=self.settings.email_max_attempts,
                base_delay=self.settings.email_retry_base_delay_seconds,
            )
        return self._notifications

    @property
    def invitations(self) -> "IInvitationLedger":
        if self._invitation_ledger is None:
            from modules.invitations.ledger import InvitationLedger
            self._invitation_ledger = InvitationLedger(
                invitations=self.invitation_repository,
                families=self.family_repository,
                users=self.user_repository,
                notifications=self.notifications,
                role_sync=self.role_sync,
                frontend_url=self.settings.frontend_url,
                ttl_days=self.settings.invitation_ttl_days,
            )
        return self._invitation_ledger

    # -------------------------------------------------------------------------
    # Identity provider sync
    # -------------------------------------------------------------------------

    @property
    def side_effects(self) -> "SideEffectRunner":
        if self._side_effects is None:
            from shared.side_effects import SideEffectRunner
            self._side_effects = SideEffectRunner(
                max_attempts=self.settings.side_effect_max_attempts,
                base_delay=self.settings.side_effect_retry_base_delay_seconds,
            )
        return self._side_effects

    @property
    def idp_client(self) -> "IdPManagementClient":
        if self._idp_client is None:
            from modules.idp.management import IdPManagementClient
            self._idp_client = IdPManagementClient(
                domain=self.settings.idp_management_domain or self.settings.idp_domain,
                client_id=self.settings.idp_management_client_id,
                client_secret=self.settings.idp_management_client_secret,
                audience=self.settings.management_audience,
                timeout=self.settings.external_http_timeout_seconds,
                http_client=self._http_client,
            )
        return self._idp_client

    @property
    def idp_role_sync(self) -> "IIdPRoleSync":
        if self._idp_role_sync is None:
            from modules.idp.role_sync import IdPRoleSync
            self._idp_role_sync = IdPRoleSync(
                client=self.idp_client,
                admin_role_name=self.settings.idp_admin_role_name,
                co_role_name=self.settings.idp_co_role_name,
            )
        return self._idp_role_sync

    @property
    def role_sync(self) -> "IRoleSyncScheduler":
        if self._role_sync is None:
            from modules.idp.role_sync import DeferredRoleSync
            self._role_sync = DeferredRoleSync(self.idp_role_sync, self.side_effects)
        return self._role_sync

    # -------------------------------------------------------------------------
    # Rate limiting
    # -------------------------------------------------------------------------

    @property
    def rate_limiter(self) -> "AbuseGovernor":
        if self._rate_limiter is None:
            from modules.ratelimit.governor import AbuseGovernor
            from modules.ratelimit.models import policies_from_settings
            self._rate_limiter = AbuseGovernor(policies_from_settings(self.settings))
        return self._rate_limiter

    async def aclose(self, drain_timeout: Optional[float] = 10.0) -> None:
        """
        Let deferred side effects finish, then close outbound clients.
        """
        if self._side_effects is not None:
            await self._side_effects.drain(timeout=drain_timeout)
        if self._key_cache is not None:
            await self._key_cache.aclose()
        if self._idp_client is not None:
            await self._idp_client.aclose()
        if self._email_transport is not None:
            await self._email_transport.aclose()


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a pre-built container (tests, alternative entry points)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset the service container.

    The next call to get_container() creates a fresh container with new
    service instances. Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_token_verifier() -> "ITokenVerifier":
    """FastAPI dependency for the token verifier."""
    return get_container().token_verifier


def get_user_service() -> "IUserService":
    """FastAPI dependency for the user service."""
    return get_container().users


def get_tenant_resolver() -> "ITenantResolver":
    """FastAPI dependency for the tenant resolver."""
    return get_container().tenant_resolver


def get_family_service() -> "IFamilyService":
    """FastAPI dependency for the family service."""
    return get_container().families


def get_admin_transfer() -> "AdminTransferProtocol":
    """FastAPI dependency for the admin transfer protocol."""
    return get_container().admin_transfer


def get_invitation_ledger() -> "IInvitationLedger":
    """FastAPI dependency for the invitation ledger."""
    return get_container().invitations


def get_rate_limiter() -> "AbuseGovernor":
    """FastAPI dependency for the rate limiter."""
    return get_container().rate_limiter
