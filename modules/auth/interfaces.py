"""
Authentication module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. This enables testing with fakes and swapping the
storage backend without touching callers.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import Identity, User


@runtime_checkable
class ITokenVerifier(Protocol):
    """Turns a raw bearer token into a verified Identity."""

    async def verify(self, raw_token: Optional[str]) -> Identity:
        """
        Verify a bearer token.

        Raises:
            AuthenticationError: If the token is missing, malformed, expired
                or badly signed
            IdentityProviderUnavailableError: If signing keys cannot be fetched
        """
        ...


@runtime_checkable
class IUserRepository(Protocol):
    """Storage contract for local users."""

    def get_by_subject(self, subject: str) -> Optional[User]:
        """Return the active user linked to an IdP subject."""
        ...

    def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    def get_active_by_email(self, email: str) -> Optional[User]:
        """Return the active user owning a (lowercased) email."""
        ...

    def create(
        self,
        subject: str,
        email: str,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        ...

    def update_profile(
        self,
        user_id: str,
        email: str,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        ...


@runtime_checkable
class IUserService(Protocol):
    """
    Interface for user registration.

    This protocol defines the contract that the auth module exposes
    to the API layer.
    """

    async def register(
        self,
        identity: Identity,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> tuple[User, bool]:
        """
        Create or refresh the local user for a verified identity.

        Returns:
            (user, created) where created is False on repeat calls

        Raises:
            ValidationError: The identity carries no email claim
            EmailAlreadyRegisteredError: Another active user owns the email
        """
        ...

    async def get_registered_user(self, identity: Identity) -> User:
        """
        Return the active user for an identity.

        Raises:
            IdentityNotRegisteredError: If registration was never completed
        """
        ...
