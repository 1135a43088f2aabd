"""
User registration service implementation.

Links a verified IdP identity to a local user record.
"""

import logging
from typing import Optional

from shared.exceptions import ValidationError

from .exceptions import (
    EmailAlreadyRegisteredError,
    IdentityNotRegisteredError,
    SubjectAlreadyRegisteredError,
)
from .interfaces import IUserRepository, IUserService
from .models import Identity, User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Canonical form used for every stored and compared email address."""
    return email.strip().lower()


class UserService(IUserService):
    """
    Implementation of the user service.

    Registration is idempotent: the first call creates the user, later
    calls refresh email, display name and avatar from the request.
    """

    def __init__(self, repository: IUserRepository):
        self._repo = repository

    async def register(
        self,
        identity: Identity,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> tuple[User, bool]:
        if not identity.email:
            raise ValidationError(
                "The authentication token carries no email address",
                code="EMAIL_CLAIM_REQUIRED",
            )

        email = normalize_email(identity.email)
        existing = self._repo.get_by_subject(identity.subject)

        owner = self._repo.get_active_by_email(email)
        if owner and (existing is None or owner.id != existing.id):
            logger.info(f"Registration rejected for {identity.subject}: email owned by another user")
            raise EmailAlreadyRegisteredError()

        if existing:
            user = self._repo.update_profile(existing.id, email, display_name, avatar_url)
            return user, False

        try:
            user = self._repo.create(identity.subject, email, display_name, avatar_url)
        except SubjectAlreadyRegisteredError:
            # A concurrent registration for the same subject won
            return await self.get_registered_user(identity), False
        logger.info(f"Registered user {user.id} for subject {identity.subject}")
        return user, True

    async def get_registered_user(self, identity: Identity) -> User:
        user = self._repo.get_by_subject(identity.subject)
        if user is None:
            raise IdentityNotRegisteredError()
        return user


# Verify the implementation satisfies the interface
def _verify_interface(repository: IUserRepository) -> IUserService:
    """Type check that UserService implements IUserService."""
    service: IUserService = UserService(repository)
    return service
