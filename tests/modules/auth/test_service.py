"""Tests for modules/auth/service.py."""

import pytest

from modules.auth.exceptions import (
    EmailAlreadyRegisteredError,
    IdentityNotRegisteredError,
    SubjectAlreadyRegisteredError,
)
from modules.auth.models import Identity
from modules.auth.repository import InMemoryUserRepository
from modules.auth.service import UserService, normalize_email
from shared.exceptions import ValidationError


def identity(subject: str = "auth0|abc", email="Parent@Example.com") -> Identity:
    return Identity(subject=subject, email=email, issuer="https://idp.coparent.test/")


class TestNormalizeEmail:
    def test_lowercases_and_strips(self):
        assert normalize_email("  Parent@Example.COM ") == "parent@example.com"


class TestUserService:
    @pytest.fixture
    def repo(self, store):
        return InMemoryUserRepository(store)

    @pytest.fixture
    def service(self, repo):
        return UserService(repo)

    @pytest.mark.asyncio
    async def test_register_creates_user(self, service):
        """First registration should create a user with a lowercased email."""
        user, created = await service.register(identity(), "Sam", "https://img.example/sam.png")

        assert created is True
        assert user.email == "parent@example.com"
        assert user.external_subject_id == "auth0|abc"
        assert user.avatar_url == "https://img.example/sam.png"

    @pytest.mark.asyncio
    async def test_register_is_idempotent(self, service, store):
        """Repeat registration should update the profile, not create a second user."""
        first, _ = await service.register(identity(), "Sam")
        second, created = await service.register(identity(), "Samantha")

        assert created is False
        assert second.id == first.id
        assert second.display_name == "Samantha"
        assert len(store.users) == 1

    @pytest.mark.asyncio
    async def test_register_picks_up_new_email(self, service):
        """A changed email claim should be stored on repeat registration."""
        await service.register(identity(), "Sam")
        user, _ = await service.register(identity(email="new@example.com"), "Sam")
        assert user.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_register_requires_email_claim(self, service):
        """An identity without email should be rejected."""
        with pytest.raises(ValidationError) as exc_info:
            await service.register(identity(email=None), "Sam")
        assert exc_info.value.code == "EMAIL_CLAIM_REQUIRED"

    @pytest.mark.asyncio
    async def test_register_rejects_email_owned_by_other_user(self, service):
        """Another subject cannot register an email that is already taken."""
        await service.register(identity(), "Sam")

        with pytest.raises(EmailAlreadyRegisteredError):
            await service.register(identity(subject="auth0|other", email="PARENT@example.com"), "Alex")

    @pytest.mark.asyncio
    async def test_register_race_returns_winner(self, repo, store):
        """If a concurrent registration wins, the existing user is returned."""
        winner = repo.create("auth0|abc", "parent@example.com", "Sam")

        class RacingRepository(InMemoryUserRepository):
            calls = 0

            def get_by_subject(self, subject):
                # Invisible on the first lookup, as if created concurrently
                RacingRepository.calls += 1
                if RacingRepository.calls == 1:
                    return None
                return super().get_by_subject(subject)

            def get_active_by_email(self, email):
                return None

        racing = UserService(RacingRepository(store))
        user, created = await racing.register(identity(), "Sam")

        assert created is False
        assert user.id == winner.id

    @pytest.mark.asyncio
    async def test_get_registered_user(self, service):
        """get_registered_user should find the user by subject."""
        user, _ = await service.register(identity(), "Sam")
        assert (await service.get_registered_user(identity())).id == user.id

    @pytest.mark.asyncio
    async def test_get_unregistered_user(self, service):
        """An identity without a local user should be rejected."""
        with pytest.raises(IdentityNotRegisteredError):
            await service.get_registered_user(identity())
