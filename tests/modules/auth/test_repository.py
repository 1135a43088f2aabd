"""Tests for modules/auth/repository.py."""

from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from modules.auth.exceptions import EmailAlreadyRegisteredError, SubjectAlreadyRegisteredError
from modules.auth.repository import InMemoryUserRepository, UserRepository


def unique_violation(constraint: str) -> APIError:
    return APIError({
        "code": "23505",
        "message": f'duplicate key value violates unique constraint "{constraint}"',
        "details": None,
        "hint": None,
    })


class TestInMemoryUserRepository:
    @pytest.fixture
    def repo(self, store):
        return InMemoryUserRepository(store)

    def test_create_and_lookup(self, repo):
        user = repo.create("auth0|1", "a@example.com", "A")

        assert repo.get_by_subject("auth0|1").id == user.id
        assert repo.get_by_id(user.id).id == user.id
        assert repo.get_active_by_email("a@example.com").id == user.id

    def test_duplicate_subject(self, repo):
        """A second active user for the same subject should be rejected."""
        repo.create("auth0|1", "a@example.com", "A")
        with pytest.raises(SubjectAlreadyRegisteredError):
            repo.create("auth0|1", "b@example.com", "B")

    def test_duplicate_email(self, repo):
        """A second active user with the same email should be rejected."""
        repo.create("auth0|1", "a@example.com", "A")
        with pytest.raises(EmailAlreadyRegisteredError):
            repo.create("auth0|2", "a@example.com", "B")

    def test_inactive_users_are_invisible(self, repo, store):
        """Deactivated users should not be found or block re-registration."""
        user = repo.create("auth0|1", "a@example.com", "A")
        store.users[user.id] = user.model_copy(update={"is_active": False})

        assert repo.get_by_subject("auth0|1") is None
        assert repo.get_active_by_email("a@example.com") is None
        repo.create("auth0|1", "a@example.com", "A again")

    def test_update_profile_rejects_taken_email(self, repo):
        repo.create("auth0|1", "a@example.com", "A")
        other = repo.create("auth0|2", "b@example.com", "B")
        with pytest.raises(EmailAlreadyRegisteredError):
            repo.update_profile(other.id, "a@example.com", "B")


class TestUserRepository:
    @pytest.fixture
    def db(self):
        return MagicMock()

    @pytest.fixture
    def repo(self, db):
        return UserRepository(db)

    def test_create_maps_email_violation(self, repo, db):
        """The active-email unique index should map to EmailAlreadyRegisteredError."""
        db.table.return_value.insert.return_value.execute.side_effect = unique_violation(
            "users_active_email_key"
        )
        with pytest.raises(EmailAlreadyRegisteredError):
            repo.create("auth0|1", "a@example.com", "A")

    def test_create_maps_subject_violation(self, repo, db):
        """The active-subject unique index should map to SubjectAlreadyRegisteredError."""
        db.table.return_value.insert.return_value.execute.side_effect = unique_violation(
            "users_active_subject_key"
        )
        with pytest.raises(SubjectAlreadyRegisteredError):
            repo.create("auth0|1", "a@example.com", "A")

    def test_create_reraises_other_errors(self, repo, db):
        error = APIError({"code": "42P01", "message": "relation does not exist", "details": None, "hint": None})
        db.table.return_value.insert.return_value.execute.side_effect = error
        with pytest.raises(APIError):
            repo.create("auth0|1", "a@example.com", "A")

    def test_get_by_subject_missing(self, repo, db):
        db.table.return_value.select.return_value.eq.return_value.eq.return_value.execute.return_value = (
            MagicMock(data=[])
        )
        assert repo.get_by_subject("auth0|1") is None
        db.table.assert_called_with("users")
