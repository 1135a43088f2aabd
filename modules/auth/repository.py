"""
User repository for database access.

Two implementations of the same contract:
- UserRepository: Supabase `users` table
- InMemoryUserRepository: shared.memory tables, for tests and local runs

Uniqueness of active users per subject and per email is enforced by
partial unique indexes (see migrations/001_initial_schema.sql), or by the
store lock in memory.
"""

from typing import Optional

from postgrest.exceptions import APIError

from shared.memory import InMemoryDatabase, new_id
from shared.models import utcnow
from shared.repository import BaseRepository, violated_constraint

from .exceptions import EmailAlreadyRegisteredError, SubjectAlreadyRegisteredError
from .models import User

ACTIVE_EMAIL_CONSTRAINT = "users_active_email_key"
ACTIVE_SUBJECT_CONSTRAINT = "users_active_subject_key"


class UserRepository(BaseRepository[User]):
    """Supabase-backed user storage."""

    def get_by_subject(self, subject: str) -> Optional[User]:
        row = self._first(
            self._db.table("users")
            .select("*")
            .eq("external_subject_id", subject)
            .eq("is_active", True)
            .execute()
        )
        return User(**row) if row else None

    def get_by_id(self, user_id: str) -> Optional[User]:
        row = self._first(self._db.table("users").select("*").eq("id", user_id).execute())
        return User(**row) if row else None

    def get_active_by_email(self, email: str) -> Optional[User]:
        row = self._first(
            self._db.table("users")
            .select("*")
            .eq("email", email)
            .eq("is_active", True)
            .execute()
        )
        return User(**row) if row else None

    def create(
        self,
        subject: str,
        email: str,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        """
        Insert a new active user.

        Raises:
            EmailAlreadyRegisteredError: Another active user owns the email
            SubjectAlreadyRegisteredError: A concurrent registration for the
                same subject won the race on the unique index
        """
        try:
            result = self._db.table("users").insert({
                "external_subject_id": subject,
                "email": email,
                "display_name": display_name,
                "avatar_url": avatar_url,
            }).execute()
        except APIError as e:
            constraint = violated_constraint(e)
            if constraint == ACTIVE_EMAIL_CONSTRAINT:
                raise EmailAlreadyRegisteredError() from e
            if constraint == ACTIVE_SUBJECT_CONSTRAINT:
                raise SubjectAlreadyRegisteredError() from e
            raise
        return User(**result.data[0])

    def update_profile(
        self,
        user_id: str,
        email: str,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        """
        Update the mutable profile fields of a user.

        Raises:
            EmailAlreadyRegisteredError: Another active user owns the email
        """
        try:
            result = (
                self._db.table("users")
                .update({
                    "email": email,
                    "display_name": display_name,
                    "avatar_url": avatar_url,
                    "updated_at": utcnow().isoformat(),
                })
                .eq("id", user_id)
                .execute()
            )
        except APIError as e:
            if violated_constraint(e) == ACTIVE_EMAIL_CONSTRAINT:
                raise EmailAlreadyRegisteredError() from e
            raise
        return User(**result.data[0])


class InMemoryUserRepository:
    """User storage on top of InMemoryDatabase."""

    def __init__(self, store: InMemoryDatabase):
        self._store = store

    def get_by_subject(self, subject: str) -> Optional[User]:
        with self._store.lock:
            for user in self._store.users.values():
                if user.external_subject_id == subject and user.is_active:
                    return user
        return None

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self._store.users.get(user_id)

    def get_active_by_email(self, email: str) -> Optional[User]:
        with self._store.lock:
            for user in self._store.users.values():
                if user.email == email and user.is_active:
                    return user
        return None

    def create(
        self,
        subject: str,
        email: str,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        with self._store.lock:
            if self.get_by_subject(subject):
                raise SubjectAlreadyRegisteredError()
            if self.get_active_by_email(email):
                raise EmailAlreadyRegisteredError()
            now = utcnow()
            user = User(
                id=new_id(),
                external_subject_id=subject,
                email=email,
                display_name=display_name,
                avatar_url=avatar_url,
                created_at=now,
                updated_at=now,
            )
            self._store.users[user.id] = user
            return user

    def update_profile(
        self,
        user_id: str,
        email: str,
        display_name: str,
        avatar_url: Optional[str] = None,
    ) -> User:
        with self._store.lock:
            owner = self.get_active_by_email(email)
            if owner and owner.id != user_id:
                raise EmailAlreadyRegisteredError()
            user = self._store.users[user_id].model_copy(update={
                "email": email,
                "display_name": display_name,
                "avatar_url": avatar_url,
                "updated_at": utcnow(),
            })
            self._store.users[user_id] = user
            return user
