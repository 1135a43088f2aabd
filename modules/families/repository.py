"""
Family repository for database access.

Encapsulates all queries for the tenant tables:
- families
- children
- memberships

Multi-row writes go through the Postgres functions defined in
migrations/002_family_functions.sql so they commit as one transaction.
"""

from typing import Any, Optional

from postgrest.exceptions import APIError

from shared.memory import InMemoryDatabase, new_id
from shared.models import utcnow
from shared.repository import BaseRepository, raised_condition, violated_constraint

from .exceptions import AlreadyInFamilyError, TargetMustBeCoParentError
from .models import Child, CreateFamilyRequest, Family, Membership, Role

ONE_FAMILY_PER_USER_CONSTRAINT = "memberships_one_family_per_user"


class FamilyRepository(BaseRepository[Family]):
    """
    Supabase-backed family storage.

    Note: This repository does NOT perform authorization checks.
    The TenantResolver and RoleGate run before any call that needs them.
    """

    def create_family_with_admin(
        self,
        user_id: str,
        request: CreateFamilyRequest,
    ) -> tuple[Family, Membership, list[Child]]:
        """
        Create family, children and ADMIN membership in one RPC call.

        Raises:
            AlreadyInFamilyError: The user already has a membership
        """
        try:
            data = self._rpc("create_family_with_admin", {
                "p_user_id": user_id,
                "p_name": request.name,
                "p_children": [
                    {
                        "name": child.name,
                        "date_of_birth": child.date_of_birth.isoformat() if child.date_of_birth else None,
                    }
                    for child in request.children
                ],
            })
        except APIError as e:
            condition = raised_condition(e)
            if condition and condition[0] == "ALREADY_IN_FAMILY":
                raise AlreadyInFamilyError() from e
            if violated_constraint(e) == ONE_FAMILY_PER_USER_CONSTRAINT:
                raise AlreadyInFamilyError() from e
            raise

        return (
            Family(**data["family"]),
            Membership(**data["membership"]),
            [Child(**row) for row in data.get("children") or []],
        )

    def get_family(self, family_id: str) -> Optional[Family]:
        row = self._first(self._db.table("families").select("*").eq("id", family_id).execute())
        return Family(**row) if row else None

    def list_children(self, family_id: str) -> list[Child]:
        result = (
            self._db.table("children")
            .select("*")
            .eq("family_id", family_id)
            .order("created_at")
            .execute()
        )
        return [Child(**row) for row in result.data or []]

    def list_memberships(self, family_id: str) -> list[Membership]:
        result = (
            self._db.table("memberships")
            .select("*")
            .eq("family_id", family_id)
            .order("created_at")
            .execute()
        )
        return [Membership(**row) for row in result.data or []]

    def get_membership(self, user_id: str, family_id: str) -> Optional[Membership]:
        row = self._first(
            self._db.table("memberships")
            .select("*")
            .eq("user_id", user_id)
            .eq("family_id", family_id)
            .execute()
        )
        return Membership(**row) if row else None

    def get_membership_by_id(self, membership_id: str, family_id: str) -> Optional[Membership]:
        row = self._first(
            self._db.table("memberships")
            .select("*")
            .eq("id", membership_id)
            .eq("family_id", family_id)
            .execute()
        )
        return Membership(**row) if row else None

    def find_membership_for_user(self, user_id: str) -> Optional[Membership]:
        row = self._first(
            self._db.table("memberships").select("*").eq("user_id", user_id).limit(1).execute()
        )
        return Membership(**row) if row else None

    def swap_admin(
        self,
        family_id: str,
        requester_membership_id: str,
        target_membership_id: str,
    ) -> tuple[Membership, Membership]:
        """
        Swap ADMIN and CO between two memberships in one transaction.

        Raises:
            TargetMustBeCoParentError: Requester is no longer ADMIN or
                target is no longer CO; nothing was changed
        """
        try:
            data: dict[str, Any] = self._rpc("transfer_family_admin", {
                "p_family_id": family_id,
                "p_requester_id": requester_membership_id,
                "p_target_id": target_membership_id,
            })
        except APIError as e:
            condition = raised_condition(e)
            if condition and condition[0] == "TARGET_MUST_BE_CO_PARENT":
                raise TargetMustBeCoParentError() from e
            raise
        return Membership(**data["new_admin"]), Membership(**data["new_co_parent"])


class InMemoryFamilyRepository:
    """Family storage on top of InMemoryDatabase."""

    def __init__(self, store: InMemoryDatabase):
        self._store = store

    def create_family_with_admin(
        self,
        user_id: str,
        request: CreateFamilyRequest,
    ) -> tuple[Family, Membership, list[Child]]:
        with self._store.lock:
            if self.find_membership_for_user(user_id):
                raise AlreadyInFamilyError()

            now = utcnow()
            family = Family(
                id=new_id(),
                name=request.name,
                created_by_user_id=user_id,
                created_at=now,
            )
            membership = Membership(
                id=new_id(),
                user_id=user_id,
                family_id=family.id,
                role=Role.ADMIN,
                joined_at=now,
                created_at=now,
            )
            children = [
                Child(
                    id=new_id(),
                    family_id=family.id,
                    name=child.name,
                    date_of_birth=child.date_of_birth,
                    created_at=now,
                )
                for child in request.children
            ]

            self._store.families[family.id] = family
            self._store.memberships[membership.id] = membership
            for child in children:
                self._store.children[child.id] = child
            return family, membership, children

    def get_family(self, family_id: str) -> Optional[Family]:
        with self._store.lock:
            return self._store.families.get(family_id)

    def list_children(self, family_id: str) -> list[Child]:
        with self._store.lock:
            children = [c for c in self._store.children.values() if c.family_id == family_id]
        return sorted(children, key=lambda c: c.created_at)

    def list_memberships(self, family_id: str) -> list[Membership]:
        with self._store.lock:
            members = [m for m in self._store.memberships.values() if m.family_id == family_id]
        return sorted(members, key=lambda m: m.created_at)

    def get_membership(self, user_id: str, family_id: str) -> Optional[Membership]:
        with self._store.lock:
            for membership in self._store.memberships.values():
                if membership.user_id == user_id and membership.family_id == family_id:
                    return membership
        return None

    def get_membership_by_id(self, membership_id: str, family_id: str) -> Optional[Membership]:
        with self._store.lock:
            membership = self._store.memberships.get(membership_id)
        if membership is None or membership.family_id != family_id:
            return None
        return membership

    def find_membership_for_user(self, user_id: str) -> Optional[Membership]:
        with self._store.lock:
            for membership in self._store.memberships.values():
                if membership.user_id == user_id:
                    return membership
        return None

    def swap_admin(
        self,
        family_id: str,
        requester_membership_id: str,
        target_membership_id: str,
    ) -> tuple[Membership, Membership]:
        with self._store.lock:
            requester = self._store.memberships.get(requester_membership_id)
            target = self._store.memberships.get(target_membership_id)
            if (
                requester is None
                or target is None
                or requester.family_id != family_id
                or target.family_id != family_id
                or requester.role != Role.ADMIN
                or target.role != Role.CO
            ):
                raise TargetMustBeCoParentError()

            new_admin = target.model_copy(update={"role": Role.ADMIN})
            new_co = requester.model_copy(update={"role": Role.CO})
            self._store.memberships[new_admin.id] = new_admin
            self._store.memberships[new_co.id] = new_co
            return new_admin, new_co
