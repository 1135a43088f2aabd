"""Tests for modules/families/repository.py."""

from concurrent.futures import ThreadPoolExecutor, wait
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from modules.families.exceptions import AlreadyInFamilyError, TargetMustBeCoParentError
from modules.families.models import CreateChildRequest, CreateFamilyRequest, Role
from modules.families.repository import FamilyRepository, InMemoryFamilyRepository


def raised(condition: str, detail: str = "") -> APIError:
    return APIError({"code": "P0001", "message": condition, "details": detail, "hint": None})


REQUEST = CreateFamilyRequest(name="Rivera Family", children=[CreateChildRequest(name="Ava")])


class TestInMemoryFamilyRepository:
    @pytest.fixture
    def repo(self, store):
        return InMemoryFamilyRepository(store)

    def test_create_family_with_admin(self, repo, make_user):
        user = make_user()
        family, membership, children = repo.create_family_with_admin(user.id, REQUEST)

        assert membership.role == Role.ADMIN
        assert membership.family_id == family.id
        assert membership.joined_at is not None
        assert [c.family_id for c in children] == [family.id]

    def test_one_family_per_user(self, repo, make_user, store):
        user = make_user()
        repo.create_family_with_admin(user.id, REQUEST)
        with pytest.raises(AlreadyInFamilyError):
            repo.create_family_with_admin(user.id, REQUEST)
        assert len(store.families) == 1

    def test_reads_are_scoped_to_family(self, repo, make_user):
        """Memberships and children of one family are invisible from another."""
        a, b = make_user(), make_user()
        family_a, membership_a, _ = repo.create_family_with_admin(a.id, REQUEST)
        family_b, _, _ = repo.create_family_with_admin(b.id, REQUEST)

        assert [m.user_id for m in repo.list_memberships(family_a.id)] == [a.id]
        assert len(repo.list_children(family_b.id)) == 1
        assert repo.get_membership(a.id, family_b.id) is None
        assert repo.get_membership_by_id(membership_a.id, family_b.id) is None

    def test_swap_admin(self, repo, make_user, make_family, add_co_parent):
        context = make_family(make_user())
        co = add_co_parent(context, make_user())

        new_admin, new_co = repo.swap_admin(context.family_id, context.membership.id, co.id)

        assert (new_admin.id, new_admin.role) == (co.id, Role.ADMIN)
        assert (new_co.id, new_co.role) == (context.membership.id, Role.CO)

    def test_swap_admin_requires_co_target(self, repo, make_user, make_family):
        context = make_family(make_user())
        with pytest.raises(TargetMustBeCoParentError):
            repo.swap_admin(context.family_id, context.membership.id, context.membership.id)

    def test_point_reads_wait_for_store_lock(self, repo, make_user, make_family, store):
        """Lookups by id block while another thread holds the store lock."""
        context = make_family(make_user())

        with ThreadPoolExecutor(max_workers=2) as pool:
            with store.lock:
                family = pool.submit(repo.get_family, context.family_id)
                membership = pool.submit(repo.get_membership_by_id, context.membership.id, context.family_id)
                wait([family, membership], timeout=0.2)
                assert not family.done()
                assert not membership.done()

            assert family.result().id == context.family_id
            assert membership.result().id == context.membership.id


class TestFamilyRepository:
    @pytest.fixture
    def db(self):
        return MagicMock()

    @pytest.fixture
    def repo(self, db):
        return FamilyRepository(db)

    def test_create_calls_rpc(self, repo, db):
        db.rpc.return_value.execute.return_value = MagicMock(data={
            "family": {
                "id": "f1",
                "name": "Rivera Family",
                "created_by_user_id": "u1",
                "created_at": "2026-01-01T00:00:00+00:00",
            },
            "membership": {
                "id": "m1",
                "user_id": "u1",
                "family_id": "f1",
                "role": "ADMIN",
                "joined_at": "2026-01-01T00:00:00+00:00",
                "created_at": "2026-01-01T00:00:00+00:00",
            },
            "children": [{
                "id": "c1",
                "family_id": "f1",
                "name": "Ava",
                "date_of_birth": None,
                "created_at": "2026-01-01T00:00:00+00:00",
            }],
        })

        family, membership, children = repo.create_family_with_admin("u1", REQUEST)

        db.rpc.assert_called_once_with("create_family_with_admin", {
            "p_user_id": "u1",
            "p_name": "Rivera Family",
            "p_children": [{"name": "Ava", "date_of_birth": None}],
        })
        assert family.id == "f1"
        assert membership.role == Role.ADMIN
        assert children[0].name == "Ava"

    def test_create_maps_already_in_family(self, repo, db):
        db.rpc.return_value.execute.side_effect = raised("ALREADY_IN_FAMILY")
        with pytest.raises(AlreadyInFamilyError):
            repo.create_family_with_admin("u1", REQUEST)

    def test_swap_maps_target_condition(self, repo, db):
        db.rpc.return_value.execute.side_effect = raised("TARGET_MUST_BE_CO_PARENT")
        with pytest.raises(TargetMustBeCoParentError):
            repo.swap_admin("f1", "m1", "m2")

    def test_swap_reraises_unknown_errors(self, repo, db):
        db.rpc.return_value.execute.side_effect = raised("SOMETHING_ELSE")
        with pytest.raises(APIError):
            repo.swap_admin("f1", "m1", "m2")
