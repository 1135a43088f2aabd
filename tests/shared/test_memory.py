"""Tests for shared/memory.py."""

import uuid

from shared.memory import InMemoryDatabase, new_id


class TestInMemoryDatabase:
    def test_new_id_is_uuid(self):
        """new_id should produce a UUID string."""
        assert uuid.UUID(new_id()).version == 4

    def test_reset_clears_tables(self):
        """reset should drop all rows in every table."""
        store = InMemoryDatabase()
        store.users["u"] = object()
        store.invitations["i"] = object()

        store.reset()

        assert store.users == {}
        assert store.invitations == {}
