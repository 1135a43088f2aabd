"""
In-memory storage backend.

Holds the same tables the Supabase schema defines, as plain dicts of
Pydantic models, behind one re-entrant lock. Repositories built on it
take the lock for every multi-row operation, which gives them the same
all-or-nothing behaviour the SQL functions in migrations/ provide.

Used by the test suite and for local development (STORAGE_BACKEND=memory).
"""

import threading
import uuid
from typing import Any


def new_id() -> str:
    """Generate a primary key in the same format Postgres uses."""
    return str(uuid.uuid4())


class InMemoryDatabase:
    """
    Process-local tables shared by all in-memory repositories.

    Attributes:
        lock: Guards every read-modify-write across tables.
        users, families, children, memberships, invitations:
            Row id -> model instance.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users: dict[str, Any] = {}
        self.families: dict[str, Any] = {}
        self.children: dict[str, Any] = {}
        self.memberships: dict[str, Any] = {}
        self.invitations: dict[str, Any] = {}

    def reset(self) -> None:
        """Drop all rows."""
        with self.lock:
            self.users.clear()
            self.families.clear()
            self.children.clear()
            self.memberships.clear()
            self.invitations.clear()
