"""
Base repository class for database access.

Provides a common abstraction layer for all Supabase repositories,
encapsulating client access and the translation of Postgres errors raised
by unique constraints and RPC functions into something the domain layer
can branch on.
"""

import re
from typing import Any, Generic, Optional, TypeVar

from postgrest.exceptions import APIError
from supabase import Client


T = TypeVar("T")

UNIQUE_VIOLATION = "23505"
RAISED_EXCEPTION = "P0001"

_CONSTRAINT_PATTERN = re.compile(r'constraint "(?P<name>[^"]+)"')


def violated_constraint(error: APIError) -> Optional[str]:
    """Return the name of the unique constraint behind an APIError, if any."""
    if error.code != UNIQUE_VIOLATION:
        return None
    match = _CONSTRAINT_PATTERN.search(error.message or "")
    return match.group("name") if match else ""


def raised_condition(error: APIError) -> Optional[tuple[str, str]]:
    """
    Decode a condition raised by one of our RPC functions.

    The SQL functions in migrations/ signal domain outcomes with
    ``RAISE EXCEPTION '<CONDITION>' USING DETAIL = '<detail>'``; PostgREST
    forwards them as code P0001.

    Returns:
        (condition, detail) or None when the error is not one of ours
    """
    if error.code != RAISED_EXCEPTION:
        return None
    return (error.message or "", error.details or "")


class BaseRepository(Generic[T]):
    """
    Base class for all Supabase repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - Small helpers for single-row results and RPC calls

    Subclasses implement domain-specific data access methods and handle
    dict-to-Pydantic model mapping internally.

    Example:
        class FamilyRepository(BaseRepository[Family]):
            def get_family(self, family_id: str) -> Optional[Family]:
                row = self._first(
                    self._db.table("families").select("*").eq("id", family_id).execute()
                )
                return Family(**row) if row else None
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    @staticmethod
    def _first(result: Any) -> Optional[dict[str, Any]]:
        """Return the first row of a query result, or None."""
        if not result.data:
            return None
        return result.data[0]

    def _rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Call a Postgres function and return its JSON payload."""
        return self._db.rpc(function, params).execute().data
