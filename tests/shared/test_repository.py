"""Tests for shared/repository.py."""

from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from shared.repository import BaseRepository, raised_condition, violated_constraint


def api_error(code: str, message: str, details: str = "") -> APIError:
    return APIError({"code": code, "message": message, "details": details, "hint": None})


class TestBaseRepository:
    def test_init_stores_db_client(self):
        """Should store the database client in _db attribute."""
        mock_db = MagicMock()
        repo = BaseRepository(mock_db)
        assert repo._db is mock_db

    def test_first_returns_first_row(self):
        """_first should return the first row or None."""
        assert BaseRepository._first(MagicMock(data=[{"id": "1"}, {"id": "2"}])) == {"id": "1"}
        assert BaseRepository._first(MagicMock(data=[])) is None
        assert BaseRepository._first(MagicMock(data=None)) is None

    def test_rpc_returns_payload(self):
        """_rpc should call the function and return its data."""
        mock_db = MagicMock()
        mock_db.rpc.return_value.execute.return_value.data = {"ok": True}

        repo = BaseRepository(mock_db)

        assert repo._rpc("do_thing", {"p_id": "1"}) == {"ok": True}
        mock_db.rpc.assert_called_once_with("do_thing", {"p_id": "1"})


class TestErrorDecoding:
    def test_violated_constraint_name(self):
        """Unique violations should yield the constraint name."""
        error = api_error(
            "23505",
            'duplicate key value violates unique constraint "invitations_token_key"',
        )
        assert violated_constraint(error) == "invitations_token_key"

    def test_violated_constraint_other_code(self):
        """Other error codes are not unique violations."""
        assert violated_constraint(api_error("23503", "foreign key violation")) is None

    def test_raised_condition(self):
        """P0001 errors should decode to (condition, detail)."""
        error = api_error("P0001", "INVITATION_GONE", "accepted")
        assert raised_condition(error) == ("INVITATION_GONE", "accepted")

    def test_raised_condition_other_code(self):
        """Non-P0001 errors are not raised conditions."""
        assert raised_condition(api_error("23505", "duplicate")) is None
