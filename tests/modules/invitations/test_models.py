from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from modules.invitations.models import (
    CreateInvitationRequest,
    Invitation,
    InvitationResponse,
    InvitationStatus,
    can_transition,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def invitation(**overrides) -> Invitation:
    fields = {
        "id": "i1",
        "family_id": "f1",
        "inviting_membership_id": "m1",
        "email": "sam@example.com",
        "token": "A" * 43,
        "expires_at": NOW + timedelta(days=7),
        "created_at": NOW,
    }
    fields.update(overrides)
    return Invitation(**fields)


class TestTransitions:
    @pytest.mark.parametrize("target", [
        InvitationStatus.ACCEPTED,
        InvitationStatus.EXPIRED,
        InvitationStatus.REVOKED,
    ])
    def test_pending_can_leave(self, target):
        assert can_transition(InvitationStatus.PENDING, target)

    def test_expired_can_only_be_revoked(self):
        assert can_transition(InvitationStatus.EXPIRED, InvitationStatus.REVOKED)
        assert not can_transition(InvitationStatus.EXPIRED, InvitationStatus.PENDING)

    @pytest.mark.parametrize("terminal", [InvitationStatus.ACCEPTED, InvitationStatus.REVOKED])
    def test_terminal_states(self, terminal):
        """Nothing leaves ACCEPTED or REVOKED."""
        assert not any(can_transition(terminal, target) for target in InvitationStatus)


class TestInvitation:
    def test_expiry_is_strictly_after(self):
        inv = invitation()
        assert not inv.is_expired(inv.expires_at)
        assert inv.is_expired(inv.expires_at + timedelta(microseconds=1))

    def test_usable_requires_pending(self):
        assert invitation().is_usable(NOW)
        assert not invitation(status=InvitationStatus.REVOKED).is_usable(NOW)

    def test_response_hides_token(self):
        """The admin view never exposes the token."""
        assert "token" not in InvitationResponse.from_invitation(invitation()).model_dump()


class TestCreateInvitationRequest:
    def test_rejects_invalid_email(self):
        with pytest.raises(ValidationError):
            CreateInvitationRequest(email="not-an-email")

    def test_message_length(self):
        with pytest.raises(ValidationError):
            CreateInvitationRequest(email="sam@example.com", message="x" * 501)
