from datetime import datetime, timedelta, timezone

from modules.invitations.tokens import build_invitation_url, expiry_from, generate_token, is_well_formed


class TestTokens:
    def test_generated_tokens_are_well_formed(self):
        """Tokens are 256 bits of unpadded base64url."""
        token = generate_token()
        assert len(token) == 43
        assert is_well_formed(token)

    def test_generated_tokens_differ(self):
        assert len({generate_token() for _ in range(100)}) == 100

    def test_rejects_malformed(self):
        assert not is_well_formed("")
        assert not is_well_formed("short")
        assert not is_well_formed("A" * 42 + "=")
        assert not is_well_formed("A" * 44)

    def test_expiry(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert expiry_from(now, 7) == now + timedelta(days=7)

    def test_url_strips_trailing_slash(self):
        assert build_invitation_url("https://app.example/", "tok") == "https://app.example/invite/tok"
