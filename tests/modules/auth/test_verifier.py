"""Tests for modules/auth/verifier.py."""

import pytest

from modules.auth.exceptions import (
    ExpiredTokenError,
    IdentityProviderUnavailableError,
    MalformedTokenError,
    MissingTokenError,
    SignatureInvalidError,
)
from modules.auth.keys import KeyCache
from modules.auth.verifier import TokenVerifier


class TestTokenVerifier:
    @pytest.fixture
    def verifier(self, jwks_server, jwks_url, idp_issuer, idp_audience):
        cache = KeyCache(jwks_url, http_client=jwks_server.client())
        return TokenVerifier(
            cache,
            issuer=idp_issuer,
            audience=idp_audience,
            roles_claim="https://idp.coparent.test/roles",
        )

    @pytest.mark.asyncio
    async def test_valid_token(self, verifier, token_for, idp_issuer):
        """A valid token should yield its identity claims."""
        token = token_for(
            subject="auth0|abc",
            email="parent@example.com",
            extra_claims={"name": "Sam", "https://idp.coparent.test/roles": ["ADMIN_PARENT"]},
        )

        identity = await verifier.verify(token)

        assert identity.subject == "auth0|abc"
        assert identity.email == "parent@example.com"
        assert identity.name == "Sam"
        assert identity.roles == ("ADMIN_PARENT",)
        assert identity.issuer == idp_issuer

    @pytest.mark.asyncio
    async def test_roles_claim_must_be_a_list(self, verifier, token_for):
        """A non-list roles claim should be ignored."""
        token = token_for(extra_claims={"https://idp.coparent.test/roles": "ADMIN_PARENT"})
        identity = await verifier.verify(token)
        assert identity.roles == ()

    @pytest.mark.asyncio
    async def test_missing_token(self, verifier):
        """An empty token should raise MissingTokenError."""
        with pytest.raises(MissingTokenError):
            await verifier.verify(None)
        with pytest.raises(MissingTokenError):
            await verifier.verify("")

    @pytest.mark.asyncio
    async def test_garbage_token(self, verifier):
        """An unparseable token should raise MalformedTokenError."""
        with pytest.raises(MalformedTokenError):
            await verifier.verify("not-a-jwt")

    @pytest.mark.asyncio
    async def test_expired_token(self, verifier, token_for):
        """An expired token should raise ExpiredTokenError."""
        with pytest.raises(ExpiredTokenError):
            await verifier.verify(token_for(expires_in=-60))

    @pytest.mark.asyncio
    async def test_tampered_signature(self, verifier, token_for):
        """Changing any single character of the signature should fail verification."""
        token = token_for()
        header, payload, signature = token.split(".")
        last = len(signature) - 1
        positions = [0, 1, len(signature) // 2, last - 1, last]

        for position in positions:
            for replacement in "AB*=+":
                if signature[position] == replacement:
                    continue
                tampered_signature = signature[:position] + replacement + signature[position + 1:]
                with pytest.raises(SignatureInvalidError):
                    await verifier.verify(f"{header}.{payload}.{tampered_signature}")

    @pytest.mark.asyncio
    async def test_missing_signature(self, verifier, token_for):
        header, payload, _ = token_for().split(".")
        with pytest.raises(SignatureInvalidError):
            await verifier.verify(f"{header}.{payload}.")

    @pytest.mark.asyncio
    async def test_token_signed_by_other_key(self, verifier, token_for, new_signing_key):
        """A token signed by a foreign key with a known kid should fail."""
        foreign_key, _ = new_signing_key("test-key-1")
        with pytest.raises(SignatureInvalidError):
            await verifier.verify(token_for(key=foreign_key))

    @pytest.mark.asyncio
    async def test_disallowed_algorithm(self, verifier, token_for):
        """An HS256 token should be rejected before any key lookup."""
        token = token_for(key="shared-secret-that-is-long-enough-for-hs256", algorithm="HS256")
        with pytest.raises(SignatureInvalidError):
            await verifier.verify(token)

    @pytest.mark.asyncio
    async def test_missing_kid(self, verifier, token_for):
        """A token without a key id should be malformed."""
        with pytest.raises(MalformedTokenError):
            await verifier.verify(token_for(kid=None))

    @pytest.mark.asyncio
    async def test_wrong_issuer(self, verifier, token_for):
        """A token from another issuer should be malformed."""
        with pytest.raises(MalformedTokenError):
            await verifier.verify(token_for(issuer="https://evil.example/"))

    @pytest.mark.asyncio
    async def test_wrong_audience(self, verifier, token_for):
        """A token for another audience should be malformed."""
        with pytest.raises(MalformedTokenError):
            await verifier.verify(token_for(audience="https://other-api.example"))

    @pytest.mark.asyncio
    async def test_idp_unavailable(self, verifier, jwks_server, token_for):
        """Key fetch failures should surface as IdentityProviderUnavailableError."""
        jwks_server.status_code = 500
        with pytest.raises(IdentityProviderUnavailableError):
            await verifier.verify(token_for())
