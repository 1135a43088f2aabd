"""Tests for modules/auth/keys.py."""

import httpx
import pytest

from modules.auth.exceptions import IdentityProviderUnavailableError, MalformedTokenError
from modules.auth.keys import KeyCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestKeyCache:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, jwks_server, jwks_url, clock):
        return KeyCache(
            jwks_url,
            ttl_seconds=1800,
            min_refresh_seconds=60,
            http_client=jwks_server.client(),
            clock=clock,
        )

    @pytest.mark.asyncio
    async def test_fetches_on_first_use(self, cache, jwks_server, idp_issuer):
        """First lookup should fetch the key set."""
        key = await cache.get_signing_key(idp_issuer, "test-key-1")

        assert key.key_id == "test-key-1"
        assert jwks_server.requests == 1
        assert cache.cached(idp_issuer) is not None

    @pytest.mark.asyncio
    async def test_serves_from_cache_within_ttl(self, cache, jwks_server, clock, idp_issuer):
        """Lookups within the TTL should not refetch."""
        await cache.get_signing_key(idp_issuer, "test-key-1")
        clock.now += 1799
        await cache.get_signing_key(idp_issuer, "test-key-1")

        assert jwks_server.requests == 1

    @pytest.mark.asyncio
    async def test_refetches_after_ttl(self, cache, jwks_server, clock, idp_issuer):
        """An entry older than the TTL should be refreshed."""
        await cache.get_signing_key(idp_issuer, "test-key-1")
        clock.now += 1800
        await cache.get_signing_key(idp_issuer, "test-key-1")

        assert jwks_server.requests == 2

    @pytest.mark.asyncio
    async def test_unknown_kid_refreshes_for_rotation(
        self, cache, jwks_server, clock, idp_issuer, new_signing_key
    ):
        """A new key id should trigger one early refresh and be found."""
        await cache.get_signing_key(idp_issuer, "test-key-1")
        _, rotated = new_signing_key("test-key-2")
        jwks_server.keys.append(rotated)
        clock.now += 61

        key = await cache.get_signing_key(idp_issuer, "test-key-2")

        assert key.key_id == "test-key-2"
        assert jwks_server.requests == 2

    @pytest.mark.asyncio
    async def test_unknown_kid_refresh_is_rate_limited(self, cache, jwks_server, clock, idp_issuer):
        """Unknown key ids within min_refresh_seconds should not refetch."""
        await cache.get_signing_key(idp_issuer, "test-key-1")
        clock.now += 10

        with pytest.raises(MalformedTokenError):
            await cache.get_signing_key(idp_issuer, "no-such-key")
        assert jwks_server.requests == 1

    @pytest.mark.asyncio
    async def test_unknown_kid_after_refresh_is_malformed(self, cache, jwks_server, clock, idp_issuer):
        """A key id missing even after a refresh should be rejected."""
        await cache.get_signing_key(idp_issuer, "test-key-1")
        clock.now += 120

        with pytest.raises(MalformedTokenError):
            await cache.get_signing_key(idp_issuer, "no-such-key")
        assert jwks_server.requests == 2

    @pytest.mark.asyncio
    async def test_fetch_failure_is_unavailable(self, cache, jwks_server, idp_issuer):
        """An IdP error should surface as IdentityProviderUnavailableError."""
        jwks_server.status_code = 503

        with pytest.raises(IdentityProviderUnavailableError):
            await cache.get_signing_key(idp_issuer, "test-key-1")

    @pytest.mark.asyncio
    async def test_network_failure_is_unavailable(self, jwks_url, idp_issuer):
        """A network error should surface as IdentityProviderUnavailableError."""

        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        cache = KeyCache(jwks_url, http_client=httpx.AsyncClient(transport=httpx.MockTransport(unreachable)))

        with pytest.raises(IdentityProviderUnavailableError):
            await cache.get_signing_key(idp_issuer, "test-key-1")

    @pytest.mark.asyncio
    async def test_invalid_document_is_unavailable(self, jwks_url, idp_issuer):
        """A response that is not a JWKS should surface as unavailable."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        )
        cache = KeyCache(jwks_url, http_client=client)

        with pytest.raises(IdentityProviderUnavailableError):
            await cache.get_signing_key(idp_issuer, "test-key-1")

    @pytest.mark.asyncio
    async def test_clear_forces_refetch(self, cache, jwks_server, idp_issuer):
        """clear should drop entries so the next lookup fetches again."""
        await cache.get_signing_key(idp_issuer, "test-key-1")
        cache.clear()
        await cache.get_signing_key(idp_issuer, "test-key-1")

        assert jwks_server.requests == 2
