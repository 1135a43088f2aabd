"""
Signing-key cache for the identity provider.

Keys are fetched from the IdP's JWKS endpoint and kept in memory per
issuer for a fixed TTL. A key id missing from an otherwise fresh entry
triggers one early refresh (key rotation), at most once per
``min_refresh_seconds``.

The cache is an ordinary object owned by the service container, so tests
build their own with an ``httpx.MockTransport`` and a fake clock.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from jwt import PyJWK, PyJWKSet
from jwt.exceptions import PyJWKSetError

from .exceptions import IdentityProviderUnavailableError, MalformedTokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedKeySet:
    """One issuer's key set and when it was fetched (monotonic seconds)."""

    keys: PyJWKSet
    fetched_at: float
    expires_at: float

    def find(self, kid: str) -> Optional[PyJWK]:
        for key in self.keys.keys:
            if key.key_id == kid:
                return key
        return None


class KeyCache:
    """
    TTL cache of the IdP's public signing keys.

    Safe to share between concurrent requests: entries are replaced by
    rebinding the whole dict, so a reader holding the previous entry keeps
    using it until it finishes. Two requests racing on an expired entry
    may both fetch; that costs one redundant request and nothing else.
    """

    def __init__(
        self,
        jwks_url: str,
        ttl_seconds: int = 30 * 60,
        min_refresh_seconds: int = 60,
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            jwks_url: JWKS endpoint of the identity provider
            ttl_seconds: How long a fetched key set is trusted
            min_refresh_seconds: Minimum age of an entry before an unknown
                key id may force a refresh
            timeout: Timeout for the JWKS request, in seconds
            http_client: Client to use; one is created (and owned) if omitted
            clock: Monotonic time source, injectable for tests
        """
        self._jwks_url = jwks_url
        self._ttl = ttl_seconds
        self._min_refresh = min_refresh_seconds
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._clock = clock
        self._entries: dict[str, CachedKeySet] = {}

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def cached(self, issuer: str) -> Optional[CachedKeySet]:
        """Return the cached entry for an issuer without fetching."""
        return self._entries.get(issuer)

    async def get_signing_key(self, issuer: str, kid: str) -> PyJWK:
        """
        Return the key with the given id, fetching keys if needed.

        Raises:
            IdentityProviderUnavailableError: If the keys cannot be fetched
            MalformedTokenError: If no key with that id exists
        """
        now = self._clock()
        entry = self._entries.get(issuer)
        if entry is None or entry.expires_at <= now:
            entry = await self.refresh(issuer)

        key = entry.find(kid)
        if key is None and now - entry.fetched_at >= self._min_refresh:
            logger.info(f"Unknown signing key id for {issuer}, refreshing key set")
            entry = await self.refresh(issuer)
            key = entry.find(kid)

        if key is None:
            raise MalformedTokenError("Token signed with an unknown key")
        return key

    async def refresh(self, issuer: str) -> CachedKeySet:
        """Fetch the key set now and replace the cached entry."""
        keys = await self._fetch()
        now = self._clock()
        entry = CachedKeySet(keys=keys, fetched_at=now, expires_at=now + self._ttl)
        entries = dict(self._entries)
        entries[issuer] = entry
        self._entries = entries
        logger.debug(f"Cached {len(keys.keys)} signing key(s) for {issuer}")
        return entry

    def clear(self) -> None:
        """Drop every cached key set."""
        self._entries = {}
        logger.info("Signing key cache cleared")

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _fetch(self) -> PyJWKSet:
        try:
            response = await self._http().get(self._jwks_url, timeout=self._timeout)
            response.raise_for_status()
            return PyJWKSet.from_dict(response.json())
        except (httpx.HTTPError, ValueError, PyJWKSetError) as e:
            logger.error(f"Failed to fetch signing keys from {self._jwks_url}: {e}")
            raise IdentityProviderUnavailableError() from e
