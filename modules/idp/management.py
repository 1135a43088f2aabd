"""
Client for the identity provider's management API.

Speaks the Auth0 Management API v2 dialect: a client-credentials token
from /oauth/token, then /api/v2/roles and /api/v2/users/{id}/roles.
"""

import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx

from .exceptions import IdPManagementError

logger = logging.getLogger(__name__)

# Renew the access token this many seconds before it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class IdPManagementClient:
    """
    Thin async wrapper over the management endpoints role sync needs.

    The access token and the role-name -> role-id table are cached in
    memory for the life of the client.
    """

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        audience: str,
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._base_url = f"https://{domain}" if domain and "://" not in domain else domain
        self._client_id = client_id
        self._client_secret = client_secret
        self._audience = audience
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._clock = clock
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._role_ids: Optional[dict[str, str]] = None

    @property
    def is_configured(self) -> bool:
        """Check if management credentials are configured."""
        return bool(self._base_url and self._client_id and self._client_secret)

    async def role_ids(self) -> dict[str, str]:
        """Map role name -> role id for every role defined in the tenant."""
        if self._role_ids is None:
            roles = await self._request("GET", "/api/v2/roles")
            self._role_ids = {role["name"]: role["id"] for role in roles}
        return self._role_ids

    async def get_user_role_ids(self, subject: str) -> set[str]:
        roles = await self._request("GET", f"/api/v2/users/{quote(subject, safe='')}/roles")
        return {role["id"] for role in roles}

    async def assign_roles(self, subject: str, role_ids: list[str]) -> None:
        await self._request(
            "POST",
            f"/api/v2/users/{quote(subject, safe='')}/roles",
            json={"roles": role_ids},
        )

    async def remove_roles(self, subject: str, role_ids: list[str]) -> None:
        await self._request(
            "DELETE",
            f"/api/v2/users/{quote(subject, safe='')}/roles",
            json={"roles": role_ids},
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _token(self) -> str:
        if self._access_token and self._clock() < self._token_expires_at:
            return self._access_token

        try:
            response = await self._http().post(
                f"{self._base_url}/oauth/token",
                json={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "audience": self._audience,
                },
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IdPManagementError(f"Could not obtain management token: {e}") from e

        self._access_token = data["access_token"]
        expires_in = int(data.get("expires_in", 3600))
        self._token_expires_at = self._clock() + max(0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        return self._access_token

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        token = await self._token()
        try:
            response = await self._http().request(
                method,
                f"{self._base_url}{path}",
                json=json,
                headers={"Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
            if response.status_code == 401:
                # Token revoked early; fetch a new one on the next attempt
                self._access_token = None
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise IdPManagementError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        return response.json()
