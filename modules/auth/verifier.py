"""
Bearer token verification.

Turns a raw token into an Identity or one of the credential errors in
exceptions.py. Signing keys come from the KeyCache.
"""

import logging
from typing import Any, Optional

import jwt
from jwt.utils import base64url_decode, base64url_encode

from .exceptions import (
    ExpiredTokenError,
    MalformedTokenError,
    MissingTokenError,
    SignatureInvalidError,
)
from .keys import KeyCache
from .models import Identity

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["exp", "sub", "iss", "aud"]


def _is_canonical_base64url(segment: str) -> bool:
    """True if segment decodes and re-encodes to itself (no stray padding bits)."""
    try:
        decoded = base64url_decode(segment)
    except (ValueError, TypeError):
        return False
    return bool(decoded) and base64url_encode(decoded).decode("ascii") == segment


class TokenVerifier:
    """
    Verifies IdP-issued JWTs.

    The accepted algorithm is fixed by configuration. The token header is
    only consulted to reject anything else (``none``, ``HS256``...) before a
    key is ever looked up, and to pick the key id.
    """

    def __init__(
        self,
        key_cache: KeyCache,
        issuer: str,
        audience: str,
        algorithm: str = "RS256",
        roles_claim: Optional[str] = None,
        leeway: int = 0,
    ):
        self._keys = key_cache
        self._issuer = issuer
        self._audience = audience
        self._algorithm = algorithm
        self._roles_claim = roles_claim
        self._leeway = leeway

    @property
    def issuer(self) -> str:
        return self._issuer

    async def verify(self, raw_token: Optional[str]) -> Identity:
        """
        Verify a bearer token and extract its identity claims.

        Args:
            raw_token: The token without the "Bearer " prefix

        Returns:
            Identity built from the verified claims

        Raises:
            MissingTokenError: Empty token
            MalformedTokenError: Unparseable token, unknown key id, or wrong
                issuer/audience/required claims
            SignatureInvalidError: Disallowed algorithm or bad signature
            ExpiredTokenError: `exp` in the past
            IdentityProviderUnavailableError: Keys could not be fetched
        """
        if not raw_token:
            raise MissingTokenError()

        segments = raw_token.split(".")
        if len(segments) != 3:
            raise MalformedTokenError()
        header_segment, payload_segment, signature_segment = segments

        # Header and payload are parsed without the signature so that a
        # damaged signature is reported as such, not as a malformed token.
        try:
            header = jwt.get_unverified_header(f"{header_segment}.{payload_segment}.")
        except jwt.InvalidTokenError:
            raise MalformedTokenError()

        if header.get("alg") != self._algorithm:
            raise SignatureInvalidError("Token signing algorithm is not allowed")

        if not _is_canonical_base64url(signature_segment):
            raise SignatureInvalidError()

        kid = header.get("kid")
        if not kid or not isinstance(kid, str):
            raise MalformedTokenError("Token has no key id")

        signing_key = await self._keys.get_signing_key(self._issuer, kid)

        try:
            claims = jwt.decode(
                raw_token,
                signing_key.key,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidSignatureError:
            raise SignatureInvalidError()
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError(f"Invalid authentication token: {e}")

        identity = self._to_identity(claims)
        logger.debug(f"Verified token for subject {identity.subject}")
        return identity

    def _to_identity(self, claims: dict[str, Any]) -> Identity:
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise MalformedTokenError("Token subject is missing")

        email = claims.get("email")
        name = claims.get("name")
        return Identity(
            subject=subject,
            email=email if isinstance(email, str) and email else None,
            name=name if isinstance(name, str) and name else None,
            roles=self._extract_roles(claims),
            issuer=claims["iss"],
        )

    def _extract_roles(self, claims: dict[str, Any]) -> tuple[str, ...]:
        if not self._roles_claim:
            return ()
        roles = claims.get(self._roles_claim)
        if not isinstance(roles, list):
            return ()
        return tuple(role for role in roles if isinstance(role, str))
