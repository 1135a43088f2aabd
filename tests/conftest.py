"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
an RSA signing key with a matching JWKS served through httpx.MockTransport,
token factories, fake outbound collaborators, and an in-memory container.
"""

import itertools
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jwt.algorithms import RSAAlgorithm

from api.app import create_app
from api.dependencies import ServiceContainer, reset_container, set_container
from modules.auth.models import Identity, User
from modules.auth.repository import InMemoryUserRepository
from modules.families.models import (
    CreateChildRequest,
    CreateFamilyRequest,
    Membership,
    Role,
    TenantContext,
)
from modules.families.repository import InMemoryFamilyRepository
from modules.notifications.exceptions import EmailDeliveryError
from modules.notifications.models import EmailMessage
from shared.config import Settings
from shared.memory import InMemoryDatabase, new_id
from shared.models import utcnow

IDP_DOMAIN = "idp.coparent.test"
ISSUER = f"https://{IDP_DOMAIN}/"
AUDIENCE = "https://api.coparent.test"
JWKS_PATH = "/.well-known/jwks.json"
KID = "test-key-1"
FRONTEND_URL = "https://app.coparent.test"


def generate_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def public_jwk(private_key: rsa.RSAPrivateKey, kid: str = KID) -> dict[str, Any]:
    """JWK for the public half of a test key."""
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "use": "sig", "alg": "RS256"})
    return jwk


# Generated once per test session; RSA key generation is slow
SIGNING_KEY = generate_rsa_key()


def create_test_token(
    subject: str = "auth0|user-1",
    email: Optional[str] = "user1@example.com",
    *,
    key: Any = SIGNING_KEY,
    kid: Optional[str] = KID,
    issuer: str = ISSUER,
    audience: str = AUDIENCE,
    expires_in: int = 3600,
    algorithm: str = "RS256",
    extra_claims: Optional[dict[str, Any]] = None,
) -> str:
    """
    Create a signed access token the way the IdP would.

    Args:
        expires_in: Seconds until `exp`; negative for an expired token
        extra_claims: Claims added to (or overriding) the defaults
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "iss": issuer,
        "aud": audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    if email is not None:
        payload["email"] = email
    payload.update(extra_claims or {})
    headers = {"kid": kid} if kid else None
    return jwt.encode(payload, key, algorithm=algorithm, headers=headers)


class JWKSServer:
    """httpx.MockTransport handler serving a mutable JWKS document."""

    def __init__(self, keys: list[dict[str, Any]]):
        self.keys = keys
        self.requests = 0
        self.status_code = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path != JWKS_PATH:
            return httpx.Response(404)
        self.requests += 1
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        return httpx.Response(200, json={"keys": self.keys})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class FakeEmailTransport:
    """Records sent messages; queued failures are raised first, one per send."""

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []
        self.failures: list[EmailDeliveryError] = []
        self.attempts = 0

    async def send(self, message: EmailMessage) -> None:
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append(message)

    async def aclose(self) -> None:
        pass


class RecordingRoleSync:
    """IRoleSyncScheduler that only records what would be synced."""

    def __init__(self) -> None:
        self.scheduled: list[tuple[str, str]] = []

    def schedule(self, subject: str, role: Any) -> None:
        self.scheduled.append((subject, getattr(role, "value", role)))


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory deployment with no retry delays."""
    return Settings(
        _env_file=None,
        storage_backend="memory",
        idp_domain=IDP_DOMAIN,
        idp_audience=AUDIENCE,
        frontend_url=FRONTEND_URL,
        email_retry_base_delay_seconds=0,
        side_effect_retry_base_delay_seconds=0,
    )


@pytest.fixture
def store() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def email_transport() -> FakeEmailTransport:
    return FakeEmailTransport()


@pytest.fixture
def role_sync() -> RecordingRoleSync:
    return RecordingRoleSync()


@pytest.fixture
def jwks_server() -> JWKSServer:
    return JWKSServer([public_jwk(SIGNING_KEY)])


@pytest.fixture
def container(settings, store, email_transport, role_sync, jwks_server) -> ServiceContainer:
    return ServiceContainer(
        settings=settings,
        store=store,
        email_transport=email_transport,
        role_sync=role_sync,
        http_client=jwks_server.client(),
    )


@pytest.fixture
def client(container):
    """TestClient over a fresh app wired to the in-memory container."""
    set_container(container)
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_container()


@pytest.fixture
def token_for():
    """Factory: token for a user (or explicit subject/email)."""

    def _token(user: Optional[User] = None, **kwargs: Any) -> str:
        if user is not None:
            kwargs.setdefault("subject", user.external_subject_id)
            kwargs.setdefault("email", user.email)
        return create_test_token(**kwargs)

    return _token


@pytest.fixture
def auth_headers(token_for):
    """Factory: Authorization headers for a user."""

    def _headers(user: Optional[User] = None, **kwargs: Any) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user, **kwargs)}"}

    return _headers


@pytest.fixture
def make_user(store):
    """Factory: register a user directly in the in-memory store."""
    users = InMemoryUserRepository(store)
    counter = itertools.count(1)

    def _make(
        email: Optional[str] = None,
        subject: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> User:
        n = next(counter)
        return users.create(
            subject or f"auth0|user-{n}",
            (email or f"user{n}@example.com").lower(),
            display_name or f"User {n}",
        )

    return _make


@pytest.fixture
def context_for():
    """Factory: TenantContext for a user and membership."""

    def _context(user: User, membership: Membership) -> TenantContext:
        identity = Identity(subject=user.external_subject_id, email=user.email, issuer=ISSUER)
        return TenantContext(identity=identity, user=user, membership=membership)

    return _context


@pytest.fixture
def make_family(store, context_for):
    """Factory: create a family with `admin` as ADMIN; returns the admin's context."""
    families = InMemoryFamilyRepository(store)

    def _make(
        admin: User,
        name: str = "Rivera Family",
        children: tuple[str, ...] = ("Ava",),
    ) -> TenantContext:
        _, membership, _ = families.create_family_with_admin(
            admin.id,
            CreateFamilyRequest(
                name=name,
                children=[CreateChildRequest(name=child) for child in children],
            ),
        )
        return context_for(admin, membership)

    return _make


@pytest.fixture
def idp_issuer() -> str:
    return ISSUER


@pytest.fixture
def idp_audience() -> str:
    return AUDIENCE


@pytest.fixture
def jwks_url() -> str:
    return f"https://{IDP_DOMAIN}{JWKS_PATH}"


@pytest.fixture
def new_signing_key():
    """Factory: a fresh RSA key and its public JWK, e.g. for key rotation."""

    def _new(kid: str) -> tuple[rsa.RSAPrivateKey, dict[str, Any]]:
        key = generate_rsa_key()
        return key, public_jwk(key, kid)

    return _new


@pytest.fixture
def add_co_parent(store):
    """Factory: give `user` a CO membership in the family of `admin_context`."""

    def _add(admin_context: TenantContext, user: User) -> Membership:
        now = utcnow()
        membership = Membership(
            id=new_id(),
            user_id=user.id,
            family_id=admin_context.family_id,
            role=Role.CO,
            joined_at=now,
            invited_by_membership_id=admin_context.membership.id,
            created_at=now,
        )
        store.memberships[membership.id] = membership
        return membership

    return _add
