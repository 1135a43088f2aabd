"""
Bearer authentication and rate-limit dependencies.

Verifies IdP access tokens through the container's TokenVerifier and
exposes the result to routes as an Identity (or, for routes that need a
registered account, a User).
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from modules.auth.interfaces import ITokenVerifier
from modules.auth.models import Identity, User
from modules.families.interfaces import ITenantResolver
from modules.ratelimit.governor import AbuseGovernor
from modules.ratelimit.models import EndpointClass
from shared.exceptions import AuthenticationError
from shared.models import RequestMeta

from ..dependencies import (
    get_container,
    get_rate_limiter,
    get_tenant_resolver,
    get_token_verifier,
)

logger = logging.getLogger(__name__)

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def source_address(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Client address used as the rate-limit key for anonymous requests.

    X-Forwarded-For is only honoured behind a proxy that sets it; otherwise
    any client could pick its own key.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_request_meta(request: Request) -> RequestMeta:
    """Dependency building the RequestMeta for the current request."""
    trust = get_container().settings.trust_forwarded_for
    return RequestMeta(
        source_address=source_address(request, trust),
        endpoint=request.url.path,
        method=request.method,
    )


async def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    meta: RequestMeta = Depends(get_request_meta),
    verifier: ITokenVerifier = Depends(get_token_verifier),
    governor: AbuseGovernor = Depends(get_rate_limiter),
) -> Identity:
    """
    Dependency that requires a valid bearer token.

    Sources that keep failing verification are locked out for the
    auth-failure window; requests that authenticate are never counted.

    Usage:
        @router.post("/accept")
        async def accept(identity: Identity = Depends(get_identity)):
            ...
    """
    governor.check(EndpointClass.AUTH_FAILURE, meta.source_address)

    raw_token = credentials.credentials if credentials else None
    try:
        return await verifier.verify(raw_token)
    except AuthenticationError as e:
        logger.warning(
            f"auth_failure code={e.code} endpoint={meta.method} {meta.endpoint} "
            f"source={meta.source_address}",
            extra={
                "event": "auth_failure",
                "code": e.code,
                "endpoint": meta.endpoint,
                "source_address": meta.source_address,
            },
        )
        governor.hit(EndpointClass.AUTH_FAILURE, meta.source_address)
        raise


async def get_current_user(
    identity: Identity = Depends(get_identity),
    resolver: ITenantResolver = Depends(get_tenant_resolver),
) -> User:
    """
    Dependency that requires a registered, active user.

    Raises IdentityNotRegisteredError (403) for valid tokens whose subject
    has not called /api/users/register yet.
    """
    return await resolver.resolve_user(identity)


def limit_by_source(endpoint_class: EndpointClass) -> Callable[..., None]:
    """Dependency factory counting requests per client address."""

    def dependency(
        meta: RequestMeta = Depends(get_request_meta),
        governor: AbuseGovernor = Depends(get_rate_limiter),
    ) -> None:
        governor.hit(endpoint_class, meta.source_address)

    return dependency


def limit_by_user(endpoint_class: EndpointClass) -> Callable[..., None]:
    """
    Dependency factory counting requests per authenticated subject.

    Authentication runs first, so unauthenticated requests are rejected
    with 401 and never consume the caller's budget.
    """

    def dependency(
        identity: Identity = Depends(get_identity),
        governor: AbuseGovernor = Depends(get_rate_limiter),
    ) -> None:
        governor.hit(endpoint_class, identity.subject)

    return dependency
