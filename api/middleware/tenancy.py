"""
Tenant context dependency for family-scoped routes.
"""

from fastapi import Depends

from modules.auth.models import Identity
from modules.families.interfaces import ITenantResolver
from modules.families.models import TenantContext
from shared.models import RequestMeta

from ..dependencies import get_tenant_resolver
from .auth import get_identity, get_request_meta


async def get_tenant_context(
    family_id: str,
    identity: Identity = Depends(get_identity),
    meta: RequestMeta = Depends(get_request_meta),
    resolver: ITenantResolver = Depends(get_tenant_resolver),
) -> TenantContext:
    """
    Dependency resolving the caller's membership in the `{family_id}` path
    parameter. Non-members get NotAMemberError (403).
    """
    return await resolver.resolve(identity, family_id, meta)
