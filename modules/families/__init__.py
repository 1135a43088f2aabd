"""
Families module.

The tenant boundary: families, children, memberships, tenant resolution,
role gating and the admin transfer.

Public API:
- IFamilyService / FamilyService: family creation and reads
- TenantResolver, RoleGate: identity -> TenantContext, role checks
- AdminTransferProtocol: atomic ADMIN hand-over
- Family, Membership, Role, TenantContext: core models
"""

from .interfaces import IFamilyRepository, IFamilyService, IRoleSyncScheduler, ITenantResolver
from .service import FamilyService
from .tenancy import RoleGate, TenantResolver
from .transfer import AdminTransferProtocol
from .models import (
    Child,
    CreateFamilyRequest,
    Family,
    FamilyDetail,
    Membership,
    Role,
    TenantContext,
)
from .exceptions import (
    AlreadyInFamilyError,
    CannotTransferToSelfError,
    FamilyNotFoundError,
    InsufficientRoleError,
    NotAMemberError,
    TargetMustBeCoParentError,
)

__all__ = [
    # Interfaces
    "IFamilyRepository",
    "IFamilyService",
    "IRoleSyncScheduler",
    "ITenantResolver",
    # Implementations
    "FamilyService",
    "RoleGate",
    "TenantResolver",
    "AdminTransferProtocol",
    # Models
    "Child",
    "CreateFamilyRequest",
    "Family",
    "FamilyDetail",
    "Membership",
    "Role",
    "TenantContext",
    # Exceptions
    "AlreadyInFamilyError",
    "CannotTransferToSelfError",
    "FamilyNotFoundError",
    "InsufficientRoleError",
    "NotAMemberError",
    "TargetMustBeCoParentError",
]
