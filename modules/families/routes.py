"""
Family API endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_admin_transfer, get_family_service
from api.middleware.auth import get_current_user, limit_by_user
from api.middleware.tenancy import get_tenant_context
from modules.auth.models import User
from modules.ratelimit.models import EndpointClass

from .interfaces import IFamilyService
from .models import (
    CreateFamilyRequest,
    FamilyDetail,
    TenantContext,
    TransferAdminRequest,
    TransferAdminResponse,
)
from .transfer import AdminTransferProtocol

router = APIRouter()


@router.post(
    "",
    response_model=FamilyDetail,
    status_code=201,
    dependencies=[Depends(limit_by_user(EndpointClass.FAMILY_CREATION))],
)
async def create_family(
    request: CreateFamilyRequest,
    user: User = Depends(get_current_user),
    service: IFamilyService = Depends(get_family_service),
) -> FamilyDetail:
    """
    Create a family with at least one child.

    The caller becomes its ADMIN. A user belongs to at most one family.
    """
    return await service.create_family(user, request)


@router.get("/{family_id}", response_model=FamilyDetail)
async def get_family(
    context: TenantContext = Depends(get_tenant_context),
    service: IFamilyService = Depends(get_family_service),
) -> FamilyDetail:
    """Get the family with its children and members."""
    return await service.get_family(context)


@router.post(
    "/{family_id}/transfer-admin",
    response_model=TransferAdminResponse,
    dependencies=[Depends(limit_by_user(EndpointClass.ADMIN_TRANSFER))],
)
async def transfer_admin(
    request: TransferAdminRequest,
    context: TenantContext = Depends(get_tenant_context),
    protocol: AdminTransferProtocol = Depends(get_admin_transfer),
) -> TransferAdminResponse:
    """
    Hand the ADMIN role to a co-parent; the caller becomes CO.
    """
    new_admin, new_co = await protocol.transfer(context, request.target_user_id)
    return TransferAdminResponse(new_admin=new_admin, new_co_parent=new_co)
