"""
User-related endpoints.

Registration links a verified IdP identity to a local account; /me tells
the frontend where the user stands.
"""

from fastapi import APIRouter, Depends, Response

from modules.auth.interfaces import IUserService
from modules.auth.models import (
    Identity,
    MeFamily,
    MeResponse,
    RegisterUserRequest,
    RegisterUserResponse,
    User,
    UserResponse,
)
from modules.families.interfaces import IFamilyService
from modules.ratelimit.models import EndpointClass

from ..dependencies import get_family_service, get_user_service
from ..middleware.auth import get_current_user, get_identity, limit_by_source

router = APIRouter()


@router.post(
    "/register",
    response_model=RegisterUserResponse,
    status_code=201,
    dependencies=[Depends(limit_by_source(EndpointClass.REGISTRATION))],
)
async def register_user(
    request: RegisterUserRequest,
    response: Response,
    identity: Identity = Depends(get_identity),
    service: IUserService = Depends(get_user_service),
) -> RegisterUserResponse:
    """
    Register the caller, or refresh their profile if already registered.

    Returns 201 when the account was created and 200 on repeat calls.
    """
    user, created = await service.register(identity, request.display_name, request.avatar_url)
    if not created:
        response.status_code = 200
    return RegisterUserResponse(user=UserResponse.from_user(user), created=created)


@router.get("/me", response_model=MeResponse)
async def get_me(
    user: User = Depends(get_current_user),
    families: IFamilyService = Depends(get_family_service),
) -> MeResponse:
    """
    Get the current user's profile and family membership.

    Requires a registered account.
    """
    found = await families.find_family_for_user(user)
    if found is None:
        return MeResponse(user=UserResponse.from_user(user), needs_family_setup=True)

    family, membership = found
    return MeResponse(
        user=UserResponse.from_user(user),
        family=MeFamily(id=family.id, name=family.name),
        role=membership.role.value,
        joined_at=membership.joined_at,
        needs_family_setup=False,
    )
