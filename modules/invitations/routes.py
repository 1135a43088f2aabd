"""
Invitation API endpoints.

Two routers: one scoped to a family (admin management) and one keyed by
the invitation token (preview and accept by the invitee).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_invitation_ledger
from api.middleware.auth import get_identity, limit_by_source, limit_by_user
from api.middleware.tenancy import get_tenant_context
from modules.auth.models import Identity
from modules.families.models import TenantContext
from modules.ratelimit.models import EndpointClass

from .interfaces import IInvitationLedger
from .models import (
    AcceptedInvitation,
    CreateInvitationRequest,
    InvitationListResponse,
    InvitationPreview,
    InvitationResponse,
    InvitationStatus,
    IssuedInvitationResponse,
    ResentInvitationResponse,
)

router = APIRouter()
token_router = APIRouter()


@router.post(
    "",
    response_model=IssuedInvitationResponse,
    status_code=201,
    dependencies=[Depends(limit_by_user(EndpointClass.INVITATION_ISSUE))],
)
async def issue_invitation(
    request: CreateInvitationRequest,
    context: TenantContext = Depends(get_tenant_context),
    ledger: IInvitationLedger = Depends(get_invitation_ledger),
) -> IssuedInvitationResponse:
    """
    Invite a co-parent by email.

    Only the family ADMIN may invite. The email is sent before the
    response returns.
    """
    invitation, url = await ledger.issue(context, request)
    return IssuedInvitationResponse(
        invitation=InvitationResponse.from_invitation(invitation),
        invitation_url=url,
    )


@router.get("", response_model=InvitationListResponse)
async def list_invitations(
    status: Optional[InvitationStatus] = Query(default=None, description="Filter by status"),
    context: TenantContext = Depends(get_tenant_context),
    ledger: IInvitationLedger = Depends(get_invitation_ledger),
) -> InvitationListResponse:
    """List the family's invitations, newest first."""
    invitations = await ledger.list(context, status)
    return InvitationListResponse(
        invitations=[InvitationResponse.from_invitation(i) for i in invitations]
    )


@router.post(
    "/{invitation_id}/resend",
    response_model=ResentInvitationResponse,
    status_code=201,
    dependencies=[Depends(limit_by_user(EndpointClass.INVITATION_RESEND))],
)
async def resend_invitation(
    invitation_id: str,
    context: TenantContext = Depends(get_tenant_context),
    ledger: IInvitationLedger = Depends(get_invitation_ledger),
) -> ResentInvitationResponse:
    """
    Revoke an invitation and send a replacement with a new link.
    """
    revoked, invitation, url = await ledger.resend(context, invitation_id)
    return ResentInvitationResponse(
        revoked=InvitationResponse.from_invitation(revoked),
        invitation=InvitationResponse.from_invitation(invitation),
        invitation_url=url,
    )


@router.post(
    "/{invitation_id}/revoke",
    response_model=InvitationResponse,
    dependencies=[Depends(limit_by_user(EndpointClass.INVITATION_RESEND))],
)
async def revoke_invitation(
    invitation_id: str,
    context: TenantContext = Depends(get_tenant_context),
    ledger: IInvitationLedger = Depends(get_invitation_ledger),
) -> InvitationResponse:
    """Cancel a pending invitation."""
    invitation = await ledger.revoke(context, invitation_id)
    return InvitationResponse.from_invitation(invitation)


@token_router.get(
    "/{token}/preview",
    response_model=InvitationPreview,
    dependencies=[Depends(limit_by_source(EndpointClass.INVITATION_PREVIEW))],
)
async def preview_invitation(
    token: str,
    ledger: IInvitationLedger = Depends(get_invitation_ledger),
) -> InvitationPreview:
    """
    Show the family, children and inviter behind an invitation link.

    Public: the token is the credential.
    """
    return await ledger.preview(token)


@token_router.post(
    "/{token}/accept",
    response_model=AcceptedInvitation,
    dependencies=[Depends(limit_by_user(EndpointClass.INVITATION_ACCEPT))],
)
async def accept_invitation(
    token: str,
    identity: Identity = Depends(get_identity),
    ledger: IInvitationLedger = Depends(get_invitation_ledger),
) -> AcceptedInvitation:
    """
    Join the family as a co-parent.

    The caller must be registered with the invited email address.
    """
    return await ledger.accept(token, identity)
