"""
Invitations module.

Issues, previews, accepts, resends and revokes family invitations.

Public API:
- IInvitationLedger: Interface for the invitation lifecycle
- InvitationLedger: Default implementation
- Invitation: A time-boxed offer to join a family
- InvitationStatus: PENDING / ACCEPTED / EXPIRED / REVOKED
"""

from .interfaces import IInvitationLedger, IInvitationRepository
from .ledger import InvitationLedger
from .models import (
    AcceptedInvitation,
    CreateInvitationRequest,
    Invitation,
    InvitationPreview,
    InvitationResponse,
    InvitationStatus,
    can_transition,
)
from .exceptions import (
    AlreadyMemberError,
    CannotResendAcceptedError,
    DuplicatePendingInvitationError,
    EmailMismatchError,
    InvitationDeliveryError,
    InvitationGoneError,
    InvitationNotFoundError,
    SelfInvitationRejectedError,
    TokenCollisionError,
)

__all__ = [
    # Interfaces
    "IInvitationLedger",
    "IInvitationRepository",
    # Implementation
    "InvitationLedger",
    # Models
    "AcceptedInvitation",
    "CreateInvitationRequest",
    "Invitation",
    "InvitationPreview",
    "InvitationResponse",
    "InvitationStatus",
    "can_transition",
    # Exceptions
    "AlreadyMemberError",
    "CannotResendAcceptedError",
    "DuplicatePendingInvitationError",
    "EmailMismatchError",
    "InvitationDeliveryError",
    "InvitationGoneError",
    "InvitationNotFoundError",
    "SelfInvitationRejectedError",
    "TokenCollisionError",
]
