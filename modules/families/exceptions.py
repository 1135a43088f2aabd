"""
Families module exceptions.
"""

from shared.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class NotAMemberError(AuthorizationError):
    """
    Raised when the caller has no membership in the requested family.

    Deliberately carries no details: the response must not reveal whether
    the family exists.
    """

    def __init__(self):
        super().__init__(
            "You do not have access to this family",
            code="NOT_A_MEMBER",
        )


class InsufficientRoleError(AuthorizationError):
    """Raised when the membership lacks the role an action requires."""

    def __init__(self, required_role: str):
        super().__init__(
            f"This action requires the {required_role} role",
            code="INSUFFICIENT_ROLE",
            details={"required_role": required_role},
        )


class FamilyNotFoundError(NotFoundError):
    """Raised when a family row is missing for an existing membership."""

    def __init__(self, family_id: str):
        super().__init__(
            f"Family not found: {family_id}",
            code="FAMILY_NOT_FOUND",
            details={"family_id": family_id},
        )


class AlreadyInFamilyError(ConflictError):
    """Raised when a user who already belongs to a family tries to join or create another."""

    def __init__(self):
        super().__init__(
            "You already belong to a family",
            code="ALREADY_IN_FAMILY",
        )


class TargetMustBeCoParentError(ConflictError):
    """Raised when the transfer target is not a CO member of the family."""

    def __init__(self):
        super().__init__(
            "The admin role can only be transferred to a co-parent of this family",
            code="TARGET_MUST_BE_CO_PARENT",
        )


class CannotTransferToSelfError(ValidationError):
    """Raised when the requester names themselves as transfer target."""

    def __init__(self):
        super().__init__(
            "You cannot transfer the admin role to yourself",
            code="CANNOT_TRANSFER_TO_SELF",
        )
