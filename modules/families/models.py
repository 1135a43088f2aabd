"""
Families module data models.

A Family is the tenant boundary. Memberships link users to a family with
one of exactly two roles.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from modules.auth.models import Identity, User
from shared.models import RequestMeta


class Role(str, Enum):
    """Membership role. Exactly one ADMIN per family at any committed time."""

    ADMIN = "ADMIN"
    CO = "CO"


class Family(BaseModel):
    """A family tenant."""

    id: str = Field(..., description="Family ID (UUID)")
    name: str = Field(..., description="Family name")
    created_by_user_id: str = Field(..., description="User who created the family")
    created_at: datetime


class Child(BaseModel):
    """A child of a family; created with the family, read-only afterwards."""

    id: str
    family_id: str
    name: str
    date_of_birth: Optional[date] = None
    created_at: datetime


class Membership(BaseModel):
    """
    The role-bearing link between a user and a family.

    Unique per (user_id, family_id). Only the admin transfer mutates it.
    """

    id: str = Field(..., description="Membership ID (UUID)")
    user_id: str
    family_id: str
    role: Role
    joined_at: Optional[datetime] = Field(None, description="Set once the user has joined")
    invited_by_membership_id: Optional[str] = None
    created_at: datetime


class TenantContext(BaseModel):
    """
    Immutable request-scoped context for tenant operations.

    Built by the TenantResolver after token verification and passed
    explicitly to every stage that follows.
    """

    identity: Identity
    user: User
    membership: Membership
    meta: RequestMeta = Field(default_factory=RequestMeta)

    model_config = {"frozen": True}

    @property
    def family_id(self) -> str:
        return self.membership.family_id

    @property
    def role(self) -> Role:
        return self.membership.role


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class CreateChildRequest(BaseModel):
    """A child supplied at family creation."""

    name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: Optional[date] = None


class CreateFamilyRequest(BaseModel):
    """Request to create a family; the caller becomes its ADMIN."""

    name: str = Field(..., min_length=1, max_length=100, description="Family name")
    children: list[CreateChildRequest] = Field(
        ...,
        min_length=1,
        max_length=20,
        description="At least one child",
    )


class TransferAdminRequest(BaseModel):
    """Request to hand the ADMIN role to a co-parent."""

    target_user_id: str = Field(..., min_length=1, description="User ID of the co-parent")


class MemberSummary(BaseModel):
    """A family member as shown to other members."""

    membership_id: str
    user_id: str
    display_name: str
    email: str
    role: Role
    joined_at: Optional[datetime] = None


class ChildSummary(BaseModel):
    """A child as shown in family views and invitation previews."""

    id: str
    name: str
    date_of_birth: Optional[date] = None

    @classmethod
    def from_child(cls, child: Child) -> "ChildSummary":
        return cls(id=child.id, name=child.name, date_of_birth=child.date_of_birth)


class FamilyDetail(BaseModel):
    """Family with its children and members, scoped to one tenant."""

    id: str
    name: str
    created_at: datetime
    your_role: Role
    children: list[ChildSummary] = Field(default_factory=list)
    members: list[MemberSummary] = Field(default_factory=list)


class TransferAdminResponse(BaseModel):
    """Both memberships after the swap."""

    new_admin: Membership
    new_co_parent: Membership
