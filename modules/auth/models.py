"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, EmailStr


class Identity(BaseModel):
    """
    A verified bearer token, reduced to the claims the backend uses.

    Ephemeral: built per request by the TokenVerifier and never persisted.
    Role claims are informational only; the local Membership is authoritative.
    """

    subject: str = Field(..., description="IdP subject id (`sub` claim)")
    email: Optional[str] = Field(None, description="Email claim, if present")
    name: Optional[str] = Field(None, description="Display name claim, if present")
    roles: tuple[str, ...] = Field(default=(), description="IdP role names")
    issuer: str = Field(..., description="Token issuer")

    model_config = {"frozen": True}  # Make immutable for safety


class User(BaseModel):
    """
    Local principal, linked to exactly one IdP subject.

    Never hard-deleted; deactivation flips is_active.
    """

    id: str = Field(..., description="User ID (UUID)")
    external_subject_id: str = Field(..., description="IdP subject id")
    email: str = Field(..., description="Lowercased email address")
    display_name: str = Field(..., description="Display name")
    avatar_url: Optional[str] = Field(None, description="Avatar URL")
    is_active: bool = Field(default=True, description="Soft-delete flag")
    created_at: datetime = Field(..., description="Account creation time")
    updated_at: datetime = Field(..., description="Last update time")


class RegisterUserRequest(BaseModel):
    """Request body for POST /api/users/register."""

    display_name: str = Field(..., min_length=1, max_length=100)
    avatar_url: Optional[str] = Field(None, max_length=2048)


class UserResponse(BaseModel):
    """Public view of a user."""

    id: str
    email: EmailStr
    display_name: str
    avatar_url: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            created_at=user.created_at,
        )


class RegisterUserResponse(BaseModel):
    """Response from registration; `created` is False on repeat calls."""

    user: UserResponse
    created: bool


class MeFamily(BaseModel):
    """Family summary embedded in the "who am I" response."""

    id: str
    name: str


class MeResponse(BaseModel):
    """
    Response for GET /api/users/me.

    `needs_family_setup` tells the frontend to route the user to family
    creation (or to an invitation) before anything else.
    """

    user: UserResponse
    family: Optional[MeFamily] = None
    role: Optional[str] = None
    joined_at: Optional[datetime] = None
    needs_family_setup: bool = True
