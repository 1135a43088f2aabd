"""
Notifications module data models.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EmailMessage(BaseModel):
    """A rendered email, ready for a transport."""

    to: str
    subject: str
    html: str
    text: str

    model_config = {"frozen": True}


class InvitationEmail(BaseModel):
    """Everything the invitation template needs."""

    to: str = Field(..., description="Invitee address")
    family_name: str
    inviter_name: str
    children: list[str] = Field(default_factory=list, description="Child first names")
    message: Optional[str] = Field(None, description="Personal note from the inviter")
    invitation_url: str
    expires_at: datetime
