"""
Notifications module interfaces.
"""

from typing import Protocol, runtime_checkable

from .models import EmailMessage, InvitationEmail


@runtime_checkable
class IEmailTransport(Protocol):
    """Accepts (to, subject, body) and reports success or failure per attempt."""

    async def send(self, message: EmailMessage) -> None:
        """
        Raises:
            EmailDeliveryError: The attempt failed; `retryable` says whether
                another attempt may succeed
        """
        ...

    async def aclose(self) -> None:
        ...


@runtime_checkable
class INotificationDispatcher(Protocol):
    """Renders and delivers notifications with retry."""

    async def send_invitation(self, email: InvitationEmail) -> None:
        """
        Raises:
            EmailDeliveryError: Delivery failed definitively
        """
        ...
