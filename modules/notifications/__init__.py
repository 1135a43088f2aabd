"""
Notifications module.

Outbound email with retry.

Public API:
- NotificationDispatcher: render + deliver with retry
- SendGridTransport, LoggingTransport: IEmailTransport implementations
- InvitationEmail, EmailMessage: models
- EmailDeliveryError
"""

from .dispatcher import NotificationDispatcher
from .exceptions import EmailDeliveryError
from .interfaces import IEmailTransport, INotificationDispatcher
from .models import EmailMessage, InvitationEmail
from .transport import LoggingTransport, SendGridTransport

__all__ = [
    "NotificationDispatcher",
    "IEmailTransport",
    "INotificationDispatcher",
    "SendGridTransport",
    "LoggingTransport",
    "EmailMessage",
    "InvitationEmail",
    "EmailDeliveryError",
]
