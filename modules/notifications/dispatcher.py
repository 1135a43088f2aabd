"""
Notification dispatch with retry.

Retry policy for outbound email: `max_attempts` attempts (3), exponential
backoff starting at `base_delay` seconds (1s, 2s, ...). Only failures the
transport marks retryable are retried.
"""

import logging

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .exceptions import EmailDeliveryError
from .interfaces import IEmailTransport, INotificationDispatcher
from .models import EmailMessage, InvitationEmail
from .templates import render_invitation_email

logger = logging.getLogger(__name__)


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, EmailDeliveryError) and error.retryable


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Email attempt {retry_state.attempt_number} failed ({error}), "
        f"retrying in {retry_state.next_action.sleep if retry_state.next_action else 0:.1f}s"
    )


class NotificationDispatcher(INotificationDispatcher):
    """Renders notifications and delivers them through an IEmailTransport."""

    def __init__(
        self,
        transport: IEmailTransport,
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ):
        self._transport = transport
        self._max_attempts = max_attempts
        self._base_delay = base_delay

    async def send_invitation(self, email: InvitationEmail) -> None:
        """Send the invitation email, retrying transient failures."""
        await self.deliver(render_invitation_email(email))
        logger.info(f"Invitation email sent to {email.to}")
        logger.debug(f"Invitation link sent to {email.to}: {email.invitation_url}")

    async def deliver(self, message: EmailMessage) -> None:
        """
        Deliver one rendered message.

        Raises:
            EmailDeliveryError: Terminal failure, or retries exhausted
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._base_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await self._transport.send(message)
        except EmailDeliveryError as e:
            logger.error(f"Giving up on email '{message.subject}' to {message.to}: {e.message}")
            raise
