"""
Outbound email transports.

- SendGridTransport: SendGrid v3 mail/send over httpx
- LoggingTransport: development fallback that only logs
"""

import logging
from typing import Optional

import httpx

from .exceptions import EmailDeliveryError
from .interfaces import IEmailTransport
from .models import EmailMessage

logger = logging.getLogger(__name__)


def is_retryable_status(status_code: int) -> bool:
    """5xx and 429 are worth another attempt; other 4xx are not."""
    return status_code >= 500 or status_code == 429


class SendGridTransport(IEmailTransport):
    """Sends one message per call through the SendGrid v3 API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._from_address = from_address
        self._from_name = from_name
        self._api_url = api_url
        self._timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self._from_address, "name": self._from_name},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }
        try:
            response = await self._http().post(
                self._api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise EmailDeliveryError(f"Email provider timed out: {e}", retryable=True) from e
        except httpx.TransportError as e:
            raise EmailDeliveryError(f"Email provider unreachable: {e}", retryable=True) from e

        if response.is_success:
            return
        raise EmailDeliveryError(
            f"Email provider returned {response.status_code}",
            retryable=is_retryable_status(response.status_code),
            status_code=response.status_code,
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


class LoggingTransport(IEmailTransport):
    """Used when no email provider is configured; nothing is sent."""

    async def send(self, message: EmailMessage) -> None:
        logger.warning(f"Email provider not configured; not sending '{message.subject}' to {message.to}")
        logger.debug(f"Unsent email body:\n{message.text}")

    async def aclose(self) -> None:
        pass
