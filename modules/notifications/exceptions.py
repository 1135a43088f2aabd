"""
Notifications module exceptions.
"""

from typing import Optional

from shared.exceptions import ExternalServiceError


class EmailDeliveryError(ExternalServiceError):
    """
    Raised by a transport when one send attempt fails.

    `retryable` is True for timeouts, network errors, 5xx and 429;
    other 4xx responses are terminal.
    """

    def __init__(
        self,
        message: str,
        retryable: bool,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message,
            service="email",
            code="EMAIL_DELIVERY_FAILED",
            details={"retryable": retryable, "status_code": status_code},
        )
        self.retryable = retryable
        self.status_code = status_code
