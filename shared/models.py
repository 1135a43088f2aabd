"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models stay in their respective module directories.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current time; every persisted timestamp uses UTC."""
    return datetime.now(timezone.utc)


class RequestMeta(BaseModel):
    """
    Request facts that security logging and rate limiting need.

    Built once per request by the API layer and passed explicitly to the
    stages that need it, instead of reading the framework request object
    deep inside the domain code.
    """

    source_address: str = Field(default="unknown", description="Client address")
    endpoint: str = Field(default="", description="Request path")
    method: str = Field(default="", description="HTTP method")

    model_config = {"frozen": True}
