"""
Invitation token helpers.
"""

import re
import secrets
from datetime import datetime, timedelta

# 32 random bytes = 256 bits, 43 characters of unpadded base64url
TOKEN_BYTES = 32
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def is_well_formed(token: str) -> bool:
    """Cheap shape check so garbage never reaches storage."""
    return bool(token) and TOKEN_PATTERN.match(token) is not None


def expiry_from(now: datetime, ttl_days: int) -> datetime:
    return now + timedelta(days=ttl_days)


def build_invitation_url(frontend_url: str, token: str) -> str:
    """`<frontend>/invite/<token>`. Treat the result as a secret in logs."""
    return f"{frontend_url.rstrip('/')}/invite/{token}"
