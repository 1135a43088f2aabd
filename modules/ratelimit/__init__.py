"""
Rate limiting module.

Per-source and per-identity counters for sensitive entry points.

Public API:
- AbuseGovernor: fixed-window counters with atomic increment-and-check
- EndpointClass, RateLimitPolicy: the policy table
- policies_from_settings: builds the table from configuration
"""

from .governor import AbuseGovernor
from .models import EndpointClass, RateLimitPolicy, policies_from_settings

__all__ = [
    "AbuseGovernor",
    "EndpointClass",
    "RateLimitPolicy",
    "policies_from_settings",
]
