"""
Identity provider sync module.

Public API:
- IdPManagementClient: management API client (client-credentials auth)
- IdPRoleSync: local role -> IdP role grants
- DeferredRoleSync: schedules role sync after the local commit
"""

from .exceptions import IdPManagementError, UnknownIdPRoleError
from .interfaces import IIdPRoleSync, IManagementClient
from .management import IdPManagementClient
from .role_sync import DeferredRoleSync, IdPRoleSync

__all__ = [
    "IIdPRoleSync",
    "IManagementClient",
    "IdPManagementClient",
    "IdPRoleSync",
    "DeferredRoleSync",
    "IdPManagementError",
    "UnknownIdPRoleError",
]
