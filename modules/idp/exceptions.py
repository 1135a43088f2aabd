"""
IdP module exceptions.
"""

from shared.exceptions import ExternalServiceError


class IdPManagementError(ExternalServiceError):
    """Raised when a management API call fails."""

    def __init__(self, message: str):
        super().__init__(message, service="identity_provider_management", code="IDP_MANAGEMENT_ERROR")


class UnknownIdPRoleError(IdPManagementError):
    """Raised when a configured role name does not exist in the IdP."""

    def __init__(self, role_name: str):
        super().__init__(f"Role not defined in identity provider: {role_name}")
        self.details["role_name"] = role_name
