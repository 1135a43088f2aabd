"""
Centralized configuration for the CoParent backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings are namespaced (e.g., IDP_*, SUPABASE_*, RATE_LIMIT_*).
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "CoParent API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Storage
    storage_backend: Literal["supabase", "memory"] = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""

    # Identity provider
    idp_domain: str = ""
    idp_issuer: str = ""
    idp_audience: str = ""
    idp_jwks_url: str = ""
    idp_algorithm: str = "RS256"
    idp_roles_claim: str = ""
    jwks_cache_ttl_seconds: int = 30 * 60
    jwks_min_refresh_seconds: int = 60

    # Identity provider management API (role sync)
    idp_management_domain: str = ""
    idp_management_client_id: str = ""
    idp_management_client_secret: str = ""
    idp_management_audience: str = ""
    idp_admin_role_name: str = "ADMIN_PARENT"
    idp_co_role_name: str = "CO_PARENT"

    # Outbound email
    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    email_from_address: str = "noreply@coparent.app"
    email_from_name: str = "CoParent"
    email_max_attempts: int = 3
    email_retry_base_delay_seconds: float = 1.0

    # Invitations
    frontend_url: str = "http://localhost:5173"
    invitation_ttl_days: int = 7
    invitation_sweep_interval_seconds: int = 0  # 0 disables the sweep

    # Deferred side effects (role sync)
    side_effect_max_attempts: int = 3
    side_effect_retry_base_delay_seconds: float = 1.0

    # Network
    external_http_timeout_seconds: float = 5.0
    trust_forwarded_for: bool = False

    # Rate limiting (limit per window, window in seconds)
    rate_limit_registration: int = 10
    rate_limit_registration_window: int = 60 * 60
    rate_limit_family_creation: int = 10
    rate_limit_family_creation_window: int = 60 * 60
    rate_limit_invitation_issue: int = 20
    rate_limit_invitation_issue_window: int = 24 * 60 * 60
    rate_limit_invitation_resend: int = 10
    rate_limit_invitation_resend_window: int = 24 * 60 * 60
    rate_limit_invitation_accept: int = 10
    rate_limit_invitation_accept_window: int = 60 * 60
    rate_limit_admin_transfer: int = 5
    rate_limit_admin_transfer_window: int = 24 * 60 * 60
    rate_limit_invitation_preview: int = 30
    rate_limit_invitation_preview_window: int = 60
    rate_limit_auth_failure: int = 10
    rate_limit_auth_failure_window: int = 60
    rate_limit_requests: int = 100
    rate_limit_window: int = 60

    @property
    def jwks_url(self) -> str:
        """JWKS endpoint, derived from the IdP domain unless set explicitly."""
        if self.idp_jwks_url:
            return self.idp_jwks_url
        return f"https://{self.idp_domain}/.well-known/jwks.json"

    @property
    def issuer(self) -> str:
        """Expected `iss` claim, derived from the IdP domain unless set explicitly."""
        if self.idp_issuer:
            return self.idp_issuer
        return f"https://{self.idp_domain}/"

    @property
    def management_audience(self) -> str:
        """Audience for management API tokens, derived from the management domain."""
        if self.idp_management_audience:
            return self.idp_management_audience
        return f"https://{self.idp_management_domain or self.idp_domain}/api/v2/"

    @property
    def roles_claim(self) -> Optional[str]:
        """Namespaced claim carrying IdP role names, if any."""
        if self.idp_roles_claim:
            return self.idp_roles_claim
        if self.idp_domain:
            return f"https://{self.idp_domain}/roles"
        return None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
