"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

import logging

from fastapi import APIRouter, Depends, Response
from postgrest.exceptions import APIError
from pydantic import BaseModel

from shared.config import get_settings

from ..dependencies import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    database: str
    identity_provider: str
    email: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    container: ServiceContainer = Depends(get_container),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Returns 503 when the database cannot be queried. A missing email or
    IdP management configuration is reported but does not fail readiness.
    """
    settings = container.settings
    database = _check_database(container)

    if not settings.idp_domain and not settings.idp_jwks_url:
        identity_provider = "not_configured"
    else:
        identity_provider = "configured"
    email = "configured" if settings.sendgrid_api_key else "logging_only"

    ready = database in ("connected", "memory")
    if not ready:
        response.status_code = 503
    return ReadinessResponse(
        status="ready" if ready else "not_ready",
        database=database,
        identity_provider=identity_provider,
        email=email,
    )


def _check_database(container: ServiceContainer) -> str:
    if container.uses_memory:
        return "memory"
    try:
        from shared.database import get_supabase_client
        get_supabase_client().table("families").select("id").limit(1).execute()
    except (APIError, RuntimeError) as e:
        logger.error(f"Readiness database check failed: {e}")
        return "unavailable"
    return "connected"
