"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from modules.families.routes import router as families_router
from modules.invitations.routes import router as invitations_router
from modules.invitations.routes import token_router as invitation_token_router
from modules.ratelimit.models import EndpointClass
from shared.config import get_settings
from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    CoParentError,
    ExternalServiceError,
    GoneError,
    NotFoundError,
    RateLimitExceededError,
    ServiceUnavailableError,
    ValidationError,
)
from shared.logging_config import configure_logging

from .dependencies import ServiceContainer, get_container
from .middleware.auth import source_address
from .models.errors import ErrorResponse, ValidationErrorResponse
from .routes import health, users

logger = logging.getLogger(__name__)

# Checked in order; subclasses must come before their bases.
ERROR_STATUS: list[tuple[type[CoParentError], int]] = [
    (AuthenticationError, 401),
    (ServiceUnavailableError, 503),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (GoneError, 410),
    (RateLimitExceededError, 429),
    (ExternalServiceError, 502),
]


def status_for(error: CoParentError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


def error_response(error: CoParentError) -> JSONResponse:
    """Render a domain error with its status code and protocol headers."""
    status_code = status_for(error)
    headers: dict[str, str] = {}
    if isinstance(error, AuthenticationError):
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(error, RateLimitExceededError):
        headers["Retry-After"] = str(error.retry_after)

    if status_code == 500:
        body = ErrorResponse(error="INTERNAL_ERROR", message="An unexpected error occurred")
    else:
        body = ErrorResponse(**error.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


async def sweep_expired_invitations(container: ServiceContainer, interval: float) -> None:
    """Periodically mark overdue invitations EXPIRED until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            await container.invitations.expire_stale()
        except (CoParentError, APIError):
            logger.exception("Invitation expiry sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    container = get_container()
    logger.info(
        f"Starting {settings.app_name} on {settings.host}:{settings.port} "
        f"(storage={container.settings.storage_backend})"
    )

    sweeper: Optional[asyncio.Task] = None
    interval = container.settings.invitation_sweep_interval_seconds
    if interval > 0:
        sweeper = asyncio.create_task(sweep_expired_invitations(container, interval))

    yield

    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    await container.aclose()
    logger.info(f"Shut down {settings.app_name}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant family management API",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    @app.middleware("http")
    async def baseline_rate_limit(request: Request, call_next):
        """Per-source ceiling applied to every request."""
        container = get_container()
        source = source_address(request, container.settings.trust_forwarded_for)
        try:
            container.rate_limiter.hit(EndpointClass.BASELINE, source)
        except RateLimitExceededError as e:
            return error_response(e)
        return await call_next(request)

    @app.exception_handler(CoParentError)
    async def coparent_error_handler(request: Request, exc: CoParentError) -> JSONResponse:
        response = error_response(exc)
        if response.status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}",
                exc_info=exc if response.status_code == 500 else None,
            )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        body = ValidationErrorResponse(details={"errors": jsonable_encoder(exc.errors())})
        return JSONResponse(status_code=400, content=jsonable_encoder(body))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        body = ErrorResponse(error="INTERNAL_ERROR", message="An unexpected error occurred")
        return JSONResponse(status_code=500, content=body.model_dump())

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(families_router, prefix="/api/families", tags=["families"])
    app.include_router(
        invitations_router,
        prefix="/api/families/{family_id}/invitations",
        tags=["invitations"],
    )
    app.include_router(invitation_token_router, prefix="/api/invitations", tags=["invitations"])

    return app


# Application instance for uvicorn
app = create_app()
