"""BuildTrack Backend - Main FastAPI Application

Construction project workflow platform

This module creates and configures the main FastAPI application, including:
- All API routers (leads, site visits, projects, siteworks, BOMs, procurement,
  wallet, assignment payments, users, chat)
- Middleware (request ID correlation, CORS)
- Exception handlers
- Health and observability endpoints
- The real-time connection registry and object storage adapter (app.state)
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .domain.errors import WorkflowError
from .infrastructure.storage import S3StorageAdapter, StorageConfig, validate_storage_config
from .realtime.registry import ConnectionRegistry

# Observability
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

# Domain Routers
from .uploads.router import router as uploads_router
from .leads.router import router as leads_router
from .site_visits.router import router as site_visits_router
from .projects.router import router as projects_router
from .boms.router import router as boms_router
from .client_proposals.router import router as client_proposals_router
from .procurement.router import router as procurement_router
from .wallet.router import router as wallet_router
from .messages.router import router as messages_router
from .siteworks.router import router as siteworks_router
from .assignment_payments.router import router as assignment_payments_router
from .users.router import router as users_router
from .realtime.router import router as realtime_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)


def create_storage(settings: Settings) -> S3StorageAdapter:
    """Build the object storage adapter from application settings.

    Raises:
        ValueError: If the storage settings are incomplete
    """
    config = StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
        staging_prefix=settings.STAGING_PREFIX,
    )
    validate_storage_config(config)
    return S3StorageAdapter(
        endpoint_url=config.endpoint_url,
        access_key=config.access_key,
        secret_key=config.secret_key,
        bucket_name=config.bucket_name,
        region=config.region,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: create the connection registry and the storage adapter
    - Shutdown: close every open WebSocket
    """
    logger.info("BuildTrack API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    app.state.registry = ConnectionRegistry()
    app.state.storage = create_storage(settings)

    yield

    logger.info("BuildTrack API shutting down...")
    await app.state.registry.close_all()


app = FastAPI(
    title="BuildTrack API",
    description="Construction project workflow: leads, site visits, designs, BOMs, procurement",
    version="0.1.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Map domain errors to their HTTP status with a stable error body."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"errors": exc.errors()}
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": exc.errors(),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

# Observability (health, metrics)
app.include_router(observability_router)

app.include_router(uploads_router, prefix="/v1")
app.include_router(leads_router, prefix="/v1")
app.include_router(site_visits_router, prefix="/v1")
app.include_router(projects_router, prefix="/v1")
app.include_router(boms_router, prefix="/v1")
app.include_router(client_proposals_router, prefix="/v1")
app.include_router(procurement_router, prefix="/v1")
app.include_router(wallet_router, prefix="/v1")
app.include_router(siteworks_router, prefix="/v1")
app.include_router(assignment_payments_router, prefix="/v1")
app.include_router(users_router, prefix="/v1")
app.include_router(messages_router, prefix="/v1")
app.include_router(realtime_router, prefix="/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    """Root endpoint - API information."""
    return {
        "name": "BuildTrack API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs" if settings.ENVIRONMENT != "production" else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "buildtrack.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
