"""
Meeting Dashboard - Application Entry Point

This file initializes the FastAPI app, configures middleware, error handlers
and includes the router. Run with: python main.py
"""
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import init_db, close_db
from app.api import router
from app.exceptions import (
    ConfigurationError,
    MeetingDashboardError,
    NotFoundError,
    PersistenceConstraintError,
    PersistenceFailedError,
    PersistenceUnavailableError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from app.logging_config import get_logger, setup_logging
from app.models import ErrorResponse

setup_logging(settings.debug, settings.log_json)
logger = get_logger(__name__)


# ============================================
# LIFESPAN CONTEXT MANAGER
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    # Startup
    await init_db()
    logger.info(
        "meeting_dashboard_started",
        environment="development" if settings.debug else "production",
        openai_configured=settings.is_openai_configured,
        cors_origins=settings.cors_origins,
    )

    yield

    # Shutdown
    await close_db()


# ============================================
# CREATE FASTAPI APP
# ============================================

app = FastAPI(
    title="Meeting Dashboard",
    description="Fireflies transcripts, editable summaries and generated documents with a local cache",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)


# ============================================
# MIDDLEWARE CONFIGURATION
# ============================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


# ============================================
# ERROR HANDLERS
# ============================================

# Checked in order, subclasses before their base
_ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (ValidationFailedError, status.HTTP_400_BAD_REQUEST, "validation_failed"),
    (UpstreamUnavailableError, status.HTTP_502_BAD_GATEWAY, "upstream_unavailable"),
    (PersistenceConstraintError, status.HTTP_409_CONFLICT, "persistence_constraint"),
    (PersistenceUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "persistence_unavailable"),
    (PersistenceFailedError, status.HTTP_500_INTERNAL_SERVER_ERROR, "persistence_failed"),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE, "configuration_error"),
)


@app.exception_handler(MeetingDashboardError)
async def dashboard_error_handler(request: Request, exc: MeetingDashboardError):
    status_code, error = status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"
    for exc_type, code, name in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            status_code, error = code, name
            break

    details = str(exc)
    if isinstance(exc, UpstreamUnavailableError) and exc.status_code:
        details = f"{exc.service} status {exc.status_code}: {details}"

    logger.warning(
        "request_failed",
        path=request.url.path,
        error=error,
        status_code=status_code,
        details=details
    )
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, details=details).model_dump()
    )


# ============================================
# INCLUDE ROUTERS
# ============================================

app.include_router(router)


# ============================================
# RUN APPLICATION
# ============================================

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )
