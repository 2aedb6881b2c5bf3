"""Agency Portal Backend - Main FastAPI Application

Multi-tenant agency/client portal: deliverable tracking, client onboarding,
weekly updates, roadmap, rule-based reports and agency/client messaging.

This module creates and configures the FastAPI application:
- API routers (orgs/workspaces, deliverables, uploads, onboarding, updates, reports, messaging)
- Middleware (request ID correlation, CORS)
- Exception handlers rendering the ``{"error": ...}`` envelope
- Health and metrics endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .errors import AccessRedirect, PortalError, Unauthenticated
from .schemas import ErrorEnvelope

# Observability
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router

# Domain Routers
from .tenancy.router import router as tenancy_router
from .deliverables.router import router as deliverables_router
from .deliverables.uploads import router as uploads_router
from .onboarding.router import router as onboarding_router
from .updates.router import router as updates_router
from .reports.router import router as reports_router
from .messaging.router import router as messaging_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
_docs_enabled = settings.ENV != "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Portal API starting up...")
    logger.info(f"Environment: {settings.ENV}")

    yield

    logger.info("Portal API shutting down...")


app = FastAPI(
    title="Agency Portal API",
    description="Multi-tenant agency/client portal",
    version="0.1.0",
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    openapi_url="/openapi.json" if _docs_enabled else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
    """Render any PortalError as ``{"error": message}`` with its status code."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


@app.exception_handler(AccessRedirect)
async def access_redirect_handler(request: Request, exc: AccessRedirect) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=status.HTTP_303_SEE_OTHER)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input is a 400 with field-level details."""
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"errors": details}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request", "details": details},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Log the full error, return a generic message."""
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "A database error occurred. Please try again later."},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "An unexpected error occurred. Please try again later."},
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

# Observability (health, metrics)
app.include_router(observability_router)

# Documented error responses shared by every workspace route
ERROR_RESPONSES = {
    code: {"model": ErrorEnvelope, "description": description}
    for code, description in (
        (400, "Invalid request"),
        (401, "Not authenticated"),
        (403, "Not a member or insufficient permissions"),
        (404, "Not found"),
        (500, "Server error"),
    )
}

for api_router in (
    tenancy_router,
    uploads_router,
    deliverables_router,
    onboarding_router,
    updates_router,
    reports_router,
    messaging_router,
):
    app.include_router(api_router, prefix=API_PREFIX, responses=ERROR_RESPONSES)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    return {
        "name": "Agency Portal API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs" if _docs_enabled else None,
    }


def create_app() -> FastAPI:
    """Return the configured application (used by tests and ASGI servers)."""
    return app


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "portal.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.ENV == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
