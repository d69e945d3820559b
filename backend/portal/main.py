"""
Main Application Entry Point
============================

Responsibilities:
- Initialize FastAPI application
- Configure middleware stack
- Register API routers
- Set up exception handlers
- Provide health check endpoints
- Configure CORS

IMPORTANT:
    Database tables are managed via Alembic migrations.
    Do NOT use Base.metadata.create_all() in production.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal.core.config import settings
from portal.core.exceptions import PortalException, exception_to_payload
from portal.core.logging import configure_logging, get_logger
from portal.db.session import check_database_connection

# Import models so metadata is complete
import portal.models  # noqa: F401

from portal.middleware.request_middleware import (
    RateLimitMiddleware,
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
)
from portal.routes import auth_routes, permission_routes, role_routes, user_role_routes

configure_logging()

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Application Lifespan Handler
# =====================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: log and check the database. Shutdown: log.
    """
    logger.info(
        "application_starting",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if not check_database_connection():
        logger.error("database_unavailable_on_startup")
    else:
        logger.info("database_connection_established")

    yield

    logger.info("application_shutdown_complete")


# =====================================
# FastAPI App Initialization
# =====================================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    Access control service for the Analytics Hub portal.

    ## Authentication

    Use `/auth/login` to obtain access and refresh tokens and send the
    access token as `Authorization: Bearer <token>`. Users on a temporary
    password, or with unaccepted terms, can only change their password,
    accept the terms, or log out.

    ## Authorization

    Every admin action is checked against the caller's effective
    permissions (union over their roles). Role tiers, from most to least
    powerful:
    * `TOP` (`super_admin`): passes every permission check
    * `ELEVATED` (`admin`): cannot grant or revoke `TOP`/`ELEVATED` roles
    * `STANDARD`: everything else

    Denials carry a machine-readable `reason`.
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
)


# =====================================
# Middleware
# =====================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.cors_methods_list,
    allow_headers=settings.cors_headers_list,
    max_age=3600,
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)


# =====================================
# Exception Handlers
# =====================================

@app.exception_handler(PortalException)
async def portal_exception_handler(request: Request, exc: PortalException):
    """
    Render PortalException subclasses as ``{"message", "reason", "details"}``.
    """
    logger.warning(
        "portal_exception",
        exception_type=type(exc).__name__,
        reason=exc.reason,
        status_code=exc.status_code,
        path=request.url.path,
    )

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=exc.status_code,
        content=exception_to_payload(exc),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle request validation errors.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning("request_validation_error", path=request.url.path, errors=errors)

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "message": "Validation error",
            "reason": "validation_error",
            "details": {"errors": errors},
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Log unexpected exceptions and return a generic error.
    """
    logger.error(
        "unhandled_exception",
        exception_type=type(exc).__name__,
        error=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    # Don't expose internal errors in production
    message = "An unexpected error occurred" if settings.ENVIRONMENT == "production" else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": message, "reason": "internal_error", "details": {}},
    )


# =====================================
# Register Routers
# =====================================

app.include_router(auth_routes.router)
app.include_router(permission_routes.router)
app.include_router(role_routes.router)
app.include_router(user_role_routes.router)


# =====================================
# Health Check Endpoints
# =====================================

@app.get("/", tags=["Health"], summary="Basic Health Check")
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health", tags=["Health"], summary="Detailed Health Check")
def detailed_health_check():
    """
    Health status including database connectivity.
    """
    db_healthy = check_database_connection()

    return {
        "status": "healthy" if db_healthy else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": "healthy" if db_healthy else "unhealthy",
        },
    }
