"""
Account Service

FastAPI application factory with security hardening.
"""

import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from account_service import __version__
from account_service.api.exception_handlers import setup_exception_handlers
from account_service.api.v1.api import api_router
from account_service.auth.dependencies import get_client_ip
from account_service.auth.tokens import TokenIssuer
from account_service.core.config import Settings
from account_service.core.database import Database
from account_service.core.log import configure_logging
from account_service.schemas.common import HealthResponse
from account_service.storage.assets import LocalAssetStorage

logger = structlog.get_logger(__name__)


# =============================================================================
# Middleware
# =============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Add unique request ID for tracing and bind it into the log context."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-ID") or secrets.token_urlsafe(8)
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=get_client_ip(request),
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )
        return response


# =============================================================================
# Application factory
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Everything stateful (settings, database, token issuer, asset storage)
    hangs off ``app.state`` so tests can build isolated instances.
    """
    if settings is None:
        load_dotenv()
        settings = Settings.from_env()

    configure_logging(settings.log_level, settings.log_json)

    database = Database(settings.database_url, echo=settings.sql_debug)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown events."""
        logger.info("service_starting", version=__version__)
        await database.init()
        logger.info("database_initialized")

        yield

        logger.info("service_stopping")
        await database.close()

    app = FastAPI(
        title="Account Service API",
        version=__version__,
        description="User registration, login/logout and rotating refresh tokens",
        lifespan=lifespan,
        docs_url="/docs" if settings.enable_docs else None,
        redoc_url="/redoc" if settings.enable_docs else None,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.token_issuer = TokenIssuer(settings)
    app.state.asset_storage = LocalAssetStorage(settings.media_root, settings.media_base_url)

    # CORS - credentials are needed for the token cookies
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)

    setup_exception_handlers(app)

    @app.get("/", tags=["root"])
    def home():
        """Root endpoint."""
        return {
            "name": "Account Service",
            "version": __version__,
            "docs": "/docs" if settings.enable_docs else None,
        }

    @app.get("/health", tags=["health"], response_model=HealthResponse)
    async def health_check():
        """Health check endpoint for load balancers and monitoring."""
        db_status = "connected"
        try:
            await database.ping()
        except Exception as e:
            logger.warning("health_database_unreachable", error=str(e))
            db_status = "unreachable"

        return HealthResponse(
            status="healthy" if db_status == "connected" else "degraded",
            version=__version__,
            database=db_status,
            timestamp=datetime.now(timezone.utc),
        )

    app.include_router(api_router, prefix="/api/v1")

    # Stored avatars and cover images, unless served from elsewhere
    if settings.media_base_url.startswith("/"):
        settings.media_root.mkdir(parents=True, exist_ok=True)
        app.mount(
            settings.media_base_url,
            StaticFiles(directory=settings.media_root),
            name="media",
        )

    return app


# =============================================================================
# Development Server
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "account_service.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
