"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modules.auth.routes import router as auth_router
from modules.coaching.routes import router as modules_router
from modules.subscriptions.routes import router as subscriptions_router
from modules.subscriptions.routes import webhook_router
from shared.config import get_settings

from .errors import register_exception_handlers
from .routes import health

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting %s on %s:%s", settings.app_name, settings.host, settings.port)
    if not settings.google_enabled:
        logger.warning("Google OAuth is not configured; browser sign-in is disabled")
    if not settings.email_enabled:
        logger.warning("RESEND_API_KEY is not set; verification emails will only be logged")
    yield
    # Shutdown
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Personal coaching API: accounts, subscriptions and AI-generated modules",
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

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(modules_router, prefix="/api/modules", tags=["modules"])
    app.include_router(subscriptions_router, prefix="/api/subscriptions", tags=["subscriptions"])
    app.include_router(webhook_router, prefix="/api/webhooks", tags=["webhooks"])

    return app


# Application instance for uvicorn
app = create_app()
