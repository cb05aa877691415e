"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import Settings, get_settings
from shared.database import close_client, ensure_indexes, get_database
from shared.i18n import Translator

from .dependencies import ServiceContainer
from .errors import register_exception_handlers
from .middleware.request_context import RequestContextMiddleware
from .routes import health, users

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str) -> None:
    """Send log records to stdout at the configured level."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger().setLevel(level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Builds the service container (unless one was injected), makes sure the
    indexes exist, and closes the MongoDB client on shutdown.
    """
    # Startup
    settings: Settings = app.state.settings
    owns_client = getattr(app.state, "container", None) is None
    if owns_client:
        database = get_database(settings.database)
        app.state.container = ServiceContainer(settings, database, app.state.translator)

    await ensure_indexes(app.state.container.database, settings.database)
    logger.info(
        "Starting %s on %s:%s (%s)",
        settings.app.app_name,
        settings.app.host,
        settings.app.port,
        settings.app.environment,
    )
    yield
    # Shutdown
    logger.info("Shutting down %s", settings.app.app_name)
    if owns_client:
        close_client()


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration, loaded from the environment if omitted
        container: Pre-built services (tests); built at startup if omitted

    Returns:
        Configured FastAPI instance
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)
    prefix = settings.app.api_prefix

    app = FastAPI(
        title=settings.app.app_name,
        description="Accounts, authentication and follow graph API",
        version=settings.app.app_version,
        lifespan=lifespan,
        docs_url=f"{prefix}/docs" if settings.app.debug else None,
        redoc_url=f"{prefix}/redoc" if settings.app.debug else None,
    )

    app.state.settings = settings
    app.state.translator = (
        container.translator
        if container is not None
        else Translator.from_directory(default_language=settings.app.default_language)
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(
        RequestContextMiddleware,
        supported_languages=settings.app.supported_languages,
        default_language=settings.app.default_language,
        secure_cookie=settings.app.is_production,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_origins,
        allow_credentials=settings.app.cors_allow_credentials,
        allow_methods=settings.app.cors_allow_methods,
        allow_headers=settings.app.cors_allow_headers,
        expose_headers=["X-Request-ID"],
    )

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, prefix=prefix, tags=["health"])
    app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])

    return app


# Application instance for uvicorn
app = create_app()
