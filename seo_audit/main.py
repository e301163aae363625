"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from seo_audit import __version__
from seo_audit.api import router
from seo_audit.core.config import settings
from seo_audit.core.database import AsyncSessionLocal, check_database_connection, engine
from seo_audit.rules import get_catalog
from seo_audit.services.audit_job import audit_runner
from seo_audit.services.audit_store import sync_rules

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events.

    Tests the database connection and syncs the rule catalog on
    startup; cancels running audits on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control passes to the application.
    """
    configure_logging()
    catalog = get_catalog()
    logger.info("Starting SEO Audit Backend...")
    logger.info(f"Environment: {settings.ENVIRONMENT}, debug mode: {settings.DEBUG}")
    logger.info(f"Rule catalog {catalog.version}: {len(catalog)} rules, {catalog.total_weight} points")

    if await check_database_connection():
        logger.info("Database connection successful!")
        try:
            async with AsyncSessionLocal() as session:
                await sync_rules(session, catalog)
        except SQLAlchemyError as e:
            logger.warning(f"Rule sync failed: {e!r}. Run migrations before starting audits.")
    else:
        logger.warning("Database is unreachable. The application will start but audits will fail.")

    yield

    logger.info("Shutting down SEO Audit Backend...")
    audit_runner.cancel_all()
    await engine.dispose()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    app = FastAPI(
        title="SEO Audit Backend",
        description="Crawls sites, runs SEO rules and scores the results",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Remove duplicates while preserving order
    cors_origins = list(dict.fromkeys(settings.CORS_ORIGINS))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(router, prefix="/api/v1")

    # Root endpoint
    @app.get("/")
    async def root() -> dict:
        """Root endpoint with API information.

        Returns:
            dict: Basic API information and links.
        """
        return {
            "name": "SEO Audit Backend",
            "version": __version__,
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


# Create application instance
app = create_application()
