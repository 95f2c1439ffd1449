"""
Arcana API

FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request

from .schemas import HealthResponse
from .routes import books, scan
from .middleware import (
    setup_cors,
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
)
from .dependencies import (
    get_settings,
    get_service_container,
    init_services,
    Settings,
)
from arcana import __version__

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Startup creates the service container and the catalog tables;
    shutdown releases HTTP clients and database connections.
    """
    settings = app.state.settings
    logger.info(f"Starting Arcana in {settings.environment} mode")

    services = init_services(settings)
    app.state.services = services

    try:
        logger.info("Initializing database...")
        await services.book_repository.init()

        if not settings.recognition_api_key:
            logger.warning(f"No API key configured for LLM provider '{settings.llm_provider}'")

        logger.info("Arcana started successfully")

        yield

    finally:
        logger.info("Shutting down Arcana...")
        await services.close()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Arcana",
        description="Family book inventory with shelf scanning.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # ==========================================================================
    # Middleware (order matters - last added = outermost)
    # ==========================================================================

    setup_logging(
        app,
        config=LoggingConfig(enabled=True),
        structured=settings.environment != "development",
    )

    setup_exception_handlers(app)

    setup_cors(app, settings.environment, settings.cors_allowed_origins)

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api/v1"

    # Scan routes first so /books/scan never reads as a book id
    app.include_router(scan.router, prefix=api_prefix)
    app.include_router(books.router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Arcana",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint.

        Reports the catalog database and which external services are configured.
        """
        services = getattr(request.app.state, "services", None) or get_service_container()

        components = {}
        overall_healthy = True

        try:
            await services.book_repository.count()
            components["database"] = "healthy"
        except Exception as e:
            components["database"] = f"unhealthy: {str(e)}"
            overall_healthy = False

        components["recognition"] = (
            f"configured ({settings.llm_provider})"
            if settings.recognition_api_key
            else "not_configured"
        )
        components["google_books"] = (
            "configured" if settings.google_books_api_key else "anonymous"
        )

        return HealthResponse(
            status="healthy" if overall_healthy else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "arcana.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
