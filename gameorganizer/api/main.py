"""
Game Organizer API

FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request
from sqlalchemy import text

from .. import __version__
from .schemas import HealthResponse
from .routes import (
    accounts,
    auth,
    borrow_requests,
    events,
    games,
    lending_records,
    registrations,
    reviews,
    users,
)
from .middleware import (
    setup_cors,
    setup_rate_limiting,
    setup_logging,
    setup_exception_handlers,
    RateLimitConfig,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_engine,
    get_settings,
    init_database,
    create_tables,
    dispose_database,
    Settings,
)

# Configure logging
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

    Opens the database engine and creates missing tables on startup, and
    disposes the engine on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting Game Organizer in {settings.environment} mode")

    try:
        logger.info("Initializing database...")
        init_database(settings)
        create_tables()

        logger.info("Game Organizer started successfully")

        yield

    finally:
        logger.info("Shutting down Game Organizer...")
        dispose_database()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
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
        title="Game Organizer",
        description="Board game lending and event organizing platform.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Routes resolve settings through the dependency; keep them on this app's copy
    app.dependency_overrides[get_settings] = lambda: settings

    # ==========================================================================
    # Middleware (last added = outermost)
    # ==========================================================================

    setup_exception_handlers(app)

    # 1. Rate limiting (innermost)
    if settings.rate_limit_enabled:
        setup_rate_limiting(
            app,
            config=RateLimitConfig(
                requests_per_minute=settings.rate_limit_requests_per_minute,
                enabled=settings.rate_limit_enabled,
                trust_proxy_headers=settings.trust_proxy_headers,
            ),
        )

    # 2. Logging, so throttled requests are logged too
    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment != "development",
    )

    # 3. CORS (outermost, so every response carries the headers)
    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api"

    app.include_router(auth.router)

    for module in (
        accounts,
        games,
        borrow_requests,
        lending_records,
        events,
        registrations,
        reviews,
        users,
    ):
        app.include_router(module.router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Game Organizer",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    def health_check(request: Request) -> HealthResponse:
        """Report service and database status."""
        try:
            with get_engine().connect() as connection:
                connection.execute(text("SELECT 1"))
            database = "healthy"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            database = "unhealthy"

        return HealthResponse(
            status="healthy" if database == "healthy" else "degraded",
            version=__version__,
            database=database,
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
        "gameorganizer.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        workers=1 if settings.debug else 4,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
