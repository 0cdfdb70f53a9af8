# ==============================================================================
# MAIN APPLICATION - FastAPI Entry Point
# ==============================================================================
# Application factory with lifespan events, middleware, and routing
# ==============================================================================

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from aiserve.core.settings import settings
from aiserve.core.exceptions import AppException, ConnectionError, ProgrammingError
from aiserve.core.logging_config import configure_logging
from aiserve.database.factory import DatabaseFactory
from aiserve.api.router import api_router
from aiserve.middleware.request_logger import RequestLoggerMiddleware
from aiserve.schemas.base import HealthResponse, PoolStatusResponse

logger = logging.getLogger(__name__)


# ==============================================================================
# LIFESPAN MANAGEMENT
# ==============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.

    - Startup: Build the connection pool and unit of work manager
    - Shutdown: Dispose of pooled connections
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENVIRONMENT.value}")
    logger.info(f"Database: {settings.DATABASE_TYPE.value}")

    await DatabaseFactory.initialize()

    yield

    logger.info("Shutting down application...")
    await DatabaseFactory.shutdown()
    logger.info("Application shutdown complete")


# ==============================================================================
# APPLICATION FACTORY
# ==============================================================================

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging()

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggerMiddleware)

    register_exception_handlers(app)

    app.include_router(api_router)

    register_health_endpoints(app)

    return app


# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================

def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ConnectionError)
    async def connection_error_handler(
        request: Request,
        exc: ConnectionError,
    ) -> JSONResponse:
        """Pool exhausted: tell the client when to retry."""
        headers = {}
        if exc.retry_after is not None:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=headers,
        )

    @app.exception_handler(ProgrammingError)
    async def programming_error_handler(
        request: Request,
        exc: ProgrammingError,
    ) -> JSONResponse:
        """Unit of work misuse is a defect: log loudly, answer 500."""
        logger.critical(
            f"Unit of work misuse in {request.method} {request.url.path}: {exc.message}",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request,
        exc: AppException,
    ) -> JSONResponse:
        """Handle application exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(f"Unexpected error: {exc}")

        if settings.DEBUG:
            detail = str(exc)
        else:
            detail = "An unexpected error occurred"

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": detail,
                }
            },
        )


# ==============================================================================
# HEALTH ENDPOINTS
# ==============================================================================

def register_health_endpoints(app: FastAPI) -> None:
    """Register health check endpoints."""

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health check",
        description="Check application and database health.",
    )
    async def health_check() -> HealthResponse:
        """Application health check."""
        db_healthy = await DatabaseFactory.health_check()

        return HealthResponse(
            status="healthy" if db_healthy else "degraded",
            version=settings.APP_VERSION,
            database="connected" if db_healthy else "disconnected",
        )

    @app.get(
        "/health/pool",
        response_model=PoolStatusResponse,
        tags=["Health"],
        summary="Connection pool status",
        description="Pool occupancy and unit of work counters.",
    )
    async def pool_status() -> PoolStatusResponse:
        """Connection pool occupancy."""
        manager = DatabaseFactory.get_manager()
        return PoolStatusResponse(
            **manager.pool_status(),
            stats=manager.stats.to_dict(),
        )

    @app.get(
        "/",
        tags=["Health"],
        summary="Root endpoint",
        description="Welcome message and API information.",
    )
    async def root() -> dict:
        """Root endpoint with API info."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs" if settings.DEBUG else "Disabled in production",
            "health": "/health",
        }


# Create application instance
app = create_app()


# ==============================================================================
# DEVELOPMENT RUNNER
# ==============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "aiserve.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
