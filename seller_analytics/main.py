"""
FastAPI Application

Main entry point for the Seller Analytics API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import structlog

from seller_analytics.config import get_settings
from seller_analytics.config.logging import configure_logging
from seller_analytics.database.connection import init_database, close_database
from seller_analytics.engine.errors import AnalyticsError
from seller_analytics.ingestion.marketplace_client import MarketplaceUnavailableError
from seller_analytics.serving.cache import init_redis, close_redis
from seller_analytics.serving.api.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from seller_analytics.serving.api.routes import (
    analytics_router,
    expenses_router,
    health_router,
    sync_router,
)

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting Seller Analytics API", environment=settings.app_env)

    try:
        await init_database(create_tables=settings.is_development)
    except (SQLAlchemyError, OSError) as e:
        # Readiness probe reports 503 until the database answers
        logger.error("Database init failed", error=str(e))

    await init_redis()

    yield

    logger.info("Shutting down")
    await close_database()
    await close_redis()


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    logger.info("Rejected report request", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def marketplace_error_handler(request: Request, exc: MarketplaceUnavailableError) -> JSONResponse:
    logger.error(
        "Marketplace unavailable",
        path=request.url.path,
        upstream_status=exc.status_code,
        error=str(exc),
    )
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Seller Analytics API",
        description="Period reports, expense proration and per-product profitability for marketplace sellers",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(MarketplaceUnavailableError, marketplace_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(analytics_router, prefix="/api/v1", tags=["Analytics"])
    app.include_router(expenses_router, prefix="/api/v1", tags=["Expenses"])
    app.include_router(sync_router, prefix="/api/v1", tags=["Sync"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "environment": settings.app_env,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
