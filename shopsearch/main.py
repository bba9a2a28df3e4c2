"""ShopSearch -- FastAPI Application Entry Point."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopsearch.api.v1.router import api_v1_router
from shopsearch.config import settings
from shopsearch.core.exceptions import register_exception_handlers
from shopsearch.core.logging import configure_logging
from shopsearch.db.seed import seed_if_empty
from shopsearch.db.session import async_session_factory, engine
from shopsearch.jobs.scheduler import AnalyticsScheduler
from shopsearch.models import Base
from shopsearch.services.cache_service import get_cache_service

configure_logging()
logger = structlog.get_logger(__name__)

# Global scheduler instance
scheduler: Optional[AnalyticsScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    logger.info(
        "api_starting",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
    )

    # Auto-create tables on startup (safe for fresh deployments)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_ready")

        if settings.ENVIRONMENT == "development":
            async with async_session_factory() as session:
                await seed_if_empty(session)
    except Exception as e:
        logger.error("database_init_failed", error=str(e), exc_info=True)

    cache = get_cache_service()
    if await cache.health_check():
        logger.info("redis_cache_connected")
    else:
        logger.warning("redis_cache_unavailable", detail="operating without caching")

    # Analytics maintenance (only in non-test environments)
    if settings.ENVIRONMENT != "test":
        scheduler = AnalyticsScheduler(async_session_factory, cache=cache)
        scheduler.start()
    else:
        logger.info("scheduler_disabled", reason="test environment")

    yield

    logger.info("api_stopping")

    if scheduler:
        scheduler.stop()
        scheduler = None

    await cache.close()
    await engine.dispose()


app = FastAPI(
    title="ShopSearch API",
    description="Product search, relevance ranking and search analytics",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "ShopSearch API",
        "version": "0.1.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
