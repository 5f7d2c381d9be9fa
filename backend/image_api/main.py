"""
FastAPI application entry point.
Sets up the API with lifespan events for logging and database initialization.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from image_api import __version__
from image_api.config import settings
from image_api.database import dispose_db, init_db
from image_api.api.router import api_router
from image_api.exceptions import setup_exception_handlers
from image_api.middleware.metrics_middleware import MetricsMiddleware
from image_api.utils.cors import get_cors_config
from image_api.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Configure logging, create tables if persistence is enabled
    - Shutdown: Dispose the database engine
    """
    # Configure structured JSON logging
    configure_logging('image-api', settings.log_level)

    # Startup
    if settings.persistence_enabled and settings.auto_create_tables:
        try:
            await init_db()
        except Exception as e:
            # The store is optional; uploads keep working without it
            if settings.environment == "production":
                raise
            logger.warning(f"Database initialization failed: {e}")

    if not settings.provider_config().account_id:
        logger.warning("CF_IMAGES_ACCOUNT_ID not set; provider calls will fail with a configuration error")

    yield

    # Shutdown
    await dispose_db()


# Create FastAPI app
app = FastAPI(
    title="Image Gateway API",
    description="Uploads images to Cloudflare Images and serves their variant URLs",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(CORSMiddleware, **get_cors_config(settings))

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

setup_exception_handlers(app)

# Include API routes
app.include_router(api_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
