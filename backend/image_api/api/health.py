"""
Liveness endpoints.
Reports version and capabilities; never fails on a dependency outage.
"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from image_api import __version__
from image_api.config import Settings, get_settings
from image_api.database import get_db

router = APIRouter()

SERVICE_NAME = "Image Gateway API"


@router.get("/")
async def root(settings: Settings = Depends(get_settings)):
    """Root endpoint."""
    return {
        "message": SERVICE_NAME,
        "version": __version__,
        "status": "healthy",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health")
async def health_check(
    settings: Settings = Depends(get_settings),
    db: Optional[AsyncSession] = Depends(get_db),
):
    """
    Health check endpoint.
    The service stays up without its store, so a database error shows as
    "degraded" rather than a 503.
    """
    health_status = {
        "message": SERVICE_NAME,
        "version": __version__,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "disabled",
        "capabilities": {
            "persistence": settings.persistence_enabled,
            "presigned_uploads": settings.enable_presigned_uploads,
        },
    }

    if db is not None:
        try:
            await db.execute(text("SELECT 1"))
            health_status["database"] = "connected"
        except (SQLAlchemyError, OSError) as e:
            health_status["database"] = f"error: {str(e)}"
            health_status["status"] = "degraded"

    return health_status
