"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from image_api.api import health, images, uploads

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, tags=["health"])
api_router.include_router(uploads.router, tags=["uploads"])
api_router.include_router(images.router, tags=["images"])
