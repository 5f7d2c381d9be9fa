"""
FastAPI dependencies that assemble the image service per request.

Tests override get_image_provider and get_db (or get_image_repository)
through app.dependency_overrides.
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from image_api.config import Settings, get_settings
from image_api.database import get_db
from image_api.repositories.image_repository import ImageRepository
from image_api.services.image_service import ImageService
from image_api.storage.base import ImageProvider
from image_api.storage.cf_images import CloudflareImagesClient
from image_api.storage.variants import VARIANT_REGISTRY


def get_image_provider(settings: Settings = Depends(get_settings)) -> ImageProvider:
    """Cloudflare Images client built from current settings."""
    return CloudflareImagesClient(settings.provider_config())


def get_image_repository(db: Optional[AsyncSession] = Depends(get_db)) -> Optional[ImageRepository]:
    """Metadata store, or None when persistence is disabled."""
    if db is None:
        return None
    return ImageRepository(db)


def get_image_service(
    settings: Settings = Depends(get_settings),
    provider: ImageProvider = Depends(get_image_provider),
    repository: Optional[ImageRepository] = Depends(get_image_repository),
) -> ImageService:
    return ImageService(
        provider=provider,
        config=settings.provider_config(),
        repository=repository,
        registry=VARIANT_REGISTRY,
        max_upload_size=settings.max_upload_size_bytes,
        presigned_enabled=settings.enable_presigned_uploads,
    )
