"""
Repository layer for database operations.
Provides higher-level abstractions over the image tables.
"""
from image_api.repositories.image_repository import ImageRecord, ImageRepository, StoredImage

__all__ = ["ImageRecord", "ImageRepository", "StoredImage"]
