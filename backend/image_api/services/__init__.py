"""
Business logic services.
"""
from image_api.services.image_service import ImageService

__all__ = [
    "ImageService",
]
