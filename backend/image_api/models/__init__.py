"""
Database models package.
"""
from image_api.models.base import Base
from image_api.models.image import Image, ImageVariant

__all__ = [
    "Base",
    "Image",
    "ImageVariant",
]
