"""
Pydantic schemas for request/response validation.
"""
from image_api.schemas.image import (
    ImageDeleteResponse,
    ImageDetailsResponse,
    ImageListItem,
    ImageListResponse,
    ImageMetadata,
    ImageResponse,
    Pagination,
    PresignedUploadResponse,
    UploadResponse,
)

__all__ = [
    "ImageDeleteResponse",
    "ImageDetailsResponse",
    "ImageListItem",
    "ImageListResponse",
    "ImageMetadata",
    "ImageResponse",
    "Pagination",
    "PresignedUploadResponse",
    "UploadResponse",
]
