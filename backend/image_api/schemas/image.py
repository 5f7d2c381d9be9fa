"""
Pydantic schemas for image endpoints.

Responses use camelCase keys on the wire (availableUrls, uploadURL...);
fields are snake_case in Python and serialized by alias.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from image_api.repositories.image_repository import ImageRecord, StoredImage


class APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ImageMetadata(APIModel):
    """Stored metadata of an image."""
    file_name: str = Field(..., alias="fileName")
    description: Optional[str] = None
    mime_type: str = Field(..., alias="mimeType")
    size_in_bytes: int = Field(..., alias="sizeInBytes")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @classmethod
    def from_record(cls, record: ImageRecord) -> "ImageMetadata":
        return cls(
            file_name=record.file_name,
            description=record.description,
            mime_type=record.mime_type,
            size_in_bytes=record.size_in_bytes,
            created_at=record.created_at,
        )


class UploadResponse(APIModel):
    """Response schema for a direct upload."""
    success: bool = True
    id: str = Field(..., description="Provider-assigned image ID")
    file_name: str = Field(..., alias="fileName")
    variant: str = Field(..., description="Variant the url field points at")
    url: str = Field(..., description="Delivery URL of the requested variant")
    available_urls: Dict[str, str] = Field(..., alias="availableUrls")
    persisted: bool = Field(..., description="Whether metadata was written to the store")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "id": "2cdc28f0-017a-49c4-9ed7-87056c83901f",
                "fileName": "profile_photo",
                "variant": "public",
                "url": "https://imagedelivery.net/<hash>/2cdc28f0-017a-49c4-9ed7-87056c83901f/public",
                "availableUrls": {
                    "public": "https://imagedelivery.net/<hash>/2cdc28f0-017a-49c4-9ed7-87056c83901f/public",
                    "thumbnail": "https://imagedelivery.net/<hash>/2cdc28f0-017a-49c4-9ed7-87056c83901f/thumbnail",
                },
                "persisted": True,
            }
        },
    )


class PresignedUploadResponse(APIModel):
    """Response schema for a presigned upload."""
    success: bool = True
    id: str = Field(..., description="Image ID the upload will be stored under")
    upload_url: str = Field(..., alias="uploadURL", description="One-time URL for direct upload")
    file_name: str = Field(..., alias="fileName")


class ImageResponse(APIModel):
    """Response schema for GET /image."""
    success: bool = True
    id: str
    variant: str
    url: str
    available_urls: Dict[str, str] = Field(..., alias="availableUrls")
    source: str = Field(..., description="'store' if read from the metadata store, 'computed' otherwise")
    metadata: Optional[ImageMetadata] = None


class ImageListItem(APIModel):
    id: str
    file_name: str = Field(..., alias="fileName")
    description: Optional[str] = None
    mime_type: str = Field(..., alias="mimeType")
    size_in_bytes: int = Field(..., alias="sizeInBytes")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    available_urls: Dict[str, str] = Field(..., alias="availableUrls")

    @classmethod
    def from_stored(cls, stored: StoredImage) -> "ImageListItem":
        record = stored.record
        return cls(
            id=record.image_id,
            file_name=record.file_name,
            description=record.description,
            mime_type=record.mime_type,
            size_in_bytes=record.size_in_bytes,
            created_at=record.created_at,
            available_urls=stored.available_urls,
        )


class Pagination(APIModel):
    total: int
    limit: int
    offset: int
    page: Optional[int] = None
    has_more: bool = Field(..., alias="hasMore")


class ImageListResponse(APIModel):
    """Response schema for GET /images."""
    success: bool = True
    images: List[ImageListItem]
    pagination: Pagination


class ImageDeleteResponse(APIModel):
    success: bool = True
    id: str
    provider_deleted: bool = Field(..., alias="providerDeleted")
    records_deleted: int = Field(..., alias="recordsDeleted")


class ImageDetailsResponse(APIModel):
    success: bool = True
    id: str
    details: Dict = Field(..., description="Provider-side metadata")
