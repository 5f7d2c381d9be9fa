"""
Image lookup, listing and deletion endpoints.

- GET    /image?image_id=&variant=   URLs of one image (store, or recomputed)
- GET    /image/details?image_id=    provider-side metadata
- DELETE /image?image_id=            delete at the provider and from the store
- GET    /images?limit=&offset=|page=  paginated listing (requires the store)
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from image_api.api.dependencies import get_image_service
from image_api.schemas.image import (
    ImageDeleteResponse,
    ImageDetailsResponse,
    ImageListItem,
    ImageListResponse,
    ImageMetadata,
    ImageResponse,
    Pagination,
)
from image_api.services.image_service import ImageService

router = APIRouter()


@router.get("/image", response_model=ImageResponse)
async def get_image(
    image_id: Optional[str] = Query(None, description="Provider image ID"),
    variant: Optional[str] = Query(None, description="Variant name for the url field"),
    service: ImageService = Depends(get_image_service),
):
    """
    Get the delivery URLs of an image.

    Falls back to computing URLs from the variant registry when the image
    isn't in the store (or the store is down), so this always answers for
    a well-formed ID.
    """
    lookup = await service.get_image(image_id, variant)
    return ImageResponse(
        id=lookup.image_id,
        variant=lookup.variant,
        url=lookup.url,
        available_urls=lookup.available_urls,
        source=lookup.source,
        metadata=ImageMetadata.from_record(lookup.record) if lookup.record else None,
    )


@router.get("/image/details", response_model=ImageDetailsResponse)
async def get_image_details(
    image_id: Optional[str] = Query(None, description="Provider image ID"),
    service: ImageService = Depends(get_image_service),
):
    """Provider-side metadata, for diagnostics."""
    details = await service.get_image_details(image_id)
    return ImageDetailsResponse(id=image_id, details=details)


@router.delete("/image", response_model=ImageDeleteResponse)
async def delete_image(
    image_id: Optional[str] = Query(None, description="Provider image ID"),
    service: ImageService = Depends(get_image_service),
):
    """Delete an image at the provider and remove its metadata."""
    result = await service.delete_image(image_id)
    return ImageDeleteResponse(
        id=result.image_id,
        provider_deleted=result.provider_deleted,
        records_deleted=result.records_deleted,
    )


@router.get("/images", response_model=ImageListResponse)
async def list_images(
    limit: Optional[int] = Query(None, description="Page size, 1-100 (default 20)"),
    offset: Optional[int] = Query(None, description="Rows to skip"),
    page: Optional[int] = Query(None, description="1-based page number, overrides offset"),
    service: ImageService = Depends(get_image_service),
):
    """List stored images, most recent first."""
    result = await service.list_images(limit=limit, offset=offset, page=page)
    return ImageListResponse(
        images=[ImageListItem.from_stored(image) for image in result.images],
        pagination=Pagination(
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            page=result.page,
            has_more=result.has_more,
        ),
    )
