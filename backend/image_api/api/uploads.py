"""
Upload endpoint.

POST /upload takes a multipart form:
- file:          image bytes (required unless presigned=true)
- new_file_name: optional label, [A-Za-z0-9_-]+
- variant:       optional variant name for the returned url (default "public")
- description:   optional free text, stored with the metadata
- presigned:     "true" to get a one-time direct upload URL instead
                 (requires ENABLE_PRESIGNED_UPLOADS)
"""
import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData, UploadFile

from image_api.api.dependencies import get_image_service
from image_api.exceptions import InvalidRequestError, UnsupportedMediaTypeError, error_response
from image_api.schemas.image import PresignedUploadResponse, UploadResponse
from image_api.services.image_service import ImageService, UploadedFile, parse_flag

logger = logging.getLogger(__name__)

router = APIRouter()


def _text_field(form: FormData, name: str) -> Optional[str]:
    """Get a text form field; empty strings count as absent."""
    value = form.get(name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequestError(f"Invalid {name}")
    return value or None


async def _read_file(form: FormData, max_size: int) -> Optional[UploadedFile]:
    """
    Read the file part, at most max_size + 1 bytes.

    request.form() has already spooled the whole part. This only caps how
    much of it is copied into the upload payload.
    """
    file = form.get("file")
    if not isinstance(file, UploadFile):
        return None
    content = await file.read(max_size + 1)
    size = file.size if file.size is not None else len(content)
    return UploadedFile(
        content=content,
        content_type=file.content_type,
        filename=file.filename,
        size=size,
    )


@router.post(
    "/upload",
    response_model=None,
    responses={200: {"model": UploadResponse, "description": "Direct or presigned upload result"}},
)
async def upload_image(
    request: Request,
    service: ImageService = Depends(get_image_service),
) -> Union[UploadResponse, PresignedUploadResponse]:
    """
    Upload an image to the provider.

    Flow:
    1. Check Content-Type and parse the form
    2. Validate file, MIME type, size, variant and file name
    3. Upload to the provider
    4. Build the URL of every variant
    5. Save metadata if a store is configured (failures don't fail the upload)
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type.lower():
        raise UnsupportedMediaTypeError("Content-Type must be multipart/form-data")

    try:
        form = await request.form()
    except Exception as e:
        logger.warning(f"Failed to parse form data: {e}")
        raise InvalidRequestError("Invalid form data") from e

    try:
        new_file_name = _text_field(form, "new_file_name")

        if parse_flag(_text_field(form, "presigned"), "presigned"):
            presigned = await service.create_presigned_upload(new_file_name)
            return PresignedUploadResponse(
                id=presigned.image_id,
                upload_url=presigned.upload_url,
                file_name=presigned.file_name,
            )

        result = await service.upload(
            file=await _read_file(form, service.max_upload_size),
            new_file_name=new_file_name,
            variant=_text_field(form, "variant"),
            description=_text_field(form, "description"),
        )
    finally:
        await form.close()

    return UploadResponse(
        id=result.image_id,
        file_name=result.file_name,
        variant=result.variant,
        url=result.url,
        available_urls=result.available_urls,
        persisted=result.persisted,
    )


@router.api_route(
    "/upload",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def upload_method_not_allowed():
    return error_response(405, "Method not allowed. Use POST.")
