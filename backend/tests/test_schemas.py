"""
Tests for Pydantic schemas.
"""
from datetime import datetime, timezone

from image_api.repositories.image_repository import ImageRecord, StoredImage
from image_api.schemas.image import (
    ImageListItem,
    ImageMetadata,
    Pagination,
    PresignedUploadResponse,
    UploadResponse,
)


class TestUploadSchemas:
    """Tests for upload response schemas."""

    def test_upload_response_uses_camel_case(self):
        response = UploadResponse(
            id="abc",
            file_name="profile",
            variant="public",
            url="https://imagedelivery.net/h/abc/public",
            available_urls={"public": "https://imagedelivery.net/h/abc/public"},
            persisted=True,
        )

        data = response.model_dump(by_alias=True)
        assert data["success"] is True
        assert data["fileName"] == "profile"
        assert data["availableUrls"] == {"public": "https://imagedelivery.net/h/abc/public"}
        assert "file_name" not in data

    def test_presigned_response_upload_url_key(self):
        response = PresignedUploadResponse(id="abc", upload_url="https://upload/x", file_name="later")

        data = response.model_dump(by_alias=True)
        assert data["uploadURL"] == "https://upload/x"

    def test_populate_by_alias(self):
        response = PresignedUploadResponse(id="abc", uploadURL="https://upload/x", fileName="later")

        assert response.upload_url == "https://upload/x"


class TestImageSchemas:
    """Tests for read-path schemas."""

    def test_metadata_from_record(self):
        created = datetime(2024, 1, 2, tzinfo=timezone.utc)
        record = ImageRecord(
            image_id="abc",
            file_name="profile",
            mime_type="image/png",
            size_in_bytes=10,
            created_at=created,
        )

        data = ImageMetadata.from_record(record).model_dump(by_alias=True)
        assert data["mimeType"] == "image/png"
        assert data["sizeInBytes"] == 10
        assert data["createdAt"] == created
        assert data["description"] is None

    def test_list_item_from_stored(self):
        stored = StoredImage(
            record=ImageRecord(image_id="abc", file_name="p", mime_type="image/jpeg", size_in_bytes=1),
            available_urls={"thumbnail": "https://imagedelivery.net/h/abc/thumbnail"},
        )

        item = ImageListItem.from_stored(stored)
        assert item.id == "abc"
        assert item.available_urls["thumbnail"].endswith("/thumbnail")

    def test_pagination_has_more_alias(self):
        data = Pagination(total=25, limit=20, offset=0, page=1, has_more=True).model_dump(by_alias=True)

        assert data["hasMore"] is True
