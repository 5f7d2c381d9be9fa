"""
Tests for API endpoints.
Uses httpx AsyncClient for testing FastAPI routes.
"""
import pytest
from httpx import AsyncClient

from image_api.exceptions import ProviderRejectedError
from image_api.repositories.image_repository import ImageRepository

from conftest import DELIVERY_PREFIX, FakeImageProvider, make_record

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\0" * 1024


def image_file(content: bytes = PNG_BYTES, content_type: str = "image/png", name: str = "photo.png"):
    return {"file": (name, content, content_type)}


class TestRootEndpoint:
    """Tests for root and health endpoints."""

    @pytest.mark.asyncio
    async def test_root_returns_info(self, client: AsyncClient):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Image Gateway API"
        assert data["status"] == "healthy"
        assert "version" in data

    @pytest.mark.asyncio
    async def test_health_with_store(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "connected"
        assert data["capabilities"]["presigned_uploads"] is True

    @pytest.mark.asyncio
    async def test_health_without_store(self, client_no_store: AsyncClient):
        response = await client_no_store.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "disabled"

    @pytest.mark.asyncio
    async def test_metrics(self, client: AsyncClient):
        await client.get("/")
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text


class TestUploadEndpoint:
    """Tests for POST /upload."""

    @pytest.mark.asyncio
    async def test_upload_success(self, client: AsyncClient, provider: FakeImageProvider):
        """Test a valid upload returns every variant URL and is persisted."""
        response = await client.post(
            "/upload",
            files=image_file(),
            data={"new_file_name": "profile_photo", "variant": "thumbnail"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["id"] == "img-123"
        assert data["fileName"] == "profile_photo"
        assert data["variant"] == "thumbnail"
        assert data["url"] == f"{DELIVERY_PREFIX}/img-123/thumbnail"
        assert data["availableUrls"]["small"] == f"{DELIVERY_PREFIX}/img-123/w400"
        assert data["persisted"] is True

        _, call = provider.calls[0]
        assert call["size"] == len(PNG_BYTES)

    @pytest.mark.asyncio
    async def test_upload_svg(self, client_no_store: AsyncClient):
        response = await client_no_store.post(
            "/upload",
            files=image_file(b"<svg xmlns='http://www.w3.org/2000/svg'/>", "image/svg+xml", "logo.svg"),
        )

        assert response.status_code == 200
        assert response.json()["persisted"] is False

    @pytest.mark.asyncio
    async def test_upload_with_failing_store(self, client_failing_store: AsyncClient):
        """Test a store outage still returns the provider result."""
        response = await client_failing_store.post("/upload", files=image_file())

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "img-123"
        assert data["url"] == f"{DELIVERY_PREFIX}/img-123/public"
        assert data["persisted"] is False

    @pytest.mark.asyncio
    async def test_upload_too_large(self, client: AsyncClient, provider: FakeImageProvider):
        response = await client.post(
            "/upload",
            files=image_file(b"\0" * (6 * 1024 * 1024)),
        )

        assert response.status_code == 413
        assert response.json() == {"success": False, "error": "File size exceeds 5MB limit"}
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_upload_unsupported_type(self, client: AsyncClient, provider: FakeImageProvider):
        response = await client.post(
            "/upload",
            files=image_file(b"GIF89a", "image/gif", "anim.gif"),
        )

        assert response.status_code == 415
        assert response.json()["error"].startswith("Unsupported file type")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_upload_not_multipart(self, client: AsyncClient):
        response = await client.post("/upload", json={"file": "abc"})

        assert response.status_code == 415
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_upload_missing_file(self, client: AsyncClient):
        response = await client.post("/upload", files={"other": ("x.txt", b"x", "text/plain")})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing or invalid file"

    @pytest.mark.asyncio
    async def test_upload_invalid_file_name(self, client: AsyncClient, provider: FakeImageProvider):
        response = await client.post(
            "/upload",
            files=image_file(),
            data={"new_file_name": "../../etc/passwd"},
        )

        assert response.status_code == 400
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_upload_unknown_variant(self, client: AsyncClient):
        response = await client.post("/upload", files=image_file(), data={"variant": "huge"})

        assert response.status_code == 400
        data = response.json()
        assert data["validVariants"] == ["public", "thumbnail", "small", "medium", "large"]

    @pytest.mark.asyncio
    async def test_upload_provider_failure(self, client: AsyncClient, provider: FakeImageProvider):
        provider.upload_error = ProviderRejectedError("upload", 403, "Forbidden")

        response = await client.post("/upload", files=image_file())

        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["providerStatus"] == 403
        assert "Forbidden" in data["error"]

    @pytest.mark.asyncio
    async def test_upload_missing_configuration(
        self,
        client_no_store: AsyncClient,
        provider: FakeImageProvider,
        test_settings
    ):
        test_settings.cf_images_account_hash = None

        response = await client_no_store.post("/upload", files=image_file())

        assert response.status_code == 500
        assert response.json()["error"] == "Server configuration error"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_presigned_upload(self, client: AsyncClient, provider: FakeImageProvider):
        response = await client.post(
            "/upload",
            data={"presigned": "true", "new_file_name": "later"},
            files={"unused": ("", b"", "application/octet-stream")},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "img-123"
        assert data["uploadURL"].startswith("https://upload.imagedelivery.net/")
        assert data["fileName"] == "later"
        assert provider.calls == [("direct_upload", None)]

    @pytest.mark.asyncio
    async def test_presigned_upload_disabled(
        self,
        client: AsyncClient,
        provider: FakeImageProvider,
        test_settings
    ):
        test_settings.enable_presigned_uploads = False

        response = await client.post(
            "/upload",
            data={"presigned": "true"},
            files={"unused": ("", b"", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_get_upload_not_allowed(self, client: AsyncClient):
        response = await client.get("/upload")

        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method not allowed. Use POST."}


class TestImageEndpoints:
    """Tests for GET/DELETE /image and GET /images."""

    @pytest.mark.asyncio
    async def test_get_image_after_upload(self, client: AsyncClient):
        await client.post("/upload", files=image_file(), data={"new_file_name": "profile"})

        response = await client.get("/image", params={"image_id": "img-123", "variant": "medium"})

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "store"
        assert data["url"] == f"{DELIVERY_PREFIX}/img-123/w800"
        assert data["metadata"]["fileName"] == "profile"
        assert data["metadata"]["mimeType"] == "image/png"

    @pytest.mark.asyncio
    async def test_get_image_computed(self, client_no_store: AsyncClient):
        response = await client_no_store.get("/image", params={"image_id": "abc"})

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "computed"
        assert data["variant"] == "public"
        assert len(data["availableUrls"]) == 5
        assert data["metadata"] is None

    @pytest.mark.asyncio
    async def test_get_image_not_in_store(self, client: AsyncClient, repository: ImageRepository):
        await make_record(repository, "other")

        response = await client.get("/image", params={"image_id": "abc", "variant": "large"})

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "computed"
        assert data["url"] == f"{DELIVERY_PREFIX}/abc/w1600"
        assert data["metadata"] is None

    @pytest.mark.asyncio
    async def test_get_image_missing_id(self, client: AsyncClient):
        response = await client.get("/image")

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required parameter: image_id"

    @pytest.mark.asyncio
    async def test_get_image_unknown_variant(self, client: AsyncClient):
        response = await client.get("/image", params={"image_id": "abc", "variant": "huge"})

        assert response.status_code == 400
        assert "validVariants" in response.json()

    @pytest.mark.asyncio
    async def test_get_image_details(self, client: AsyncClient, provider: FakeImageProvider):
        provider.images["abc"] = {"id": "abc", "filename": "a.png", "meta": {}}

        response = await client.get("/image/details", params={"image_id": "abc"})

        assert response.status_code == 200
        assert response.json()["details"]["filename"] == "a.png"

    @pytest.mark.asyncio
    async def test_get_image_details_not_found(self, client: AsyncClient):
        response = await client.get("/image/details", params={"image_id": "nope"})

        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_delete_image(self, client: AsyncClient, repository: ImageRepository):
        await make_record(repository, "abc")

        response = await client.delete("/image", params={"image_id": "abc"})

        assert response.status_code == 200
        data = response.json()
        assert data["providerDeleted"] is True
        assert data["recordsDeleted"] == 1

    @pytest.mark.asyncio
    async def test_delete_image_not_found(self, client: AsyncClient, provider: FakeImageProvider):
        provider.delete_result = False

        response = await client.delete("/image", params={"image_id": "abc"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_images_pages(self, client: AsyncClient, repository: ImageRepository):
        for i in range(25):
            await make_record(repository, f"img-{i:02d}")

        first = await client.get("/images", params={"limit": 20, "page": 1})
        second = await client.get("/images", params={"limit": 20, "page": 2})

        assert first.status_code == 200
        first_data = first.json()
        assert len(first_data["images"]) == 20
        assert first_data["pagination"]["total"] == 25
        assert first_data["pagination"]["hasMore"] is True
        assert first_data["images"][0]["id"] == "img-24"
        assert "availableUrls" in first_data["images"][0]

        second_data = second.json()
        assert len(second_data["images"]) == 5
        assert second_data["pagination"]["offset"] == 20
        assert second_data["pagination"]["hasMore"] is False

    @pytest.mark.asyncio
    async def test_list_images_offset(self, client: AsyncClient, repository: ImageRepository):
        for i in range(3):
            await make_record(repository, f"img-{i}")

        response = await client.get("/images", params={"limit": 2, "offset": 2})

        data = response.json()
        assert [image["id"] for image in data["images"]] == ["img-0"]
        assert data["pagination"]["hasMore"] is False

    @pytest.mark.asyncio
    async def test_list_images_invalid_limit(self, client: AsyncClient):
        response = await client.get("/images", params={"limit": 500})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_list_images_non_integer(self, client: AsyncClient):
        response = await client.get("/images", params={"limit": "abc"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request parameters"

    @pytest.mark.asyncio
    async def test_list_images_without_store(self, client_no_store: AsyncClient):
        response = await client_no_store.get("/images")

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "Metadata store is not configured"}

    @pytest.mark.asyncio
    async def test_list_images_failing_store(self, client_failing_store: AsyncClient):
        response = await client_failing_store.get("/images")

        assert response.status_code == 503


class TestErrorEnvelope:
    """Tests for errors outside the routes."""

    @pytest.mark.asyncio
    async def test_unknown_endpoint(self, client: AsyncClient):
        response = await client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Endpoint not found"}

    @pytest.mark.asyncio
    async def test_wrong_method(self, client: AsyncClient):
        response = await client.put("/images")

        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method not allowed"}
