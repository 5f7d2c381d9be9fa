"""
Cloudflare Images API client.

Wraps the v4 Images endpoints used by the gateway:
- POST   /v1                  direct upload (multipart)
- POST   /v2/direct_upload    one-time upload URL for direct-from-client uploads
- GET    /v1/{image_id}       image details
- DELETE /v1/{image_id}       deletion

All provider-specific request/response shaping lives here so the upload
workflow stays provider-agnostic. Calls are bounded by a timeout and never
retried; retrying is the caller's decision.
"""
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from image_api.config import ProviderConfig
from image_api.exceptions import ProviderNotFoundError, ProviderRejectedError
from image_api.storage.base import DirectUpload, ImageProvider, ProviderUpload
from image_api.utils.logging import log_provider_failure, log_provider_request
from image_api.utils.metrics import (
    provider_failures_total,
    provider_latency_seconds,
    provider_requests_total,
)

logger = logging.getLogger(__name__)

METADATA_SOURCE = "image-gateway-api"


class CloudflareImagesClient(ImageProvider):
    """
    Async client for the Cloudflare Images API.

    A new httpx.AsyncClient is opened per call, so instances hold no
    connections and are cheap to build per request.
    """

    def __init__(self, config: ProviderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            config: Provider settings (account id, token, timeout)
            transport: Optional httpx transport, used by tests to mock the API
        """
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.images_api_url,
            headers={"Authorization": f"Bearer {self.config.api_token}"},
            timeout=httpx.Timeout(self.config.timeout_seconds),
            transport=self._transport,
        )

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        image_id: Optional[str] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Send one request, recording metrics and translating transport errors.

        Raises:
            ProviderRejectedError: on network failure or timeout
        """
        provider_requests_total.labels(operation=operation).inc()
        start_time = time.time()
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException:
            self._record_failure(operation, "request timed out", image_id, start_time=start_time)
            raise ProviderRejectedError(operation, None, "request timed out")
        except httpx.RequestError as e:
            # str(e) never contains the Authorization header
            self._record_failure(operation, str(e), image_id, start_time=start_time)
            raise ProviderRejectedError(operation, None, f"network error: {e}")

        duration = time.time() - start_time
        provider_latency_seconds.labels(operation=operation).observe(duration)
        log_provider_request(
            logger,
            operation=operation,
            duration_ms=duration * 1000,
            image_id=image_id,
            status_code=response.status_code,
        )
        return response

    def _record_failure(
        self,
        operation: str,
        error: str,
        image_id: Optional[str] = None,
        status_code: Optional[int] = None,
        start_time: Optional[float] = None
    ):
        provider_failures_total.labels(operation=operation).inc()
        log_provider_failure(
            logger,
            operation=operation,
            error=error,
            duration_ms=(time.time() - start_time) * 1000 if start_time else None,
            image_id=image_id,
            status_code=status_code,
        )

    def _parse(
        self,
        operation: str,
        response: httpx.Response,
        image_id: Optional[str] = None,
        require_success: bool = True
    ) -> Dict[str, Any]:
        """
        Check status and the API envelope's success flag.

        Returns:
            The decoded JSON envelope

        Raises:
            ProviderRejectedError: on non-2xx status, bad JSON or, when
                require_success is set, success=false
        """
        if not response.is_success:
            message = self._error_message(response) or response.reason_phrase
            self._record_failure(operation, message, image_id, response.status_code)
            raise ProviderRejectedError(operation, response.status_code, message)

        try:
            data = response.json()
        except ValueError:
            self._record_failure(operation, "invalid JSON response", image_id, response.status_code)
            raise ProviderRejectedError(operation, response.status_code, "Invalid JSON response from Cloudflare Images API")

        if require_success and not data.get("success"):
            message = self._format_errors(data.get("errors")) or "Cloudflare Images API returned error"
            self._record_failure(operation, message, image_id, response.status_code)
            raise ProviderRejectedError(operation, response.status_code, message)

        return data

    @staticmethod
    def _format_errors(errors: Any) -> str:
        if not errors:
            return ""
        parts = []
        for error in errors:
            if isinstance(error, dict):
                code = error.get("code")
                text = error.get("message", "")
                parts.append(f"{code}: {text}" if code is not None else text)
            else:
                parts.append(str(error))
        return "; ".join(parts)

    def _error_message(self, response: httpx.Response) -> str:
        try:
            return self._format_errors(response.json().get("errors"))
        except (ValueError, AttributeError):
            return response.text[:500]

    async def upload_image(
        self,
        file_bytes: bytes,
        mime_type: str,
        file_name: str,
        original_name: Optional[str] = None
    ) -> ProviderUpload:
        """
        Upload image bytes.

        The provider assigns the image ID. file_name only travels in the
        metadata so it never collides with an existing image.

        Args:
            file_bytes: Raw image content
            mime_type: Validated MIME type
            file_name: Caller-supplied or generated label
            original_name: Name of the file as uploaded by the client

        Returns:
            ProviderUpload with the assigned ID and the provider's variant URLs
        """
        metadata = {
            "source": METADATA_SOURCE,
            "originalName": original_name,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
            "customFilename": file_name,
        }
        response = await self._request(
            "upload",
            "POST",
            "/v1",
            files={"file": (original_name or file_name, file_bytes, mime_type)},
            data={
                "requireSignedURLs": "false",
                "metadata": json.dumps(metadata),
            },
        )
        result = self._parse("upload", response)["result"]
        return ProviderUpload(id=result["id"], variants=result.get("variants") or [])

    async def create_direct_upload(self) -> DirectUpload:
        """
        Request a one-time upload URL. No file bytes pass through this service.
        """
        response = await self._request("direct_upload", "POST", "/v2/direct_upload")
        result = self._parse("direct_upload", response)["result"]
        return DirectUpload(upload_url=result["uploadURL"], id=result["id"])

    async def get_image_details(self, image_id: str) -> Dict[str, Any]:
        """
        Fetch provider-side metadata for an image.

        Raises:
            ProviderNotFoundError: if the provider has no such image
            ProviderRejectedError: on any other failure
        """
        response = await self._request("details", "GET", f"/v1/{image_id}", image_id=image_id)
        if response.status_code == 404:
            raise ProviderNotFoundError(image_id)
        return self._parse("details", response, image_id)["result"]

    async def delete_image(self, image_id: str) -> bool:
        """
        Delete an image.

        Returns:
            True if the provider confirmed removal, False if it had no such image
        """
        response = await self._request("delete", "DELETE", f"/v1/{image_id}", image_id=image_id)
        if response.status_code == 404:
            logger.info(f"Image {image_id} not found at provider (already deleted?)")
            return False
        data = self._parse("delete", response, image_id, require_success=False)
        return bool(data.get("success"))
