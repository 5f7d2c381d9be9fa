"""
Image service: the upload orchestration workflow and the read/delete paths.

Upload flow (strictly sequential):
1. Validate input - nothing external is called if this fails
2. Upload bytes to the provider - failure aborts the request
3. Expand variant URLs from the registry
4. Persist metadata (best-effort) - failure is logged, never returned
5. Respond with the requested variant URL plus every variant URL

The provider is authoritative. The metadata store is an index that may
miss entries (e.g. after a crash between steps 2 and 4); reindex_image()
is the manual way to backfill it.
"""
import logging
import mimetypes
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from image_api.config import ProviderConfig
from image_api.exceptions import (
    ImageAPIError,
    InvalidRequestError,
    PayloadTooLargeError,
    PersistenceError,
    ProviderNotFoundError,
    ProviderRejectedError,
    StoreUnavailableError,
    UnsupportedMediaTypeError,
)
from image_api.repositories.image_repository import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ImageRecord,
    ImageRepository,
    StoredImage,
)
from image_api.storage.base import ImageProvider
from image_api.storage.variants import VARIANT_REGISTRY, VariantRegistry
from image_api.utils.logging import (
    log_image_deleted,
    log_image_uploaded,
    log_persistence_failure,
    log_presigned_upload,
)
from image_api.utils.metrics import image_uploads_total, persistence_failures_total

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/svg+xml")
SAFE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
MAX_DESCRIPTION_LENGTH = 1024
DEFAULT_MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5MB

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off", ""}


@dataclass
class UploadedFile:
    """File part of an upload request."""
    content: bytes
    content_type: Optional[str]
    filename: Optional[str]
    size: int


@dataclass
class UploadResult:
    image_id: str
    file_name: str
    variant: str
    url: str
    available_urls: Dict[str, str]
    persisted: bool = False


@dataclass
class PresignedUploadResult:
    image_id: str
    upload_url: str
    file_name: str


@dataclass
class ImageLookup:
    image_id: str
    variant: str
    url: str
    available_urls: Dict[str, str]
    source: str  # "store" or "computed"
    record: Optional[ImageRecord] = None


@dataclass
class ImagePage:
    images: List[StoredImage]
    total: int
    limit: int
    offset: int
    page: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return self.total > self.offset + self.limit


@dataclass
class DeleteResult:
    image_id: str
    provider_deleted: bool
    records_deleted: int = 0


def parse_flag(value: Optional[str], name: str) -> bool:
    """
    Parse a boolean form/query flag.

    Raises:
        InvalidRequestError: for values that aren't recognizably true/false
    """
    if value is None:
        return False
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise InvalidRequestError(f"Invalid {name} flag. Use 'true' or 'false'.")


def resolve_pagination(
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    page: Optional[int] = None
) -> Tuple[int, int]:
    """
    Validate paging parameters.

    page (1-based) takes precedence over offset: offset = (page - 1) * limit.

    Returns:
        Tuple of (limit, offset)

    Raises:
        InvalidRequestError: for out-of-range values
    """
    if limit is None:
        limit = DEFAULT_PAGE_SIZE
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidRequestError(f"Invalid limit. Must be between 1 and {MAX_PAGE_SIZE}.")

    if page is not None:
        if page < 1:
            raise InvalidRequestError("Invalid page. Must be 1 or greater.")
        return limit, (page - 1) * limit

    if offset is None:
        offset = 0
    if offset < 0:
        raise InvalidRequestError("Invalid offset. Must be 0 or greater.")
    return limit, offset


def generate_file_name() -> str:
    """Label for uploads without new_file_name: <millis>-<8 hex chars>."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def validate_file_name(file_name: Optional[str]) -> None:
    if file_name and not SAFE_NAME_PATTERN.match(file_name):
        raise InvalidRequestError(
            "Invalid new_file_name. Only alphanumeric characters, underscores, and hyphens are allowed."
        )


def validate_image_id(image_id: Optional[str]) -> str:
    if not image_id:
        raise InvalidRequestError("Missing required parameter: image_id")
    if not SAFE_NAME_PATTERN.match(image_id):
        raise InvalidRequestError("Invalid image_id")
    return image_id


class ImageService:
    """
    Orchestrates uploads, lookups, listing and deletion.

    Persistence and presigned uploads are capabilities: pass repository=None
    to run without a metadata store, presigned_enabled=False to refuse
    presigned requests.
    """

    def __init__(
        self,
        provider: ImageProvider,
        config: ProviderConfig,
        repository: Optional[ImageRepository] = None,
        registry: VariantRegistry = VARIANT_REGISTRY,
        max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE,
        presigned_enabled: bool = False
    ):
        self.provider = provider
        self.config = config
        self.repository = repository
        self.registry = registry
        self.max_upload_size = max_upload_size
        self.presigned_enabled = presigned_enabled

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def validate_upload(
        self,
        file: Optional[UploadedFile],
        new_file_name: Optional[str] = None,
        variant: Optional[str] = None,
        description: Optional[str] = None
    ) -> str:
        """
        Check an upload request without side effects.

        Returns:
            The variant name to respond with

        Raises:
            InvalidRequestError, UnknownVariantError: 400
            UnsupportedMediaTypeError: 415
            PayloadTooLargeError: 413
        """
        if file is None or file.size == 0:
            raise InvalidRequestError("Missing or invalid file")

        if (file.content_type or "").lower() not in ALLOWED_MIME_TYPES:
            raise UnsupportedMediaTypeError(
                f"Unsupported file type. Allowed: {', '.join(ALLOWED_MIME_TYPES)}"
            )

        if file.size > self.max_upload_size:
            max_mb = self.max_upload_size / (1024 * 1024)
            raise PayloadTooLargeError(f"File size exceeds {max_mb:g}MB limit")

        variant_name = variant or self.registry.default
        self.registry.resolve(variant_name)

        validate_file_name(new_file_name)

        if description and len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidRequestError(
                f"Description too long. Maximum is {MAX_DESCRIPTION_LENGTH} characters."
            )

        return variant_name

    async def upload(
        self,
        file: Optional[UploadedFile],
        new_file_name: Optional[str] = None,
        variant: Optional[str] = None,
        description: Optional[str] = None
    ) -> UploadResult:
        """
        Run the upload workflow.

        Raises:
            ConfigurationError: if provider settings are missing
            ImageAPIError subclasses: for invalid input (4xx)
            ProviderRejectedError: if the provider fails the upload
        """
        self.config.require("account_id", "api_token", "account_hash")

        try:
            variant_name = self.validate_upload(file, new_file_name, variant, description)
        except ImageAPIError:
            image_uploads_total.labels(mode="direct", status="rejected").inc()
            raise

        file_name = new_file_name or generate_file_name()
        mime_type = file.content_type.lower()
        logger.info(
            f"{file_name} - Uploading file",
            extra={
                "event": "image_upload_started",
                "file_name": file_name,
                "variant": variant_name,
                "original_name": file.filename,
                "mime_type": mime_type,
                "size_in_bytes": file.size,
            }
        )

        start_time = time.time()
        try:
            upload = await self.provider.upload_image(
                file.content,
                mime_type,
                file_name,
                original_name=file.filename
            )
        except ProviderRejectedError:
            image_uploads_total.labels(mode="direct", status="failed").inc()
            raise

        urls = self.registry.expand_all(upload.id, self.config.delivery_url)

        persisted = False
        if self.repository is not None:
            record = ImageRecord(
                image_id=upload.id,
                file_name=file_name,
                mime_type=mime_type,
                size_in_bytes=file.size,
                description=description or None,
            )
            _, error = await self._persist(record, urls)
            persisted = error is None

        image_uploads_total.labels(mode="direct", status="success").inc()
        log_image_uploaded(
            logger,
            image_id=upload.id,
            file_name=file_name,
            duration_ms=(time.time() - start_time) * 1000,
            persisted=persisted if self.repository is not None else None,
        )

        return UploadResult(
            image_id=upload.id,
            file_name=file_name,
            variant=variant_name,
            url=urls[variant_name],
            available_urls=urls,
            persisted=persisted,
        )

    async def _persist(self, record: ImageRecord, urls: Dict[str, str]) -> Tuple[Optional[int], Optional[str]]:
        """
        Best-effort write of a record and its variant URLs.

        Returns:
            Tuple of (row_id, error_message)
            On success: (row_id, None)
            On error: (None, error_message) - already logged, for the caller to drop
        """
        try:
            row_id = await self.repository.save_image(record)
            await self.repository.save_variant_urls(row_id, urls)
            return row_id, None
        except PersistenceError as e:
            error = str(e)
        except Exception as e:
            # Driver errors the repository didn't translate
            logger.exception(f"Unexpected metadata store error for {record.image_id}")
            error = str(e) or type(e).__name__

        persistence_failures_total.labels(operation="save").inc()
        log_persistence_failure(logger, operation="save", error=error, image_id=record.image_id)
        return None, error

    async def create_presigned_upload(self, new_file_name: Optional[str] = None) -> PresignedUploadResult:
        """
        Issue a one-time provider upload URL. No bytes, no variants, no persistence.

        Raises:
            InvalidRequestError: if presigned uploads are disabled or the name is invalid
            ConfigurationError: if provider credentials are missing
            ProviderRejectedError: if the provider fails the request
        """
        if not self.presigned_enabled:
            image_uploads_total.labels(mode="presigned", status="rejected").inc()
            raise InvalidRequestError("Presigned uploads are not enabled")

        try:
            validate_file_name(new_file_name)
        except InvalidRequestError:
            image_uploads_total.labels(mode="presigned", status="rejected").inc()
            raise

        self.config.require("account_id", "api_token")
        file_name = new_file_name or generate_file_name()

        try:
            direct = await self.provider.create_direct_upload()
        except ProviderRejectedError:
            image_uploads_total.labels(mode="presigned", status="failed").inc()
            raise

        image_uploads_total.labels(mode="presigned", status="success").inc()
        log_presigned_upload(logger, image_id=direct.id, file_name=file_name)
        return PresignedUploadResult(image_id=direct.id, upload_url=direct.upload_url, file_name=file_name)

    # ------------------------------------------------------------------
    # Read paths
    # ------------------------------------------------------------------

    async def get_image(self, image_id: Optional[str], variant: Optional[str] = None) -> ImageLookup:
        """
        Look up an image's URLs.

        The store is tried first. On a miss or a store error the URLs are
        recomputed from the registry, so this works without persistence.
        """
        image_id = validate_image_id(image_id)
        variant_name = variant or self.registry.default
        self.registry.resolve(variant_name)
        self.config.require("account_hash")

        stored = None
        if self.repository is not None:
            try:
                stored = await self.repository.get_image_by_provider_id(image_id)
            except PersistenceError as e:
                persistence_failures_total.labels(operation="lookup").inc()
                log_persistence_failure(logger, operation="lookup", error=str(e), image_id=image_id)

        urls = self.registry.expand_all(image_id, self.config.delivery_url)
        if stored is not None:
            # Stored URLs win; variants added since upload are filled in
            urls.update(stored.available_urls)

        return ImageLookup(
            image_id=image_id,
            variant=variant_name,
            url=urls[variant_name],
            available_urls=urls,
            source="store" if stored is not None else "computed",
            record=stored.record if stored is not None else None,
        )

    async def list_images(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        page: Optional[int] = None
    ) -> ImagePage:
        """
        Page through stored images, newest first.

        Raises:
            InvalidRequestError: for invalid paging values
            StoreUnavailableError: if there is no store or it fails
        """
        limit, offset = resolve_pagination(limit, offset, page)

        if self.repository is None:
            raise StoreUnavailableError("Metadata store is not configured")

        try:
            images, total = await self.repository.list_images(limit=limit, offset=offset)
        except PersistenceError as e:
            logger.error(f"Listing images failed: {e}")
            raise StoreUnavailableError() from e

        return ImagePage(images=images, total=total, limit=limit, offset=offset, page=page)

    async def get_image_details(self, image_id: Optional[str]) -> Dict[str, Any]:
        """Provider-side metadata, for diagnostics."""
        image_id = validate_image_id(image_id)
        self.config.require("account_id", "api_token")
        return await self.provider.get_image_details(image_id)

    # ------------------------------------------------------------------
    # Delete / maintenance
    # ------------------------------------------------------------------

    async def delete_image(self, image_id: Optional[str]) -> DeleteResult:
        """
        Delete at the provider, then from the store.

        A store failure is logged and leaves a stale index row; the provider
        result decides the outcome.

        Raises:
            ProviderNotFoundError: if neither the provider nor the store had the image
        """
        image_id = validate_image_id(image_id)
        self.config.require("account_id", "api_token")

        provider_deleted = await self.provider.delete_image(image_id)

        records_deleted = 0
        if self.repository is not None:
            try:
                records_deleted = await self.repository.delete_image(image_id)
            except PersistenceError as e:
                persistence_failures_total.labels(operation="delete").inc()
                log_persistence_failure(logger, operation="delete", error=str(e), image_id=image_id)

        if not provider_deleted and records_deleted == 0:
            raise ProviderNotFoundError(image_id)

        log_image_deleted(
            logger,
            image_id=image_id,
            provider_deleted=provider_deleted,
            records_deleted=records_deleted,
        )
        return DeleteResult(image_id=image_id, provider_deleted=provider_deleted, records_deleted=records_deleted)

    async def reindex_image(self, image_id: str) -> bool:
        """
        Backfill the store for an image that exists at the provider only.

        Operator-driven recovery; nothing calls this automatically.

        Returns:
            True if a record was inserted, False if it was already stored

        Raises:
            StoreUnavailableError: if persistence is disabled
            ProviderNotFoundError: if the provider has no such image
            UnsupportedMediaTypeError: if the provider file is not an allowed type
            PersistenceError: if the insert fails
        """
        image_id = validate_image_id(image_id)
        if self.repository is None:
            raise StoreUnavailableError("Metadata store is not configured")
        self.config.require("account_id", "api_token", "account_hash")

        if await self.repository.get_image_by_provider_id(image_id) is not None:
            return False

        details = await self.provider.get_image_details(image_id)
        meta = details.get("meta") or {}
        original_name = details.get("filename") or meta.get("originalName")
        if not isinstance(original_name, str):
            original_name = None

        # Older uploads stored a millisecond timestamp here, not a string
        custom_name = meta.get("customFilename")
        if isinstance(custom_name, int) and not isinstance(custom_name, bool):
            custom_name = str(custom_name)
        if not isinstance(custom_name, str):
            custom_name = None

        file_name = custom_name or original_name or image_id
        if not SAFE_NAME_PATTERN.match(file_name):
            file_name = image_id

        mime_type = (mimetypes.guess_type(original_name)[0] if original_name else None) or "image/jpeg"
        if mime_type not in ALLOWED_MIME_TYPES:
            # Direct uploads go straight to the provider and can be any format it accepts
            raise UnsupportedMediaTypeError(
                f"Cannot reindex {image_id}: {mime_type} is not an allowed type"
            )

        record = ImageRecord(
            image_id=image_id,
            file_name=file_name,
            mime_type=mime_type,
            size_in_bytes=0,  # the provider doesn't report the original size
        )
        urls = self.registry.expand_all(image_id, self.config.delivery_url)
        row_id = await self.repository.save_image(record)
        await self.repository.save_variant_urls(row_id, urls)
        logger.info(f"Reindexed image {image_id}", extra={"event": "image_reindexed", "image_id": image_id})
        return True
