"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- image_id
- duration_ms

Usage:
    from image_api.utils.logging import configure_logging, log_image_uploaded

    configure_logging('image-api', 'INFO')
    log_image_uploaded(logger, image_id='abc', file_name='cat', duration_ms=45.2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.

        Args:
            service_name: Service identifier (image-api)
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    image_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        image_id: Optional provider image ID
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if image_id:
        extra["image_id"] = image_id
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


# Upload event functions

def log_image_uploaded(
    logger: logging.Logger,
    image_id: str,
    file_name: str,
    duration_ms: Optional[float] = None,
    persisted: Optional[bool] = None,
    **kwargs
):
    """
    Log a successful direct upload.

    Args:
        logger: Logger instance
        image_id: Provider image ID (required)
        file_name: Label the image was stored under (required)
        duration_ms: Optional duration in milliseconds
        persisted: Whether the metadata store write succeeded
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="image_uploaded",
        image_id=image_id,
        duration_ms=duration_ms,
        file_name=file_name,
        **kwargs
    )
    if persisted is not None:
        extra["persisted"] = persisted

    logger.info(f"{file_name} - Image uploaded: {image_id}", extra=extra)


def log_presigned_upload(
    logger: logging.Logger,
    image_id: str,
    file_name: str,
    **kwargs
):
    """Log issuance of a presigned (direct creator) upload URL."""
    extra = _build_log_extra(
        event="presigned_upload_created",
        image_id=image_id,
        file_name=file_name,
        **kwargs
    )
    logger.info(f"{file_name} - Presigned upload created: {image_id}", extra=extra)


def log_image_deleted(
    logger: logging.Logger,
    image_id: str,
    provider_deleted: bool,
    records_deleted: int,
    **kwargs
):
    """Log an image deletion."""
    extra = _build_log_extra(
        event="image_deleted",
        image_id=image_id,
        provider_deleted=provider_deleted,
        records_deleted=records_deleted,
        **kwargs
    )
    logger.info(f"Image deleted: {image_id}", extra=extra)


def log_persistence_failure(
    logger: logging.Logger,
    operation: str,
    error: str,
    image_id: Optional[str] = None,
    **kwargs
):
    """
    Log a metadata store failure that was not surfaced to the caller.

    Args:
        logger: Logger instance
        operation: Store operation (save, delete, lookup)
        error: Error message (required)
        image_id: Optional provider image ID
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="image_persist_failed",
        image_id=image_id,
        operation=operation,
        error=str(error),
        **kwargs
    )
    logger.warning(f"Metadata store {operation} failed for {image_id}: {error}", extra=extra)


# Provider event functions

def log_provider_request(
    logger: logging.Logger,
    operation: str,
    duration_ms: Optional[float] = None,
    image_id: Optional[str] = None,
    **kwargs
):
    """
    Log image provider request event.

    Args:
        logger: Logger instance
        operation: Operation name (upload, direct_upload, details, delete) (required)
        duration_ms: Optional duration in milliseconds
        image_id: Optional provider image ID
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_request",
        image_id=image_id,
        duration_ms=duration_ms,
        provider="cloudflare_images",
        operation=operation,
        **kwargs
    )

    logger.info(f"Provider request: cloudflare_images.{operation}", extra=extra)


def log_provider_failure(
    logger: logging.Logger,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    image_id: Optional[str] = None,
    status_code: Optional[int] = None,
    **kwargs
):
    """
    Log image provider failure event.

    Args:
        logger: Logger instance
        operation: Operation name (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        image_id: Optional provider image ID
        status_code: Provider HTTP status, if a response arrived
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="provider_failure",
        image_id=image_id,
        duration_ms=duration_ms,
        provider="cloudflare_images",
        operation=operation,
        error=str(error),
        **kwargs
    )
    if status_code is not None:
        extra["status_code"] = status_code

    logger.error(f"Provider failure: cloudflare_images.{operation} - {error}", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)
