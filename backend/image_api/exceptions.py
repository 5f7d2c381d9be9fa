"""
Error taxonomy and FastAPI exception handlers.

Every error the API returns is rendered as the same JSON envelope:
    {"success": false, "error": "<message>", ...extra fields}
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ImageAPIError(Exception):
    """Base class for errors that map to an HTTP status and error envelope."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, **extra: Any):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, **self.extra}


class InvalidRequestError(ImageAPIError):
    """Malformed, missing or disallowed input."""

    status_code = 400


class UnknownVariantError(InvalidRequestError):
    """Requested variant name is not in the variant registry."""

    def __init__(self, variant: str, valid_variants: List[str]):
        self.variant = variant
        self.valid_variants = valid_variants
        super().__init__(
            f"Invalid variant '{variant}'. Allowed: {', '.join(valid_variants)}",
            validVariants=valid_variants,
        )


class PayloadTooLargeError(ImageAPIError):
    status_code = 413


class UnsupportedMediaTypeError(ImageAPIError):
    status_code = 415


class ProviderRejectedError(ImageAPIError):
    """
    The image provider failed the request.

    Surfaces as a server error: the client did nothing wrong. Carries the
    provider's HTTP status (None for transport failures) and message.
    """

    status_code = 500

    def __init__(self, operation: str, provider_status: Optional[int], provider_message: str):
        self.operation = operation
        self.provider_status = provider_status
        self.provider_message = provider_message
        if provider_status is None:
            message = f"Image provider {operation} failed: {provider_message}"
        else:
            message = f"Image provider {operation} failed: {provider_status} - {provider_message}"
        super().__init__(message, providerStatus=provider_status)


class ProviderNotFoundError(ImageAPIError):
    """The provider reports no image with the given ID."""

    status_code = 404

    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"Image not found: {image_id}")


class PersistenceError(ImageAPIError):
    """Metadata store write or read failed."""

    status_code = 500


class StoreUnavailableError(PersistenceError):
    status_code = 503

    def __init__(self, message: str = "Metadata store unavailable"):
        super().__init__(message)


class ConfigurationError(ImageAPIError):
    """Required environment configuration is missing."""

    status_code = 500

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__("Server configuration error")

    def __str__(self) -> str:
        return f"Missing required configuration: {', '.join(self.missing)}"


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    """Build a JSON error envelope response."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register the envelope-rendering exception handlers on the app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ImageAPIError)
    async def image_api_error_handler(request: Request, exc: ImageAPIError):
        if exc.status_code >= 500:
            # str(exc) carries operator detail (e.g. missing env names)
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return error_response(404, "Endpoint not found")
        if exc.status_code == 405:
            return error_response(405, "Method not allowed")
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(error["loc"]), "msg": error["msg"]}
            for error in exc.errors()
        ]
        return error_response(400, "Invalid request parameters", details=details)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return error_response(500, "Internal server error")
