"""
CORS configuration.

Origins come from ALLOWED_ORIGINS (comma-separated). Requests without an
Origin header (curl, server-to-server) are unaffected by CORS.
"""
from typing import Any, Dict

from image_api.config import Settings

ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Requested-With", "Accept", "Origin"]
ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
EXPOSE_HEADERS = ["Content-Length", "X-Request-ID"]
MAX_AGE = 86400  # 24 hours


def get_cors_config(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for Starlette's CORSMiddleware."""
    return {
        "allow_origins": settings.cors_origins,
        "allow_credentials": True,
        "allow_methods": ALLOW_METHODS,
        "allow_headers": ALLOW_HEADERS,
        "expose_headers": EXPOSE_HEADERS,
        "max_age": MAX_AGE,
    }
