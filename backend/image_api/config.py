"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.

Provider credentials are optional at startup. They are checked per request
through ProviderConfig.require(), so a missing value becomes a 500
configuration error instead of a crash.
"""
from dataclasses import dataclass
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from image_api.exceptions import ConfigurationError


@dataclass(frozen=True)
class ProviderConfig:
    """Cloudflare Images settings handed to the provider client and ImageService."""

    account_id: Optional[str]
    api_token: Optional[str]
    account_hash: Optional[str]
    api_base_url: str = "https://api.cloudflare.com/client/v4"
    delivery_base_url: str = "https://imagedelivery.net"
    timeout_seconds: float = 30.0

    # Environment variable names, used in error messages
    ENV_NAMES = {
        "account_id": "CF_IMAGES_ACCOUNT_ID",
        "api_token": "CF_IMAGES_API_TOKEN",
        "account_hash": "CF_IMAGES_ACCOUNT_HASH",
    }

    def require(self, *fields: str) -> "ProviderConfig":
        """
        Ensure the given fields are set.

        Raises:
            ConfigurationError: naming every missing environment variable
        """
        missing = [self.ENV_NAMES[name] for name in fields if not getattr(self, name)]
        if missing:
            raise ConfigurationError(missing)
        return self

    @property
    def images_api_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/accounts/{self.account_id}/images"

    @property
    def delivery_url(self) -> str:
        """Delivery namespace prefix, e.g. https://imagedelivery.net/<hash>."""
        return f"{self.delivery_base_url.rstrip('/')}/{self.account_hash}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"

    # Cloudflare Images
    cf_images_account_id: Optional[str] = None
    cf_images_api_token: Optional[str] = None
    cf_images_account_hash: Optional[str] = None  # delivery namespace for public URLs
    cf_images_api_base: str = "https://api.cloudflare.com/client/v4"
    cf_images_delivery_base: str = "https://imagedelivery.net"
    provider_timeout_seconds: float = 30.0  # no retries, fail after this

    # CORS, comma-separated list of origins
    allowed_origins: str = ""

    # Metadata store. Unset disables persistence entirely.
    database_url: Optional[str] = None
    auto_create_tables: bool = True

    # Capabilities
    enable_presigned_uploads: bool = False

    # Upload limits
    max_upload_size_bytes: int = 5 * 1024 * 1024  # 5MB

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.database_url)

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def provider_config(self) -> ProviderConfig:
        """Build the per-request provider configuration (not validated)."""
        return ProviderConfig(
            account_id=self.cf_images_account_id,
            api_token=self.cf_images_api_token,
            account_hash=self.cf_images_account_hash,
            api_base_url=self.cf_images_api_base,
            delivery_base_url=self.cf_images_delivery_base,
            timeout_seconds=self.provider_timeout_seconds,
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """
    Dependency for FastAPI routes to get application settings.
    Usage: settings: Settings = Depends(get_settings)
    """
    return settings
