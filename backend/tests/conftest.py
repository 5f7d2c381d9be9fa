"""
Test configuration and fixtures.
Uses in-memory SQLite (aiosqlite) for the metadata store and a fake
image provider, so no network or database server is needed.
"""
import os

# Set test environment before any imports
os.environ["ENVIRONMENT"] = "test"
os.environ["CF_IMAGES_ACCOUNT_ID"] = "test-account"
os.environ["CF_IMAGES_API_TOKEN"] = "test-token"
os.environ["CF_IMAGES_ACCOUNT_HASH"] = "test-hash"
os.environ.pop("DATABASE_URL", None)

import pytest
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from image_api.config import Settings
from image_api.exceptions import PersistenceError, ProviderNotFoundError
from image_api.models.base import Base
from image_api.repositories.image_repository import ImageRecord, ImageRepository, StoredImage
from image_api.storage.base import DirectUpload, ImageProvider, ProviderUpload


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
DELIVERY_PREFIX = "https://imagedelivery.net/test-hash"


class FakeImageProvider(ImageProvider):
    """Records every call; behaviour is set through attributes."""

    def __init__(self, image_id: str = "img-123"):
        self.image_id = image_id
        self.calls: List[Tuple[str, Any]] = []
        self.upload_error: Optional[Exception] = None
        self.images: Dict[str, Dict[str, Any]] = {}
        self.delete_result = True

    async def upload_image(self, file_bytes, mime_type, file_name, original_name=None):
        self.calls.append(("upload", {
            "size": len(file_bytes),
            "mime_type": mime_type,
            "file_name": file_name,
            "original_name": original_name,
        }))
        if self.upload_error is not None:
            raise self.upload_error
        self.images[self.image_id] = {
            "id": self.image_id,
            "filename": original_name,
            "meta": {"customFilename": file_name},
        }
        return ProviderUpload(id=self.image_id)

    async def create_direct_upload(self):
        self.calls.append(("direct_upload", None))
        return DirectUpload(upload_url=f"https://upload.imagedelivery.net/{self.image_id}", id=self.image_id)

    async def get_image_details(self, image_id):
        self.calls.append(("details", image_id))
        if image_id not in self.images:
            raise ProviderNotFoundError(image_id)
        return self.images[image_id]

    async def delete_image(self, image_id):
        self.calls.append(("delete", image_id))
        self.images.pop(image_id, None)
        return self.delete_result


class FailingImageRepository(ImageRepository):
    """Metadata store whose every operation fails."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or PersistenceError("database is unavailable")

    async def save_image(self, record: ImageRecord) -> int:
        raise self.error

    async def save_variant_urls(self, row_id: int, urls: Dict[str, str]) -> None:
        raise self.error

    async def get_image_by_provider_id(self, image_id: str) -> Optional[StoredImage]:
        raise self.error

    async def list_images(self, limit: int = 20, offset: int = 0):
        raise self.error

    async def delete_image(self, image_id: str) -> int:
        raise self.error


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def repository(db_session: AsyncSession) -> ImageRepository:
    return ImageRepository(db_session)


@pytest.fixture
def provider() -> FakeImageProvider:
    return FakeImageProvider()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with provider credentials and presigned uploads on."""
    return Settings(
        cf_images_account_id="test-account",
        cf_images_api_token="test-token",
        cf_images_account_hash="test-hash",
        database_url=None,
        enable_presigned_uploads=True,
    )


async def make_record(
    repository: ImageRepository,
    image_id: str,
    file_name: str = "photo",
    urls: Optional[Dict[str, str]] = None
) -> int:
    """Insert an image with one URL per variant."""
    from image_api.storage.variants import VARIANT_REGISTRY

    row_id = await repository.save_image(ImageRecord(
        image_id=image_id,
        file_name=file_name,
        mime_type="image/png",
        size_in_bytes=1024,
    ))
    await repository.save_variant_urls(
        row_id,
        urls or VARIANT_REGISTRY.expand_all(image_id, DELIVERY_PREFIX),
    )
    return row_id


def get_test_app(
    settings: Settings,
    provider: ImageProvider,
    db_session: Optional[AsyncSession] = None,
    repository: Optional[ImageRepository] = None,
) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    from image_api.main import app
    from image_api.config import get_settings
    from image_api.database import get_db
    from image_api.api.dependencies import get_image_provider, get_image_repository

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_image_provider] = lambda: provider
    app.dependency_overrides[get_db] = override_get_db
    if repository is not None:
        app.dependency_overrides[get_image_repository] = lambda: repository

    return app


async def _client_for(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    # Clean up overrides
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(
    test_settings: Settings,
    provider: FakeImageProvider,
    db_session: AsyncSession
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app with a working metadata store."""
    async for ac in _client_for(get_test_app(test_settings, provider, db_session=db_session)):
        yield ac


@pytest.fixture(scope="function")
async def client_no_store(
    test_settings: Settings,
    provider: FakeImageProvider
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app running without persistence."""
    async for ac in _client_for(get_test_app(test_settings, provider)):
        yield ac


@pytest.fixture(scope="function")
async def client_failing_store(
    test_settings: Settings,
    provider: FakeImageProvider
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for an app whose metadata store always fails."""
    app = get_test_app(test_settings, provider, repository=FailingImageRepository())
    async for ac in _client_for(app):
        yield ac
