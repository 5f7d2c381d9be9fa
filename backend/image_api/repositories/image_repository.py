"""
Repository for image metadata.

The store is an index, not the source of truth: the provider owns the
images and every URL can be rebuilt from the variant registry. Callers
decide whether a PersistenceError matters (it doesn't during upload).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from image_api.exceptions import PersistenceError
from image_api.models.image import Image, ImageVariant

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


@dataclass
class ImageRecord:
    """Image metadata as the rest of the app sees it."""
    image_id: str
    file_name: str
    mime_type: str
    size_in_bytes: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class StoredImage:
    """A stored record plus its variant URLs."""
    record: ImageRecord
    available_urls: Dict[str, str] = field(default_factory=dict)


def _to_stored(image: Image) -> StoredImage:
    return StoredImage(
        record=ImageRecord(
            image_id=image.image_id,
            file_name=image.file_name,
            mime_type=image.mime_type,
            size_in_bytes=image.size_in_bytes,
            description=image.description,
            created_at=image.created_at,
        ),
        available_urls={variant.variant_name: variant.url for variant in image.variants},
    )


class ImageRepository:
    """Repository for image metadata database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _rollback(self):
        try:
            await self.db.rollback()
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Rollback failed: {e}")

    async def save_image(self, record: ImageRecord) -> int:
        """
        Insert an image row.

        The row is flushed, not committed: save_variant_urls commits it
        together with its variants so an image never exists without them.

        Returns:
            Internal row id

        Raises:
            PersistenceError: on constraint violation or transport failure
        """
        image = Image(
            image_id=record.image_id,
            file_name=record.file_name,
            description=record.description,
            mime_type=record.mime_type,
            size_in_bytes=record.size_in_bytes,
        )
        try:
            self.db.add(image)
            await self.db.flush()  # Flush to get ID without committing
        except (SQLAlchemyError, OSError) as e:
            await self._rollback()
            raise PersistenceError(f"Failed to save image {record.image_id}: {e}") from e
        return image.id

    async def save_variant_urls(self, row_id: int, urls: Dict[str, str]) -> None:
        """
        Insert all variant URLs for an image and commit.

        All rows are written or none are: any failure rolls back the
        whole transaction, including the pending image row.

        Raises:
            PersistenceError: if the batch fails
        """
        if not urls:
            raise PersistenceError(f"No variant URLs to save for image row {row_id}")
        try:
            self.db.add_all([
                ImageVariant(image_id=row_id, variant_name=name, url=url)
                for name, url in urls.items()
            ])
            await self.db.commit()
        except (SQLAlchemyError, OSError) as e:
            await self._rollback()
            raise PersistenceError(f"Failed to save variants for image row {row_id}: {e}") from e

    async def get_image_by_provider_id(self, image_id: str) -> Optional[StoredImage]:
        """
        Look up an image and its variant URLs by provider ID.

        Returns:
            StoredImage, or None if not stored
        """
        try:
            result = await self.db.execute(
                select(Image)
                .options(selectinload(Image.variants))
                .where(Image.image_id == image_id)
                .execution_options(populate_existing=True)
            )
            image = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            await self._rollback()
            raise PersistenceError(f"Failed to get image {image_id}: {e}") from e
        return _to_stored(image) if image else None

    async def list_images(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0
    ) -> Tuple[List[StoredImage], int]:
        """
        Page through stored images, most recent first.

        Args:
            limit: Page size, 1-100
            offset: Rows to skip, >= 0

        Returns:
            Tuple of (images, total_count)
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValueError("offset must be >= 0")

        try:
            total = await self.db.scalar(select(func.count()).select_from(Image))
            result = await self.db.execute(
                select(Image)
                .options(selectinload(Image.variants))
                # id breaks created_at ties so order follows insertion
                .order_by(Image.created_at.desc(), Image.id.desc())
                .limit(limit)
                .offset(offset)
                .execution_options(populate_existing=True)
            )
            images = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            await self._rollback()
            raise PersistenceError(f"Failed to list images: {e}") from e

        return [_to_stored(image) for image in images], total or 0

    async def delete_image(self, image_id: str) -> int:
        """
        Delete an image and its variants.

        Returns:
            Number of image rows deleted (0 or 1)
        """
        try:
            result = await self.db.execute(
                select(Image.id).where(Image.image_id == image_id)
            )
            row_id = result.scalar_one_or_none()
            if row_id is None:
                return 0
            # Variants first: not every backend enforces ON DELETE CASCADE
            await self.db.execute(delete(ImageVariant).where(ImageVariant.image_id == row_id))
            deleted = await self.db.execute(delete(Image).where(Image.id == row_id))
            await self.db.commit()
        except (SQLAlchemyError, OSError) as e:
            await self._rollback()
            raise PersistenceError(f"Failed to delete image {image_id}: {e}") from e
        return deleted.rowcount
