#!/usr/bin/env python3
"""
Script to backfill the metadata store from Cloudflare Images.

An upload whose metadata write failed (or that was interrupted between the
provider upload and the insert) exists at the provider but not in the
store. This script re-inserts those images by ID.

Usage:
    # From inside the Docker container:
    docker exec -it image-api python reindex_images.py <image_id> [<image_id> ...]

    # IDs from a file, one per line:
    python reindex_images.py --file missing_ids.txt

    # Locally with environment variables:
    DATABASE_URL=xxx CF_IMAGES_ACCOUNT_ID=xxx CF_IMAGES_API_TOKEN=xxx \
        CF_IMAGES_ACCOUNT_HASH=xxx python reindex_images.py <image_id>
"""
import argparse
import asyncio
import sys

from image_api.config import settings
from image_api.database import dispose_db, get_session_factory, init_db
from image_api.exceptions import ImageAPIError
from image_api.repositories.image_repository import ImageRepository
from image_api.services.image_service import ImageService
from image_api.storage.cf_images import CloudflareImagesClient


def read_ids(args) -> list:
    """Collect image IDs from arguments and the optional file."""
    image_ids = list(args.image_ids)
    if args.file:
        with open(args.file) as f:
            image_ids.extend(line.strip() for line in f if line.strip())
    return image_ids


async def reindex(image_ids: list) -> int:
    """
    Reindex each image in its own session.

    Returns:
        Number of failures
    """
    await init_db()
    session_factory = get_session_factory()
    client = CloudflareImagesClient(settings.provider_config())

    inserted = skipped = failed = 0
    try:
        for image_id in image_ids:
            async with session_factory() as session:
                service = ImageService(
                    provider=client,
                    config=settings.provider_config(),
                    repository=ImageRepository(session),
                )
                try:
                    if await service.reindex_image(image_id):
                        inserted += 1
                        print(f"  INSERTED {image_id}")
                    else:
                        skipped += 1
                        print(f"  SKIPPED  {image_id} (already stored)")
                except ImageAPIError as e:
                    failed += 1
                    print(f"  ERROR    {image_id}: {e}")
    finally:
        await dispose_db()

    print(f"\n{'='*50}")
    print("SUMMARY:")
    print(f"  Total IDs: {len(image_ids)}")
    print(f"  Inserted: {inserted}")
    print(f"  Already stored: {skipped}")
    print(f"  Failed: {failed}")
    print(f"{'='*50}")

    return failed


def main():
    parser = argparse.ArgumentParser(description='Backfill image metadata from Cloudflare Images')
    parser.add_argument('image_ids', nargs='*', help='Provider image IDs to reindex')
    parser.add_argument('--file', '-f', help='File with one image ID per line')
    args = parser.parse_args()

    if not settings.persistence_enabled:
        print("ERROR: DATABASE_URL is not set; there is no store to backfill.")
        sys.exit(1)

    image_ids = read_ids(args)
    if not image_ids:
        parser.print_usage()
        print("No image IDs given.")
        sys.exit(1)

    print("=" * 50)
    print("CLOUDFLARE IMAGES - REINDEX METADATA")
    print("=" * 50)
    print(f"Images to check: {len(image_ids)}\n")

    failed = asyncio.run(reindex(image_ids))
    sys.exit(1 if failed else 0)


if __name__ == '__main__':
    main()
