"""
Storage module for the image provider (Cloudflare Images).

The provider stores the image bytes and serves delivery URLs; this
package wraps its API and the variant registry used to build those URLs.
"""
from image_api.storage.base import DirectUpload, ImageProvider, ProviderUpload
from image_api.storage.cf_images import CloudflareImagesClient
from image_api.storage.variants import VARIANT_REGISTRY, VariantRegistry

__all__ = [
    "CloudflareImagesClient",
    "DirectUpload",
    "ImageProvider",
    "ProviderUpload",
    "VARIANT_REGISTRY",
    "VariantRegistry",
]
