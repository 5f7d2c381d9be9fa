"""
Variant registry.

Maps the variant names clients use (``thumbnail``, ``public``...) to the
variant tokens configured on the Cloudflare Images account. Delivery URLs
are fully determined by the image ID, the account hash and the token, so
they can always be rebuilt without the metadata store.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping

from image_api.exceptions import UnknownVariantError

DEFAULT_VARIANT = "public"


@dataclass(frozen=True)
class VariantRegistry:
    """Immutable name -> provider token table."""

    variants: Mapping[str, str]
    default: str = DEFAULT_VARIANT

    def __post_init__(self):
        if not self.variants:
            raise ValueError("Variant registry cannot be empty")
        if self.default not in self.variants:
            raise ValueError(f"Default variant '{self.default}' is not registered")
        # Freeze a private copy so callers can't mutate the table
        object.__setattr__(self, "variants", MappingProxyType(dict(self.variants)))

    @property
    def names(self) -> List[str]:
        return list(self.variants)

    def is_known(self, name: str) -> bool:
        return name in self.variants

    def resolve(self, name: str) -> str:
        """
        Get the provider token for a variant name.

        Raises:
            UnknownVariantError: if the name isn't registered
        """
        try:
            return self.variants[name]
        except KeyError:
            raise UnknownVariantError(name, self.names) from None

    def build_url(self, image_id: str, name: str, base_url: str) -> str:
        """Delivery URL for one variant. base_url is the account namespace prefix."""
        return f"{base_url.rstrip('/')}/{image_id}/{self.resolve(name)}"

    def expand_all(self, image_id: str, base_url: str) -> Dict[str, str]:
        """Delivery URLs for every registered variant, keyed by variant name."""
        return {name: self.build_url(image_id, name, base_url) for name in self.variants}


VARIANT_REGISTRY = VariantRegistry(
    variants={
        "public": "public",
        "thumbnail": "thumbnail",
        "small": "w400",
        "medium": "w800",
        "large": "w1600",
    }
)
