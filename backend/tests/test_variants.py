"""
Tests for the variant registry.
"""
import pytest

from image_api.exceptions import UnknownVariantError
from image_api.storage.variants import DEFAULT_VARIANT, VARIANT_REGISTRY, VariantRegistry

BASE = "https://imagedelivery.net/test-hash"


class TestVariantRegistry:
    """Tests for name resolution and URL building."""

    def test_default_variant_is_registered(self):
        assert VARIANT_REGISTRY.default == DEFAULT_VARIANT
        assert VARIANT_REGISTRY.is_known(DEFAULT_VARIANT)

    def test_resolve_maps_name_to_token(self):
        assert VARIANT_REGISTRY.resolve("small") == "w400"
        assert VARIANT_REGISTRY.resolve("thumbnail") == "thumbnail"

    def test_resolve_unknown_variant(self):
        with pytest.raises(UnknownVariantError) as exc_info:
            VARIANT_REGISTRY.resolve("huge")

        assert exc_info.value.status_code == 400
        assert exc_info.value.valid_variants == VARIANT_REGISTRY.names
        assert exc_info.value.to_dict()["validVariants"] == VARIANT_REGISTRY.names

    def test_resolve_is_case_sensitive(self):
        with pytest.raises(UnknownVariantError):
            VARIANT_REGISTRY.resolve("Public")

    def test_build_url(self):
        url = VARIANT_REGISTRY.build_url("abc", "medium", BASE + "/")
        assert url == f"{BASE}/abc/w800"

    def test_expand_all_covers_every_variant(self):
        urls = VARIANT_REGISTRY.expand_all("abc", BASE)

        assert list(urls) == VARIANT_REGISTRY.names
        assert urls["public"] == f"{BASE}/abc/public"
        assert urls["large"] == f"{BASE}/abc/w1600"

    def test_expand_all_is_deterministic(self):
        assert VARIANT_REGISTRY.expand_all("abc", BASE) == VARIANT_REGISTRY.expand_all("abc", BASE)

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            VARIANT_REGISTRY.variants["new"] = "new"

    def test_source_mapping_is_copied(self):
        source = {"public": "public"}
        registry = VariantRegistry(variants=source)
        source["extra"] = "extra"

        assert not registry.is_known("extra")

    def test_empty_registry_rejected(self):
        with pytest.raises(ValueError):
            VariantRegistry(variants={})

    def test_unregistered_default_rejected(self):
        with pytest.raises(ValueError):
            VariantRegistry(variants={"thumbnail": "thumbnail"})
