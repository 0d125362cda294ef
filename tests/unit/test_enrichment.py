"""
Tests for ProductEnricher: rank order, dropped rows, image priority, seller info.
"""

from unittest.mock import MagicMock

import pytest

from conftest import make_product
from recs.enrichment import ProductEnricher
from recs.models import ProductImage, StoreInfo
from recs.stores import StoreError

BASE = "https://test.supabase.co/storage/v1/object/public/product-images"


@pytest.fixture
def enricher(memory_store):
    return ProductEnricher(memory_store, memory_store, BASE + "/")


class TestEnrich:

    def test_preserves_rank_and_drops_inactive(self, memory_store, enricher):
        memory_store.add_product(make_product("a"))
        memory_store.add_product(make_product("b", is_active=False))
        memory_store.add_product(make_product("c"))

        summaries = enricher.enrich(["c", "b", "a", "missing"])

        assert [s.id for s in summaries] == ["c", "a"]

    def test_attaches_scores(self, memory_store, enricher):
        memory_store.add_product(make_product("a"), popularity_score=4.0, view_count=12)
        memory_store.add_product(make_product("b"))

        summaries = enricher.enrich(["a", "b"])

        assert summaries[0].product_scores.view_count == 12
        assert summaries[1].product_scores is None

    def test_empty_input(self, enricher):
        assert enricher.enrich([]) == []

    def test_product_fetch_failure_propagates(self, memory_store):
        products = MagicMock()
        products.get_products_by_ids.side_effect = StoreError("down")

        with pytest.raises(StoreError):
            ProductEnricher(products, memory_store, BASE).enrich(["a"])

    def test_score_failure_is_tolerated(self, memory_store):
        memory_store.add_product(make_product("a"))
        scores = MagicMock()
        scores.get_scores.side_effect = StoreError("down")

        summaries = ProductEnricher(memory_store, scores, BASE).enrich(["a"])

        assert [s.id for s in summaries] == ["a"]
        assert summaries[0].product_scores is None


class TestImages:

    def test_custom_image_wins(self, enricher):
        product = make_product(
            "p1",
            use_custom_image=True,
            custom_image_url="https://cdn.example.com/mine.jpg",
            canonical_images=[ProductImage(storage_path="canon/1.jpg", is_primary=True)],
        )

        assert enricher.resolve_images(product) == (
            "https://cdn.example.com/mine.jpg", ["https://cdn.example.com/mine.jpg"],
        )

    def test_canonical_primary_first(self, enricher):
        product = make_product("p1", canonical_images=[
            ProductImage(storage_path="canon/side.jpg", variants={"large": "canon/side-large.jpg"}),
            ProductImage(storage_path="canon/front.jpg", is_primary=True),
        ])

        primary, gallery = enricher.resolve_images(product)

        assert primary == f"{BASE}/canon/front.jpg"
        assert gallery == [f"{BASE}/canon/front.jpg", f"{BASE}/canon/side-large.jpg"]

    def test_custom_flag_without_url_falls_through(self, enricher):
        product = make_product("p1", use_custom_image=True, canonical_images=[
            ProductImage(storage_path="canon/front.jpg", is_primary=True),
        ])

        assert enricher.resolve_images(product)[0] == f"{BASE}/canon/front.jpg"

    def test_placeholder_without_primary(self, enricher):
        product = make_product("p1", canonical_images=[ProductImage(storage_path="canon/side.jpg")])

        assert enricher.resolve_images(product) == ("/placeholder-product.svg", ["/placeholder-product.svg"])


class TestSummary:

    def test_store_info(self, enricher):
        product = make_product("p1", store=StoreInfo(business_name="Spoke & Chain", logo_url="logo.png"))

        summary = enricher.to_summary(product)

        assert summary.store_name == "Spoke & Chain"
        assert summary.store_logo_url == "logo.png"

    def test_unknown_store(self, enricher):
        summary = enricher.to_summary(make_product("p1"))

        assert summary.store_name == "Unknown Store"
        assert summary.store_logo_url is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
