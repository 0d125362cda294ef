"""
Enrichment: ranked product ids -> display-ready ProductSummary list.

One batched product fetch and one batched score fetch per call. Rank order
is re-imposed afterwards; ids whose row is missing or inactive are dropped.

Image priority:
    1. Seller's custom image (use_custom_image + custom_image_url)
    2. Canonical product images, primary first (gallery prefers ``large``)
    3. Placeholder
"""

from typing import Dict, List, Optional, Sequence, Tuple

from config.constants import PLACEHOLDER_IMAGE_URL, UNKNOWN_STORE_NAME
from core.logging import LoggerMixin
from recs.models import Product, ProductScore, ProductSummary
from recs.stores import ProductStore, ScoreStore, StoreError


class ProductEnricher(LoggerMixin):

    def __init__(self, products: ProductStore, scores: ScoreStore, images_base_url: str):
        self.products = products
        self.scores = scores
        self.images_base_url = images_base_url.rstrip("/")

    def _image_url(self, path: str) -> str:
        return f"{self.images_base_url}/{path.lstrip('/')}"

    def resolve_images(self, product: Product) -> Tuple[str, List[str]]:
        """``(primary_image_url, all_images)`` for one product."""
        if product.use_custom_image and product.custom_image_url:
            return product.custom_image_url, [product.custom_image_url]

        images = [img for img in product.canonical_images if img.storage_path]
        primary = next((img for img in images if img.is_primary), None)
        if primary is None:
            return PLACEHOLDER_IMAGE_URL, [PLACEHOLDER_IMAGE_URL]

        # stable: primary first, rest in stored order
        ordered = sorted(images, key=lambda img: not img.is_primary)
        gallery = [
            self._image_url((img.variants or {}).get("large") or img.storage_path)
            for img in ordered
        ]
        return self._image_url(primary.storage_path), gallery

    def to_summary(self, product: Product, score: Optional[ProductScore] = None) -> ProductSummary:
        primary_image_url, all_images = self.resolve_images(product)
        store = product.store
        return ProductSummary(
            id=product.id,
            display_name=product.display_name,
            description=product.description,
            price=product.price,
            marketplace_category=product.marketplace_category,
            marketplace_subcategory=product.marketplace_subcategory,
            bike_type=product.bike_type,
            manufacturer_name=product.manufacturer_name,
            primary_image_url=primary_image_url,
            all_images=all_images,
            user_id=product.user_id,
            store_name=(store.business_name if store and store.business_name else UNKNOWN_STORE_NAME),
            store_logo_url=store.logo_url if store else None,
            listing_type=product.listing_type,
            product_scores=score,
        )

    def enrich(self, product_ids: Sequence[str]) -> List[ProductSummary]:
        """
        Hydrate ``product_ids`` in rank order.

        Raises:
            StoreError: If the product rows cannot be fetched. A failed score
                lookup only leaves ``product_scores`` empty.
        """
        if not product_ids:
            return []

        rows: Dict[str, Product] = {p.id: p for p in self.products.get_products_by_ids(product_ids)}

        try:
            scores = self.scores.get_scores(list(rows))
        except StoreError as e:
            self.logger.warning("Score lookup failed during enrichment", error=str(e))
            scores = {}

        summaries = []
        dropped = []
        for pid in dict.fromkeys(product_ids):
            product = rows.get(pid)
            if product is None or not product.is_active:
                dropped.append(pid)
                continue
            summaries.append(self.to_summary(product, scores.get(pid)))

        if dropped:
            self.logger.debug("Dropped missing or inactive products", count=len(dropped), sample=dropped[:3])

        return summaries
