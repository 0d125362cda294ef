"""
Item similarity against a shopper's recently viewed products.
"""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, Optional

from config.constants import DEFAULT_SIMILARITY_WEIGHTS, SimilarityWeights


@dataclass(frozen=True)
class ViewProfile:
    """Aggregate of the products a shopper viewed recently."""
    product_ids: FrozenSet[str] = field(default_factory=frozenset)
    categories: FrozenSet[str] = field(default_factory=frozenset)
    subcategories: FrozenSet[str] = field(default_factory=frozenset)
    store_ids: FrozenSet[str] = field(default_factory=frozenset)
    avg_price: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.categories

    def price_window(self, band: float):
        """``(low, high)`` around the average price, or ``(None, None)``."""
        if not self.avg_price:
            return None, None
        return self.avg_price * (1 - band), self.avg_price * (1 + band)


def build_view_profile(viewed_products: Iterable[Any]) -> ViewProfile:
    """Collect categories, sellers and the mean positive price of viewed products."""
    ids, categories, subcategories, stores, prices = set(), set(), set(), set(), []
    for p in viewed_products:
        ids.add(p.id)
        if p.marketplace_category:
            categories.add(p.marketplace_category)
        if p.marketplace_subcategory:
            subcategories.add(p.marketplace_subcategory)
        if p.user_id:
            stores.add(p.user_id)
        if p.price and p.price > 0:
            prices.append(p.price)

    return ViewProfile(
        product_ids=frozenset(ids),
        categories=frozenset(categories),
        subcategories=frozenset(subcategories),
        store_ids=frozenset(stores),
        avg_price=sum(prices) / len(prices) if prices else None,
    )


def similarity_score(
    product: Any,
    profile: ViewProfile,
    weights: SimilarityWeights = DEFAULT_SIMILARITY_WEIGHTS,
) -> float:
    score = 0.0

    if product.marketplace_category in profile.categories:
        score += weights.category
    if product.marketplace_subcategory and product.marketplace_subcategory in profile.subcategories:
        score += weights.subcategory
    if product.user_id and product.user_id in profile.store_ids:
        score += weights.same_store

    if profile.avg_price and product.price is not None:
        diff = abs(product.price - profile.avg_price) / profile.avg_price
        if diff < weights.close_price_ratio:
            score += weights.close_price
        elif diff < weights.near_price_ratio:
            score += weights.near_price

    return score
