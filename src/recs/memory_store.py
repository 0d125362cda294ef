"""
In-memory implementation of every recommendation store.

For development (no Supabase project needed) and tests. Semantics mirror
``SupabaseStore``: queries return only active products, ``top_scored``
skips zero scores, and the cache honours ``expires_at``.
"""

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from recs.models import (
    OnboardingPreferences,
    Product,
    ProductQuery,
    ProductScore,
    UserPreferences,
)
from recs.stores import RecommendationStore

_SCORE_COUNTERS = {
    "view": ("view_count", 1),
    "click": ("click_count", 1),
    "like": ("like_count", 1),
    "unlike": ("like_count", -1),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class InMemoryStore(RecommendationStore):
    """
    Dict / list backed store.

    Thread-safe: the combiner calls it from several worker threads.
    """

    def __init__(self):
        self.products: Dict[str, Product] = {}
        self.scores: Dict[str, ProductScore] = {}
        self.interactions: List[Dict[str, Any]] = []
        self.preferences: Dict[str, UserPreferences] = {}
        self.onboarding: Dict[str, OnboardingPreferences] = {}
        self.cache: Dict[str, Tuple[List[str], datetime]] = {}
        self._lock = Lock()

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def add_product(self, product: Product, **scores) -> Product:
        self.products[product.id] = product
        if scores:
            self.scores[product.id] = ProductScore(product_id=product.id, **scores)
        return product

    def add_view(self, user_id: str, product_id: str, created_at: Optional[datetime] = None):
        self.record_interactions([{
            "user_id": user_id,
            "session_id": f"session-{user_id}",
            "product_id": product_id,
            "interaction_type": "view",
            "created_at": created_at or _utcnow(),
        }])

    def set_preferences(self, prefs: UserPreferences):
        self.preferences[prefs.user_id] = prefs

    def set_onboarding(self, user_id: str, prefs: OnboardingPreferences):
        self.onboarding[user_id] = prefs

    # -------------------------------------------------------------------------
    # ProductStore
    # -------------------------------------------------------------------------

    def query_active_products(self, query: ProductQuery) -> List[Product]:
        terms = [t.lower() for t in (query.text_terms or []) if t]
        categories = set(query.categories) if query.categories is not None else None
        ids = set(query.product_ids) if query.product_ids is not None else None

        matched = []
        for p in self.products.values():
            if not p.is_active or p.id in query.exclude_ids:
                continue
            if ids is not None and p.id not in ids:
                continue
            if categories is not None and p.marketplace_category not in categories:
                continue
            if query.min_price is not None and (p.price is None or p.price < query.min_price):
                continue
            if query.max_price is not None and (p.price is None or p.price > query.max_price):
                continue
            if terms:
                name = (p.display_name or "").lower()
                desc = (p.description or "").lower()
                if not any(t in name or t in desc for t in terms):
                    continue
            matched.append(p)

        matched.sort(key=lambda p: p.id)
        if query.order == "newest":
            matched.sort(
                key=lambda p: _as_aware(p.created_at).timestamp() if p.created_at else float("-inf"),
                reverse=True,
            )
        return matched[:query.limit]

    def get_products_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        return [self.products[pid] for pid in dict.fromkeys(product_ids) if pid in self.products]

    # -------------------------------------------------------------------------
    # ScoreStore
    # -------------------------------------------------------------------------

    def get_scores(self, product_ids: Sequence[str]) -> Dict[str, ProductScore]:
        return {pid: self.scores[pid] for pid in product_ids if pid in self.scores}

    def top_scored(self, score_field: str, limit: int) -> List[ProductScore]:
        rows = [s for s in self.scores.values() if getattr(s, score_field) > 0]
        rows.sort(key=lambda s: (-getattr(s, score_field), s.product_id))
        return rows[:limit]

    # -------------------------------------------------------------------------
    # InteractionStore
    # -------------------------------------------------------------------------

    def _views(self, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
        with self._lock:
            rows = list(self.interactions)
        return [
            r for r in rows
            if r.get("interaction_type") == "view"
            and r.get("product_id")
            and (since is None or r["created_at"] >= _as_aware(since))
        ]

    def count_interactions(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for r in self.interactions if r.get("user_id") == user_id)

    def recent_views(self, user_id: str, limit: int, since: Optional[datetime] = None) -> List[str]:
        rows = [r for r in self._views(since) if r.get("user_id") == user_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [r["product_id"] for r in rows[:limit]]

    def co_viewers(
        self,
        product_ids: Sequence[str],
        exclude_user_id: str,
        since: datetime,
        limit: int,
    ) -> List[Tuple[str, str]]:
        wanted = set(product_ids)
        rows = [
            (r["user_id"], r["product_id"])
            for r in self._views(since)
            if r["product_id"] in wanted
            and r.get("user_id")
            and r["user_id"] != exclude_user_id
        ]
        return rows[:limit]

    def views_by_users(self, user_ids: Sequence[str], since: datetime) -> List[str]:
        wanted = set(user_ids)
        return [r["product_id"] for r in self._views(since) if r.get("user_id") in wanted]

    def record_interactions(self, rows: Iterable[Dict[str, Any]]) -> int:
        written = 0
        with self._lock:
            for row in rows:
                stored = dict(row)
                created_at = stored.get("created_at")
                stored["created_at"] = _as_aware(created_at) if created_at else _utcnow()
                self.interactions.append(stored)
                written += 1
        return written

    def increment_product_score(self, product_id: str, interaction_type: str) -> None:
        with self._lock:
            score = self.scores.get(product_id) or ProductScore(product_id=product_id)
            counter = _SCORE_COUNTERS.get(interaction_type)
            if counter:
                name, delta = counter
                score = score.model_copy(update={name: getattr(score, name) + delta})
            self.scores[product_id] = score

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]:
        return self.preferences.get(user_id)

    def get_onboarding_preferences(self, user_id: str) -> Optional[OnboardingPreferences]:
        return self.onboarding.get(user_id)

    # -------------------------------------------------------------------------
    # RecommendationCacheStore
    # -------------------------------------------------------------------------

    def get_cached(self, user_id: str, now: Optional[datetime] = None) -> Optional[List[str]]:
        with self._lock:
            entry = self.cache.get(user_id)
        if entry is None:
            return None
        product_ids, expires_at = entry
        if _as_aware(expires_at) <= _as_aware(now or _utcnow()):
            return None
        return list(product_ids)

    def save(self, user_id: str, product_ids: Sequence[str], expires_at: datetime) -> None:
        with self._lock:
            self.cache[user_id] = (list(product_ids), expires_at)

    def clear(self, user_id: str) -> None:
        with self._lock:
            self.cache.pop(user_id, None)
