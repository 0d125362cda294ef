"""
Recommendation Service - the "For You" feed.

Facade over the pipeline:

    cache lookup (authenticated, not refreshing, long enough for the limit)
        -> HybridCombiner (signals, generators, merge, fallback)
        -> cache write
        -> ProductEnricher (hydrate, keep rank, drop inactive)

Tables (via the store):
- recommendation_cache: per-user ranked ids, 15 minute TTL
- everything the generators read (see recs.supabase_store)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from config.settings import Settings, get_settings
from core.logging import LoggerMixin
from recs.enrichment import ProductEnricher
from recs.hybrid import HybridCombiner, RecommendationError, default_strategies
from recs.interaction_tracker import InteractionTracker
from recs.models import InteractionEvent, ProductSummary
from recs.stores import RecommendationStore, StoreError


@dataclass
class RecommendationOutcome:
    """Ranked ids plus what the API reports in ``meta``."""
    product_ids: List[str]
    products: Optional[List[ProductSummary]] = None
    cache_hit: bool = False
    personalized: bool = False
    refreshed_at: Optional[datetime] = None


class RecommendationService(LoggerMixin):
    """
    Main recommendation service.

    Stateless apart from its collaborators, so one instance is shared by
    every request.
    """

    def __init__(
        self,
        store: RecommendationStore,
        settings: Optional[Settings] = None,
        combiner: Optional[HybridCombiner] = None,
        enricher: Optional[ProductEnricher] = None,
        tracker: Optional[InteractionTracker] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.combiner = combiner or HybridCombiner(
            store,
            strategies=default_strategies(store),
            timeout_seconds=self.settings.generator_timeout_seconds,
            max_workers=self.settings.generator_max_workers,
        )
        self.enricher = enricher or ProductEnricher(store, store, self.settings.product_images_base_url)
        self.tracker = tracker or InteractionTracker(store)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================
    # Limits
    # =========================================================

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Default when missing, capped at max_recommendation_limit, never negative."""
        if limit is None:
            limit = self.settings.default_recommendation_limit
        return max(0, min(int(limit), self.settings.max_recommendation_limit))

    # =========================================================
    # Cache
    # =========================================================

    def _cache_enabled(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.settings.recommendation_cache_enabled

    def _read_cache(self, user_id: str) -> Optional[List[str]]:
        try:
            return self.store.get_cached(user_id, now=self.clock())
        except StoreError as e:
            self.logger.warning("Cache read failed", user_id=user_id, error=str(e))
            return None

    def _write_cache(self, user_id: str, product_ids: Sequence[str]) -> None:
        expires_at = self.clock() + timedelta(seconds=self.settings.recommendation_cache_ttl_seconds)
        try:
            self.store.save(user_id, product_ids, expires_at)
        except StoreError as e:
            self.logger.warning("Cache write failed", user_id=user_id, error=str(e))

    def _clear_cache(self, user_id: str) -> None:
        try:
            self.store.clear(user_id)
        except StoreError as e:
            self.logger.warning("Cache clear failed", user_id=user_id, error=str(e))

    # =========================================================
    # Main Recommendation Methods
    # =========================================================

    def recommend(
        self,
        user_id: Optional[str],
        limit: Optional[int] = None,
        exclude_product_ids: Iterable[str] = (),
        refresh: bool = False,
        enrich: bool = True,
    ) -> RecommendationOutcome:
        """
        Ranked recommendations for one request.

        Raises:
            RecommendationError: If nothing could be produced, or the
                catalogue could not be read for enrichment.
        """
        limit = self.clamp_limit(limit)
        exclude = frozenset(pid for pid in exclude_product_ids if pid)
        user_id = user_id or None

        product_ids: List[str] = []
        cache_hit = False

        if self._cache_enabled(user_id) and not refresh:
            cached = self._read_cache(user_id)
            usable = [pid for pid in (cached or []) if pid not in exclude]
            # a list generated for a smaller limit can't fill this request
            if limit > 0 and len(usable) >= limit:
                product_ids = usable[:limit]
                cache_hit = True

        if not product_ids and limit > 0:
            product_ids = self.combiner.recommend(user_id, limit, exclude)
            # lists built around a caller's exclusions aren't reusable
            if product_ids and self._cache_enabled(user_id) and not exclude:
                self._write_cache(user_id, product_ids)

        self.logger.info(
            "Recommendations ready",
            user_id=user_id or "anonymous",
            count=len(product_ids),
            cache_hit=cache_hit,
        )

        outcome = RecommendationOutcome(
            product_ids=product_ids,
            cache_hit=cache_hit,
            personalized=user_id is not None,
        )
        if enrich:
            outcome.products = self.enrich(product_ids)
        return outcome

    def get_recommendations(
        self,
        user_id: Optional[str],
        limit: int,
        exclude_product_ids: Iterable[str] = (),
        refresh: bool = False,
    ) -> List[ProductSummary]:
        """Ordered, display-ready recommendations."""
        return self.recommend(user_id, limit, exclude_product_ids, refresh=refresh).products or []

    def refresh(self, user_id: str, limit: Optional[int] = None) -> RecommendationOutcome:
        """Drop the user's cached list and regenerate it."""
        self._clear_cache(user_id)
        outcome = self.recommend(user_id, limit, refresh=True)
        outcome.refreshed_at = self.clock()
        return outcome

    def enrich(self, product_ids: Sequence[str]) -> List[ProductSummary]:
        try:
            return self.enricher.enrich(product_ids)
        except StoreError as e:
            self.logger.error("Enrichment failed", error=str(e), count=len(product_ids))
            raise RecommendationError("Failed to load recommended products") from e

    # =========================================================
    # Diagnostics / Tracking
    # =========================================================

    def debug(
        self,
        user_id: Optional[str],
        limit: Optional[int] = None,
        exclude_product_ids: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Per-generator diagnostics. Never writes the cache."""
        report = self.combiner.diagnose(user_id or None, self.clamp_limit(limit), exclude_product_ids)
        report["cache_enabled"] = self._cache_enabled(user_id)
        if report["cache_enabled"]:
            cached = self._read_cache(user_id)
            report["cached_count"] = len(cached) if cached else 0
        report["algorithm_version"] = self.settings.algorithm_version
        return report

    def track(self, events: Sequence[InteractionEvent], user_id: Optional[str] = None) -> int:
        return self.tracker.track(events, authenticated_user_id=user_id)
