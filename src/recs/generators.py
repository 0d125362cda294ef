"""
Candidate generators.

Each generator turns one signal into a ranked list of product ids:

    trending         product_scores.trending_score
    popular          product_scores.popularity_score
    keyword_based    user_preferences.favorite_keywords vs name / description
    onboarding_based users.preferences (cold start)
    category_based   user_preferences.favorite_categories + price range
    similar          last viewed products (category / seller / price)
    collaborative    "users who viewed X also viewed Y"

Contract: ``generate(context)`` never raises for missing data or store
failures; it returns an empty result with ``score == 0``. Non-empty results
have unique ids, none from ``context.exclude_ids``, at most ``context.limit``.
"""

from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from config.constants import ALGORITHM_CONFIDENCE, DEFAULT_GENERATOR_CONFIG, GeneratorConfig
from core.logging import LoggerMixin
from core.utils import dedupe_preserving_order
from recs.models import GeneratorContext, ProductQuery, ProductScore, RecommendationResult
from recs.stores import RecommendationStore, StoreError
from scoring.budget import parse_budget_range
from scoring.keywords import keyword_match_score, keyword_rank_key, product_text, top_keywords
from scoring.onboarding_scorer import OnboardingScorer
from scoring.similarity import build_view_profile, similarity_score


def _popularity(scores: Dict[str, ProductScore], product_id: str) -> float:
    score = scores.get(product_id)
    return score.popularity_score if score else 0.0


class CandidateGenerator(LoggerMixin, ABC):
    """Base class: store failure isolation and result post-conditions."""

    algorithm: str = ""

    def __init__(self, store: RecommendationStore, config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG):
        self.store = store
        self.config = config

    @property
    def confidence(self) -> float:
        return ALGORITHM_CONFIDENCE[self.algorithm]

    def generate(self, context: GeneratorContext) -> RecommendationResult:
        try:
            ranked = self._generate(context)
        except StoreError as e:
            self.logger.warning("Generator failed", algorithm=self.algorithm, error=str(e))
            return RecommendationResult.empty(self.algorithm)

        product_ids = [
            pid for pid in dedupe_preserving_order(ranked)
            if pid not in context.exclude_ids
        ][:context.limit]

        self.logger.debug("Generator finished", algorithm=self.algorithm, count=len(product_ids))

        if not product_ids:
            return RecommendationResult.empty(self.algorithm)
        return RecommendationResult(product_ids=product_ids, score=self.confidence, algorithm=self.algorithm)

    @abstractmethod
    def _generate(self, context: GeneratorContext) -> List[str]:
        """Ranked ids. May contain duplicates or excluded ids; ``generate`` cleans up."""


# =============================================================================
# Non-personalized
# =============================================================================

class _ScoreRankedGenerator(CandidateGenerator):
    """Top of one ``product_scores`` column, restricted to active products."""

    score_field: str = ""

    def _generate(self, context: GeneratorContext) -> List[str]:
        fetch = context.limit * self.config.SCORE_OVERFETCH_FACTOR + len(context.exclude_ids)
        rows = self.store.top_scored(self.score_field, fetch)

        ids = [r.product_id for r in rows if r.product_id not in context.exclude_ids]
        if not ids:
            return []

        active = {
            p.id for p in self.store.query_active_products(
                ProductQuery(product_ids=ids, limit=len(ids))
            )
        }
        return [pid for pid in ids if pid in active]


class TrendingGenerator(_ScoreRankedGenerator):
    algorithm = "trending"
    score_field = "trending_score"


class PopularityGenerator(_ScoreRankedGenerator):
    algorithm = "popular"
    score_field = "popularity_score"


# =============================================================================
# Preference based
# =============================================================================

class KeywordGenerator(CandidateGenerator):
    """
    Products whose text mentions the shopper's top keywords.

    Rank key is ``match x 10 + popularity``; products with no literal match
    (the server-side ILIKE can be looser than the in-memory count) are dropped.
    """

    algorithm = "keyword_based"

    def _generate(self, context: GeneratorContext) -> List[str]:
        if not context.user_id:
            return []

        prefs = self.store.get_user_preferences(context.user_id)
        if prefs is None:
            return []

        keywords = top_keywords(prefs.keyword_weights(), self.config.KEYWORD_TOP_N)
        if not keywords:
            self.logger.debug("No favorite keywords", user_id=context.user_id)
            return []

        products = self.store.query_active_products(ProductQuery(
            text_terms=[kw for kw, _ in keywords],
            exclude_ids=context.exclude_ids,
            limit=context.limit * self.config.KEYWORD_FETCH_MULTIPLIER,
        ))
        if not products:
            return []

        scores = self.store.get_scores([p.id for p in products])

        ranked = []
        for p in products:
            match = keyword_match_score(product_text(p.display_name, p.description), keywords)
            if match <= 0:
                continue
            key = keyword_rank_key(match, _popularity(scores, p.id), self.config.KEYWORD_RELEVANCE_FACTOR)
            ranked.append((key, p.id))

        ranked.sort(key=lambda kv: (-kv[0], kv[1]))
        return [pid for _, pid in ranked]


class OnboardingGenerator(CandidateGenerator):
    """
    Cold start from onboarding answers.

    The pool is filtered only by budget; everything else is scored in
    memory. Zero-score products are kept: being in budget is still relevant.
    """

    algorithm = "onboarding_based"

    def __init__(self, store, config=DEFAULT_GENERATOR_CONFIG, scorer: Optional[OnboardingScorer] = None):
        super().__init__(store, config)
        self.scorer = scorer or OnboardingScorer()

    def _generate(self, context: GeneratorContext) -> List[str]:
        if not context.user_id:
            return []

        prefs = self.store.get_onboarding_preferences(context.user_id)
        if prefs is None:
            return []

        budget = parse_budget_range(prefs.budget_range)
        pool = self.store.query_active_products(ProductQuery(
            min_price=budget.min_price if budget else None,
            max_price=budget.max_price if budget else None,
            exclude_ids=context.exclude_ids,
            order="id",
            limit=self.config.ONBOARDING_POOL_SIZE,
        ))
        if not pool:
            self.logger.debug("No products within budget", budget_range=prefs.budget_range)
            return []

        scored = [(self.scorer.score_item(p, prefs, budget), p.id) for p in pool]
        # stable: equal scores keep catalogue (id) order
        scored.sort(key=lambda kv: -kv[0])
        return [pid for _, pid in scored]


class CategoryGenerator(CandidateGenerator):
    algorithm = "category_based"

    def _generate(self, context: GeneratorContext) -> List[str]:
        if not context.user_id:
            return []

        prefs = self.store.get_user_preferences(context.user_id)
        if prefs is None:
            return []

        categories = prefs.category_names()[:self.config.CATEGORY_TOP_N]
        if not categories:
            return []

        min_price = max_price = None
        price_range = prefs.favorite_price_range
        if price_range is not None:
            min_price = price_range.min * self.config.CATEGORY_PRICE_FLOOR
            if price_range.max > 0:
                max_price = price_range.max * self.config.CATEGORY_PRICE_CEILING

        pool = self.store.query_active_products(ProductQuery(
            categories=categories,
            min_price=min_price,
            max_price=max_price,
            exclude_ids=context.exclude_ids,
            limit=self.config.CANDIDATE_POOL_SIZE,
        ))
        if not pool:
            return []

        scores = self.store.get_scores([p.id for p in pool])
        pool.sort(key=lambda p: (-_popularity(scores, p.id), p.id))
        return [p.id for p in pool]


# =============================================================================
# Interaction based
# =============================================================================

class SimilarGenerator(CandidateGenerator):
    """Products resembling the last viewed ones (category, seller, price)."""

    algorithm = "similar"

    def _generate(self, context: GeneratorContext) -> List[str]:
        if not context.user_id:
            return []

        viewed = dedupe_preserving_order(
            self.store.recent_views(context.user_id, self.config.SIMILAR_RECENT_VIEWS)
        )
        if not viewed:
            return []

        profile = build_view_profile(self.store.get_products_by_ids(viewed))
        if profile.is_empty:
            return []

        low, high = profile.price_window(self.config.SIMILAR_PRICE_BAND)
        pool = self.store.query_active_products(ProductQuery(
            categories=sorted(profile.categories),
            min_price=low,
            max_price=high,
            exclude_ids=context.exclude_ids | frozenset(viewed),
            limit=self.config.CANDIDATE_POOL_SIZE,
        ))
        if not pool:
            return []

        scores = self.store.get_scores([p.id for p in pool])
        pool.sort(key=lambda p: (-similarity_score(p, profile), -_popularity(scores, p.id), p.id))
        return [p.id for p in pool]


class CollaborativeGenerator(CandidateGenerator):
    """Users who viewed what you viewed also viewed..."""

    algorithm = "collaborative"

    def __init__(
        self,
        store,
        config=DEFAULT_GENERATOR_CONFIG,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(store, config)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _generate(self, context: GeneratorContext) -> List[str]:
        if not context.user_id:
            return []

        since = self.clock() - timedelta(days=self.config.COLLABORATIVE_WINDOW_DAYS)

        viewed = dedupe_preserving_order(self.store.recent_views(
            context.user_id, self.config.COLLABORATIVE_USER_VIEWS, since=since,
        ))
        if not viewed:
            return []

        rows = self.store.co_viewers(
            viewed, context.user_id, since, self.config.COLLABORATIVE_NEIGHBOR_ROWS,
        )
        if not rows:
            return []

        overlap = Counter(user_id for user_id, _ in rows)
        neighbours = [
            user_id for user_id, _ in
            sorted(overlap.items(), key=lambda kv: (-kv[1], kv[0]))[:self.config.COLLABORATIVE_TOP_NEIGHBORS]
        ]

        seen = set(viewed)
        frequency = Counter(
            pid for pid in self.store.views_by_users(neighbours, since)
            if pid not in seen and pid not in context.exclude_ids
        )
        return [pid for pid, _ in sorted(frequency.items(), key=lambda kv: (-kv[1], kv[0]))]
