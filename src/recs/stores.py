"""
Storage interfaces the recommendation engine reads from and writes to.

Generators depend only on these abstract stores, so the same pipeline runs
against Supabase in production (``recs.supabase_store.SupabaseStore``) and
against plain Python structures in development and tests
(``recs.memory_store.InMemoryStore``).

Implementations raise ``StoreError`` for any backend failure. "No row" is
never an error: lookups return ``None`` or an empty collection.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from recs.models import (
    OnboardingPreferences,
    Product,
    ProductQuery,
    ProductScore,
    UserPreferences,
)


class StoreError(Exception):
    """Raised when a backing store cannot serve a request."""
    pass


class ProductStore(ABC):

    @abstractmethod
    def query_active_products(self, query: ProductQuery) -> List[Product]:
        """Active products matching ``query``, ordered per ``query.order``."""

    @abstractmethod
    def get_products_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        """Rows for the given ids. Order is not guaranteed; inactive rows are included."""


class ScoreStore(ABC):

    @abstractmethod
    def get_scores(self, product_ids: Sequence[str]) -> Dict[str, ProductScore]:
        """Score rows keyed by product id. Missing ids have no entry."""

    @abstractmethod
    def top_scored(self, score_field: str, limit: int) -> List[ProductScore]:
        """
        Rows with ``score_field > 0``, ordered by ``score_field`` desc then
        product id asc. ``score_field`` is ``trending_score`` or
        ``popularity_score``.
        """


class InteractionStore(ABC):

    @abstractmethod
    def count_interactions(self, user_id: str) -> int:
        ...

    @abstractmethod
    def recent_views(self, user_id: str, limit: int, since: Optional[datetime] = None) -> List[str]:
        """Product ids of the user's most recent views, newest first."""

    @abstractmethod
    def co_viewers(
        self,
        product_ids: Sequence[str],
        exclude_user_id: str,
        since: datetime,
        limit: int,
    ) -> List[Tuple[str, str]]:
        """``(user_id, product_id)`` view rows by other users on ``product_ids``."""

    @abstractmethod
    def views_by_users(self, user_ids: Sequence[str], since: datetime) -> List[str]:
        """Product id of every view row by ``user_ids`` since ``since``."""

    @abstractmethod
    def record_interactions(self, rows: Iterable[Dict[str, Any]]) -> int:
        """Append interaction rows; returns the number written."""

    @abstractmethod
    def increment_product_score(self, product_id: str, interaction_type: str) -> None:
        ...


class PreferenceStore(ABC):

    @abstractmethod
    def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]:
        ...


class OnboardingStore(ABC):

    @abstractmethod
    def get_onboarding_preferences(self, user_id: str) -> Optional[OnboardingPreferences]:
        ...


class RecommendationCacheStore(ABC):

    @abstractmethod
    def get_cached(self, user_id: str, now: Optional[datetime] = None) -> Optional[List[str]]:
        """Cached product ids if an unexpired entry exists."""

    @abstractmethod
    def save(self, user_id: str, product_ids: Sequence[str], expires_at: datetime) -> None:
        ...

    @abstractmethod
    def clear(self, user_id: str) -> None:
        ...


class RecommendationStore(
    ProductStore,
    ScoreStore,
    InteractionStore,
    PreferenceStore,
    OnboardingStore,
    RecommendationCacheStore,
):
    """Convenience union: a single backend serving every store interface."""
    pass
