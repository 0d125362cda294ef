"""
Supabase-backed recommendation stores.

Tables:
- products                 (catalogue, joined to users + canonical_products)
- product_scores           (engagement counters, popularity / trending)
- user_interactions        (append-only interaction log)
- user_preferences         (derived per-user preferences)
- users.preferences        (onboarding answers)
- recommendation_cache     (per-user cached ranked ids)

RPC:
- increment_product_score(p_product_id, p_interaction_type)

Every PostgREST failure is re-raised as ``StoreError`` so generators can
degrade to an empty result without knowing about the client library.
Malformed rows are dropped from list reads; a malformed single-row read
(preferences) raises ``StoreError`` too.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from pydantic import ValidationError
from supabase import Client

from core.logging import get_logger
from recs.models import (
    OnboardingPreferences,
    Product,
    ProductQuery,
    ProductScore,
    UserPreferences,
)
from recs.stores import RecommendationStore, StoreError

logger = get_logger(__name__)

T = TypeVar("T")


# Columns the generators need for filtering and in-memory scoring
CANDIDATE_COLUMNS = (
    "id, display_name, description, price, marketplace_category, "
    "marketplace_subcategory, bike_type, manufacturer_name, is_active, "
    "user_id, created_at"
)

# Full display row for enrichment
ENRICHMENT_COLUMNS = (
    CANDIDATE_COLUMNS + ", listing_type, use_custom_image, custom_image_url, images, "
    "users!user_id(business_name, logo_url), "
    "canonical_products!canonical_product_id("
    "id, product_images!canonical_product_id(storage_path, is_primary, variants))"
)

SCORE_FIELDS = frozenset({"trending_score", "popularity_score"})

PERSONALIZED = "personalized"

# Characters with meaning inside a PostgREST or=(...) filter
_FILTER_RESERVED = str.maketrans({c: " " for c in ",()%*\\\""})


def _compact(row: Dict[str, Any]) -> Dict[str, Any]:
    """Drop NULL columns so model defaults apply."""
    return {k: v for k, v in row.items() if v is not None}


def _score_from_row(row: Dict[str, Any]) -> ProductScore:
    return ProductScore(**_compact(row))


def _ilike_term(term: str) -> str:
    return " ".join(term.translate(_FILTER_RESERVED).split())


class SupabaseStore(RecommendationStore):
    """All recommendation stores over one supabase-py ``Client``."""

    def __init__(self, client: Client, algorithm_version: str = "v1.0"):
        self.supabase = client
        self.algorithm_version = algorithm_version

    def _execute(self, operation: str, builder) -> Any:
        try:
            return builder.execute()
        except Exception as e:
            logger.warning("Supabase query failed", operation=operation, error=str(e))
            raise StoreError(f"{operation} failed: {e}") from e

    def _parse(self, operation: str, parse: Callable[[Any], T], row: Any) -> T:
        """Map one row to a model; a malformed row raises ``StoreError``."""
        try:
            return parse(row)
        except (ValidationError, TypeError, AttributeError) as e:
            logger.warning("Malformed row", operation=operation, error=str(e))
            raise StoreError(f"{operation} returned a malformed row: {e}") from e

    def _parse_rows(self, operation: str, parse: Callable[[Any], T], rows: Optional[List[Any]]) -> List[T]:
        """Map many rows, dropping the ones that fail validation."""
        parsed = []
        for row in rows or []:
            try:
                parsed.append(self._parse(operation, parse, row))
            except StoreError:
                continue
        return parsed

    # -------------------------------------------------------------------------
    # ProductStore
    # -------------------------------------------------------------------------

    def query_active_products(self, query: ProductQuery) -> List[Product]:
        if query.categories is not None and not query.categories:
            return []
        if query.product_ids is not None and not query.product_ids:
            return []

        builder = self.supabase.table("products") \
            .select(CANDIDATE_COLUMNS) \
            .eq("is_active", True)

        if query.product_ids:
            builder = builder.in_("id", list(dict.fromkeys(query.product_ids)))
        if query.categories:
            builder = builder.in_("marketplace_category", list(query.categories))
        if query.min_price is not None:
            builder = builder.gte("price", query.min_price)
        if query.max_price is not None:
            builder = builder.lte("price", query.max_price)

        terms = [_ilike_term(t) for t in (query.text_terms or [])]
        terms = [t for t in terms if t]
        if terms:
            clauses = []
            for t in terms:
                clauses.append(f"display_name.ilike.%{t}%")
                clauses.append(f"description.ilike.%{t}%")
            builder = builder.or_(",".join(clauses))

        if query.exclude_ids:
            builder = builder.not_.in_("id", sorted(query.exclude_ids))

        if query.order == "newest":
            builder = builder.order("created_at", desc=True).order("id")
        else:
            builder = builder.order("id")

        result = self._execute("query_active_products", builder.limit(query.limit))
        return self._parse_rows("query_active_products", Product.from_row, result.data)

    def get_products_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return []

        result = self._execute(
            "get_products_by_ids",
            self.supabase.table("products").select(ENRICHMENT_COLUMNS).in_("id", ids),
        )
        return self._parse_rows("get_products_by_ids", Product.from_row, result.data)

    # -------------------------------------------------------------------------
    # ScoreStore
    # -------------------------------------------------------------------------

    def get_scores(self, product_ids: Sequence[str]) -> Dict[str, ProductScore]:
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}

        result = self._execute(
            "get_scores",
            self.supabase.table("product_scores").select("*").in_("product_id", ids),
        )
        return {
            score.product_id: score
            for score in self._parse_rows("get_scores", _score_from_row, result.data)
        }

    def top_scored(self, score_field: str, limit: int) -> List[ProductScore]:
        if score_field not in SCORE_FIELDS:
            raise ValueError(f"Unknown score field: {score_field}")

        result = self._execute(
            f"top_scored[{score_field}]",
            self.supabase.table("product_scores")
            .select("*")
            .gt(score_field, 0)
            .order(score_field, desc=True)
            .order("product_id")
            .limit(limit),
        )
        return self._parse_rows("top_scored", _score_from_row, result.data)

    # -------------------------------------------------------------------------
    # InteractionStore
    # -------------------------------------------------------------------------

    def count_interactions(self, user_id: str) -> int:
        result = self._execute(
            "count_interactions",
            self.supabase.table("user_interactions")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .limit(1),
        )
        return result.count or 0

    def recent_views(self, user_id: str, limit: int, since: Optional[datetime] = None) -> List[str]:
        builder = self.supabase.table("user_interactions") \
            .select("product_id, created_at") \
            .eq("user_id", user_id) \
            .eq("interaction_type", "view") \
            .not_.is_("product_id", "null")
        if since is not None:
            builder = builder.gte("created_at", since.isoformat())

        result = self._execute(
            "recent_views",
            builder.order("created_at", desc=True).limit(limit),
        )
        return [str(row["product_id"]) for row in (result.data or []) if row.get("product_id")]

    def co_viewers(
        self,
        product_ids: Sequence[str],
        exclude_user_id: str,
        since: datetime,
        limit: int,
    ) -> List[Tuple[str, str]]:
        if not product_ids:
            return []

        result = self._execute(
            "co_viewers",
            self.supabase.table("user_interactions")
            .select("user_id, product_id")
            .in_("product_id", list(product_ids))
            .neq("user_id", exclude_user_id)
            .eq("interaction_type", "view")
            .gte("created_at", since.isoformat())
            .limit(limit),
        )
        return [
            (str(row["user_id"]), str(row["product_id"]))
            for row in (result.data or [])
            if row.get("user_id") and row.get("product_id")
        ]

    def views_by_users(self, user_ids: Sequence[str], since: datetime) -> List[str]:
        if not user_ids:
            return []

        result = self._execute(
            "views_by_users",
            self.supabase.table("user_interactions")
            .select("product_id")
            .in_("user_id", list(user_ids))
            .eq("interaction_type", "view")
            .gte("created_at", since.isoformat()),
        )
        return [str(row["product_id"]) for row in (result.data or []) if row.get("product_id")]

    def record_interactions(self, rows: Iterable[Dict[str, Any]]) -> int:
        rows = [
            {k: v.isoformat() if isinstance(v, datetime) else v for k, v in row.items()}
            for row in rows
        ]
        if not rows:
            return 0

        result = self._execute(
            "record_interactions",
            self.supabase.table("user_interactions").insert(rows),
        )
        return len(result.data) if result.data else len(rows)

    def increment_product_score(self, product_id: str, interaction_type: str) -> None:
        self._execute(
            "increment_product_score",
            self.supabase.rpc("increment_product_score", {
                "p_product_id": product_id,
                "p_interaction_type": interaction_type,
            }),
        )

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    def get_user_preferences(self, user_id: str) -> Optional[UserPreferences]:
        result = self._execute(
            "get_user_preferences",
            self.supabase.table("user_preferences").select("*").eq("user_id", user_id).limit(1),
        )
        if not result.data:
            return None
        return self._parse(
            "get_user_preferences",
            lambda row: UserPreferences(**_compact(row)),
            result.data[0],
        )

    def get_onboarding_preferences(self, user_id: str) -> Optional[OnboardingPreferences]:
        result = self._execute(
            "get_onboarding_preferences",
            self.supabase.table("users").select("preferences").eq("user_id", user_id).limit(1),
        )
        if not result.data:
            return None

        raw = result.data[0].get("preferences")
        if not raw or not isinstance(raw, dict):
            return None

        prefs = self._parse(
            "get_onboarding_preferences",
            lambda row: OnboardingPreferences(**_compact(row)),
            raw,
        )
        return None if prefs.is_empty() else prefs

    # -------------------------------------------------------------------------
    # RecommendationCacheStore
    # -------------------------------------------------------------------------

    def get_cached(self, user_id: str, now: Optional[datetime] = None) -> Optional[List[str]]:
        now = now or datetime.now(timezone.utc)
        result = self._execute(
            "get_cached",
            self.supabase.table("recommendation_cache")
            .select("recommended_products, expires_at")
            .eq("user_id", user_id)
            .eq("recommendation_type", PERSONALIZED)
            .gt("expires_at", now.isoformat())
            .order("created_at", desc=True)
            .limit(1),
        )
        if not result.data:
            return None
        return [str(pid) for pid in (result.data[0].get("recommended_products") or [])]

    def save(self, user_id: str, product_ids: Sequence[str], expires_at: datetime) -> None:
        self._execute(
            "save_cache",
            self.supabase.table("recommendation_cache").insert({
                "user_id": user_id,
                "recommended_products": list(product_ids),
                "recommendation_type": PERSONALIZED,
                "score": 1.0,
                "algorithm_version": self.algorithm_version,
                "expires_at": expires_at.isoformat(),
            }),
        )

    def clear(self, user_id: str) -> None:
        self._execute(
            "clear_cache",
            self.supabase.table("recommendation_cache")
            .delete()
            .eq("user_id", user_id)
            .eq("recommendation_type", PERSONALIZED),
        )
