"""
Models for the recommendation pipeline.

Models cover:
- Catalogue rows read from Supabase (products, scores, images)
- Derived per-user state (preferences, onboarding answers, signals)
- Transient generator / combiner values
- API request/response schemas
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Catalogue
# =============================================================================

class ProductImage(BaseModel):
    """One canonical product image (``product_images`` row)."""
    model_config = ConfigDict(extra="ignore")

    storage_path: Optional[str] = None
    is_primary: bool = False
    variants: Optional[Dict[str, Any]] = None


class StoreInfo(BaseModel):
    """Seller fields joined from ``users``."""
    model_config = ConfigDict(extra="ignore")

    business_name: Optional[str] = None
    logo_url: Optional[str] = None


class Product(BaseModel):
    """
    A marketplace listing.

    Only the fields the recommender reads are typed; joined seller and
    canonical image data are flattened into ``store`` / ``canonical_images``
    by ``from_row``.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    marketplace_category: Optional[str] = None
    marketplace_subcategory: Optional[str] = None
    bike_type: Optional[str] = None
    manufacturer_name: Optional[str] = None
    is_active: bool = True
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    # Display-only
    listing_type: Optional[str] = None
    use_custom_image: bool = False
    custom_image_url: Optional[str] = None
    images: List[Any] = Field(default_factory=list)
    store: Optional[StoreInfo] = None
    canonical_images: List[ProductImage] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Product":
        """Build from a PostgREST row, unpacking the ``users`` / ``canonical_products`` embeds."""
        data = dict(row)

        store = data.pop("users", None)
        if isinstance(store, list):
            store = store[0] if store else None

        canonical = data.pop("canonical_products", None)
        if isinstance(canonical, list):
            canonical = canonical[0] if canonical else None
        images = (canonical or {}).get("product_images") or []

        if data.get("images") is None:
            data["images"] = []
        if data.get("use_custom_image") is None:
            data["use_custom_image"] = False
        if data.get("is_active") is None:
            data["is_active"] = True

        return cls(
            **data,
            store=StoreInfo(**store) if store else None,
            canonical_images=[ProductImage(**img) for img in images],
        )


class ProductScore(BaseModel):
    """Engagement counters and derived scores (``product_scores`` row)."""
    model_config = ConfigDict(extra="ignore")

    product_id: str
    view_count: int = 0
    click_count: int = 0
    like_count: int = 0
    conversion_count: int = 0
    popularity_score: float = 0.0
    trending_score: float = 0.0


# =============================================================================
# Per-user state
# =============================================================================

class KeywordScore(BaseModel):
    keyword: str
    score: float = 1.0


class CategoryScore(BaseModel):
    category: str
    score: float = 0.0


class PriceRange(BaseModel):
    """Favorite price range, as aggregated from viewed products."""
    min: float = 0.0
    max: float = 0.0


class UserPreferences(BaseModel):
    """
    Derived preference state (``user_preferences`` row).

    Recomputed by the preference aggregation job; absent for brand new
    users, which is what drives the cold-start path.
    """
    model_config = ConfigDict(extra="ignore")

    user_id: str
    favorite_keywords: List[KeywordScore] = Field(default_factory=list)
    favorite_categories: List[CategoryScore] = Field(default_factory=list)
    favorite_price_range: Optional[PriceRange] = None
    favorite_brands: List[Any] = Field(default_factory=list)
    favorite_stores: List[Any] = Field(default_factory=list)
    interaction_count: int = 0

    def keyword_weights(self) -> List[Tuple[str, float]]:
        return [(k.keyword, k.score) for k in self.favorite_keywords]

    def category_names(self) -> List[str]:
        return [c.category for c in self.favorite_categories if c.category]


class OnboardingPreferences(BaseModel):
    """Answers from the onboarding flow (``users.preferences``)."""
    model_config = ConfigDict(extra="ignore")

    riding_styles: List[str] = Field(default_factory=list)   # mountain, road, gravel...
    preferred_brands: List[str] = Field(default_factory=list)
    experience_level: Optional[str] = None                   # beginner, intermediate, advanced
    budget_range: Optional[str] = None                       # "500-1000", "2500+"
    interests: List[str] = Field(default_factory=list)       # complete-bikes, wheels...

    def is_empty(self) -> bool:
        return not (
            self.riding_styles or self.preferred_brands or self.budget_range
            or self.interests or self.experience_level
        )


@dataclass(frozen=True)
class UserSignals:
    """Everything generator selection needs to know about the requester."""
    user_id: Optional[str] = None
    interaction_count: int = 0
    has_onboarding: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def has_history(self) -> bool:
        return self.is_authenticated and self.interaction_count > 0


# =============================================================================
# Generator / combiner values
# =============================================================================

@dataclass(frozen=True)
class GeneratorContext:
    """Per-request input handed to every generator."""
    user_id: Optional[str]
    limit: int
    exclude_ids: FrozenSet[str] = frozenset()
    signals: UserSignals = field(default_factory=UserSignals)


@dataclass
class RecommendationResult:
    """Ranked output of one generator. ``score`` is the generator's confidence."""
    product_ids: List[str]
    score: float
    algorithm: str

    @classmethod
    def empty(cls, algorithm: str) -> "RecommendationResult":
        return cls(product_ids=[], score=0.0, algorithm=algorithm)

    @property
    def is_empty(self) -> bool:
        return not self.product_ids


@dataclass
class GeneratorRun:
    """Diagnostics for one generator execution."""
    algorithm: str
    confidence: float
    count: int = 0
    elapsed_ms: float = 0.0
    timed_out: bool = False
    errored: bool = False
    product_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "confidence": self.confidence,
            "count": self.count,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "timed_out": self.timed_out,
            "errored": self.errored,
            "sample_ids": self.product_ids[:5],
        }


@dataclass
class ProductQuery:
    """
    Filter for ``ProductStore.query_active_products``.

    Every query is implicitly ``is_active = true``. ``product_ids`` restricts
    the result to those ids. ``text_terms`` matches a product whose name or
    description contains any term (case-insensitive).
    """
    product_ids: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    text_terms: Optional[List[str]] = None
    exclude_ids: FrozenSet[str] = frozenset()
    order: str = "id"   # "id" or "newest"
    limit: int = 50


# =============================================================================
# API Response Models
# =============================================================================

class ProductSummary(BaseModel):
    """Display-ready product returned to clients."""
    id: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    marketplace_category: Optional[str] = None
    marketplace_subcategory: Optional[str] = None
    bike_type: Optional[str] = None
    manufacturer_name: Optional[str] = None
    primary_image_url: str
    all_images: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None
    store_name: str
    store_logo_url: Optional[str] = None
    listing_type: Optional[str] = None
    product_scores: Optional[ProductScore] = None


class RecommendationMeta(BaseModel):
    total: int
    cache_hit: bool = False
    personalized: bool = False
    algorithm_version: str
    refreshed_at: Optional[datetime] = None


class RecommendationsResponse(BaseModel):
    """Response for the for-you feed."""
    success: bool = True
    recommendations: List[Any]
    meta: RecommendationMeta


class RefreshRequest(BaseModel):
    limit: Optional[int] = None


# =============================================================================
# Tracking
# =============================================================================

class InteractionEvent(BaseModel):
    """
    One client-reported interaction.

    The browser tracking queue sends camelCase keys (``sessionId``,
    ``interactionType``...); snake_case is accepted too.
    """
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[str] = None
    session_id: Optional[str] = None
    product_id: Optional[str] = None
    interaction_type: Optional[str] = None
    dwell_time_seconds: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: Optional[datetime] = None


class TrackingRequest(BaseModel):
    interactions: List[InteractionEvent]


class TrackingResponse(BaseModel):
    success: bool = True
    processed: int = 0
