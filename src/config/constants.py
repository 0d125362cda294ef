"""
Application constants and algorithm configuration.

These are values that don't change based on environment but may need
to be tuned or referenced across the codebase.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet


# =============================================================================
# Generator Confidence
# =============================================================================

# Merge priority of each candidate generator. Higher confidence results are
# placed first; a product keeps the slot of the first generator that emits it.
ALGORITHM_CONFIDENCE: Dict[str, float] = {
    "onboarding_based": 1.0,
    "trending": 1.0,
    "keyword_based": 0.95,
    "category_based": 0.9,
    "similar": 0.85,
    "collaborative": 0.8,
    "popular": 0.7,
}


# =============================================================================
# Candidate Generator Configuration
# =============================================================================

@dataclass(frozen=True)
class GeneratorConfig:
    """Tuning knobs for the individual candidate generators."""

    # Keyword matching
    KEYWORD_TOP_N: int = 5
    KEYWORD_FETCH_MULTIPLIER: int = 3
    KEYWORD_RELEVANCE_FACTOR: float = 10.0

    # Onboarding cold start
    ONBOARDING_POOL_SIZE: int = 500

    # Category affinity
    CATEGORY_TOP_N: int = 3
    CATEGORY_PRICE_FLOOR: float = 0.7   # 30% below favorite min
    CATEGORY_PRICE_CEILING: float = 1.3  # 30% above favorite max

    # Similar to recently viewed
    SIMILAR_RECENT_VIEWS: int = 10
    SIMILAR_PRICE_BAND: float = 0.5

    # Collaborative filtering
    COLLABORATIVE_WINDOW_DAYS: int = 30
    COLLABORATIVE_USER_VIEWS: int = 20
    COLLABORATIVE_NEIGHBOR_ROWS: int = 1000
    COLLABORATIVE_TOP_NEIGHBORS: int = 10

    # Category / similar candidates ranked in memory by popularity
    CANDIDATE_POOL_SIZE: int = 500

    # Trending / popular over-fetch to survive active + exclusion filtering
    SCORE_OVERFETCH_FACTOR: int = 2


DEFAULT_GENERATOR_CONFIG = GeneratorConfig()


# =============================================================================
# Onboarding Scoring Weights
# =============================================================================

@dataclass(frozen=True)
class OnboardingWeights:
    """Points awarded per onboarding preference match."""

    brand: int = 5
    riding_style: int = 3
    interest: int = 2
    within_budget: int = 1


DEFAULT_ONBOARDING_WEIGHTS = OnboardingWeights()


# =============================================================================
# Similarity Scoring Weights
# =============================================================================

@dataclass(frozen=True)
class SimilarityWeights:
    """Points awarded when a candidate resembles the user's recent views."""

    category: int = 3
    subcategory: int = 2
    same_store: int = 1
    close_price: int = 2     # within 20% of the average viewed price
    near_price: int = 1      # within 50% of the average viewed price

    close_price_ratio: float = 0.2
    near_price_ratio: float = 0.5


DEFAULT_SIMILARITY_WEIGHTS = SimilarityWeights()


# =============================================================================
# Interaction Tracking
# =============================================================================

@dataclass(frozen=True)
class TrackingConfig:
    """Validation rules for batched interaction tracking."""

    MAX_BATCH_SIZE: int = 100
    VALID_INTERACTION_TYPES: FrozenSet[str] = field(default_factory=lambda: frozenset({
        "view", "click", "search", "add_to_cart", "like", "unlike",
    }))
    # Interaction types that do not move product score counters
    UNSCORED_TYPES: FrozenSet[str] = field(default_factory=lambda: frozenset({"search"}))


DEFAULT_TRACKING_CONFIG = TrackingConfig()


# =============================================================================
# Enrichment
# =============================================================================

PLACEHOLDER_IMAGE_URL = "/placeholder-product.svg"
UNKNOWN_STORE_NAME = "Unknown Store"
