"""
Shared FastAPI dependencies.

The recommendation service is built once per process on first use.
Tests swap it out with ``app.dependency_overrides[get_recommendation_service]``.
"""

from functools import lru_cache

from config.database import get_supabase_client
from config.settings import get_settings
from core.logging import get_logger
from recs.recommendation_service import RecommendationService
from recs.supabase_store import SupabaseStore


logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_recommendation_service() -> RecommendationService:
    """
    Get or create the recommendation service.

    Raises:
        SupabaseClientError: If the Supabase client cannot be created
    """
    settings = get_settings()
    store = SupabaseStore(get_supabase_client(), algorithm_version=settings.algorithm_version)
    logger.info(
        "Recommendation service initialized",
        cache_enabled=settings.recommendation_cache_enabled,
        generator_timeout_seconds=settings.generator_timeout_seconds,
    )
    return RecommendationService(store, settings=settings)
