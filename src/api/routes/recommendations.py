"""
"For You" recommendation endpoints.

Endpoints:
- GET  /api/recommendations/for-you   Personalized (or anonymous) feed
- POST /api/recommendations/for-you   Drop the cached feed and regenerate
- GET  /api/recommendations/debug     Per-generator diagnostics
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from api.dependencies import get_recommendation_service
from core.auth import SupabaseUser, get_current_user, require_auth
from core.logging import get_logger
from core.utils import parse_csv_ids
from recs.models import RecommendationMeta, RecommendationsResponse, RefreshRequest
from recs.recommendation_service import RecommendationOutcome, RecommendationService


logger = get_logger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


def _response(outcome: RecommendationOutcome, service: RecommendationService, enrich: bool = True):
    if enrich:
        recommendations = [p.model_dump() for p in (outcome.products or [])]
    else:
        recommendations = [{"id": pid} for pid in outcome.product_ids]

    return RecommendationsResponse(
        success=True,
        recommendations=recommendations,
        meta=RecommendationMeta(
            total=len(outcome.product_ids),
            cache_hit=outcome.cache_hit,
            personalized=outcome.personalized,
            algorithm_version=service.settings.algorithm_version,
            refreshed_at=outcome.refreshed_at,
        ),
    )


@router.get("/for-you", response_model=RecommendationsResponse)
def get_for_you(
    limit: Optional[int] = Query(None, ge=0, description="Max results (capped at 100)"),
    refresh: bool = Query(False, description="Bypass the cached feed"),
    enrich: bool = Query(True, description="Return full products instead of bare ids"),
    exclude: Optional[str] = Query(None, description="Comma-separated product ids to leave out"),
    user: Optional[SupabaseUser] = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """
    Ranked recommendations for the caller.

    Anonymous callers get trending / popular products; signed-in callers get
    the full hybrid mix and a 15 minute cached feed.
    """
    outcome = service.recommend(
        user_id=user.id if user else None,
        limit=limit,
        exclude_product_ids=parse_csv_ids(exclude),
        refresh=refresh,
        enrich=enrich,
    )
    return _response(outcome, service, enrich=enrich)


@router.post("/for-you", response_model=RecommendationsResponse)
def refresh_for_you(
    request: Optional[RefreshRequest] = Body(None),
    user: SupabaseUser = Depends(require_auth),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Regenerate the caller's feed, replacing the cached one."""
    outcome = service.refresh(user.id, limit=request.limit if request else None)
    return _response(outcome, service)


@router.get("/debug")
def debug_recommendations(
    limit: Optional[int] = Query(None, ge=0),
    exclude: Optional[str] = Query(None),
    user: Optional[SupabaseUser] = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service),
) -> Dict[str, Any]:
    """Which generators ran for the caller, what each returned and how long it took."""
    return service.debug(
        user.id if user else None,
        limit=limit,
        exclude_product_ids=parse_csv_ids(exclude),
    )
