"""
Interaction tracking endpoint.

POST /api/tracking
Body: {"interactions": [{"sessionId": ..., "productId": ..., "interactionType": "view", ...}]}
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_recommendation_service
from core.auth import SupabaseUser, get_current_user
from core.logging import get_logger
from recs.interaction_tracker import TrackingValidationError
from recs.models import TrackingRequest, TrackingResponse
from recs.recommendation_service import RecommendationService
from recs.stores import StoreError


logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Tracking"])


@router.post("/tracking", response_model=TrackingResponse)
def track_interactions(
    request: TrackingRequest,
    user: Optional[SupabaseUser] = Depends(get_current_user),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """
    Store a batch of client interactions (max 100).

    Invalid items (no session id, unknown type) are skipped. For signed-in
    callers the verified user id replaces any client-supplied one.
    """
    if not request.interactions:
        return TrackingResponse(success=True, processed=0)

    try:
        processed = service.track(request.interactions, user_id=user.id if user else None)
    except TrackingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        logger.error("Failed to store interactions", error=str(e), batch_size=len(request.interactions))
        raise HTTPException(status_code=500, detail="Failed to store interactions")

    return TrackingResponse(success=True, processed=processed)
