"""
Health check endpoints.
"""

from typing import Any, Dict

from fastapi import APIRouter

from config.database import get_supabase_client_optional
from config.settings import get_settings


router = APIRouter(tags=["Health"])

SERVICE_NAME = "bike-recommendation-api"


@router.get("/health")
def health_check() -> Dict[str, Any]:
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
    }


@router.get("/health/detailed")
def detailed_health_check() -> Dict[str, Any]:
    """
    Detailed health check with dependency status.

    Checks:
    - Supabase reachable (one-row read from ``products``)
    - Recommendation engine configuration
    """
    settings = get_settings()

    supabase_status = "unknown"
    supabase_error = None
    try:
        client = get_supabase_client_optional()
        if client:
            result = client.table("products").select("id").eq("is_active", True).limit(1).execute()
            supabase_status = "connected" if result.data else "empty"
        else:
            supabase_status = "not_configured"
    except Exception as e:
        supabase_status = "error"
        supabase_error = str(e)

    return {
        "status": "healthy" if supabase_status == "connected" else "degraded",
        "service": SERVICE_NAME,
        "environment": settings.environment,
        "checks": {
            "config": "ok",
            "supabase": {
                "status": supabase_status,
                "error": supabase_error,
            },
            "engine": {
                "algorithm_version": settings.algorithm_version,
                "generator_timeout_seconds": settings.generator_timeout_seconds,
                "cache_enabled": settings.recommendation_cache_enabled,
                "auth_configured": bool(settings.supabase_jwt_secret),
            },
        },
    }


@router.get("/ready")
def readiness_check() -> Dict[str, str]:
    """Kubernetes-style readiness probe."""
    if get_supabase_client_optional() is None:
        return {"status": "not_ready", "reason": "database_not_configured"}
    return {"status": "ready"}


@router.get("/live")
def liveness_check() -> Dict[str, str]:
    """Kubernetes-style liveness probe."""
    return {"status": "alive"}
