"""
FastAPI application for the bike marketplace recommendation service.

Run:
    uvicorn api.app:create_app --factory --reload              # development
    uvicorn api.app:app --host 0.0.0.0 --port 8080 --workers 4 # production
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.database import SupabaseClientError
from config.settings import get_settings
from core.logging import configure_logging, get_logger
from core.middleware import RequestTracingMiddleware
from recs.hybrid import RecommendationError


logger = get_logger(__name__)

API_DESCRIPTION = """
Hybrid "For You" recommendations for the bike marketplace.

- `GET  /api/recommendations/for-you` ranked feed (anonymous or signed in)
- `POST /api/recommendations/for-you` drop the cached feed and regenerate
- `GET  /api/recommendations/debug` per-generator diagnostics
- `POST /api/tracking` batched interaction tracking

Probes: `/health`, `/health/detailed`, `/ready`, `/live`.
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Configure logging; in production also build the recommendation service
    up front so the first shopper doesn't pay for the Supabase handshake.
    """
    settings = get_settings()
    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )
    logger.info(
        "Recommendation API starting",
        environment=settings.environment,
        cache_enabled=settings.recommendation_cache_enabled,
        generator_timeout_seconds=settings.generator_timeout_seconds,
    )

    if settings.is_production:
        from api.dependencies import get_recommendation_service
        try:
            get_recommendation_service()
        except SupabaseClientError as e:
            # /ready reports it; requests will retry the build
            logger.error("Recommendation service warm-up failed", error=str(e))

    yield

    logger.info("Recommendation API stopped")


async def recommendation_error_handler(request: Request, exc: RecommendationError) -> JSONResponse:
    logger.error("Recommendations unavailable", error=str(exc), path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to generate recommendations", "success": False},
    )


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Bike Marketplace Recommendation API",
        description=API_DESCRIPTION,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # first added = outermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )
    app.add_middleware(RequestTracingMiddleware)

    app.add_exception_handler(RecommendationError, recommendation_error_handler)

    from api.routes import health, recommendations, tracking
    app.include_router(health.router)
    app.include_router(recommendations.router)
    app.include_router(tracking.router)

    return app


app = create_app()
