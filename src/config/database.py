"""
Supabase client for the recommendation service.

The marketplace catalogue, score aggregates, interaction log, user
preferences and the recommendation cache all live in one Supabase project.
The store layer and the health checks share a single service-role client.
"""

from functools import lru_cache
from typing import Optional

from supabase import Client, create_client

from config.settings import get_settings
from core.logging import get_logger


logger = get_logger(__name__)


class SupabaseClientError(Exception):
    """The service-role client could not be built (missing or rejected credentials)."""
    pass


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Service-role client, created on first use.

    Raises:
        SupabaseClientError: If the URL or key is missing, or the client
            library rejects them.
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise SupabaseClientError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    try:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        raise SupabaseClientError(f"Failed to create Supabase client: {e}") from e

    logger.info("Supabase client created", url=settings.supabase_url)
    return client


def get_supabase_client_optional() -> Optional[Client]:
    """Like ``get_supabase_client`` but returns None, for probes that report "not_configured"."""
    try:
        return get_supabase_client()
    except SupabaseClientError as e:
        logger.warning("Supabase client unavailable", error=str(e))
        return None
