"""
Pytest configuration and shared fixtures for the recommendation service tests.
"""
import os
import sys
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))

# Settings require these; unit tests never talk to a real project
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

def make_product(product_id: str, **overrides):
    """Build a Product with bike-shop defaults."""
    from recs.models import Product

    data = {
        "id": product_id,
        "display_name": f"Product {product_id}",
        "description": "",
        "price": 1000.0,
        "marketplace_category": "Bicycles",
        "marketplace_subcategory": None,
        "bike_type": None,
        "manufacturer_name": None,
        "is_active": True,
        "user_id": "store-1",
        "created_at": NOW - timedelta(days=1),
    }
    data.update(overrides)
    return Product(**data)


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    from recs.memory_store import InMemoryStore
    return InMemoryStore()


@pytest.fixture
def bike_catalogue(memory_store):
    """
    A small bike shop catalogue.

        road-1    Trek carbon road bike       $1200  trending 9, popular 5
        road-2    Specialized road bike       $2400  trending 4, popular 8
        mtb-1     Giant mountain bike         $ 900  trending 7, popular 2
        wheel-1   Carbon wheelset             $ 800  popular 3
        helmet-1  Road helmet (inactive)      $ 150  trending 10
        kit-1     Apparel jersey              $  90  no scores
    """
    store = memory_store
    store.add_product(
        make_product(
            "road-1", display_name="Trek Domane carbon road bike",
            description="Carbon frame, carbon fork", price=1200.0,
            bike_type="Road", manufacturer_name="Trek", user_id="store-1",
            created_at=NOW - timedelta(days=5),
        ),
        trending_score=9.0, popularity_score=5.0,
    )
    store.add_product(
        make_product(
            "road-2", display_name="Specialized Allez", description="Aluminium road bike",
            price=2400.0, bike_type="Road", manufacturer_name="Specialized", user_id="store-2",
            created_at=NOW - timedelta(days=2),
        ),
        trending_score=4.0, popularity_score=8.0,
    )
    store.add_product(
        make_product(
            "mtb-1", display_name="Giant Talon", description="Hardtail mountain bike",
            price=900.0, bike_type="Mountain", manufacturer_name="Giant", user_id="store-1",
            created_at=NOW - timedelta(days=10),
        ),
        trending_score=7.0, popularity_score=2.0,
    )
    store.add_product(
        make_product(
            "wheel-1", display_name="Carbon wheelset", description="Tubeless ready",
            price=800.0, marketplace_category="Wheels & Tyres", user_id="store-2",
            created_at=NOW - timedelta(days=3),
        ),
        popularity_score=3.0,
    )
    store.add_product(
        make_product(
            "helmet-1", display_name="Road helmet", price=150.0,
            marketplace_category="Apparel", is_active=False,
            created_at=NOW - timedelta(hours=1),
        ),
        trending_score=10.0,
    )
    store.add_product(
        make_product(
            "kit-1", display_name="Club jersey", price=90.0,
            marketplace_category="Apparel", user_id="store-3",
            created_at=NOW - timedelta(days=20),
        ),
    )
    return store


@pytest.fixture
def settings():
    """Test settings (cache on, short generator timeout)."""
    from config.settings import get_settings_for_testing
    return get_settings_for_testing(generator_timeout_seconds=2.0)


# ============================================================================
# Fixtures: Mock Services
# ============================================================================

@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock RPC calls
    mock_client.rpc.return_value.execute.return_value.data = []

    # Mock table operations
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.insert.return_value.execute.return_value.data = [{"id": "test"}]

    return mock_client


# ============================================================================
# Markers auto-use
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "supabase: marks tests that require Supabase")


# ============================================================================
# JWT Token Generation
# ============================================================================

def generate_test_jwt(user_id: str = "test-user-001", exp_hours: int = 24) -> str:
    """
    Generate a Supabase-style access token signed with SUPABASE_JWT_SECRET.

    Args:
        user_id: The user ID to include in the token
        exp_hours: Hours until token expires (negative for an expired token)
    """
    import jwt

    now = int(time.time())
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "role": "authenticated",
        "email": f"{user_id}@test.com",
        "exp": now + (exp_hours * 3600),
        "iat": now,
        "is_anonymous": False,
    }

    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def test_jwt_token() -> str:
    return generate_test_jwt()


@pytest.fixture
def auth_headers(test_jwt_token: str) -> dict:
    """Auth headers with a Bearer token for ``test-user-001``."""
    return {"Authorization": f"Bearer {test_jwt_token}"}


# ============================================================================
# Skip conditions
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Auto-skip integration tests if no server URL is configured."""
    skip_integration = pytest.mark.skip(reason="Integration tests require running server")
    skip_supabase = pytest.mark.skip(reason="Supabase tests require credentials")

    server_url = os.getenv("TEST_SERVER_URL")
    has_real_supabase = os.getenv("SUPABASE_URL", "").endswith(".supabase.co") and \
        os.getenv("SUPABASE_URL") != "https://test.supabase.co"

    for item in items:
        if "integration" in item.keywords and not server_url:
            item.add_marker(skip_integration)
        if "supabase" in item.keywords and not has_real_supabase:
            item.add_marker(skip_supabase)
