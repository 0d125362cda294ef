"""
Tests for RecommendationService: limits, cache behaviour, refresh, enrichment errors.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from conftest import NOW
from config.settings import get_settings_for_testing
from recs.hybrid import RecommendationError
from recs.models import InteractionEvent
from recs.recommendation_service import RecommendationService
from recs.stores import StoreError

ANONYMOUS_FEED = ["road-1", "mtb-1", "road-2", "wheel-1"]


@pytest.fixture
def service(bike_catalogue, settings):
    return RecommendationService(bike_catalogue, settings=settings, clock=lambda: NOW)


class TestClampLimit:

    @pytest.mark.parametrize("requested, expected", [
        (None, 50),
        (10, 10),
        (100, 100),
        (500, 100),
        (0, 0),
        (-3, 0),
    ])
    def test_clamp(self, service, requested, expected):
        assert service.clamp_limit(requested) == expected


class TestRecommend:

    def test_anonymous_feed_is_not_cached(self, service, bike_catalogue):
        outcome = service.recommend(None, 10)

        assert outcome.product_ids == ANONYMOUS_FEED
        assert [p.id for p in outcome.products] == ANONYMOUS_FEED
        assert outcome.personalized is False
        assert outcome.cache_hit is False
        assert bike_catalogue.cache == {}

    def test_authenticated_miss_writes_cache(self, service, bike_catalogue):
        outcome = service.recommend("rider-1", 10)

        assert outcome.personalized is True
        assert outcome.cache_hit is False
        cached_ids, expires_at = bike_catalogue.cache["rider-1"]
        assert cached_ids == outcome.product_ids
        assert expires_at == NOW + timedelta(minutes=15)

    def test_cache_hit_short_circuits_generation(self, bike_catalogue, settings):
        combiner = MagicMock()
        service = RecommendationService(bike_catalogue, settings=settings, combiner=combiner, clock=lambda: NOW)
        bike_catalogue.save("rider-1", ["kit-1", "road-2"], NOW + timedelta(minutes=5))

        outcome = service.recommend("rider-1", 2)

        assert outcome.cache_hit is True
        assert outcome.product_ids == ["kit-1", "road-2"]
        combiner.recommend.assert_not_called()

    def test_cache_hit_filters_exclusions(self, service, bike_catalogue):
        bike_catalogue.save("rider-1", ["kit-1", "road-2", "road-1"], NOW + timedelta(minutes=5))

        outcome = service.recommend("rider-1", 2, exclude_product_ids=["kit-1"])

        assert outcome.product_ids == ["road-2", "road-1"]
        assert outcome.cache_hit is True

    def test_short_cached_list_is_a_miss_for_a_larger_limit(self, service, bike_catalogue):
        service.recommend("rider-1", 2)

        outcome = service.recommend("rider-1", 4)

        assert outcome.cache_hit is False
        assert outcome.product_ids == ANONYMOUS_FEED
        assert bike_catalogue.cache["rider-1"][0] == ANONYMOUS_FEED

    def test_expired_cache_is_ignored(self, service, bike_catalogue):
        bike_catalogue.save("rider-1", ["kit-1"], NOW - timedelta(seconds=1))

        outcome = service.recommend("rider-1", 10)

        assert outcome.cache_hit is False
        assert outcome.product_ids == ANONYMOUS_FEED

    def test_exclusions_skip_cache_write(self, service, bike_catalogue):
        outcome = service.recommend("rider-1", 10, exclude_product_ids=["road-1"])

        assert "road-1" not in outcome.product_ids
        assert "rider-1" not in bike_catalogue.cache

    def test_cache_disabled(self, bike_catalogue):
        settings = get_settings_for_testing(recommendation_cache_enabled=False)
        service = RecommendationService(bike_catalogue, settings=settings, clock=lambda: NOW)
        bike_catalogue.save("rider-1", ["kit-1"], NOW + timedelta(minutes=5))

        outcome = service.recommend("rider-1", 10)

        assert outcome.cache_hit is False
        assert outcome.product_ids == ANONYMOUS_FEED

    def test_cache_read_failure_falls_through(self, bike_catalogue, settings):
        store = MagicMock(wraps=bike_catalogue)
        store.get_cached.side_effect = StoreError("timeout")
        combiner = MagicMock()
        combiner.recommend.return_value = ["road-1"]
        service = RecommendationService(store, settings=settings, combiner=combiner, clock=lambda: NOW)

        outcome = service.recommend("rider-1", 10, enrich=False)

        assert outcome.product_ids == ["road-1"]
        assert outcome.products is None

    def test_zero_limit(self, bike_catalogue, settings):
        combiner = MagicMock()
        service = RecommendationService(bike_catalogue, settings=settings, combiner=combiner)

        assert service.recommend(None, 0).product_ids == []
        combiner.recommend.assert_not_called()

    def test_enrichment_failure_raises(self, bike_catalogue, settings):
        enricher = MagicMock()
        enricher.enrich.side_effect = StoreError("products unreachable")
        service = RecommendationService(bike_catalogue, settings=settings, enricher=enricher)

        with pytest.raises(RecommendationError):
            service.get_recommendations(None, 10)

    def test_get_recommendations_returns_summaries(self, service):
        summaries = service.get_recommendations(None, 2)

        assert [s.id for s in summaries] == ["road-1", "mtb-1"]
        assert summaries[0].store_name == "Unknown Store"


class TestRefresh:

    def test_refresh_regenerates_and_rewrites_cache(self, service, bike_catalogue):
        bike_catalogue.save("rider-1", ["kit-1"], NOW + timedelta(minutes=5))

        outcome = service.refresh("rider-1", 10)

        assert outcome.cache_hit is False
        assert outcome.refreshed_at == NOW
        assert outcome.product_ids == ANONYMOUS_FEED
        assert bike_catalogue.cache["rider-1"][0] == ANONYMOUS_FEED


class TestDebugAndTrack:

    def test_debug_report(self, service, bike_catalogue):
        bike_catalogue.save("rider-1", ["kit-1", "road-2"], NOW + timedelta(minutes=5))

        report = service.debug("rider-1", 10)

        assert report["algorithm_version"] == "v1.0"
        assert report["cache_enabled"] is True
        assert report["cached_count"] == 2
        assert report["selected"] == ["trending", "popular"]

    def test_debug_does_not_write_cache(self, service, bike_catalogue):
        service.debug("rider-1", 10)

        assert "rider-1" not in bike_catalogue.cache

    def test_track_delegates_to_tracker(self, service, bike_catalogue):
        events = [InteractionEvent(session_id="s1", product_id="road-1", interaction_type="view")]

        assert service.track(events, user_id="rider-1") == 1
        assert bike_catalogue.count_interactions("rider-1") == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
