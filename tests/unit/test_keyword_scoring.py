"""
Tests for keyword frequency scoring.
"""

import pytest

from scoring.keywords import (
    count_occurrences,
    keyword_match_score,
    keyword_rank_key,
    product_text,
    top_keywords,
)


class TestCountOccurrences:

    def test_case_insensitive(self):
        assert count_occurrences("Carbon frame, CARBON fork", "carbon") == 2

    def test_non_overlapping(self):
        assert count_occurrences("aaaa", "aa") == 2

    def test_literal_not_regex(self):
        assert count_occurrences("Size M (medium)", "(medium)") == 1
        assert count_occurrences("29er wheels", "2.er") == 0

    def test_empty_inputs(self):
        assert count_occurrences("", "carbon") == 0
        assert count_occurrences("carbon", "") == 0


class TestKeywordMatchScore:

    def test_weighted_sum(self):
        text = product_text("Carbon road bike", "Carbon fork")
        keywords = [("carbon", 3.0), ("road", 1.0)]

        assert keyword_match_score(text, keywords) == 7.0

    def test_missing_weight_defaults_to_one(self):
        assert keyword_match_score("gravel bike", [("gravel", 0)]) == 1.0
        assert keyword_match_score("gravel bike", [("gravel", None)]) == 1.0

    def test_no_match_scores_zero(self):
        assert keyword_match_score("mountain bike", [("carbon", 3.0)]) == 0.0


class TestTopKeywords:

    def test_orders_by_score_and_truncates(self):
        keywords = [("road", 1.0), ("carbon", 5.0), ("gravel", 3.0), ("shimano", 4.0)]

        assert [kw for kw, _ in top_keywords(keywords, n=2)] == ["carbon", "shimano"]

    def test_skips_blank_and_duplicate_keywords(self):
        keywords = [("Carbon", 5.0), ("  ", 9.0), ("carbon", 4.0), ("road", 1.0)]

        assert top_keywords(keywords, n=5) == [("Carbon", 5.0), ("road", 1.0)]

    def test_equal_scores_keep_stored_order(self):
        keywords = [("b", 1.0), ("a", 1.0)]

        assert top_keywords(keywords) == [("b", 1.0), ("a", 1.0)]


class TestRankKey:

    def test_relevance_dominates_popularity(self):
        strong = keyword_rank_key(7.0, 0.0)
        weak_but_popular = keyword_rank_key(1.0, 50.0)

        assert strong == 70.0
        assert weak_but_popular == 60.0
        assert strong > weak_but_popular


def test_product_text_skips_missing_fields():
    assert product_text("Trek Domane", None, "Trek") == "trek domane trek"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
