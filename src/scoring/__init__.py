"""
Shared Scoring Module.

Pure scoring helpers used by the candidate generators in ``recs/``.

Quick start::

    from scoring import OnboardingScorer, parse_budget_range, keyword_match_score

    budget = parse_budget_range("1000-2500")
    score = OnboardingScorer().score_item(product, onboarding_prefs, budget)

    text = product_text(product.display_name, product.description)
    relevance = keyword_match_score(text, [("carbon", 3.0), ("road", 1.0)])
"""

from scoring.budget import BudgetRange, parse_budget_range
from scoring.keywords import (
    count_occurrences,
    keyword_match_score,
    keyword_rank_key,
    product_text,
    top_keywords,
)
from scoring.onboarding_scorer import OnboardingScorer
from scoring.similarity import ViewProfile, build_view_profile, similarity_score

__all__ = [
    "BudgetRange",
    "parse_budget_range",
    "count_occurrences",
    "keyword_match_score",
    "keyword_rank_key",
    "product_text",
    "top_keywords",
    "OnboardingScorer",
    "ViewProfile",
    "build_view_profile",
    "similarity_score",
]
