"""
OnboardingScorer -- cold-start relevance from onboarding answers.

Scores a product against what a new shopper told us during onboarding
(brands, riding styles, interests, budget). Used by the onboarding
generator before the shopper has any interaction history.

Usage::

    from scoring.onboarding_scorer import OnboardingScorer
    from scoring.budget import parse_budget_range

    scorer = OnboardingScorer()
    budget = parse_budget_range(prefs.budget_range)

    score = scorer.score_item(product, prefs, budget)
    breakdown = scorer.explain_item(product, prefs, budget)
"""

from typing import Any, Dict, Optional

from config.constants import DEFAULT_ONBOARDING_WEIGHTS, OnboardingWeights
from scoring.budget import BudgetRange
from scoring.constants.bike_taxonomy import map_interest_to_category, map_riding_style
from scoring.keywords import product_text


class OnboardingScorer:
    """
    Additive onboarding score.

    +brand per preferred brand found in name / description / manufacturer,
    +riding_style per style whose mapped bike type equals ``bike_type``,
    +interest per interest whose mapped category equals
    ``marketplace_category``, +within_budget if the price is in the window.

    Stateless -- safe to share across threads.
    """

    def __init__(self, weights: OnboardingWeights = DEFAULT_ONBOARDING_WEIGHTS) -> None:
        self.weights = weights

    def score_item(self, product: Any, prefs: Any, budget: Optional[BudgetRange] = None) -> float:
        return self.explain_item(product, prefs, budget)["total"]

    def explain_item(self, product: Any, prefs: Any, budget: Optional[BudgetRange] = None) -> Dict[str, float]:
        """Per-signal breakdown, plus ``total``."""
        text = product_text(product.display_name, product.description, product.manufacturer_name)

        brand = sum(
            self.weights.brand
            for b in (prefs.preferred_brands or [])
            if b and b.strip() and b.strip().lower() in text
        )

        style = 0.0
        if product.bike_type:
            for s in prefs.riding_styles or []:
                bike_type = map_riding_style(s).bike_type
                if bike_type is not None and bike_type == product.bike_type:
                    style += self.weights.riding_style

        interest = 0.0
        if product.marketplace_category:
            for i in prefs.interests or []:
                if map_interest_to_category(i) == product.marketplace_category:
                    interest += self.weights.interest

        within_budget = 0.0
        if budget is not None and budget.contains(product.price):
            within_budget = float(self.weights.within_budget)

        return {
            "brand": float(brand),
            "riding_style": style,
            "interest": interest,
            "within_budget": within_budget,
            "total": float(brand) + style + interest + within_budget,
        }
