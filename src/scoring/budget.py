"""
Budget range parsing for onboarding preferences.

The onboarding flow stores the shopper's budget as a short string:

    "500-1000"   -> 500 <= price <= 1000
    "2500+"      -> price >= 2500, no upper bound

A bound that fails to parse falls back to 0 (lower) or unbounded (upper);
a string where neither bound parses yields None so callers skip the filter.
"""

import re
from dataclasses import dataclass
from typing import Optional

_NUMBER_CLEANUP = re.compile(r"[$,\s]")


@dataclass(frozen=True)
class BudgetRange:
    """Inclusive price window. ``max_price`` of None means no upper bound."""
    min_price: float = 0.0
    max_price: Optional[float] = None

    def contains(self, price: Optional[float]) -> bool:
        if price is None:
            return False
        if price < self.min_price:
            return False
        return self.max_price is None or price <= self.max_price

    @property
    def is_unbounded(self) -> bool:
        return self.max_price is None


def _parse_bound(raw: str) -> Optional[float]:
    cleaned = _NUMBER_CLEANUP.sub("", raw or "")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_budget_range(budget_range: Optional[str]) -> Optional[BudgetRange]:
    """
    Parse an onboarding budget string into a BudgetRange.

    Examples:
        >>> parse_budget_range("1000-2500")
        BudgetRange(min_price=1000.0, max_price=2500.0)
        >>> parse_budget_range("2500+")
        BudgetRange(min_price=2500.0, max_price=None)
        >>> parse_budget_range("whatever") is None
        True
    """
    if not budget_range or not budget_range.strip():
        return None

    text = budget_range.strip()

    if text.endswith("+") or "+" in text:
        low = _parse_bound(text.replace("+", ""))
        if low is None:
            return None
        return BudgetRange(min_price=low, max_price=None)

    parts = text.split("-", 1)
    low = _parse_bound(parts[0])
    high = _parse_bound(parts[1]) if len(parts) > 1 else None

    if low is None and high is None:
        return None

    return BudgetRange(min_price=low or 0.0, max_price=high)
