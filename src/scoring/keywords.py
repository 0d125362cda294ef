"""
Keyword frequency scoring for the keyword-based generator.

A shopper's ``favorite_keywords`` are extracted from their search and
browsing history by the preference aggregation job, each with a frequency
score. A product's relevance is the sum over matched keywords of
``weight x occurrences`` in its name + description.
"""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

KeywordWeight = Tuple[str, float]

DEFAULT_KEYWORD_WEIGHT = 1.0


def top_keywords(favorite_keywords: Sequence[KeywordWeight], n: int = 5) -> List[KeywordWeight]:
    """
    Return the ``n`` highest-scoring keywords.

    Blank keywords are skipped and duplicates (case-insensitive) keep their
    first, highest-scoring entry. The sort is stable, so equal scores keep
    the stored order.
    """
    ranked = sorted(
        ((kw.strip(), weight) for kw, weight in favorite_keywords if kw and kw.strip()),
        key=lambda kv: -kv[1],
    )
    seen = set()
    result: List[KeywordWeight] = []
    for kw, weight in ranked:
        key = kw.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append((kw, weight))
        if len(result) >= n:
            break
    return result


def product_text(*fields: Optional[str]) -> str:
    """Concatenate text fields into one lower-cased, space-joined string."""
    return " ".join(f for f in fields if f).lower()


def count_occurrences(text: str, keyword: str) -> int:
    """
    Count case-insensitive, non-overlapping, literal occurrences.

    Example:
        >>> count_occurrences("Carbon frame, carbon fork", "carbon")
        2
    """
    if not text or not keyword:
        return 0
    return len(re.findall(re.escape(keyword.lower()), text.lower()))


def keyword_match_score(text: str, keywords: Iterable[KeywordWeight]) -> float:
    """
    Sum of ``weight x occurrences`` over the keywords found in ``text``.

    A missing or zero weight counts as 1 so a stored keyword never
    contributes nothing when it matches.
    """
    score = 0.0
    for keyword, weight in keywords:
        occurrences = count_occurrences(text, keyword)
        if occurrences:
            score += (weight or DEFAULT_KEYWORD_WEIGHT) * occurrences
    return score


def keyword_rank_key(match_score: float, popularity_score: float, relevance_factor: float = 10.0) -> float:
    """Keyword relevance dominates; popularity only separates near-ties."""
    return match_score * relevance_factor + popularity_score
