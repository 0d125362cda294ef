"""
Core Utility Functions.

Small helpers shared by the generators and the API.
"""

from typing import Iterable, List, Optional, Set


def dedupe_preserving_order(items: Iterable[str]) -> List[str]:
    """
    Remove duplicates (and empty values) while keeping the first occurrence of each item.

    Example:
        >>> dedupe_preserving_order(["a", "b", "a", "c"])
        ['a', 'b', 'c']
    """
    seen: Set[str] = set()
    result: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def parse_csv_ids(value: Optional[str]) -> List[str]:
    """
    Split a comma-separated query parameter into ids.

    Example:
        >>> parse_csv_ids(" p1, ,p2 ")
        ['p1', 'p2']
    """
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
