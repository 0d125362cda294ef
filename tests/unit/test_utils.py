"""
Tests for core utilities.
"""

import pytest

from core.utils import dedupe_preserving_order, parse_csv_ids


def test_dedupe_keeps_first_occurrence():
    assert dedupe_preserving_order(["b", "a", "b", "", "c", "a"]) == ["b", "a", "c"]


@pytest.mark.parametrize("raw, expected", [
    (None, []),
    ("", []),
    ("p1", ["p1"]),
    (" p1, ,p2 ,", ["p1", "p2"]),
])
def test_parse_csv_ids(raw, expected):
    assert parse_csv_ids(raw) == expected
