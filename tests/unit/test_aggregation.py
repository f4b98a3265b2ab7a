"""
Unit Tests - Aggregation Utilities
"""
import math
from datetime import date, datetime, timedelta, timezone
from fractions import Fraction

import pytest

from src.analytics.aggregation import (
    cumulative_share,
    days_between,
    group_by,
    group_by_period,
    most_frequent,
    period_key,
    safe_divide,
    to_number,
)


class TestSafeDivide:
    """Tests for safe_divide"""

    def test_regular_division(self):
        assert safe_divide(10, 4) == 2.5

    def test_zero_denominator_returns_fallback(self):
        assert safe_divide(10, 0) == 0
        assert safe_divide(10, 0, fallback=-1) == -1

    def test_non_finite_denominator_returns_fallback(self):
        assert safe_divide(10, math.inf) == 0
        assert safe_divide(10, math.nan, fallback=7) == 7


class TestToNumber:
    """Tests for numeric coercion"""

    @pytest.mark.parametrize("value", [None, "abc", math.nan, math.inf, True, object()])
    def test_garbage_becomes_default(self, value):
        assert to_number(value) == 0.0

    def test_numeric_strings_parse(self):
        assert to_number("12.5") == 12.5

    def test_custom_default(self):
        assert to_number(None, default=3.0) == 3.0


class TestGroupBy:
    """Tests for grouping helpers"""

    def test_group_by_preserves_order(self):
        records = [("a", 1), ("b", 2), ("a", 3), ("c", 4), ("b", 5)]

        groups = group_by(records, lambda r: r[0])

        assert list(groups) == ["a", "b", "c"]
        assert groups["a"] == [("a", 1), ("a", 3)]
        assert groups["b"] == [("b", 2), ("b", 5)]

    def test_group_by_empty(self):
        assert group_by([], lambda r: r) == {}

    def test_group_by_period_skips_undated(self):
        records = [
            {"d": datetime(2025, 1, 5)},
            {"d": None},
            {"d": datetime(2025, 1, 20)},
            {"d": datetime(2025, 2, 1)},
        ]

        groups = group_by_period(records, lambda r: r["d"], period="month")

        assert list(groups) == ["2025-01", "2025-02"]
        assert len(groups["2025-01"]) == 2

    def test_period_keys(self):
        moment = datetime(2025, 5, 14)
        assert period_key(moment, "month") == "2025-05"
        assert period_key(moment, "quarter") == "2025-Q2"
        assert period_key(moment, "week") == moment.strftime("%Y-W%W")
        assert period_key(None) is None

    def test_unknown_period_raises(self):
        with pytest.raises(ValueError):
            period_key(datetime(2025, 1, 1), "decade")


class TestMostFrequent:
    """Tests for most_frequent"""

    def test_first_seen_wins_ties(self):
        assert most_frequent(["b", "a", "a", "b"]) == "b"

    def test_ignores_nulls(self):
        assert most_frequent([None, None, "x"]) == "x"

    def test_empty(self):
        assert most_frequent([]) is None


class TestDaysBetween:
    """Tests for days_between"""

    def test_whole_days(self):
        start = datetime(2025, 1, 1, 10)
        assert days_between(start, start + timedelta(days=3, hours=5)) == 3

    def test_missing_side(self):
        assert days_between(None, datetime(2025, 1, 1)) is None

    def test_incomparable_sides(self):
        assert days_between(date(2025, 1, 1), datetime(2025, 1, 11)) is None
        assert days_between("2025-01-01", datetime(2025, 1, 11)) is None

    def test_mixed_timezones_compare(self):
        aware = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert days_between(aware, datetime(2025, 1, 11)) == 10


class TestCumulativeShare:
    """Tests for cumulative_share"""

    def test_fractions(self):
        assert list(cumulative_share([800, 150, 50])) == pytest.approx([0.8, 0.95, 1.0])

    def test_scaled_percentages_are_exact(self):
        assert list(cumulative_share([800, 150, 50], scale=100)) == [80.0, 95.0, 100.0]

    def test_restartable(self):
        shares = cumulative_share([1, 1, 2])
        first = list(shares)
        second = list(shares)
        assert first == second
        assert len(shares) == 3

    def test_exact_shares(self):
        shares = cumulative_share([0.09] * 5, scale=100)
        assert list(shares.exact_shares())[3] == Fraction(80)
        assert list(shares)[3] == 80.0

    def test_zero_total(self):
        assert list(cumulative_share([0, 0])) == [0.0, 0.0]

    def test_empty(self):
        assert list(cumulative_share([])) == []
