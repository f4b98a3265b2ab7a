"""
Aggregation Utilities

Shared helpers for the scoring engine:
- Numeric coercion and zero-guarded division
- Grouping by key or calendar period
- Cumulative share of a sorted series
- Whole-day differences between timestamps
"""

import math
from collections import Counter
from datetime import datetime, timezone
from fractions import Fraction
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Optional, Sequence, TypeVar, Union

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

PERIODS = ("week", "month", "quarter")


def to_number(value: Any, default: float = 0.0) -> float:
    """
    Coerce a loosely typed value to a finite float.

    None, NaN, infinities, booleans and anything unparseable fall back
    to ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def safe_divide(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """Divide, returning ``fallback`` when the denominator is zero or non-finite"""
    if denominator == 0 or not math.isfinite(denominator):
        return fallback
    return numerator / denominator


def group_by(records: Iterable[T], key_fn: Callable[[T], K]) -> Dict[K, List[T]]:
    """
    Group records by key.

    Keys appear in first-seen order and records keep their input order
    within each group.
    """
    groups: Dict[K, List[T]] = {}
    for record in records:
        groups.setdefault(key_fn(record), []).append(record)
    return groups


def period_key(moment: Optional[datetime], period: str = "month") -> Optional[str]:
    """
    Bucket label for a timestamp.

    Args:
        moment: Timestamp to bucket
        period: "week", "month", or "quarter"

    Returns:
        "2025-W03", "2025-01" or "2025-Q1"; None for a missing timestamp
    """
    if moment is None:
        return None
    if period == "week":
        return moment.strftime("%Y-W%W")
    if period == "month":
        return moment.strftime("%Y-%m")
    if period == "quarter":
        return f"{moment.year}-Q{(moment.month - 1) // 3 + 1}"
    raise ValueError(f"Period must be one of: {list(PERIODS)}")


def group_by_period(
    records: Iterable[T],
    date_fn: Callable[[T], Optional[datetime]],
    period: str = "month",
) -> Dict[str, List[T]]:
    """Group records into calendar buckets, skipping undated records"""
    groups: Dict[str, List[T]] = {}
    skipped = 0
    for record in records:
        key = period_key(date_fn(record), period)
        if key is None:
            skipped += 1
            continue
        groups.setdefault(key, []).append(record)
    if skipped:
        logger.debug("Undated records skipped", period=period, skipped=skipped)
    return groups


def most_frequent(values: Iterable[Optional[K]]) -> Optional[K]:
    """Most common non-null value; the first one seen wins ties"""
    counts = Counter(value for value in values if value is not None)
    if not counts:
        return None
    # Counter preserves insertion order, max keeps the first maximum
    return max(counts, key=counts.__getitem__)


def as_naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Convert timezone-aware timestamps to naive UTC; naive ones pass through"""
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def days_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """
    Whole days from ``start`` to ``end``.

    Returns None when either timestamp is missing or the two cannot be
    subtracted (e.g. a ``date`` against a ``datetime``).
    """
    if start is None or end is None:
        return None
    try:
        return (as_naive_utc(end) - as_naive_utc(start)).days
    except (TypeError, AttributeError):
        logger.debug("Incomparable timestamps", start=repr(start), end=repr(end))
        return None


Number = Union[int, float, Fraction]


def exact(value: Any) -> Fraction:
    """
    Exact rational for a loosely typed number.

    Floats go through their shortest repr, so ``0.09`` becomes ``9/100``
    rather than its binary approximation.
    """
    if isinstance(value, (int, Fraction)) and not isinstance(value, bool):
        return Fraction(value)
    return Fraction(repr(to_number(value)))


class CumulativeShare:
    """
    Running totals of a series as a share of its grand total.

    Totals are kept as exact rationals: ``exact_shares()`` yields
    ``Fraction``s for threshold comparisons and iterating yields the same
    values as floats. Every iteration starts from the beginning, so the
    object can be consumed any number of times. When the grand total is
    zero every share is 0.

    Example:
        list(CumulativeShare([800, 150, 50], scale=100))  # [80.0, 95.0, 100.0]
    """

    def __init__(self, values: Iterable[Number], scale: Number = 1):
        self._values: Sequence[Fraction] = tuple(exact(v) for v in values)
        self._scale = exact(scale)
        self.total = sum(self._values, Fraction(0))

    def exact_shares(self) -> Iterator[Fraction]:
        running = Fraction(0)
        for value in self._values:
            running += value
            yield running * self._scale / self.total if self.total else Fraction(0)

    def __iter__(self) -> Iterator[float]:
        return (float(share) for share in self.exact_shares())

    def __len__(self) -> int:
        return len(self._values)


def cumulative_share(sorted_values: Iterable[Number], scale: Number = 1) -> CumulativeShare:
    """Restartable cumulative share of ``sorted_values`` (fractions unless scaled)"""
    return CumulativeShare(sorted_values, scale=scale)
