"""
Goal Progress Tracking

Values a technician's qualifying appointments against a monthly goal and
reports progress percentage and threshold status.
"""

import calendar
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import structlog

from .aggregation import safe_divide, to_number
from .models import (
    AppointmentRecord,
    AppointmentStatus,
    GoalDefinition,
    GoalProgress,
    GoalStatus,
    GoalType,
)

logger = structlog.get_logger(__name__)

PriceLookup = Union[Mapping[str, float], Callable[[str], Optional[float]]]

QUALIFYING_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CONFIRMED})


def period_bounds(month: int, year: int) -> Tuple[datetime, datetime]:
    """First and last instant of a calendar month"""
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59, 999999),
    )


def resolve_price(price_lookup: Optional[PriceLookup], service_id: Optional[str]) -> float:
    """Unit price for a service; unknown services and bad values count as 0"""
    if price_lookup is None or service_id is None:
        return 0.0
    try:
        if isinstance(price_lookup, Mapping):
            price = price_lookup.get(service_id)
        else:
            price = price_lookup(service_id)
    except (LookupError, ValueError):
        logger.debug("Price lookup miss", service_id=service_id)
        return 0.0
    return max(0.0, to_number(price))


class GoalProgressTracker:
    """
    Stateless goal progress evaluation.

    Example:
        tracker = GoalProgressTracker()
        progress = tracker.track(goal, appointments, {"svc-1": 50.0})
    """

    @staticmethod
    def qualifying_appointments(
        goal: GoalDefinition,
        appointments: Sequence[AppointmentRecord],
    ) -> List[AppointmentRecord]:
        """
        Appointments that count toward the goal.

        Same technician, completed or confirmed, dated inside the goal's
        month, and matching the goal's signature condition. Product goals
        have no appointment-based valuation and match nothing.
        """
        signature_required = goal.goal_type.signature_required
        if signature_required is None:
            return []

        start, end = period_bounds(goal.month, goal.year)
        return [
            a for a in appointments
            if a.technician_id == goal.technician_id
            and a.status in QUALIFYING_STATUSES
            and a.signature_used is signature_required
            and a.date is not None
            and start <= a.date <= end
        ]

    @staticmethod
    def status(current_value: float, min_expected: float, max_expected: float) -> GoalStatus:
        """Boundary values resolve to the higher tier"""
        if current_value >= max_expected:
            return GoalStatus.ABOVE_MAX
        if current_value >= min_expected:
            return GoalStatus.BETWEEN
        return GoalStatus.BELOW_MIN

    @staticmethod
    def progress_percentage(current_value: float, max_expected: float) -> float:
        """Share of the ceiling reached, clamped to [0, 100]"""
        if max_expected <= 0:
            return 0.0
        return min(100.0, max(0.0, safe_divide(current_value * 100, max_expected)))

    def track(
        self,
        goal: GoalDefinition,
        appointments: Sequence[AppointmentRecord],
        price_lookup: Optional[PriceLookup] = None,
    ) -> GoalProgress:
        """Progress of one goal over the supplied period's appointments"""
        qualifying = self.qualifying_appointments(goal, appointments)
        if price_lookup is None:
            # Without a resolver, fall back to the price captured on each record
            current_value = sum((a.unit_price for a in qualifying), 0.0)
        else:
            current_value = sum((resolve_price(price_lookup, a.service_id) for a in qualifying), 0.0)

        if goal.goal_type == GoalType.PRODUCTS:
            logger.debug("Product goal has no appointment valuation", goal_id=goal.id)

        return GoalProgress(
            goal_id=goal.id,
            current_value=current_value,
            progress_percentage=self.progress_percentage(current_value, goal.max_expected_value),
            status=self.status(current_value, goal.min_expected_value, goal.max_expected_value),
            technician_id=goal.technician_id,
            goal_type=goal.goal_type,
            qualifying_appointments=len(qualifying),
        )

    def track_all(
        self,
        goals: Sequence[GoalDefinition],
        appointments: Sequence[AppointmentRecord],
        price_lookup: Optional[PriceLookup] = None,
    ) -> List[GoalProgress]:
        """Progress for every goal, in goal order"""
        return [self.track(goal, appointments, price_lookup) for goal in goals]

    @staticmethod
    def rank(progress: Sequence[GoalProgress]) -> List[GoalProgress]:
        """Highest progress first; ties keep input order"""
        return sorted(progress, key=lambda p: p.progress_percentage, reverse=True)

    @staticmethod
    def status_summary(progress: Sequence[GoalProgress]) -> Dict[GoalStatus, int]:
        summary = {status: 0 for status in GoalStatus}
        for item in progress:
            summary[item.status] += 1
        return summary
