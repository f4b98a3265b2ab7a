"""
Business Analytics & Scoring Engine
"""
from .aggregation import cumulative_share, group_by, group_by_period, safe_divide
from .goals import GoalProgressTracker
from .inventory import InventoryMetricsCalculator
from .loyalty import ClientLoyaltyScorer
from .models import (
    AppointmentRecord,
    ClientScore,
    ClientVisitHistory,
    GoalDefinition,
    GoalProgress,
    InventoryMetric,
    ProductRecord,
)

__all__ = [
    "cumulative_share",
    "group_by",
    "group_by_period",
    "safe_divide",
    "GoalProgressTracker",
    "InventoryMetricsCalculator",
    "ClientLoyaltyScorer",
    "AppointmentRecord",
    "ClientScore",
    "ClientVisitHistory",
    "GoalDefinition",
    "GoalProgress",
    "InventoryMetric",
    "ProductRecord",
]
