"""
Client Loyalty Scoring

Turns completed-visit histories into:
- Average visit interval (days)
- Loyalty tier (High / Medium / Low)
- Churn risk with a tiered discount suggestion
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import structlog

from src.config import AnalyticsSettings, get_analytics_settings

from .aggregation import days_between, group_by, most_frequent, safe_divide
from .models import (
    AppointmentRecord,
    AppointmentStatus,
    ChurnRisk,
    ChurnUrgency,
    ClientScore,
    ClientVisitHistory,
    LoyaltyTier,
    parse_datetime,
)

logger = structlog.get_logger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ClientLoyaltyScorer:
    """
    Stateless loyalty and churn scoring.

    Example:
        scorer = ClientLoyaltyScorer()
        scores = scorer.score_appointments(appointments, now=datetime(2025, 3, 1))
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or get_analytics_settings()

    @staticmethod
    def average_interval_days(visit_dates: Sequence[Any]) -> int:
        """
        Rounded mean of the positive gaps between consecutive visits.

        Undated and unparseable entries are dropped before sorting; same-day
        repeats are skipped rather than counted as zero-day gaps. Fewer than
        two visits gives 0.
        """
        parsed = (parse_datetime(d) for d in visit_dates)
        dates = sorted(d for d in parsed if d is not None)
        if len(dates) < 2:
            return 0

        intervals = []
        for previous, current in zip(dates, dates[1:]):
            gap = days_between(previous, current)
            if gap is not None and gap > 0:
                intervals.append(gap)

        return _round_half_up(safe_divide(sum(intervals), len(intervals)))

    def loyalty_tier(self, total_visits: int, average_interval: float) -> LoyaltyTier:
        """High is checked first, so either High condition wins over Medium"""
        s = self.settings
        if total_visits >= s.loyalty_high_min_visits or average_interval <= s.loyalty_high_max_interval:
            return LoyaltyTier.HIGH
        if total_visits >= s.loyalty_medium_min_visits or average_interval <= s.loyalty_medium_max_interval:
            return LoyaltyTier.MEDIUM
        return LoyaltyTier.LOW

    def churn_risk(self, days_since_last_visit: int, average_interval: float) -> ChurnRisk:
        """
        Flag clients overdue by at least the risk margin.

        The raw delay (which may be negative) decides the flag and tier;
        the reported ``days_delayed`` is floored at 0 and, for clients not
        at risk, always 0.
        """
        s = self.settings
        delay = days_since_last_visit - average_interval
        if delay < s.churn_risk_days:
            return ChurnRisk()

        if delay >= s.churn_critical_days:
            urgency, discount = ChurnUrgency.CRITICAL, s.churn_critical_discount
        elif delay >= s.churn_attention_days:
            urgency, discount = ChurnUrgency.ATTENTION, s.churn_attention_discount
        else:
            urgency, discount = ChurnUrgency.MODERATE, s.churn_moderate_discount

        return ChurnRisk(
            is_at_risk=True,
            days_delayed=int(delay),
            suggested_discount_percent=discount,
            urgency=urgency,
        )

    def score(self, history: ClientVisitHistory, now: datetime) -> ClientScore:
        """
        Full score for one client.

        A client without visits gets a neutral score: Low tier, never at risk.
        """
        dates = history.visit_dates
        last_visit = history.last_visit
        if last_visit is None:
            return ClientScore(
                client_id=history.client_id,
                average_interval_days=0,
                loyalty_tier=LoyaltyTier.LOW,
            )

        average_interval = self.average_interval_days(dates)
        days_since_last = days_between(last_visit, now)
        return ClientScore(
            client_id=history.client_id,
            average_interval_days=average_interval,
            loyalty_tier=self.loyalty_tier(len(dates), average_interval),
            churn_risk=self.churn_risk(days_since_last, average_interval),
            total_visits=len(dates),
            days_since_last_visit=days_since_last,
            last_visit=last_visit,
            expected_return_date=last_visit + timedelta(days=average_interval),
        )

    @staticmethod
    def build_visit_histories(appointments: Sequence[AppointmentRecord]) -> List[ClientVisitHistory]:
        """Completed, dated appointments grouped per client in first-seen order"""
        completed = [
            a for a in appointments
            if a.status == AppointmentStatus.COMPLETED and a.client_id and a.date is not None
        ]
        groups = group_by(completed, lambda a: a.client_id)
        return [
            ClientVisitHistory(client_id=client_id, visit_dates=[a.date for a in visits])
            for client_id, visits in groups.items()
        ]

    def score_appointments(
        self,
        appointments: Sequence[AppointmentRecord],
        now: datetime,
    ) -> List[ClientScore]:
        """Score every client with completed visits, adding preferred technician and service"""
        visits_by_client = group_by(
            (a for a in appointments if a.status == AppointmentStatus.COMPLETED and a.client_id),
            lambda a: a.client_id,
        )

        scores = []
        for history in self.build_visit_histories(appointments):
            visits = visits_by_client.get(history.client_id, [])
            score = self.score(history, now)
            score.preferred_technician_id = most_frequent(a.technician_id for a in visits)
            score.preferred_service_id = most_frequent(a.service_id for a in visits)
            scores.append(score)

        logger.debug(
            "Clients scored",
            clients=len(scores),
            at_risk=sum(1 for s in scores if s.churn_risk.is_at_risk),
        )
        return scores

    @staticmethod
    def tier_distribution(scores: Sequence[ClientScore]) -> Dict[LoyaltyTier, int]:
        """Client count per tier, every tier present"""
        distribution = {tier: 0 for tier in LoyaltyTier}
        for score in scores:
            distribution[score.loyalty_tier] += 1
        return distribution
