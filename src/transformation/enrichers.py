"""
Analytics Enrichment Module

Batch surface over the scoring engine: raw frames in, metric frames out.
Includes:
- Product inventory metrics with ABC classification
- Client loyalty and churn scores
- Team goal progress
"""

import math
from datetime import datetime
from typing import Dict, Optional

import polars as pl
import structlog

from src.analytics.goals import GoalProgressTracker, PriceLookup
from src.analytics.inventory import InventoryMetricsCalculator
from src.analytics.loyalty import ClientLoyaltyScorer
from src.config import AnalyticsSettings

from .cleaners import RecordCleaner

logger = structlog.get_logger(__name__)

PRODUCT_METRIC_SCHEMA = {
    "product_id": pl.Utf8,
    "turnover_rate": pl.Float64,
    "days_to_stockout": pl.Float64,
    "stockout_horizon_days": pl.Float64,
    "profit_margin_percent": pl.Float64,
    "revenue": pl.Float64,
    "turnover_status": pl.Utf8,
    "needs_restock": pl.Boolean,
    "abc_class": pl.Utf8,
    "cumulative_revenue_percent": pl.Float64,
}

CLIENT_SCORE_SCHEMA = {
    "client_id": pl.Utf8,
    "total_visits": pl.Int64,
    "average_interval_days": pl.Int64,
    "loyalty_tier": pl.Utf8,
    "days_since_last_visit": pl.Int64,
    "is_at_risk": pl.Boolean,
    "days_delayed": pl.Int64,
    "suggested_discount_percent": pl.Float64,
    "urgency": pl.Utf8,
    "suggested_action": pl.Utf8,
    "expected_return_date": pl.Datetime,
    "preferred_technician_id": pl.Utf8,
    "preferred_service_id": pl.Utf8,
}

GOAL_PROGRESS_SCHEMA = {
    "goal_id": pl.Utf8,
    "technician_id": pl.Utf8,
    "goal_type": pl.Utf8,
    "current_value": pl.Float64,
    "progress_percentage": pl.Float64,
    "status": pl.Utf8,
    "qualifying_appointments": pl.Int64,
}


class AnalyticsEnricher:
    """
    Frame-level enricher for report screens.

    The reference time is always explicit so repeated runs over the same
    frames produce identical output.

    Example:
        enricher = AnalyticsEnricher(now=datetime(2025, 3, 1))
        metrics_df = enricher.enrich_products(products_df)
    """

    def __init__(
        self,
        now: datetime,
        settings: Optional[AnalyticsSettings] = None,
        cleaner: Optional[RecordCleaner] = None,
    ):
        self.now = now
        self.cleaner = cleaner or RecordCleaner()
        self.inventory = InventoryMetricsCalculator(settings)
        self.loyalty = ClientLoyaltyScorer(settings)
        self.goals = GoalProgressTracker()

    def enrich_products(self, products_df: pl.DataFrame) -> pl.DataFrame:
        """
        Inventory metrics per product, in descending revenue order.

        Infinite stockout horizons are written as null so the frame stays
        friendly to downstream aggregation.
        """
        products, _ = self.cleaner.clean_products(products_df)
        rows = []
        for metric in self.inventory.portfolio_metrics(products, self.now):
            rows.append({
                "product_id": metric.product_id,
                "turnover_rate": metric.turnover_rate,
                "days_to_stockout": None if math.isinf(metric.days_to_stockout) else metric.days_to_stockout,
                "stockout_horizon_days": None if math.isinf(metric.stockout_horizon_days) else metric.stockout_horizon_days,
                "profit_margin_percent": metric.profit_margin_percent,
                "revenue": metric.revenue,
                "turnover_status": metric.turnover_status.value,
                "needs_restock": metric.needs_restock,
                "abc_class": metric.abc_class.value,
                "cumulative_revenue_percent": metric.cumulative_revenue_percent,
            })

        logger.info("Products enriched", products=len(rows))
        return pl.DataFrame(rows, schema=PRODUCT_METRIC_SCHEMA)

    def category_summary(self, products_df: pl.DataFrame) -> pl.DataFrame:
        """Category aggregates as a frame"""
        products, _ = self.cleaner.clean_products(products_df)
        stats = self.inventory.category_stats(products, self.now)
        return pl.DataFrame(
            [vars(s) for s in stats],
            schema={
                "category": pl.Utf8,
                "total_products": pl.Int64,
                "total_stock": pl.Int64,
                "total_value": pl.Float64,
                "total_sold": pl.Int64,
                "avg_turnover": pl.Float64,
            },
        )

    def score_clients(self, appointments_df: pl.DataFrame) -> pl.DataFrame:
        """Loyalty and churn score per client with completed visits"""
        appointments, _ = self.cleaner.clean_appointments(appointments_df)
        rows = []
        for score in self.loyalty.score_appointments(appointments, self.now):
            churn = score.churn_risk
            rows.append({
                "client_id": score.client_id,
                "total_visits": score.total_visits,
                "average_interval_days": score.average_interval_days,
                "loyalty_tier": score.loyalty_tier.value,
                "days_since_last_visit": score.days_since_last_visit,
                "is_at_risk": churn.is_at_risk,
                "days_delayed": churn.days_delayed,
                "suggested_discount_percent": churn.suggested_discount_percent,
                "urgency": churn.urgency.value,
                "suggested_action": churn.suggested_action,
                "expected_return_date": score.expected_return_date,
                "preferred_technician_id": score.preferred_technician_id,
                "preferred_service_id": score.preferred_service_id,
            })

        logger.info("Clients scored", clients=len(rows))
        return pl.DataFrame(rows, schema=CLIENT_SCORE_SCHEMA)

    def goal_progress(
        self,
        goals_df: pl.DataFrame,
        appointments_df: pl.DataFrame,
        price_lookup: Optional[PriceLookup] = None,
    ) -> pl.DataFrame:
        """Progress per goal, ranked by progress percentage"""
        goals, _ = self.cleaner.clean_goals(goals_df)
        appointments, _ = self.cleaner.clean_appointments(appointments_df)

        progress = self.goals.rank(self.goals.track_all(goals, appointments, price_lookup))
        rows = [
            {
                "goal_id": p.goal_id,
                "technician_id": p.technician_id,
                "goal_type": p.goal_type.value if p.goal_type else None,
                "current_value": p.current_value,
                "progress_percentage": p.progress_percentage,
                "status": p.status.value,
                "qualifying_appointments": p.qualifying_appointments,
            }
            for p in progress
        ]

        logger.info(
            "Goal progress computed",
            goals=len(rows),
            **{status.value: count for status, count in self.goals.status_summary(progress).items()},
        )
        return pl.DataFrame(rows, schema=GOAL_PROGRESS_SCHEMA)


def service_prices(services_df: pl.DataFrame) -> Dict[str, float]:
    """Price resolver built from a services frame (``id``, ``price``)"""
    if services_df.is_empty():
        return {}
    prices: Dict[str, float] = {}
    for row in services_df.select(["id", "price"]).iter_rows(named=True):
        if row["id"] is not None:
            prices[str(row["id"])] = row["price"] or 0.0
    return prices


def enrich_product_data(products_df: pl.DataFrame, now: datetime) -> pl.DataFrame:
    """
    Convenience function to compute inventory metrics for a product frame.

    Args:
        products_df: Raw product frame
        now: Reference time for turnover

    Returns:
        Product metrics frame
    """
    return AnalyticsEnricher(now=now).enrich_products(products_df)


def enrich_client_data(appointments_df: pl.DataFrame, now: datetime) -> pl.DataFrame:
    """
    Convenience function to score clients from an appointment frame.

    Args:
        appointments_df: Raw appointment frame
        now: Reference time for recency

    Returns:
        Client score frame
    """
    return AnalyticsEnricher(now=now).score_clients(appointments_df)
