"""
Inventory Metrics

Per-product velocity, stockout horizon and margin, plus portfolio views:
- ABC (Pareto) classification by cumulative revenue
- Category aggregates
- Summary KPIs and fast/slow movers

Velocity is always normalized to one turnover period (30 days by default):
``turnover_rate`` is units sold per period and ``days_to_stockout`` is the
number of periods the current stock lasts at that pace.
"""

from datetime import datetime
from fractions import Fraction
from typing import List, Optional, Sequence

import structlog

from src.config import AnalyticsSettings, get_analytics_settings

from .aggregation import cumulative_share, days_between, exact, group_by, safe_divide
from .models import (
    INFINITE_STOCKOUT,
    AbcClass,
    AbcEntry,
    CategoryStats,
    InventoryMetric,
    InventorySummary,
    ProductRecord,
    TurnoverStatus,
)

logger = structlog.get_logger(__name__)

UNCATEGORIZED = "Uncategorized"


class InventoryMetricsCalculator:
    """
    Stateless inventory analytics over in-memory product records.

    Example:
        calculator = InventoryMetricsCalculator()
        metrics = calculator.portfolio_metrics(products, now=datetime(2025, 3, 1))
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or get_analytics_settings()

    # -------------------------------------------------------------------------
    # Per-product formulas
    # -------------------------------------------------------------------------

    def turnover_rate(self, product: ProductRecord, now: datetime) -> float:
        """
        Units sold per turnover period since the product was created.

        ``(total_sold / days_since_created) * window``; 0 when the product
        is undated or was created today or later.
        """
        days_since_created = days_between(product.created_at, now)
        if days_since_created is None or days_since_created <= 0:
            return 0.0
        return product.total_sold * self.settings.velocity_window_days / days_since_created

    def days_to_stockout(self, stock: float, turnover_rate: float) -> float:
        """Turnover periods until stock runs out; ``math.inf`` when not selling"""
        if turnover_rate <= 0:
            return INFINITE_STOCKOUT
        return max(0.0, stock) / turnover_rate

    def stockout_horizon_days(self, periods: float) -> float:
        """Convert a stockout horizon from turnover periods to calendar days"""
        return periods * self.settings.velocity_window_days

    @staticmethod
    def profit_margin_percent(price: float, cost: float) -> float:
        """Margin over price; negative when cost exceeds price, 0 for free items"""
        if price <= 0:
            return 0.0
        return (price - cost) / price * 100

    def turnover_status(self, turnover_rate: float) -> TurnoverStatus:
        if turnover_rate >= self.settings.turnover_excellent:
            return TurnoverStatus.EXCELLENT
        if turnover_rate >= self.settings.turnover_good:
            return TurnoverStatus.GOOD
        if turnover_rate >= self.settings.turnover_regular:
            return TurnoverStatus.REGULAR
        return TurnoverStatus.SLOW

    @staticmethod
    def needs_restock(product: ProductRecord) -> bool:
        return product.stock <= product.min_stock

    def product_metrics(self, product: ProductRecord, now: datetime) -> InventoryMetric:
        """All per-product metrics; ABC fields keep their class-C defaults"""
        rate = self.turnover_rate(product, now)
        periods = self.days_to_stockout(product.stock, rate)
        return InventoryMetric(
            product_id=product.id,
            turnover_rate=rate,
            days_to_stockout=periods,
            profit_margin_percent=self.profit_margin_percent(product.price, product.cost),
            revenue=product.revenue,
            turnover_status=self.turnover_status(rate),
            needs_restock=self.needs_restock(product),
            stockout_horizon_days=self.stockout_horizon_days(periods),
        )

    # -------------------------------------------------------------------------
    # Portfolio operations
    # -------------------------------------------------------------------------

    def classify_abc(self, products: Sequence[ProductRecord]) -> List[AbcEntry]:
        """
        Pareto classification by cumulative revenue.

        Products are walked in descending revenue order (ties keep input
        order). A product is A while the cumulative share is <= 80%, B while
        <= 95%, otherwise C. Shares are compared as exact rationals so a
        product landing exactly on a cut-off stays in the lower class. Zero
        total revenue makes everything C at 0%.
        """
        ranked = self._rank_by_revenue(products)
        shares = cumulative_share([self._exact_revenue(p) for p in ranked], scale=100)
        if shares.total <= 0:
            return [AbcEntry(p.id, p.revenue, 0.0, AbcClass.C) for p in ranked]

        entries = []
        for product, cumulative_percent in zip(ranked, shares.exact_shares()):
            entries.append(
                AbcEntry(
                    product_id=product.id,
                    revenue=product.revenue,
                    cumulative_percent=float(cumulative_percent),
                    abc_class=self._abc_class(cumulative_percent),
                )
            )
        return entries

    @staticmethod
    def _exact_revenue(product: ProductRecord) -> Fraction:
        return exact(product.price) * product.total_sold

    @classmethod
    def _rank_by_revenue(cls, products: Sequence[ProductRecord]) -> List[ProductRecord]:
        # sorted() is stable, so equal revenues keep input order
        return sorted(products, key=cls._exact_revenue, reverse=True)

    def _abc_class(self, cumulative_percent: Fraction) -> AbcClass:
        if cumulative_percent <= exact(self.settings.abc_class_a_max_percent):
            return AbcClass.A
        if cumulative_percent <= exact(self.settings.abc_class_b_max_percent):
            return AbcClass.B
        return AbcClass.C

    def portfolio_metrics(
        self,
        products: Sequence[ProductRecord],
        now: datetime,
    ) -> List[InventoryMetric]:
        """Per-product metrics joined with ABC class, in revenue order"""
        metrics = []
        ranked = self._rank_by_revenue(products)
        for product, entry in zip(ranked, self.classify_abc(products)):
            metric = self.product_metrics(product, now)
            metric.abc_class = entry.abc_class
            metric.cumulative_revenue_percent = entry.cumulative_percent
            metrics.append(metric)

        logger.debug(
            "Portfolio classified",
            products=len(metrics),
            class_a=sum(1 for m in metrics if m.abc_class == AbcClass.A),
        )
        return metrics

    def category_stats(
        self,
        products: Sequence[ProductRecord],
        now: datetime,
    ) -> List[CategoryStats]:
        """Aggregates per category, in first-seen category order"""
        stats = []
        groups = group_by(products, lambda p: p.category or UNCATEGORIZED)
        for category, members in groups.items():
            turnover_total = sum(self.turnover_rate(p, now) for p in members)
            stats.append(
                CategoryStats(
                    category=category,
                    total_products=len(members),
                    total_stock=sum(p.stock for p in members),
                    total_value=sum(p.stock * p.price for p in members),
                    total_sold=sum(p.total_sold for p in members),
                    avg_turnover=safe_divide(turnover_total, len(members)),
                )
            )
        return stats

    def summarize(self, products: Sequence[ProductRecord], now: datetime) -> InventorySummary:
        """Portfolio KPIs; an empty catalog yields all zeros"""
        if not products:
            return InventorySummary()

        count = len(products)
        return InventorySummary(
            total_products=count,
            total_stock_value=sum(p.stock * p.price for p in products),
            low_stock_items=sum(1 for p in products if 0 < p.stock <= p.min_stock),
            out_of_stock_items=sum(1 for p in products if p.stock == 0),
            avg_turnover_rate=safe_divide(sum(self.turnover_rate(p, now) for p in products), count),
            total_revenue=sum(p.revenue for p in products),
            total_profit=sum(p.total_sold * (p.price - p.cost) for p in products),
            avg_profit_margin=safe_divide(
                sum(self.profit_margin_percent(p.price, p.cost) for p in products), count
            ),
        )

    def fast_movers(
        self,
        products: Sequence[ProductRecord],
        now: datetime,
        limit: int = 10,
    ) -> List[InventoryMetric]:
        """Selling products with the highest turnover first"""
        selling = [m for m in (self.product_metrics(p, now) for p in products) if m.turnover_rate > 0]
        return sorted(selling, key=lambda m: m.turnover_rate, reverse=True)[:limit]

    def slow_movers(
        self,
        products: Sequence[ProductRecord],
        now: datetime,
        limit: int = 10,
    ) -> List[InventoryMetric]:
        """Selling products with the lowest turnover first"""
        selling = [m for m in (self.product_metrics(p, now) for p in products) if m.turnover_rate > 0]
        return sorted(selling, key=lambda m: m.turnover_rate)[:limit]
