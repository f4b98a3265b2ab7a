"""
Analytics Domain Models

Input records arrive from the persistence layer as loosely typed rows.
They are validated here, once, so the calculators never need their own
``or 0`` fallbacks:

- Numeric fields: None, NaN, infinities and unparseable values become 0.
  Quantities that cannot be negative are clamped at 0.
- Dates: parsed leniently; an unparseable value becomes None and the
  record is skipped by date-dependent computations.
- Identifiers: required. A row without one fails validation.

Derived results are plain dataclasses and are never persisted by the engine.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .aggregation import as_naive_utc, to_number

logger = structlog.get_logger(__name__)

INFINITE_STOCKOUT = math.inf


# =============================================================================
# ENUMS
# =============================================================================

class AppointmentStatus(str, Enum):
    """Appointment lifecycle status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class GoalType(str, Enum):
    """Team goal categories"""
    PRODUCTS = "products"
    SERVICES_UNSIGNED = "services_unsigned"
    SERVICES_SIGNED = "services_signed"
    GENERAL_UNSIGNED = "general_unsigned"
    GENERAL_SIGNED = "general_signed"

    @property
    def signature_required(self) -> Optional[bool]:
        """Signature condition an appointment must meet; None when not appointment-valued"""
        if self in (GoalType.SERVICES_SIGNED, GoalType.GENERAL_SIGNED):
            return True
        if self in (GoalType.SERVICES_UNSIGNED, GoalType.GENERAL_UNSIGNED):
            return False
        return None


class GoalStatus(str, Enum):
    """Goal threshold status"""
    BELOW_MIN = "belowMin"
    BETWEEN = "between"
    ABOVE_MAX = "aboveMax"


class AbcClass(str, Enum):
    """Pareto revenue tier"""
    A = "A"
    B = "B"
    C = "C"


class LoyaltyTier(str, Enum):
    """Client engagement level"""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ChurnUrgency(str, Enum):
    """Remediation urgency for a delayed client"""
    NONE = "none"
    MODERATE = "moderate"
    ATTENTION = "attention"
    CRITICAL = "critical"


class TurnoverStatus(str, Enum):
    """Sales velocity label"""
    EXCELLENT = "excellent"
    GOOD = "good"
    REGULAR = "regular"
    SLOW = "slow"


# =============================================================================
# FIELD COERCION
# =============================================================================

def _non_negative(value: Any) -> float:
    return max(0.0, to_number(value))


def parse_datetime(value: Any) -> Optional[datetime]:
    """Lenient timestamp parsing; unparseable input yields None"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return as_naive_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            logger.debug("Unparseable timestamp", value=value)
            return None
    logger.debug("Unsupported timestamp type", type=type(value).__name__)
    return None


class _Record(BaseModel):
    """Base for immutable input records"""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


# =============================================================================
# INPUT RECORDS
# =============================================================================

class AppointmentRecord(_Record):
    """Appointment as fetched from the backend"""

    id: str
    date: Optional[datetime] = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    client_id: Optional[str] = Field(default=None, alias="clientId")
    technician_id: Optional[str] = Field(default=None, alias="technicianId")
    service_id: Optional[str] = Field(default=None, alias="serviceId")
    signature_used: bool = Field(default=False, alias="signatureUsed")
    unit_price: float = Field(default=0.0, alias="unitPrice")

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> Any:
        if v is None:
            return AppointmentStatus.PENDING
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("signature_used", mode="before")
    @classmethod
    def parse_signature(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("unit_price", mode="before")
    @classmethod
    def parse_unit_price(cls, v: Any) -> float:
        return _non_negative(v)


class ProductRecord(_Record):
    """Catalog product with its cumulative sales counter"""

    id: str
    name: str = ""
    category: Optional[str] = None
    stock: int = 0
    min_stock: int = Field(default=0, alias="minStock")
    price: float = 0.0
    cost: float = 0.0
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    total_sold: int = Field(default=0, alias="totalSold")

    @field_validator("stock", "min_stock", "total_sold", mode="before")
    @classmethod
    def parse_count(cls, v: Any) -> int:
        return int(_non_negative(v))

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v: Any) -> str:
        return "" if v is None else v

    @field_validator("price", "cost", mode="before")
    @classmethod
    def parse_amount(cls, v: Any) -> float:
        return _non_negative(v)

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, v: Any) -> Optional[datetime]:
        return parse_datetime(v)

    @property
    def revenue(self) -> float:
        """Lifetime revenue: units sold times current price"""
        return self.total_sold * self.price


class ClientVisitHistory(_Record):
    """Completed visit dates of one client, ascending"""

    client_id: str = Field(alias="clientId")
    visit_dates: List[datetime] = Field(default_factory=list, alias="visitDates")

    @field_validator("visit_dates", mode="before")
    @classmethod
    def parse_visit_dates(cls, v: Any) -> List[datetime]:
        if v is None:
            return []
        parsed = [parse_datetime(item) for item in v]
        return sorted(d for d in parsed if d is not None)

    @property
    def last_visit(self) -> Optional[datetime]:
        return self.visit_dates[-1] if self.visit_dates else None


class GoalDefinition(_Record):
    """Monthly target for one technician and goal category"""

    id: str
    technician_id: str = Field(alias="technicianId")
    goal_type: GoalType = Field(alias="goalType")
    min_expected_value: float = Field(default=0.0, alias="minExpectedValue")
    max_expected_value: float = Field(default=0.0, alias="maxExpectedValue")
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1, le=9999)

    @field_validator("min_expected_value", "max_expected_value", mode="before")
    @classmethod
    def parse_expected(cls, v: Any) -> float:
        return _non_negative(v)

    @field_validator("max_expected_value")
    @classmethod
    def max_not_below_min(cls, v: float, info) -> float:
        # Lift an inverted range so the status tiers stay ordered
        return max(v, info.data.get("min_expected_value", 0.0))


# =============================================================================
# DERIVED RESULTS
# =============================================================================

@dataclass
class InventoryMetric:
    """
    Per-product inventory metrics.

    ``days_to_stockout`` is expressed in turnover periods (30 days each by
    default), i.e. ``stock / turnover_rate``; ``stockout_horizon_days``
    converts it to calendar days. Both are ``math.inf`` when the product
    is not selling.
    """
    product_id: str
    turnover_rate: float
    days_to_stockout: float
    profit_margin_percent: float
    revenue: float = 0.0
    turnover_status: TurnoverStatus = TurnoverStatus.SLOW
    needs_restock: bool = False
    abc_class: AbcClass = AbcClass.C
    cumulative_revenue_percent: float = 0.0
    stockout_horizon_days: float = INFINITE_STOCKOUT

    @property
    def never_stocks_out(self) -> bool:
        return math.isinf(self.days_to_stockout)


@dataclass
class AbcEntry:
    """One product's position on the Pareto curve"""
    product_id: str
    revenue: float
    cumulative_percent: float
    abc_class: AbcClass


@dataclass
class CategoryStats:
    """Inventory aggregates for one category"""
    category: str
    total_products: int
    total_stock: int
    total_value: float
    total_sold: int
    avg_turnover: float


@dataclass
class InventorySummary:
    """Portfolio-level inventory KPIs"""
    total_products: int = 0
    total_stock_value: float = 0.0
    low_stock_items: int = 0
    out_of_stock_items: int = 0
    avg_turnover_rate: float = 0.0
    total_revenue: float = 0.0
    total_profit: float = 0.0
    avg_profit_margin: float = 0.0


@dataclass
class ChurnRisk:
    """Churn flag with remediation suggestion"""
    is_at_risk: bool = False
    days_delayed: int = 0
    suggested_discount_percent: Optional[float] = None
    urgency: ChurnUrgency = ChurnUrgency.NONE

    @property
    def suggested_action(self) -> str:
        return {
            ChurnUrgency.CRITICAL: "contact_immediately_with_return_offer",
            ChurnUrgency.ATTENTION: "send_follow_up_with_discount",
            ChurnUrgency.MODERATE: "send_friendly_reminder",
        }.get(self.urgency, "keep_regular_contact")


@dataclass
class ClientScore:
    """Loyalty and churn scoring for one client"""
    client_id: str
    average_interval_days: int
    loyalty_tier: LoyaltyTier
    churn_risk: ChurnRisk = field(default_factory=ChurnRisk)
    total_visits: int = 0
    days_since_last_visit: Optional[int] = None
    last_visit: Optional[datetime] = None
    expected_return_date: Optional[datetime] = None
    preferred_technician_id: Optional[str] = None
    preferred_service_id: Optional[str] = None


@dataclass
class GoalProgress:
    """Realized value against a goal's target range"""
    goal_id: str
    current_value: float
    progress_percentage: float
    status: GoalStatus
    technician_id: Optional[str] = None
    goal_type: Optional[GoalType] = None
    qualifying_appointments: int = 0
