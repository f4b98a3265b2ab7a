"""
Test Suite Configuration
"""
from datetime import datetime, timedelta

import polars as pl
import pytest

from src.config import AnalyticsSettings, Settings
from src.analytics.models import AppointmentRecord, ProductRecord

NOW = datetime(2025, 3, 1, 12, 0, 0)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    """Default business thresholds"""
    return AnalyticsSettings()


@pytest.fixture
def now() -> datetime:
    """Pinned reference time"""
    return NOW


@pytest.fixture
def make_product():
    """Factory for product records created ``age_days`` before NOW"""
    def _make(product_id: str, age_days: int = 60, **fields) -> ProductRecord:
        fields.setdefault("created_at", NOW - timedelta(days=age_days))
        return ProductRecord(id=product_id, name=f"Product {product_id}", **fields)
    return _make


@pytest.fixture
def make_appointment():
    """Factory for appointment records"""
    counter = {"n": 0}

    def _make(**fields) -> AppointmentRecord:
        counter["n"] += 1
        fields.setdefault("id", f"apt-{counter['n']}")
        fields.setdefault("status", "completed")
        return AppointmentRecord(**fields)
    return _make


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Create sample products DataFrame for testing"""
    return pl.DataFrame({
        "id": ["prod-1", "prod-2", "prod-3"],
        "name": ["Pomade", "Beard Oil", "Shampoo"],
        "category": ["styling", "beard", None],
        "stock": [4, 20, 0],
        "min_stock": [5, 5, 2],
        "price": [100.0, 15.0, 10.0],
        "cost": [40.0, 5.0, 12.0],
        "created_at": [
            NOW - timedelta(days=60),
            NOW - timedelta(days=30),
            NOW - timedelta(days=10),
        ],
        "total_sold": [8, 10, 5],
    })


@pytest.fixture
def sample_appointments_df() -> pl.DataFrame:
    """Create sample appointments DataFrame for testing"""
    return pl.DataFrame({
        "id": ["apt-1", "apt-2", "apt-3", "apt-4", "apt-5"],
        "date": [
            "2025-01-01T10:00:00",
            "2025-01-21T10:00:00",
            "2025-02-10T10:00:00",
            "2025-02-12T09:00:00",
            "2025-02-14T15:00:00",
        ],
        "status": ["completed", "completed", "completed", "confirmed", "cancelled"],
        "client_id": ["cli-1", "cli-1", "cli-1", "cli-2", "cli-2"],
        "technician_id": ["tech-1", "tech-1", "tech-2", "tech-1", "tech-1"],
        "service_id": ["svc-cut", "svc-cut", "svc-beard", "svc-cut", "svc-cut"],
        "signature_used": [False, False, True, False, False],
    })


@pytest.fixture
def sample_goals_df() -> pl.DataFrame:
    """Create sample goals DataFrame for testing"""
    return pl.DataFrame({
        "id": ["goal-1", "goal-2"],
        "technician_id": ["tech-1", "tech-2"],
        "goal_type": ["services_unsigned", "services_signed"],
        "min_expected_value": [50.0, 100.0],
        "max_expected_value": [100.0, 200.0],
        "month": [2, 2],
        "year": [2025, 2025],
    })
