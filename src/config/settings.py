"""
Business Analytics & Scoring Engine
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support. Every business threshold the scoring engine
applies lives here, so a deployment can tune them without code changes.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsSettings(BaseSettings):
    """Business thresholds used by the scoring engine"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Velocity normalization
    velocity_window_days: int = Field(default=30, description="Days in one turnover period")

    # ABC (Pareto) classification
    abc_class_a_max_percent: float = Field(default=80.0, description="Cumulative revenue % ceiling for class A")
    abc_class_b_max_percent: float = Field(default=95.0, description="Cumulative revenue % ceiling for class B")

    # Turnover status labels (units per period)
    turnover_excellent: float = Field(default=4.0, description="Turnover at or above which a product is excellent")
    turnover_good: float = Field(default=2.0, description="Turnover at or above which a product is good")
    turnover_regular: float = Field(default=1.0, description="Turnover at or above which a product is regular")

    # Loyalty tiers
    loyalty_high_min_visits: int = Field(default=10, description="Visits that make a client High")
    loyalty_high_max_interval: int = Field(default=30, description="Average interval (days) that makes a client High")
    loyalty_medium_min_visits: int = Field(default=5, description="Visits that make a client Medium")
    loyalty_medium_max_interval: int = Field(default=60, description="Average interval (days) that makes a client Medium")

    # Churn risk
    churn_risk_days: int = Field(default=15, description="Days of delay that flag a client at risk")
    churn_attention_days: int = Field(default=20, description="Days of delay for attention urgency")
    churn_critical_days: int = Field(default=30, description="Days of delay for critical urgency")
    churn_moderate_discount: float = Field(default=10.0, description="Discount % for moderate urgency")
    churn_attention_discount: float = Field(default=15.0, description="Discount % for attention urgency")
    churn_critical_discount: float = Field(default=20.0, description="Discount % for critical urgency")

    @field_validator("abc_class_b_max_percent")
    @classmethod
    def validate_abc_cutoffs(cls, v: float, info) -> float:
        """Class B ceiling must not sit below class A ceiling"""
        class_a = info.data.get("abc_class_a_max_percent", 0.0)
        if v < class_a:
            raise ValueError("abc_class_b_max_percent must be >= abc_class_a_max_percent")
        return v


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")
    log_file: Optional[str] = Field(default=None, description="Log file path")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="business-analytics-engine", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


def get_analytics_settings() -> AnalyticsSettings:
    """Shortcut for the analytics thresholds section"""
    return get_settings().analytics
