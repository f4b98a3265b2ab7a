"""
Business Analytics & Scoring Engine
Configuration Module
"""
from .settings import AnalyticsSettings, Settings, get_analytics_settings, get_settings

__all__ = ["AnalyticsSettings", "Settings", "get_analytics_settings", "get_settings"]
