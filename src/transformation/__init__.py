"""
Batch Transformation Module
"""
from .cleaners import CleaningStats, RecordCleaner, clean_dataframe
from .enrichers import AnalyticsEnricher, enrich_client_data, enrich_product_data, service_prices

__all__ = [
    "CleaningStats",
    "RecordCleaner",
    "clean_dataframe",
    "AnalyticsEnricher",
    "enrich_client_data",
    "enrich_product_data",
    "service_prices",
]
