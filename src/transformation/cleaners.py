"""
Record Cleaning Module

Turns raw polars frames from the record source into the engine's typed
records. Handles:
- Frame-level quality checks (logged, never blocking)
- Trimming of identifier and label columns
- Per-row validation, skipping rows that cannot become a record
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Type, TypeVar

import polars as pl
import structlog
from pydantic import BaseModel, ValidationError

from src.analytics.models import AppointmentRecord, GoalDefinition, ProductRecord
from src.quality.validators import (
    DataValidator,
    ValidationStatus,
    create_appointments_validator,
    create_goals_validator,
    create_products_validator,
)

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=BaseModel)

NUMERIC_DEFAULTS: Dict[str, List[str]] = {
    "products": ["stock", "min_stock", "price", "cost", "total_sold"],
    "appointments": ["unit_price"],
    "goals": ["min_expected_value", "max_expected_value"],
}


@dataclass
class CleaningStats:
    """Statistics from cleaning operations"""
    total_rows: int
    rows_after_cleaning: int
    rows_skipped: int
    nulls_filled: int
    validation_status: ValidationStatus = ValidationStatus.PASSED


class RecordCleaner:
    """
    Frame-to-record cleaner.

    Example:
        cleaner = RecordCleaner()
        products, stats = cleaner.clean_products(products_df)
    """

    def _trim_strings(self, df: pl.DataFrame) -> pl.DataFrame:
        """Trim whitespace from string columns"""
        string_cols = [col for col, dtype in zip(df.columns, df.dtypes) if dtype == pl.Utf8]
        if not string_cols:
            return df
        return df.with_columns([pl.col(col).str.strip_chars() for col in string_cols])

    @staticmethod
    def _count_nulls(df: pl.DataFrame, columns: List[str]) -> int:
        return sum(df[col].null_count() for col in columns if col in df.columns)

    def _to_records(
        self,
        df: pl.DataFrame,
        model: Type[R],
        data_type: str,
        validator_factory: Callable[[], DataValidator],
    ) -> Tuple[List[R], CleaningStats]:
        validation = validator_factory().validate(df)
        df = self._trim_strings(df)

        records: List[R] = []
        skipped = 0
        for index, row in enumerate(df.iter_rows(named=True)):
            try:
                records.append(model.model_validate(row))
            except ValidationError as e:
                skipped += 1
                logger.warning(
                    "Row skipped",
                    data_type=data_type,
                    row=index,
                    errors=e.error_count(),
                )

        stats = CleaningStats(
            total_rows=len(df),
            rows_after_cleaning=len(records),
            rows_skipped=skipped,
            nulls_filled=self._count_nulls(df, NUMERIC_DEFAULTS[data_type]),
            validation_status=validation.status,
        )
        logger.info(
            "Records cleaned",
            data_type=data_type,
            total_rows=stats.total_rows,
            records=stats.rows_after_cleaning,
            skipped=stats.rows_skipped,
        )
        return records, stats

    def clean_products(self, df: pl.DataFrame) -> Tuple[List[ProductRecord], CleaningStats]:
        """Product rows to ``ProductRecord``s"""
        return self._to_records(df, ProductRecord, "products", create_products_validator)

    def clean_appointments(self, df: pl.DataFrame) -> Tuple[List[AppointmentRecord], CleaningStats]:
        """Appointment rows to ``AppointmentRecord``s"""
        return self._to_records(df, AppointmentRecord, "appointments", create_appointments_validator)

    def clean_goals(self, df: pl.DataFrame) -> Tuple[List[GoalDefinition], CleaningStats]:
        """Goal rows to ``GoalDefinition``s"""
        return self._to_records(df, GoalDefinition, "goals", create_goals_validator)


def clean_dataframe(
    df: pl.DataFrame,
    data_type: str = "products",
    cleaner: Optional[RecordCleaner] = None,
) -> List[BaseModel]:
    """
    Convenience function to turn a frame into records.

    Args:
        df: Raw frame
        data_type: "products", "appointments", or "goals"

    Returns:
        Typed records; invalid rows are dropped
    """
    cleaner = cleaner or RecordCleaner()
    handlers = {
        "products": cleaner.clean_products,
        "appointments": cleaner.clean_appointments,
        "goals": cleaner.clean_goals,
    }
    if data_type not in handlers:
        raise ValueError(f"Data type must be one of: {list(handlers)}")
    records, _ = handlers[data_type](df)
    return records
