"""
Frame Validation Module

Rule-based quality checks on the raw polars frames handed to the engine,
run before the rows are turned into typed records.

Validation never blocks a batch: failures are logged and reported, and the
cleaner decides per row what to coerce and what to skip.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import polars as pl
import structlog

from src.analytics.models import AppointmentStatus, GoalType

logger = structlog.get_logger(__name__)

CheckFn = Callable[[pl.DataFrame], "ValidationCheck"]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Row cannot become a record
    WARNING = "warning"  # Value is coerced by the record model
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Outcome of one rule against one frame"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0

    @classmethod
    def count(
        cls,
        name: str,
        column: str,
        severity: ValidationSeverity,
        failed_rows: int,
        total_rows: int,
        problem: str,
        **details: Any,
    ) -> "ValidationCheck":
        """Check outcome from a count of offending rows"""
        passed = failed_rows == 0
        return cls(
            name=name,
            passed=passed,
            severity=severity,
            message=f"Column '{column}' ok" if passed else f"Column '{column}' has {failed_rows} {problem}",
            details=details or None,
            failed_rows=failed_rows,
            total_rows=total_rows,
        )


@dataclass
class ValidationResult:
    """Aggregate of every check run against a frame"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100

    @property
    def failures(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


class DataValidator:
    """
    Chainable frame validator.

    Each ``add_*`` method registers one rule and returns the validator.
    A rule whose column is missing fails, except range rules: numeric
    columns are optional because the record models default them to 0.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("id").add_range_check("stock", min_value=0)
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Warnings fail the frame
        self._checks: List[CheckFn] = []

    def reset(self) -> None:
        self._checks = []

    def _register(
        self,
        name: str,
        column: str,
        severity: ValidationSeverity,
        rule: CheckFn,
        required: bool = True,
    ) -> "DataValidator":
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column in df.columns:
                return rule(df)
            return ValidationCheck(
                name=name,
                passed=not required,
                severity=severity,
                message=f"Column '{column}' not found" if required else f"Column '{column}' absent",
            )

        self._checks.append(check)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Rows with a null in ``column``"""
        name = f"not_null_{column}"

        def rule(df: pl.DataFrame) -> ValidationCheck:
            nulls = df[column].null_count()
            return ValidationCheck.count(
                name, column, severity, nulls, df.height, "null values",
                null_percentage=nulls * 100 / df.height if df.height else 0.0,
            )

        return self._register(name, column, severity, rule)

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Rows repeating an earlier value of ``column``"""
        name = f"unique_{column}"

        def rule(df: pl.DataFrame) -> ValidationCheck:
            duplicates = df.height - df[column].n_unique()
            return ValidationCheck.count(name, column, severity, duplicates, df.height, "duplicate values")

        return self._register(name, column, severity, rule)

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Non-null values of ``column`` outside ``[min_value, max_value]``"""
        name = f"range_{column}"
        bounds = []
        if min_value is not None:
            bounds.append(pl.col(column) < min_value)
        if max_value is not None:
            bounds.append(pl.col(column) > max_value)

        def rule(df: pl.DataFrame) -> ValidationCheck:
            dtype = df.schema[column]
            if not dtype.is_numeric():
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=ValidationSeverity.WARNING,
                    message=f"Column '{column}' is not numeric",
                    details={"dtype": str(dtype)},
                    total_rows=df.height,
                )
            out_of_range = df.filter(pl.any_horizontal(bounds)).height if bounds else 0
            return ValidationCheck.count(
                name, column, severity, out_of_range, df.height,
                f"values outside [{min_value}, {max_value}]",
                min=min_value, max=max_value,
            )

        return self._register(name, column, severity, rule, required=False)

    def add_enum_check(
        self,
        column: str,
        allowed_values: Sequence[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Non-null values of ``column`` outside ``allowed_values``"""
        name = f"enum_{column}"
        allowed = list(allowed_values)

        def rule(df: pl.DataFrame) -> ValidationCheck:
            invalid = df.filter(pl.col(column).is_not_null() & ~pl.col(column).is_in(allowed)).height
            return ValidationCheck.count(
                name, column, severity, invalid, df.height, "invalid values",
                allowed_values=allowed,
            )

        return self._register(name, column, severity, rule)

    def _status(self, errors: int, warnings: int) -> ValidationStatus:
        if errors or (warnings and self.strict_mode):
            return ValidationStatus.FAILED
        if warnings:
            return ValidationStatus.PARTIAL
        return ValidationStatus.PASSED

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run every registered rule against ``df``.

        Failed rules are logged as warnings; the result's status is FAILED
        on any ERROR failure, PARTIAL on WARNING failures only.
        """
        started_at = datetime.now(timezone.utc)
        checks = [check(df) for check in self._checks]

        for check in checks:
            if not check.passed:
                logger.warning(
                    "Validation check failed",
                    check=check.name,
                    message=check.message,
                    severity=check.severity.value,
                )

        errors = sum(1 for c in checks if not c.passed and c.severity == ValidationSeverity.ERROR)
        warnings = sum(1 for c in checks if not c.passed and c.severity == ValidationSeverity.WARNING)
        logger.debug("Frame validated", rows=df.height, checks=len(checks), errors=errors, warnings=warnings)

        return ValidationResult(
            status=self._status(errors, warnings),
            total_checks=len(checks),
            passed_checks=sum(1 for c in checks if c.passed),
            failed_checks=errors,
            warning_count=warnings,
            checks=checks,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
        )


def create_products_validator() -> DataValidator:
    """Validator for product rows"""
    validator = DataValidator().add_not_null_check("id").add_unique_check("id")
    for column in ("stock", "min_stock", "price", "cost", "total_sold"):
        validator.add_range_check(column, min_value=0)
    return validator


def create_appointments_validator() -> DataValidator:
    """Validator for appointment rows"""
    return (
        DataValidator()
        .add_not_null_check("id")
        .add_not_null_check("date", severity=ValidationSeverity.WARNING)
        .add_enum_check("status", [s.value for s in AppointmentStatus])
    )


def create_goals_validator() -> DataValidator:
    """Validator for goal rows"""
    return (
        DataValidator()
        .add_not_null_check("id")
        .add_not_null_check("technician_id")
        .add_enum_check("goal_type", [t.value for t in GoalType])
        .add_range_check("month", min_value=1, max_value=12, severity=ValidationSeverity.ERROR)
        .add_range_check("year", min_value=1, max_value=9999, severity=ValidationSeverity.ERROR)
        .add_range_check("min_expected_value", min_value=0)
        .add_range_check("max_expected_value", min_value=0)
    )
