"""
Data Validation Module

Rule-based checks over polars frames of collaborator data before it
reaches the reporting engine. Failed checks are reported, not raised: the
engine degrades gracefully and the caller surfaces the messages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import polars as pl
import structlog

from seller_analytics.engine.models import DailyRecord, OperationalExpense

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"
    WARNING = "warning"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def messages(self) -> List[str]:
        """Messages of every check that did not pass"""
        return [check.message for check in self.checks if not check.passed]


class DataValidator:
    """
    Chainable validator for polars frames.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("date").add_range_check("revenue", min_value=0)
        result = validator.validate(df)
    """

    def __init__(self, name: str = "data"):
        self.name = name
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def _missing_column(self, check_name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
        return ValidationCheck(
            name=check_name,
            passed=False,
            severity=severity,
            message=f"Column '{column}' not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            null_count = df[column].null_count()
            passed = null_count == 0
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{self.name}: column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                failed_rows=null_count,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            duplicate_count = len(df) - df[column].n_unique()
            passed = duplicate_count == 0
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{self.name}: column '{column}' has {duplicate_count} duplicate values" if not passed else f"Column '{column}' values are unique",
                details={"duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"range_{column}"
            if column not in df.columns:
                return self._missing_column(name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)
            if not conditions:
                return ValidationCheck(name=name, passed=True, severity=severity, message="No range specified")

            combined = conditions[0]
            for condition in conditions[1:]:
                combined = combined | condition

            out_of_range = df.filter(combined).height
            passed = out_of_range == 0
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{self.name}: column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        failing_rows: Callable[[pl.DataFrame], pl.DataFrame],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """
        Add a row-level business rule.

        Args:
            name: Check name
            failing_rows: Returns the rows violating the rule
            message_on_fail: Message prefix reported on failure
            severity: Severity of a violation
        """
        def check(df: pl.DataFrame) -> ValidationCheck:
            failed = failing_rows(df).height
            passed = failed == 0
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{self.name}: {message_on_fail} ({failed} rows)" if not passed else f"Check '{name}' passed",
                failed_rows=failed,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all registered checks against the frame.

        Args:
            df: Frame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.debug(
            f"Validation complete: {status.value}",
            dataset=self.name,
            rows=len(df),
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.utcnow(),
        )


MONETARY_COLUMNS = ("revenue", "cost", "advertising", "commissions", "tax", "delivery")


def daily_records_frame(records: Iterable[DailyRecord]) -> pl.DataFrame:
    """Flatten daily records (without product lines) into a frame"""
    rows = [
        {
            "date": record.date,
            "orders": record.orders,
            **{column: float(getattr(record, column)) for column in MONETARY_COLUMNS},
        }
        for record in records
    ]
    schema = {"date": pl.Date, "orders": pl.Int64, **{column: pl.Float64 for column in MONETARY_COLUMNS}}
    return pl.DataFrame(rows, schema=schema)


def expenses_frame(expenses: Iterable[OperationalExpense]) -> pl.DataFrame:
    rows = [
        {
            "id": expense.id,
            "amount": float(expense.amount),
            "start_date": expense.start_date,
            "end_date": expense.end_date,
        }
        for expense in expenses
    ]
    schema = {"id": pl.Utf8, "amount": pl.Float64, "start_date": pl.Date, "end_date": pl.Date}
    return pl.DataFrame(rows, schema=schema)


def create_daily_stats_validator() -> DataValidator:
    """Validator for the daily history of one store"""
    validator = DataValidator("daily_stats").add_not_null_check("date").add_unique_check("date")
    validator.add_range_check("orders", min_value=0)
    for column in MONETARY_COLUMNS:
        validator.add_range_check(column, min_value=0, severity=ValidationSeverity.WARNING)
    return validator


def create_expenses_validator() -> DataValidator:
    """Validator for operational expenses"""
    return (
        DataValidator("operational_expenses")
        .add_unique_check("id")
        .add_range_check("amount", min_value=0, severity=ValidationSeverity.WARNING)
        .add_custom_check(
            name="window_not_inverted",
            failing_rows=lambda df: df.filter(pl.col("end_date") < pl.col("start_date")),
            message_on_fail="expense window ends before it starts, clamped to one day",
            severity=ValidationSeverity.WARNING,
        )
    )


def validate_report_inputs(
    records: Iterable[DailyRecord],
    expenses: Iterable[OperationalExpense],
) -> List[str]:
    """Run both validators and return the messages of failed checks"""
    messages = create_daily_stats_validator().validate(daily_records_frame(records)).messages
    messages += create_expenses_validator().validate(expenses_frame(expenses)).messages
    return messages
