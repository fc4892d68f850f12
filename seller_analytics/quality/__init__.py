"""
Data Quality Module
"""
from .validators import (
    DataValidator,
    ValidationResult,
    create_daily_stats_validator,
    create_expenses_validator,
    validate_report_inputs,
)

__all__ = [
    "DataValidator",
    "ValidationResult",
    "create_daily_stats_validator",
    "create_expenses_validator",
    "validate_report_inputs",
]
