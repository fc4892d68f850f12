"""
Financial Aggregation Engine

Pure, synchronous functions: period filtering, expense proration and
metric recalculation. Callers fetch data first, then compute.
"""
from .errors import AnalyticsError, InvalidPeriodError, UnknownSortKeyError
from .models import (
    AggregateReport,
    DailyRecord,
    Granularity,
    MarketingSummary,
    OperationalExpense,
    OrderActivity,
    PeriodRecord,
    ProductMeta,
    ProductSale,
    ProductSalesFact,
    StoreSettings,
)
from .period_filter import bucket_by_month, filter_period, previous_period
from .proration import (
    allocate_to_entity,
    daily_rate,
    operational_total,
    overlap_days,
    prorated_amount,
)
from .recalculator import recompute, returns_rate, sort_products
from .report import build_report

__all__ = [
    "AnalyticsError",
    "InvalidPeriodError",
    "UnknownSortKeyError",
    "AggregateReport",
    "DailyRecord",
    "Granularity",
    "MarketingSummary",
    "OperationalExpense",
    "OrderActivity",
    "PeriodRecord",
    "ProductMeta",
    "ProductSale",
    "ProductSalesFact",
    "StoreSettings",
    "bucket_by_month",
    "filter_period",
    "previous_period",
    "allocate_to_entity",
    "daily_rate",
    "operational_total",
    "overlap_days",
    "prorated_amount",
    "recompute",
    "returns_rate",
    "sort_products",
    "build_report",
]
