"""
Report Builder

Single entry point used by every presentation surface: filter the period,
prorate expenses and recompute aggregates in one pass.
"""

from typing import Iterable, Optional, Sequence

import structlog

from .models import (
    AggregateReport,
    DailyRecord,
    MarketingSummary,
    OperationalExpense,
    OrderActivity,
    ProductMeta,
    StoreSettings,
)
from .period_filter import DateLike, filter_period, previous_period
from .recalculator import compare_periods, recompute, sort_products

logger = structlog.get_logger(__name__)


def build_report(
    records: Iterable[DailyRecord],
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    product_catalog: Sequence[ProductMeta] = (),
    store_settings: Optional[StoreSettings] = None,
    period_marketing_cost: Optional[float] = None,
    marketing: Optional[MarketingSummary] = None,
    expenses: Sequence[OperationalExpense] = (),
    activity: Optional[OrderActivity] = None,
    compare_previous: bool = False,
    sort_by: str = "revenue",
    top_limit: Optional[int] = None,
    locale: Optional[str] = None,
) -> AggregateReport:
    """
    Build the full report for one store and period.

    Args:
        records: Full daily history of the store
        start: Inclusive window start (``None`` for the whole history)
        end: Inclusive window end (``None`` for the whole history)
        product_catalog: Static per-product metadata
        store_settings: Commission and tax rates
        period_marketing_cost: Campaign cost for the window, if known
        marketing: Marketing collaborator summary; its total cost is used
            when ``period_marketing_cost`` is not given
        expenses: Operational expenses snapshot
        activity: Order status, delivery mode and source counts
        compare_previous: Attach growth over the preceding window
        sort_by: Product ordering (revenue, margin, profit, quantity)
        top_limit: Keep only the first N products after sorting
        locale: Month label locale

    Raises:
        InvalidPeriodError: If start falls after end
        UnknownSortKeyError: If ``sort_by`` is not supported
    """
    if period_marketing_cost is None and marketing is not None:
        period_marketing_cost = marketing.total_cost

    history = list(records)
    selection = filter_period(history, start, end, locale=locale)
    window = (selection.start, selection.end) if selection.start is not None else None

    report = recompute(
        selection.daily,
        product_catalog=product_catalog,
        store_settings=store_settings,
        period_marketing_cost=period_marketing_cost,
        expenses=expenses,
        window=window,
        granularity=selection.granularity,
        activity=activity,
        locale=locale,
    )

    if sort_by != "revenue":
        report.top_products = sort_products(report.top_products, sort_by)
    if top_limit is not None:
        report.top_products = report.top_products[:top_limit]

    if compare_previous and window is not None:
        previous_start, previous_end = previous_period(*window)
        previous_selection = filter_period(history, previous_start, previous_end, locale=locale)
        previous = recompute(
            previous_selection.daily,
            product_catalog=product_catalog,
            store_settings=store_settings,
            expenses=expenses,
            window=(previous_start, previous_end),
            granularity=previous_selection.granularity,
            locale=locale,
        )
        report.comparison = compare_periods(report, previous, previous_start, previous_end)

    logger.info(
        "Report built",
        start=str(report.start),
        end=str(report.end),
        granularity=report.granularity.value,
        total_revenue=report.total_revenue,
        total_profit=report.total_profit,
    )
    return report
