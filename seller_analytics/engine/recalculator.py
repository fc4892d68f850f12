"""
Metric Recalculator

Folds filtered daily records, the product catalog and operational expenses
into display-ready aggregates.

Every total is recomputed from components on each call: upstream profit
fields may be stale for a filtered sub-period, so they are never used.
All ratios degrade to 0 when their denominator is 0.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import polars as pl
import structlog

from .errors import UnknownSortKeyError
from .models import (
    AggregateReport,
    DailyRecord,
    Granularity,
    OperationalExpense,
    OrderActivity,
    OrderStatusBreakdown,
    PeriodComparison,
    PeriodRecord,
    ProductMeta,
    ProductSalesFact,
    SalesSources,
    StoreSettings,
)
from .period_filter import as_date, bucket_by_month, to_period_record
from .proration import allocate_to_entity, operational_for_day, operational_total

logger = structlog.get_logger(__name__)


PRODUCT_SORT_KEYS = {
    "revenue": lambda product: product.revenue,
    "margin": lambda product: product.margin,
    "profit": lambda product: product.profit,
    "quantity": lambda product: product.sales,
}

# Raw marketplace order statuses grouped into dashboard buckets
STATUS_BUCKETS = {
    "pending": ("new", "pending"),
    "processing": ("kaspi_delivery_packing", "kaspi_delivery_preorder", "sign_required"),
    "shipped": ("delivery", "kaspi_delivery_transfer", "kaspi_delivery_transmitted", "pickup"),
    "delivered": ("completed", "delivered"),
    "cancelled": ("cancelled", "returned"),
}

DELIVERY_MODES = ("intercity", "my_delivery", "express_delivery", "pickup")


def ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return numerator / denominator


def percent(numerator: float, denominator: float) -> float:
    return ratio(numerator, denominator) * 100


def growth(current: float, previous: float) -> float:
    """Percentage change over the previous value, 0 without a baseline"""
    return percent(current - previous, previous)


def distribute_marketing_cost(
    period_marketing_cost: float,
    day_revenues: Sequence[float],
) -> List[float]:
    """Split a period-level marketing cost across days by revenue share"""
    total_revenue = sum(day_revenues, 0.0)
    return [
        period_marketing_cost * ratio(revenue, total_revenue)
        for revenue in day_revenues
    ]


def returns_rate(returned_count: int, completed_orders: int) -> float:
    """Returned orders as a percentage of completed plus returned"""
    return percent(returned_count, completed_orders + returned_count)


def summarize_order_statuses(status_counts: Mapping[str, int]) -> OrderStatusBreakdown:
    """Fold raw marketplace statuses into dashboard buckets"""
    buckets = {
        bucket: sum(status_counts.get(status, 0) for status in statuses)
        for bucket, statuses in STATUS_BUCKETS.items()
    }
    return OrderStatusBreakdown(
        **buckets,
        completed=status_counts.get("completed", 0) + status_counts.get("delivered", 0),
        returned=status_counts.get("returned", 0),
    )


def delivery_mode_shares(mode_counts: Mapping[str, int]) -> Dict[str, float]:
    """Percentage of orders per delivery mode"""
    total = sum(mode_counts.values())
    modes = list(DELIVERY_MODES) + sorted(set(mode_counts) - set(DELIVERY_MODES))
    return {mode: percent(mode_counts.get(mode, 0), total) for mode in modes}


def sales_sources(organic_orders: int, ad_orders: int) -> SalesSources:
    total = organic_orders + ad_orders
    return SalesSources(
        organic=organic_orders,
        advertising=ad_orders,
        organic_percent=percent(organic_orders, total),
        advertising_percent=percent(ad_orders, total),
    )


def sort_products(products: Iterable[ProductSalesFact], key: str = "revenue") -> List[ProductSalesFact]:
    """Re-sort computed products, highest first, without recomputing them"""
    if key not in PRODUCT_SORT_KEYS:
        raise UnknownSortKeyError(key, tuple(PRODUCT_SORT_KEYS))
    return sorted(products, key=PRODUCT_SORT_KEYS[key], reverse=True)


def merge_product_sales(records: Iterable[DailyRecord]) -> pl.DataFrame:
    """
    Merge per-day product lines across records.

    Lines are keyed by product code, falling back to the product name;
    quantity, revenue and cost price are summed and the first seen name is
    kept. Rows keep first-seen order.
    """
    lines = [line for record in records for line in record.products]
    schema = {
        "key": pl.Utf8,
        "name": pl.Utf8,
        "qty": pl.Int64,
        "revenue": pl.Float64,
        "cost_price": pl.Float64,
    }
    frame = pl.DataFrame(
        {
            "key": [line.key for line in lines],
            "name": [line.name for line in lines],
            "qty": [int(line.qty) for line in lines],
            "revenue": [float(line.revenue) for line in lines],
            "cost_price": [float(line.cost_price) for line in lines],
        },
        schema=schema,
    )
    return frame.group_by("key", maintain_order=True).agg([
        pl.col("name").first(),
        pl.col("qty").sum(),
        pl.col("revenue").sum(),
        pl.col("cost_price").sum(),
    ])


def rebuild_products(
    records: Sequence[DailyRecord],
    product_catalog: Iterable[ProductMeta],
    store_settings: StoreSettings,
    total_delivery: float,
    total_revenue: float,
    expenses: Sequence[OperationalExpense] = (),
    window: Optional[Tuple[date, date]] = None,
) -> List[ProductSalesFact]:
    """
    Per-product profitability for the filtered period, revenue descending.

    Delivery is shared by revenue over the same filtered records the
    totals come from; advertising cost comes from the catalog as-is.
    """
    catalog = {meta.sku: meta for meta in product_catalog}
    merged = merge_product_sales(records)

    products = []
    for row in merged.iter_rows(named=True):
        meta = catalog.get(row["key"])
        revenue = row["revenue"]
        commission = revenue * store_settings.commission_rate
        tax = revenue * store_settings.tax_rate
        delivery = total_delivery * ratio(revenue, total_revenue)
        ad_cost = meta.ad_cost if meta else 0.0
        profit = revenue - row["cost_price"] - commission - tax - delivery - ad_cost

        products.append(ProductSalesFact(
            sku=row["key"],
            name=row["name"],
            group=meta.group if meta else None,
            sales=row["qty"],
            revenue=revenue,
            cost_price=row["cost_price"],
            commission=commission,
            tax=tax,
            delivery=delivery,
            ad_cost=ad_cost,
            profit=profit,
            margin=percent(profit, revenue),
        ))

    if expenses and window is not None:
        group_revenue: Dict[Optional[str], float] = defaultdict(float)
        for product in products:
            if product.group:
                group_revenue[product.group] += product.revenue

        for product in products:
            product.operational = sum(
                (
                    allocate_to_entity(
                        expense,
                        product,
                        window[0],
                        window[1],
                        group_revenue.get(product.group, 0.0),
                        total_revenue,
                    )
                    for expense in expenses
                ),
                0.0,
            )

    return sort_products(products, "revenue")


def _daily_rows(
    records: Sequence[DailyRecord],
    period_marketing_cost: Optional[float],
    expenses: Sequence[OperationalExpense],
) -> List[PeriodRecord]:
    rows = [to_period_record(record) for record in records]

    if period_marketing_cost is not None:
        shares = distribute_marketing_cost(period_marketing_cost, [row.revenue for row in rows])
        for row, share in zip(rows, shares):
            row.advertising = share

    if expenses:
        for row in rows:
            row.operational = operational_for_day(expenses, row.date)

    return rows


def _resolve_window(
    records: Sequence[DailyRecord],
    window: Optional[Tuple[date, date]],
) -> Optional[Tuple[date, date]]:
    if window is not None:
        return as_date(window[0]), as_date(window[1])
    if not records:
        return None
    return as_date(records[0].date), as_date(records[-1].date)


def recompute(
    period_records: Sequence[DailyRecord],
    product_catalog: Iterable[ProductMeta] = (),
    store_settings: Optional[StoreSettings] = None,
    period_marketing_cost: Optional[float] = None,
    expenses: Sequence[OperationalExpense] = (),
    window: Optional[Tuple[date, date]] = None,
    granularity: Granularity = Granularity.DAY,
    activity: Optional[OrderActivity] = None,
    locale: Optional[str] = None,
) -> AggregateReport:
    """
    Recompute all aggregates for a filtered period.

    Args:
        period_records: Daily records already selected by the period filter
        product_catalog: Static per-product metadata (ad cost, group)
        store_settings: Commission and tax rates for product lines
        period_marketing_cost: Campaign cost for the period; when given it
            replaces upstream daily advertising, split by revenue share
        expenses: Operational expenses snapshot
        window: Inclusive reporting window; defaults to the record span
        granularity: Chart row granularity
        activity: Order status, delivery mode and source counts
        locale: Month label locale for monthly buckets

    Returns:
        AggregateReport whose chart, product and top-line figures agree
    """
    records = sorted(period_records, key=lambda record: as_date(record.date))
    store_settings = store_settings or StoreSettings()
    expenses = list(expenses)
    window = _resolve_window(records, window)

    rows = _daily_rows(records, period_marketing_cost, expenses)

    report = AggregateReport(
        granularity=granularity,
        start=window[0] if window else None,
        end=window[1] if window else None,
        total_orders=sum(row.orders for row in rows),
        total_revenue=sum((row.revenue for row in rows), 0.0),
        total_cost=sum((row.cost for row in rows), 0.0),
        total_advertising=sum((row.advertising for row in rows), 0.0),
        total_commissions=sum((row.commissions for row in rows), 0.0),
        total_tax=sum((row.tax for row in rows), 0.0),
        total_delivery=sum((row.delivery for row in rows), 0.0),
    )
    report.avg_order_value = ratio(report.total_revenue, report.total_orders)

    if period_marketing_cost and report.total_revenue == 0:
        report.warnings.append("Marketing cost could not be distributed: period revenue is 0")
        logger.warning(
            "Marketing cost not distributed",
            marketing_cost=period_marketing_cost,
        )

    if window is not None and expenses:
        report.total_operational = operational_total(expenses, window[0], window[1])
        report.unallocated_operational = report.total_operational - sum(
            (row.operational for row in rows), 0.0
        )

    report.top_products = rebuild_products(
        records,
        product_catalog,
        store_settings,
        total_delivery=report.total_delivery,
        total_revenue=report.total_revenue,
        expenses=expenses,
        window=window,
    )
    report.unattributed_revenue = report.total_revenue - sum(
        (product.revenue for product in report.top_products), 0.0
    )
    if report.top_products and abs(report.unattributed_revenue) > 1e-6:
        report.warnings.append(
            f"Revenue of {report.unattributed_revenue:.2f} has no matching product line"
        )

    report.daily_data = bucket_by_month(rows, locale) if granularity == Granularity.MONTH else rows

    if activity is not None:
        _apply_activity(report, activity)

    logger.debug(
        "Aggregates recomputed",
        days=len(records),
        products=len(report.top_products),
        granularity=granularity.value,
    )
    return report


def _apply_activity(report: AggregateReport, activity: OrderActivity) -> None:
    if activity.status_counts:
        statuses = summarize_order_statuses(activity.status_counts)
        report.order_statuses = statuses
        report.return_percent = returns_rate(statuses.returned, statuses.completed)
    if activity.delivery_mode_counts:
        report.delivery_modes = delivery_mode_shares(activity.delivery_mode_counts)
    if activity.organic_orders is not None and activity.ad_orders is not None:
        report.sales_sources = sales_sources(activity.organic_orders, activity.ad_orders)


def compare_periods(
    current: AggregateReport,
    previous: AggregateReport,
    previous_start: date,
    previous_end: date,
) -> PeriodComparison:
    """Growth of the current report over the previous-period report"""
    return PeriodComparison(
        previous_start=previous_start,
        previous_end=previous_end,
        previous_revenue=previous.total_revenue,
        previous_orders=previous.total_orders,
        previous_profit=previous.total_profit,
        revenue_growth=growth(current.total_revenue, previous.total_revenue),
        orders_growth=growth(current.total_orders, previous.total_orders),
        profit_growth=growth(current.total_profit, previous.total_profit),
    )
