"""
Store Report Service

Fetch-then-compute for one store: read the daily history, expenses,
catalog and order counts, run the data-quality checks, then hand
everything to the engine in one call.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from seller_analytics.config import get_settings
from seller_analytics.database.models import (
    DailyStat,
    OperationalExpenseRecord,
    Store,
    StoreOrder,
    StoreProduct,
)
from seller_analytics.engine import (
    AggregateReport,
    DailyRecord,
    OperationalExpense,
    OrderActivity,
    ProductMeta,
    build_report,
    previous_period,
)
from seller_analytics.engine.errors import InvalidPeriodError
from seller_analytics.quality.validators import validate_report_inputs

logger = structlog.get_logger(__name__)
settings = get_settings()


@dataclass
class StoreInputs:
    """Everything the engine needs for one store"""
    records: List[DailyRecord] = field(default_factory=list)
    expenses: List[OperationalExpense] = field(default_factory=list)
    catalog: List[ProductMeta] = field(default_factory=list)
    activity: Optional[OrderActivity] = None


def resolve_window(
    start: Optional[date],
    end: Optional[date],
    today: Optional[date] = None,
) -> tuple:
    """
    Fill a half-open query window.

    Both bounds missing means the whole history. A missing start reaches
    back the configured default period from the end; a missing end is today.
    """
    if start is None and end is None:
        return None, None
    if end is None:
        end = today or date.today()
    if start is None:
        start = end - timedelta(days=settings.analytics.default_period_days - 1)
    return start, end


async def load_order_activity(
    db: AsyncSession,
    store_id: str,
    start: Optional[date],
    end: Optional[date],
) -> Optional[OrderActivity]:
    """Status, delivery mode and source counts of the store's orders"""
    conditions = [StoreOrder.store_id == store_id]
    if start is not None and end is not None:
        conditions.append(StoreOrder.created_at >= datetime.combine(start, datetime.min.time()))
        conditions.append(StoreOrder.created_at <= datetime.combine(end, datetime.max.time()))

    result = await db.execute(
        select(
            StoreOrder.status,
            StoreOrder.delivery_mode,
            StoreOrder.source,
            func.count().label("orders"),
        )
        .where(*conditions)
        .group_by(StoreOrder.status, StoreOrder.delivery_mode, StoreOrder.source)
    )
    rows = result.all()
    if not rows:
        return None

    statuses: Counter = Counter()
    modes: Counter = Counter()
    sources: Counter = Counter()
    for row in rows:
        statuses[row.status] += row.orders
        if row.delivery_mode:
            modes[row.delivery_mode] += row.orders
        if row.source:
            sources[row.source] += row.orders

    return OrderActivity(
        status_counts=dict(statuses),
        delivery_mode_counts=dict(modes),
        organic_orders=sources["organic"] if sources else None,
        ad_orders=sources["ads"] if sources else None,
    )


async def load_store_inputs(
    db: AsyncSession,
    store: Store,
    start: Optional[date],
    end: Optional[date],
    compare_previous: bool = False,
) -> StoreInputs:
    """
    Read the engine inputs of one store.

    Daily stats reach back far enough to cover the previous period when a
    comparison is requested.
    """
    if start is not None and end is not None and start > end:
        raise InvalidPeriodError(start, end)

    query = select(DailyStat).where(DailyStat.store_id == store.id)
    if start is not None and end is not None:
        lower = previous_period(start, end)[0] if compare_previous else start
        query = query.where(DailyStat.date >= lower, DailyStat.date <= end)
    stats = await db.execute(query.order_by(DailyStat.date))

    expenses = await db.execute(
        select(OperationalExpenseRecord).where(OperationalExpenseRecord.store_id == store.id)
    )
    catalog = await db.execute(select(StoreProduct).where(StoreProduct.store_id == store.id))

    return StoreInputs(
        records=[row.to_record() for row in stats.scalars()],
        expenses=[row.to_expense() for row in expenses.scalars()],
        catalog=[row.to_meta() for row in catalog.scalars()],
        activity=await load_order_activity(db, store.id, start, end),
    )


def build_store_report(
    store: Store,
    inputs: StoreInputs,
    start: Optional[date],
    end: Optional[date],
    marketing_cost: Optional[float] = None,
    compare_previous: bool = False,
    sort_by: str = "revenue",
) -> AggregateReport:
    warnings = validate_report_inputs(inputs.records, inputs.expenses)

    report = build_report(
        inputs.records,
        start=start,
        end=end,
        product_catalog=inputs.catalog,
        store_settings=store.to_settings(
            settings.analytics.default_commission_rate,
            settings.analytics.default_tax_rate,
        ),
        period_marketing_cost=marketing_cost,
        expenses=inputs.expenses,
        activity=inputs.activity,
        compare_previous=compare_previous,
        sort_by=sort_by,
        top_limit=settings.analytics.top_products_limit,
    )
    report.warnings = warnings + report.warnings

    if warnings:
        logger.warning("Report inputs failed quality checks", store_id=store.id, issues=len(warnings))
    return report
