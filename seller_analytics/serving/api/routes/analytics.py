"""
Analytics API Endpoints

Financial reports for a store, either read from storage or computed from
an inline payload.
"""

import datetime as dt
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from seller_analytics.config.logging import bind_store_context
from seller_analytics.database.connection import get_db_dependency
from seller_analytics.engine import AggregateReport, Granularity, build_report
from seller_analytics.ingestion.schemas import ReportRequest
from seller_analytics.ingestion.sync import get_store
from seller_analytics.quality.validators import validate_report_inputs
from seller_analytics.serving.cache import report_cache_key, reports_cache
from seller_analytics.serving.reports import (
    build_store_report,
    load_store_inputs,
    resolve_window,
)

router = APIRouter()
logger = structlog.get_logger(__name__)


class ReportModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PeriodRow(ReportModel):
    """Chart row: one day or one calendar month"""
    date: dt.date
    label: str
    granularity: Granularity
    orders: int
    revenue: float
    cost: float
    advertising: float
    commissions: float
    tax: float
    delivery: float
    operational: float
    total_expenses: float
    profit: float
    net_profit: float


class ProductProfitability(ReportModel):
    """Per-product profitability over the period"""
    sku: str
    name: str
    group: Optional[str]
    sales: int
    revenue: float
    cost_price: float
    commission: float
    tax: float
    delivery: float
    ad_cost: float
    operational: float
    profit: float
    margin: float
    net_profit: float
    net_margin: float


class OrderStatuses(ReportModel):
    pending: int
    processing: int
    shipped: int
    delivered: int
    cancelled: int
    completed: int
    returned: int


class SalesSourceShares(ReportModel):
    organic: int
    advertising: int
    organic_percent: float
    advertising_percent: float


class PeriodGrowth(ReportModel):
    """Growth over the preceding period of equal length (%)"""
    previous_start: dt.date
    previous_end: dt.date
    previous_revenue: float
    previous_orders: int
    previous_profit: float
    revenue_growth: float
    orders_growth: float
    profit_growth: float


class ReportResponse(ReportModel):
    """Financial report for one store and period"""
    granularity: Granularity
    start: Optional[dt.date]
    end: Optional[dt.date]
    total_orders: int
    total_revenue: float
    total_cost: float
    total_advertising: float
    total_commissions: float
    total_tax: float
    total_delivery: float
    total_expenses: float
    total_profit: float
    profit_margin: float
    total_operational: float
    net_profit: float
    unallocated_operational: float
    unattributed_revenue: float
    avg_order_value: float
    daily_data: List[PeriodRow]
    top_products: List[ProductProfitability]
    order_statuses: Optional[OrderStatuses]
    return_percent: float
    delivery_modes: Dict[str, float]
    sales_sources: Optional[SalesSourceShares]
    comparison: Optional[PeriodGrowth]
    warnings: List[str]

    @classmethod
    def from_report(cls, report: AggregateReport) -> "ReportResponse":
        return cls.model_validate(report)


@router.get("/stores/{store_id}/report", response_model=ReportResponse)
async def get_store_report(
    store_id: str,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
    marketing_cost: Optional[float] = Query(None, ge=0),
    compare_previous: bool = False,
    sort_by: str = Query("revenue", pattern="^(revenue|margin|profit|quantity)$"),
    db: AsyncSession = Depends(get_db_dependency),
) -> ReportResponse:
    """
    Financial report for a store over an inclusive date range.

    Without dates the whole synced history is reported. Spans longer than
    a month are charted per calendar month.
    """
    bind_store_context(store_id)
    store = await get_store(db, store_id)
    if store is None:
        raise HTTPException(status_code=404, detail="Store not found")

    start, end = resolve_window(start_date, end_date)

    cache_key = report_cache_key(store_id, {
        "start": start,
        "end": end,
        "marketing_cost": marketing_cost,
        "compare_previous": compare_previous,
        "sort_by": sort_by,
    })
    cached = await reports_cache.get(cache_key)
    if cached:
        logger.debug("Returning cached report", store_id=store_id)
        return ReportResponse(**cached)

    inputs = await load_store_inputs(db, store, start, end, compare_previous)
    report = build_store_report(
        store,
        inputs,
        start,
        end,
        marketing_cost=marketing_cost,
        compare_previous=compare_previous,
        sort_by=sort_by,
    )
    response = ReportResponse.from_report(report)

    await reports_cache.set(cache_key, response.model_dump(mode="json"))
    return response


@router.post("/analytics/report", response_model=ReportResponse)
async def compute_report(request: ReportRequest) -> ReportResponse:
    """
    Compute a report from an inline payload without touching storage.

    Used by collaborators that already hold the daily history in memory.
    """
    records = [payload.to_record() for payload in request.daily_stats]
    expenses = [
        payload.to_expense(default_id=f"inline-{index}")
        for index, payload in enumerate(request.expenses)
    ]

    report = build_report(
        records,
        start=request.start_date,
        end=request.end_date,
        product_catalog=[payload.to_meta() for payload in request.products],
        store_settings=request.store_settings.to_settings() if request.store_settings else None,
        marketing=request.marketing.to_summary() if request.marketing else None,
        expenses=expenses,
        activity=request.activity.to_activity() if request.activity else None,
        compare_previous=request.compare_previous,
        sort_by=request.sort_by,
    )
    report.warnings = validate_report_inputs(records, expenses) + report.warnings

    return ReportResponse.from_report(report)
