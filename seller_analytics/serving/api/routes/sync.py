"""
Store Sync Endpoints

Write paths for the marketplace collaborator: full-day daily-stats resync,
catalog metadata, and a pull-based sync against the marketplace API.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from seller_analytics.config import get_settings
from seller_analytics.config.logging import bind_store_context
from seller_analytics.database.connection import get_db_dependency
from seller_analytics.ingestion.marketplace_client import MarketplaceClient
from seller_analytics.ingestion.schemas import DailyStatPayload, ProductMetaPayload
from seller_analytics.ingestion.sync import (
    get_store,
    sync_store,
    upsert_daily_stats,
    upsert_products,
)
from seller_analytics.serving.cache import invalidate_store_reports

settings = get_settings()
router = APIRouter()
logger = structlog.get_logger(__name__)


class UpsertResponse(BaseModel):
    store_id: str
    upserted: int


class SyncResponse(BaseModel):
    """Result of a marketplace pull"""
    store_id: str
    start_date: date
    end_date: date
    days_upserted: int
    products_upserted: int
    orders_upserted: int
    completed_at: Optional[datetime]


def get_marketplace_client() -> MarketplaceClient:
    return MarketplaceClient()


async def _require_store(db: AsyncSession, store_id: str) -> None:
    bind_store_context(store_id)
    if await get_store(db, store_id) is None:
        raise HTTPException(status_code=404, detail="Store not found")


@router.put("/stores/{store_id}/daily-stats", response_model=UpsertResponse)
async def put_daily_stats(
    store_id: str,
    payload: List[DailyStatPayload],
    db: AsyncSession = Depends(get_db_dependency),
) -> UpsertResponse:
    """Replace whole days of activity for a store."""
    await _require_store(db, store_id)
    upserted = await upsert_daily_stats(db, store_id, payload)
    await db.commit()
    await invalidate_store_reports(store_id)
    return UpsertResponse(store_id=store_id, upserted=upserted)


@router.put("/stores/{store_id}/products", response_model=UpsertResponse)
async def put_products(
    store_id: str,
    payload: List[ProductMetaPayload],
    db: AsyncSession = Depends(get_db_dependency),
) -> UpsertResponse:
    """Upsert catalog metadata (advertising cost, product group)."""
    await _require_store(db, store_id)
    upserted = await upsert_products(db, store_id, payload)
    await db.commit()
    await invalidate_store_reports(store_id)
    return UpsertResponse(store_id=store_id, upserted=upserted)


@router.post("/stores/{store_id}/sync", response_model=SyncResponse)
async def sync_from_marketplace(
    store_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db_dependency),
    client: MarketplaceClient = Depends(get_marketplace_client),
) -> SyncResponse:
    """
    Pull a window from the marketplace and store it.

    Defaults to the configured default period ending today. Responds 502
    when the marketplace fails twice.
    """
    await _require_store(db, store_id)

    end = end_date or date.today()
    start = start_date or end - timedelta(days=settings.analytics.default_period_days - 1)
    if start > end:
        raise HTTPException(status_code=422, detail="start_date must not be after end_date")

    try:
        result = await sync_store(db, store_id, start, end, client=client)
    finally:
        client.close()
    await db.commit()
    await invalidate_store_reports(store_id)

    return SyncResponse(
        store_id=store_id,
        start_date=start,
        end_date=end,
        days_upserted=result.days_upserted,
        products_upserted=result.products_upserted,
        orders_upserted=result.orders_upserted,
        completed_at=result.completed_at,
    )
