"""
Store Data Loader

Writes collaborator payloads into the store tables. Daily stats are
replaced wholesale per (store, date); catalog rows per (store, sku); orders
per (store, marketplace order id).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from seller_analytics.database.models import DailyStat, Store, StoreOrder, StoreProduct
from .marketplace_client import MarketplaceClient
from .schemas import DailyStatPayload, OrderPayload, ProductMetaPayload

logger = structlog.get_logger(__name__)


@dataclass
class SyncResult:
    """Counts of rows written by one sync run"""
    store_id: str
    days_upserted: int = 0
    products_upserted: int = 0
    orders_upserted: int = 0
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


async def get_store(db: AsyncSession, store_id: str) -> Optional[Store]:
    result = await db.execute(select(Store).where(Store.id == store_id))
    return result.scalar_one_or_none()


async def upsert_daily_stats(
    db: AsyncSession,
    store_id: str,
    payloads: Iterable[DailyStatPayload],
) -> int:
    """
    Replace the daily rows of a store for every date in the payload.

    Returns:
        Number of days written
    """
    payloads = list(payloads)
    if not payloads:
        return 0

    dates = [payload.date for payload in payloads]
    result = await db.execute(
        select(DailyStat).where(DailyStat.store_id == store_id, DailyStat.date.in_(dates))
    )
    existing = {row.date: row for row in result.scalars()}

    for payload in payloads:
        row = existing.get(payload.date)
        if row is None:
            row = DailyStat(store_id=store_id, date=payload.date)
            db.add(row)
            existing[payload.date] = row

        row.orders_count = payload.orders
        row.revenue = payload.revenue
        row.cost = payload.cost
        row.advertising = payload.advertising
        row.commissions = payload.commissions
        row.tax = payload.tax
        row.delivery_cost = payload.delivery
        row.products = [
            {
                "code": product.code,
                "name": product.name,
                "qty": product.qty,
                "revenue": product.revenue,
                "cost_price": product.cost_price,
            }
            for product in payload.products
        ]

    await db.flush()
    logger.info("Daily stats upserted", store_id=store_id, days=len(existing))
    return len({payload.date for payload in payloads})


async def upsert_products(
    db: AsyncSession,
    store_id: str,
    payloads: Iterable[ProductMetaPayload],
) -> int:
    payloads = list(payloads)
    if not payloads:
        return 0

    result = await db.execute(
        select(StoreProduct).where(
            StoreProduct.store_id == store_id,
            StoreProduct.sku.in_([payload.sku for payload in payloads]),
        )
    )
    existing = {row.sku: row for row in result.scalars()}

    for payload in payloads:
        row = existing.get(payload.sku)
        if row is None:
            row = StoreProduct(store_id=store_id, sku=payload.sku)
            db.add(row)
            existing[payload.sku] = row
        row.name = payload.name
        row.product_group = payload.group
        row.ad_cost = payload.ad_cost

    await db.flush()
    logger.info("Catalog upserted", store_id=store_id, products=len(payloads))
    return len({payload.sku for payload in payloads})


async def upsert_orders(
    db: AsyncSession,
    store_id: str,
    payloads: Iterable[OrderPayload],
) -> int:
    payloads = list(payloads)
    if not payloads:
        return 0

    result = await db.execute(
        select(StoreOrder).where(
            StoreOrder.store_id == store_id,
            StoreOrder.marketplace_order_id.in_([payload.order_id for payload in payloads]),
        )
    )
    existing = {row.marketplace_order_id: row for row in result.scalars()}

    for payload in payloads:
        row = existing.get(payload.order_id)
        if row is None:
            row = StoreOrder(store_id=store_id, marketplace_order_id=payload.order_id)
            db.add(row)
            existing[payload.order_id] = row
        row.status = payload.status
        row.delivery_mode = payload.delivery_mode
        row.source = payload.source
        row.total_amount = payload.total_amount
        row.created_at = payload.created_at.replace(tzinfo=None)

    await db.flush()
    return len({payload.order_id for payload in payloads})


async def sync_store(
    db: AsyncSession,
    store_id: str,
    start: date,
    end: date,
    client: Optional[MarketplaceClient] = None,
) -> SyncResult:
    """
    Pull one window from the marketplace and write it.

    The blocking HTTP call runs in the threadpool.

    Raises:
        MarketplaceUnavailableError: If the collaborator fails twice
    """
    owns_client = client is None
    client = client or MarketplaceClient()
    result = SyncResult(store_id=store_id)

    try:
        batch = await run_in_threadpool(client.fetch_store_batch, store_id, start, end)
    finally:
        if owns_client:
            client.close()

    result.days_upserted = await upsert_daily_stats(db, store_id, batch.daily_stats)
    result.products_upserted = await upsert_products(db, store_id, batch.products)
    result.orders_upserted = await upsert_orders(db, store_id, batch.orders)
    result.completed_at = datetime.utcnow()

    logger.info(
        "Store synced",
        store_id=store_id,
        start=str(start),
        end=str(end),
        days=result.days_upserted,
        products=result.products_upserted,
        orders=result.orders_upserted,
    )
    return result
