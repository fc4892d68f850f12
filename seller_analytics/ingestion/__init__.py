"""
Ingestion Module

Collaborator payload schemas, the marketplace sync client and the loaders
that write synced data into the store tables.
"""
from .marketplace_client import MarketplaceClient, MarketplaceUnavailableError
from .schemas import (
    DailyStatPayload,
    ExpensePayload,
    MarketingPayload,
    OrderActivityPayload,
    OrderPayload,
    ProductMetaPayload,
    ReportRequest,
    SyncBatch,
)
from .sync import SyncResult, sync_store, upsert_daily_stats, upsert_orders, upsert_products

__all__ = [
    "MarketplaceClient",
    "MarketplaceUnavailableError",
    "DailyStatPayload",
    "ExpensePayload",
    "MarketingPayload",
    "OrderActivityPayload",
    "OrderPayload",
    "ProductMetaPayload",
    "ReportRequest",
    "SyncBatch",
    "SyncResult",
    "sync_store",
    "upsert_daily_stats",
    "upsert_orders",
    "upsert_products",
]
