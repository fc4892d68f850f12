"""
Database Models

Tables written by the collaborators the reporting engine reads from:

- Store: tenant with its commission and tax rates
- DailyStat: one row per store per day, written by the marketplace sync
- StoreProduct: static catalog metadata (advertising cost, product group)
- OperationalExpenseRecord: expenses created and deleted by sellers
- StoreOrder: order-level status, delivery mode and attribution source
"""

from datetime import datetime, date
from typing import Optional, List
import uuid

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from seller_analytics.engine.models import (
    DailyRecord,
    OperationalExpense,
    ProductMeta,
    ProductSale,
    StoreSettings,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class Store(Base):
    """Seller store (tenant)"""
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    commission_rate: Mapped[Optional[float]] = mapped_column(Float)
    tax_rate: Mapped[Optional[float]] = mapped_column(Float)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    daily_stats: Mapped[List["DailyStat"]] = relationship(back_populates="store")
    expenses: Mapped[List["OperationalExpenseRecord"]] = relationship(back_populates="store")

    def to_settings(self, default_commission_rate: float, default_tax_rate: float) -> StoreSettings:
        return StoreSettings(
            commission_rate=self.commission_rate if self.commission_rate is not None else default_commission_rate,
            tax_rate=self.tax_rate if self.tax_rate is not None else default_tax_rate,
        )


class DailyStat(Base):
    """
    Daily Store Activity

    Grain: one row per store per day. Rows are replaced wholesale on a
    full-day resync and are otherwise read-only.
    """
    __tablename__ = "daily_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)

    orders_count: Mapped[int] = mapped_column(Integer, default=0)
    revenue: Mapped[float] = mapped_column(Float, default=0.0)
    cost: Mapped[float] = mapped_column(Float, default=0.0)
    advertising: Mapped[float] = mapped_column(Float, default=0.0)
    commissions: Mapped[float] = mapped_column(Float, default=0.0)
    tax: Mapped[float] = mapped_column(Float, default=0.0)
    delivery_cost: Mapped[float] = mapped_column(Float, default=0.0)

    # [{"code", "name", "qty", "revenue", "cost_price"}, ...]
    products: Mapped[list] = mapped_column(JSON, default=list)

    synced_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    store: Mapped["Store"] = relationship(back_populates="daily_stats")

    __table_args__ = (
        UniqueConstraint("store_id", "date", name="uq_daily_stats_store_date"),
        Index("ix_daily_stats_store_date", "store_id", "date"),
    )

    def to_record(self) -> DailyRecord:
        return DailyRecord(
            date=self.date,
            orders=self.orders_count or 0,
            revenue=self.revenue or 0.0,
            cost=self.cost or 0.0,
            advertising=self.advertising or 0.0,
            commissions=self.commissions or 0.0,
            tax=self.tax or 0.0,
            delivery=self.delivery_cost or 0.0,
            products=[
                ProductSale(
                    code=item.get("code"),
                    name=item.get("name") or "",
                    qty=item.get("qty") or 0,
                    revenue=item.get("revenue") or 0.0,
                    cost_price=item.get("cost_price") or 0.0,
                )
                for item in (self.products or [])
            ],
        )


class StoreProduct(Base):
    """Static product metadata used for per-product profitability"""
    __tablename__ = "store_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(500), default="")
    product_group: Mapped[Optional[str]] = mapped_column(String(100))
    ad_cost: Mapped[float] = mapped_column(Float, default=0.0)

    __table_args__ = (
        UniqueConstraint("store_id", "sku", name="uq_store_products_store_sku"),
    )

    def to_meta(self) -> ProductMeta:
        return ProductMeta(
            sku=self.sku,
            name=self.name or "",
            ad_cost=self.ad_cost or 0.0,
            group=self.product_group,
        )


class OperationalExpenseRecord(Base):
    """Operational expense with an inclusive validity window"""
    __tablename__ = "operational_expenses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    product_id: Mapped[Optional[str]] = mapped_column(String(100))
    product_group: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    store: Mapped["Store"] = relationship(back_populates="expenses")

    __table_args__ = (
        Index("ix_operational_expenses_store_start", "store_id", "start_date"),
    )

    def to_expense(self) -> OperationalExpense:
        return OperationalExpense(
            id=self.id,
            name=self.name,
            amount=self.amount,
            start_date=self.start_date,
            end_date=self.end_date,
            product_id=self.product_id,
            product_group=self.product_group,
        )


class StoreOrder(Base):
    """Marketplace order snapshot used for status and source breakdowns"""
    __tablename__ = "store_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("stores.id", ondelete="CASCADE"), nullable=False
    )
    marketplace_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="new")
    delivery_mode: Mapped[Optional[str]] = mapped_column(String(50))
    source: Mapped[Optional[str]] = mapped_column(String(20))  # organic, ads
    total_amount: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("store_id", "marketplace_order_id", name="uq_store_orders_store_order"),
        Index("ix_store_orders_store_created", "store_id", "created_at"),
    )
