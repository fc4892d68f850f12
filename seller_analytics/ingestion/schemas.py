"""
Collaborator Payload Schemas

Pydantic models for the JSON the marketplace sync, expense and marketing
collaborators send. Each field accepts both the snake_case and the
camelCase spelling; dates arrive as ISO-8601 strings.
"""

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from seller_analytics.engine.models import (
    DailyRecord,
    MarketingSummary,
    OperationalExpense,
    OrderActivity,
    ProductMeta,
    ProductSale,
    StoreSettings,
)


def parse_iso_date(value: Any) -> Any:
    """Accept ISO dates and datetimes (``Z`` suffix included)"""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str):
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class CollaboratorModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProductSalePayload(CollaboratorModel):
    """Product line of a synced day"""
    code: Optional[str] = Field(default=None, validation_alias=AliasChoices("product_code", "code"))
    name: str = Field(default="", validation_alias=AliasChoices("product_name", "name"))
    qty: int = Field(default=0, validation_alias=AliasChoices("quantity", "qty"))
    revenue: float = Field(default=0.0, validation_alias=AliasChoices("total", "revenue"))
    cost_price: float = Field(default=0.0, validation_alias=AliasChoices("cost_price", "costPrice"))

    def to_sale(self) -> ProductSale:
        return ProductSale(
            code=self.code,
            name=self.name,
            qty=self.qty,
            revenue=self.revenue,
            cost_price=self.cost_price,
        )


class DailyStatPayload(CollaboratorModel):
    """One day of store activity as sent by the marketplace sync"""
    date: dt.date = Field(validation_alias=AliasChoices("date", "fullDate"))
    orders: int = Field(default=0, ge=0, validation_alias=AliasChoices("orders", "orders_count"))
    revenue: float = 0.0
    cost: float = 0.0
    advertising: float = 0.0
    commissions: float = 0.0
    tax: float = 0.0
    delivery: float = Field(default=0.0, validation_alias=AliasChoices("delivery", "delivery_cost"))
    products: List[ProductSalePayload] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        return parse_iso_date(v)

    def to_record(self) -> DailyRecord:
        return DailyRecord(
            date=self.date,
            orders=self.orders,
            revenue=self.revenue,
            cost=self.cost,
            advertising=self.advertising,
            commissions=self.commissions,
            tax=self.tax,
            delivery=self.delivery,
            products=[product.to_sale() for product in self.products],
        )


class ExpensePayload(CollaboratorModel):
    """Operational expense as created by a seller"""
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=200)
    amount: float = Field(ge=0)
    start_date: dt.date = Field(validation_alias=AliasChoices("start_date", "startDate"))
    end_date: dt.date = Field(validation_alias=AliasChoices("end_date", "endDate"))
    product_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("product_id", "productId"))
    product_group: Optional[str] = Field(default=None, validation_alias=AliasChoices("product_group", "productGroup"))

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)

    def to_expense(self, default_id: str = "") -> OperationalExpense:
        return OperationalExpense(
            id=self.id or default_id,
            name=self.name,
            amount=self.amount,
            start_date=self.start_date,
            end_date=self.end_date,
            product_id=self.product_id,
            product_group=self.product_group,
        )


class ProductMetaPayload(CollaboratorModel):
    """Catalog metadata for one product"""
    sku: str = Field(validation_alias=AliasChoices("sku", "product_code", "code"))
    name: str = ""
    ad_cost: float = Field(default=0.0, ge=0, validation_alias=AliasChoices("ad_cost", "adCost"))
    group: Optional[str] = Field(default=None, validation_alias=AliasChoices("group", "product_group", "productGroup"))

    def to_meta(self) -> ProductMeta:
        return ProductMeta(sku=self.sku, name=self.name, ad_cost=self.ad_cost, group=self.group)


class MarketingPayload(CollaboratorModel):
    """Marketing summary; only the total cost reaches the engine"""
    total_cost: float = Field(default=0.0, validation_alias=AliasChoices("totalCost", "total_cost"))
    total_gmv: float = Field(default=0.0, validation_alias=AliasChoices("totalGmv", "total_gmv"))
    roas: float = 0.0
    campaigns: List[Dict[str, Any]] = Field(default_factory=list)

    def to_summary(self) -> MarketingSummary:
        return MarketingSummary(
            total_cost=self.total_cost,
            total_gmv=self.total_gmv,
            roas=self.roas,
            campaigns=list(self.campaigns),
        )


class OrderPayload(CollaboratorModel):
    """Order snapshot used for status, delivery mode and source counts"""
    order_id: str = Field(validation_alias=AliasChoices("order_id", "orderId", "id", "code"))
    status: str = "new"
    delivery_mode: Optional[str] = Field(default=None, validation_alias=AliasChoices("delivery_mode", "deliveryMode"))
    source: Optional[str] = None
    total_amount: float = Field(default=0.0, validation_alias=AliasChoices("total_amount", "totalPrice", "total"))
    created_at: dt.datetime = Field(validation_alias=AliasChoices("created_at", "creationDate", "createdAt"))

    @field_validator("status", "delivery_mode", "source", mode="before")
    @classmethod
    def lower(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


class OrderActivityPayload(CollaboratorModel):
    status_counts: Dict[str, int] = Field(default_factory=dict, validation_alias=AliasChoices("status_counts", "statusCounts"))
    delivery_mode_counts: Dict[str, int] = Field(
        default_factory=dict, validation_alias=AliasChoices("delivery_mode_counts", "deliveryModeCounts")
    )
    organic_orders: Optional[int] = Field(default=None, validation_alias=AliasChoices("organic_orders", "organicOrders"))
    ad_orders: Optional[int] = Field(default=None, validation_alias=AliasChoices("ad_orders", "adOrders"))

    def to_activity(self) -> OrderActivity:
        return OrderActivity(
            status_counts=dict(self.status_counts),
            delivery_mode_counts=dict(self.delivery_mode_counts),
            organic_orders=self.organic_orders,
            ad_orders=self.ad_orders,
        )


class StoreSettingsPayload(CollaboratorModel):
    commission_rate: float = Field(ge=0, le=1, validation_alias=AliasChoices("commission_rate", "commissionRate"))
    tax_rate: float = Field(ge=0, le=1, validation_alias=AliasChoices("tax_rate", "taxRate"))

    def to_settings(self) -> StoreSettings:
        return StoreSettings(commission_rate=self.commission_rate, tax_rate=self.tax_rate)


class SyncBatch(CollaboratorModel):
    """Full payload returned by the marketplace sync endpoint"""
    daily_stats: List[DailyStatPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("daily_stats", "dailyStats", "dailyData")
    )
    products: List[ProductMetaPayload] = Field(default_factory=list)
    orders: List[OrderPayload] = Field(default_factory=list)


class ReportRequest(CollaboratorModel):
    """Inline report request: all inputs in one body, nothing read from storage"""
    daily_stats: List[DailyStatPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("daily_stats", "dailyStats", "dailyData")
    )
    expenses: List[ExpensePayload] = Field(default_factory=list)
    products: List[ProductMetaPayload] = Field(default_factory=list)
    store_settings: Optional[StoreSettingsPayload] = Field(
        default=None, validation_alias=AliasChoices("store_settings", "storeSettings")
    )
    marketing: Optional[MarketingPayload] = None
    activity: Optional[OrderActivityPayload] = None
    start_date: Optional[dt.date] = Field(default=None, validation_alias=AliasChoices("start_date", "startDate"))
    end_date: Optional[dt.date] = Field(default=None, validation_alias=AliasChoices("end_date", "endDate"))
    compare_previous: bool = Field(default=False, validation_alias=AliasChoices("compare_previous", "comparePrevious"))
    sort_by: str = Field(default="revenue", validation_alias=AliasChoices("sort_by", "sortBy"))

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Any:
        return parse_iso_date(v)
