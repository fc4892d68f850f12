"""
Analytics Engine Data Model

Plain dataclasses passed into and out of the aggregation engine. Derived
figures (total expenses, profit) are properties so they are always
recomputed from their components and never trusted from upstream.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional


class Granularity(str, Enum):
    """Chart row granularity"""
    DAY = "day"
    MONTH = "month"


# Monetary components summed field-wise when rolling days into buckets
COMPONENT_FIELDS = (
    "revenue",
    "cost",
    "advertising",
    "commissions",
    "tax",
    "delivery",
)


@dataclass
class ProductSale:
    """One product line of a day's sales"""
    code: Optional[str]
    name: str
    qty: int = 0
    revenue: float = 0.0
    cost_price: float = 0.0

    @property
    def key(self) -> str:
        """Merge key: product code, falling back to the name"""
        return self.code or self.name


@dataclass
class DailyRecord:
    """One calendar day of rolled-up marketplace activity for a store"""
    date: date
    orders: int = 0
    revenue: float = 0.0
    cost: float = 0.0
    advertising: float = 0.0
    commissions: float = 0.0
    tax: float = 0.0
    delivery: float = 0.0
    products: List[ProductSale] = field(default_factory=list)

    @property
    def total_expenses(self) -> float:
        return self.cost + self.advertising + self.tax + self.commissions + self.delivery

    @property
    def profit(self) -> float:
        return self.revenue - self.total_expenses


@dataclass
class OperationalExpense:
    """
    Business cost with an inclusive validity window.

    ``amount`` is the total for the whole window, not a daily rate.
    ``product_id`` and ``product_group`` optionally scope the expense.
    """
    id: str
    name: str
    amount: float
    start_date: date
    end_date: date
    product_id: Optional[str] = None
    product_group: Optional[str] = None

    @property
    def is_shared(self) -> bool:
        """Store-wide expense without product or group scope"""
        return not self.product_id and not self.product_group


@dataclass
class ProductMeta:
    """Static per-product metadata from the store catalog"""
    sku: str
    name: str = ""
    ad_cost: float = 0.0
    group: Optional[str] = None


@dataclass
class StoreSettings:
    """Per-store rates applied to product revenue"""
    commission_rate: float = 0.0
    tax_rate: float = 0.0


@dataclass
class MarketingSummary:
    """Period-scoped campaign summary from the marketing collaborator"""
    total_cost: float = 0.0
    total_gmv: float = 0.0
    roas: float = 0.0
    campaigns: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class OrderActivity:
    """Order-level counts from the sync collaborator"""
    status_counts: Dict[str, int] = field(default_factory=dict)
    delivery_mode_counts: Dict[str, int] = field(default_factory=dict)
    organic_orders: Optional[int] = None
    ad_orders: Optional[int] = None


@dataclass
class PeriodRecord:
    """Chart row: a single day or a calendar-month bucket"""
    date: date
    label: str
    granularity: Granularity = Granularity.DAY
    orders: int = 0
    revenue: float = 0.0
    cost: float = 0.0
    advertising: float = 0.0
    commissions: float = 0.0
    tax: float = 0.0
    delivery: float = 0.0
    operational: float = 0.0

    @property
    def total_expenses(self) -> float:
        return self.cost + self.advertising + self.tax + self.commissions + self.delivery

    @property
    def profit(self) -> float:
        return self.revenue - self.total_expenses

    @property
    def net_profit(self) -> float:
        """Profit after the operational expenses attributed to this row"""
        return self.profit - self.operational


@dataclass
class PeriodSelection:
    """Output of the period filter"""
    records: List[PeriodRecord]
    daily: List[DailyRecord]
    granularity: Granularity
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass
class ProductSalesFact:
    """Per-product profitability over a period"""
    sku: str
    name: str
    group: Optional[str] = None
    sales: int = 0
    revenue: float = 0.0
    cost_price: float = 0.0
    commission: float = 0.0
    tax: float = 0.0
    delivery: float = 0.0
    ad_cost: float = 0.0
    operational: float = 0.0
    profit: float = 0.0
    margin: float = 0.0

    @property
    def net_profit(self) -> float:
        return self.profit - self.operational

    @property
    def net_margin(self) -> float:
        if self.revenue == 0:
            return 0.0
        return (self.net_profit / self.revenue) * 100


@dataclass
class OrderStatusBreakdown:
    """Raw marketplace statuses folded into dashboard buckets"""
    pending: int = 0
    processing: int = 0
    shipped: int = 0
    delivered: int = 0
    cancelled: int = 0
    completed: int = 0
    returned: int = 0


@dataclass
class SalesSources:
    """Organic vs advertising-attributed orders"""
    organic: int = 0
    advertising: int = 0
    organic_percent: float = 0.0
    advertising_percent: float = 0.0


@dataclass
class PeriodComparison:
    """Growth of the current period over the previous one (%)"""
    previous_start: date
    previous_end: date
    previous_revenue: float = 0.0
    previous_orders: int = 0
    previous_profit: float = 0.0
    revenue_growth: float = 0.0
    orders_growth: float = 0.0
    profit_growth: float = 0.0


@dataclass
class AggregateReport:
    """Display-ready aggregates for one store and period"""
    granularity: Granularity
    start: Optional[date] = None
    end: Optional[date] = None
    total_orders: int = 0
    total_revenue: float = 0.0
    total_cost: float = 0.0
    total_advertising: float = 0.0
    total_commissions: float = 0.0
    total_tax: float = 0.0
    total_delivery: float = 0.0
    total_operational: float = 0.0
    unallocated_operational: float = 0.0
    unattributed_revenue: float = 0.0
    avg_order_value: float = 0.0
    daily_data: List[PeriodRecord] = field(default_factory=list)
    top_products: List[ProductSalesFact] = field(default_factory=list)
    order_statuses: Optional[OrderStatusBreakdown] = None
    return_percent: float = 0.0
    delivery_modes: Dict[str, float] = field(default_factory=dict)
    sales_sources: Optional[SalesSources] = None
    comparison: Optional[PeriodComparison] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def total_expenses(self) -> float:
        return (
            self.total_cost
            + self.total_advertising
            + self.total_commissions
            + self.total_tax
            + self.total_delivery
        )

    @property
    def total_profit(self) -> float:
        return self.total_revenue - self.total_expenses

    @property
    def net_profit(self) -> float:
        return self.total_profit - self.total_operational

    @property
    def profit_margin(self) -> float:
        if self.total_revenue == 0:
            return 0.0
        return (self.total_profit / self.total_revenue) * 100
