from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Granularity(str, Enum):
    """Time resolution of a report, named after its wire selector."""

    HOUR_OF_DAY = "day"
    DAY_OF_MONTH = "month"
    MONTH_OF_YEAR = "year"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SubscriptionPlan(str, Enum):
    BASIC = "basic"
    PRO = "pro"


class Quadrant(str, Enum):
    STAR = "star"
    PLOWHORSE = "plowhorse"
    PUZZLE = "puzzle"
    DOG = "dog"


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str
    item_name: str = "Unknown Item"
    quantity: int = Field(default=0, ge=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)


class TransactionRecord(BaseModel):
    """One order as fetched from the backing store."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    status: OrderStatus = OrderStatus.PENDING
    table_number: Optional[int] = None
    tenant_id: Optional[str] = None
    line_items: List[LineItem] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value):
        return value or OrderStatus.PENDING


class TenantRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    plan: SubscriptionPlan = SubscriptionPlan.BASIC
    created_at: Optional[datetime] = None

    @field_validator("plan", mode="before")
    @classmethod
    def _bill_unknown_plans_as_basic(cls, value):
        if isinstance(value, SubscriptionPlan):
            return value
        if isinstance(value, str) and value.strip().lower() == SubscriptionPlan.PRO.value:
            return SubscriptionPlan.PRO
        return SubscriptionPlan.BASIC


class MenuItemRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Decimal = Decimal("0")
    cost_price: Decimal = Decimal("0")

    @field_validator("price", "cost_price", mode="before")
    @classmethod
    def _missing_amount_is_zero(cls, value):
        return Decimal("0") if value is None else value


class Bucket(BaseModel):
    """Metrics for one hour, day or month of a report window."""

    label: str
    order_index: int
    starts_at: datetime
    revenue: Decimal = Decimal("0")
    order_count: int = 0


class ItemSales(BaseModel):
    item_id: str
    name: str
    quantity_sold: int = 0
    revenue: Decimal = Decimal("0")


class StatusSlice(BaseModel):
    status: OrderStatus
    label: str
    count: int


class TablePerformance(BaseModel):
    table_number: int
    label: str
    order_count: int
    revenue: Decimal


class SalesReport(BaseModel):
    granularity: Granularity
    window_start: datetime
    window_end: datetime
    buckets: List[Bucket]
    total_revenue: Decimal
    total_orders: int
    top_items: List[ItemSales]
    status_distribution: List[StatusSlice]
    table_performance: List[TablePerformance]
    skipped_records: int = 0


class ProfitabilityPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str
    name: str
    price: Decimal
    cost_price: Decimal
    quantity_sold: int
    revenue: Decimal
    profit: Decimal
    margin_per_item: Decimal
    quadrant: Optional[Quadrant] = None


class ProfitabilityReport(BaseModel):
    points: List[ProfitabilityPoint]
    avg_popularity: Decimal
    avg_margin: Decimal


class RecentOrder(BaseModel):
    id: str
    created_at: datetime
    total_amount: Decimal
    status: OrderStatus
    table_number: Optional[int] = None


class OverviewReport(BaseModel):
    window_start: datetime
    window_end: datetime
    buckets: List[Bucket]
    total_revenue: Decimal
    active_orders: int
    total_orders: int
    recent_orders: List[RecentOrder]


class PlanSlice(BaseModel):
    plan: SubscriptionPlan
    label: str
    count: int


class SignupBucket(BaseModel):
    label: str
    order_index: int
    count: int = 0


class PlatformReport(BaseModel):
    """Admin console figures across tenants.

    ``subscription_revenue`` and ``period_revenue`` come from different
    sources and are reported side by side, never summed.
    """

    granularity: Granularity
    window_start: datetime
    window_end: datetime
    total_tenants: int
    basic_tenants: int
    pro_tenants: int
    subscription_revenue: Decimal
    period_revenue: Decimal
    period_orders: int
    plan_distribution: List[PlanSlice]
    buckets: List[Bucket]
    signups: List[SignupBucket]
    skipped_records: int = 0


class ReportQuery(BaseModel):
    """Cache identity of a report request."""

    model_config = ConfigDict(frozen=True)

    scope: str
    tenant_id: Optional[str] = None
    granularity: Optional[Granularity] = None
    reference_date: Optional[date] = None

    def cache_key(self) -> tuple:
        return (
            self.scope,
            self.tenant_id,
            self.granularity.value if self.granularity else None,
            self.reference_date.isoformat() if self.reference_date else None,
        )
