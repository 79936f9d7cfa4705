"""Platform-wide figures for the admin console."""

from __future__ import annotations

from collections import Counter
from datetime import tzinfo
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Union

from cafe_analytics.config.supabase_client import BASIC_PLAN_PRICE, PRO_PLAN_PRICE
from cafe_analytics.schemas import (
    Granularity,
    PlanSlice,
    PlatformReport,
    SignupBucket,
    SubscriptionPlan,
    TenantRecord,
    TransactionRecord,
)
from cafe_analytics.services.aggregation import aggregate_records
from cafe_analytics.services.periods import Reference, ResolvedPeriod, initialize_buckets, resolve_period

PLAN_LABELS = (
    (SubscriptionPlan.BASIC, "Basic"),
    (SubscriptionPlan.PRO, "Pro"),
)


def plan_price(plan: SubscriptionPlan, *, basic_price: int = BASIC_PLAN_PRICE, pro_price: int = PRO_PLAN_PRICE) -> Decimal:
    return Decimal(pro_price if plan is SubscriptionPlan.PRO else basic_price)


def subscription_revenue(
    tenants: Sequence[TenantRecord],
    tenant_id: Optional[str] = None,
    *,
    basic_price: int = BASIC_PLAN_PRICE,
    pro_price: int = PRO_PLAN_PRICE,
) -> Decimal:
    """Monthly subscription income, for every tenant or for ``tenant_id`` only.

    An unknown ``tenant_id`` yields zero.
    """

    if tenant_id is not None:
        for tenant in tenants:
            if tenant.id == tenant_id:
                return plan_price(tenant.plan, basic_price=basic_price, pro_price=pro_price)
        return Decimal("0")

    counts = Counter(tenant.plan for tenant in tenants)
    return (
        counts[SubscriptionPlan.BASIC] * Decimal(basic_price)
        + counts[SubscriptionPlan.PRO] * Decimal(pro_price)
    )


def plan_distribution(tenants: Sequence[TenantRecord]) -> List[PlanSlice]:
    counts = Counter(tenant.plan for tenant in tenants)
    return [PlanSlice(plan=plan, label=label, count=counts[plan]) for plan, label in PLAN_LABELS]


def count_signups(period: ResolvedPeriod, tenants: Iterable[TenantRecord]) -> List[SignupBucket]:
    """New tenants per bucket of ``period``."""

    signups = [
        SignupBucket(label=bucket.label, order_index=bucket.order_index)
        for bucket in initialize_buckets(period)
    ]
    slots = {entry.order_index: entry for entry in signups}
    for tenant in tenants:
        if tenant.created_at is None:
            continue
        entry = slots.get(period.bucket_key(tenant.created_at))
        if entry is not None:
            entry.count += 1
    return signups


def build_platform_report(
    tenants: Sequence[TenantRecord],
    records: Iterable[TransactionRecord],
    granularity: Union[Granularity, str],
    reference: Reference,
    zone: Union[tzinfo, str, None] = None,
    tenant_id: Optional[str] = None,
) -> PlatformReport:
    period = resolve_period(granularity, reference, zone)
    if tenant_id is not None:
        records = (record for record in records if record.tenant_id == tenant_id)

    aggregation = aggregate_records(initialize_buckets(period), records, period.bucket_key)
    distribution = plan_distribution(tenants)
    counts = {entry.plan: entry.count for entry in distribution}

    return PlatformReport(
        granularity=period.granularity,
        window_start=period.start,
        window_end=period.end,
        total_tenants=len(tenants),
        basic_tenants=counts[SubscriptionPlan.BASIC],
        pro_tenants=counts[SubscriptionPlan.PRO],
        subscription_revenue=subscription_revenue(tenants, tenant_id),
        period_revenue=aggregation.total_revenue,
        period_orders=aggregation.total_orders,
        plan_distribution=distribution,
        buckets=aggregation.buckets,
        signups=count_signups(period, tenants),
        skipped_records=aggregation.skipped_records,
    )


__all__ = [
    "build_platform_report",
    "count_signups",
    "plan_distribution",
    "plan_price",
    "subscription_revenue",
]
