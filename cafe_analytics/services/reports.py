"""Pure report builders: resolve the window, seed buckets, aggregate, derive."""

from __future__ import annotations

from datetime import tzinfo
from typing import Iterable, List, Union

from cafe_analytics.schemas import (
    Granularity,
    OrderStatus,
    OverviewReport,
    RecentOrder,
    SalesReport,
    TransactionRecord,
)
from cafe_analytics.services.aggregation import aggregate_records
from cafe_analytics.services.periods import (
    Reference,
    initialize_buckets,
    resolve_period,
    resolve_trailing_days,
    to_local,
)
from cafe_analytics.services.rankings import status_distribution, table_performance, top_items

RECENT_ORDERS_LIMIT = 5
ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING)


def build_sales_report(
    records: Iterable[TransactionRecord],
    granularity: Union[Granularity, str],
    reference: Reference,
    zone: Union[tzinfo, str, None] = None,
) -> SalesReport:
    """Cafe analytics for the day, month or year containing ``reference``."""

    period = resolve_period(granularity, reference, zone)
    aggregation = aggregate_records(initialize_buckets(period), records, period.bucket_key)
    return SalesReport(
        granularity=period.granularity,
        window_start=period.start,
        window_end=period.end,
        buckets=aggregation.buckets,
        total_revenue=aggregation.total_revenue,
        total_orders=aggregation.total_orders,
        top_items=top_items(aggregation.item_sales),
        status_distribution=status_distribution(aggregation.status_counts),
        table_performance=table_performance(aggregation.tables),
        skipped_records=aggregation.skipped_records,
    )


def build_overview(
    records: Iterable[TransactionRecord],
    reference: Reference,
    zone: Union[tzinfo, str, None] = None,
) -> OverviewReport:
    """Home dashboard: the trailing week plus the latest orders.

    ``total_orders`` counts every order in the week, cancelled included,
    while the per-day series follows the usual completed-revenue rule.
    """

    period = resolve_trailing_days(reference, zone)
    in_window: List[TransactionRecord] = [record for record in records if period.contains(record.created_at)]
    aggregation = aggregate_records(initialize_buckets(period), in_window, period.bucket_key)
    recent = sorted(in_window, key=lambda record: to_local(record.created_at, period.zone), reverse=True)[:RECENT_ORDERS_LIMIT]

    return OverviewReport(
        window_start=period.start,
        window_end=period.end,
        buckets=aggregation.buckets,
        total_revenue=aggregation.total_revenue,
        active_orders=sum(aggregation.status_counts[status] for status in ACTIVE_STATUSES),
        total_orders=len(in_window),
        recent_orders=[
            RecentOrder(
                id=record.id,
                created_at=record.created_at,
                total_amount=record.total_amount,
                status=record.status,
                table_number=record.table_number,
            )
            for record in recent
        ],
    )


__all__ = ["build_overview", "build_sales_report"]
