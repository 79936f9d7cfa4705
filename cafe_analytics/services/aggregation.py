"""Single pass accumulation of orders into buckets and global tallies."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from cafe_analytics.schemas import Bucket, OrderStatus, TransactionRecord

logger = logging.getLogger(__name__)

BucketKey = Callable[[datetime], Optional[int]]


@dataclass
class ItemAccumulator:
    name: str
    quantity_sold: int = 0
    revenue: Decimal = Decimal("0")


@dataclass
class TableAccumulator:
    order_count: int = 0
    revenue: Decimal = Decimal("0")


@dataclass
class AggregationResult:
    """Everything the derived views need, gathered in one scan of the orders.

    ``item_sales`` and ``tables`` keep first-seen insertion order.
    """

    buckets: List[Bucket]
    total_revenue: Decimal = Decimal("0")
    total_orders: int = 0
    item_sales: Dict[str, ItemAccumulator] = field(default_factory=dict)
    tables: Dict[int, TableAccumulator] = field(default_factory=dict)
    status_counts: Counter = field(default_factory=Counter)
    skipped_records: int = 0


def aggregate_records(
    buckets: List[Bucket],
    records: Iterable[TransactionRecord],
    bucket_key: BucketKey,
) -> AggregationResult:
    """Fill ``buckets`` in place from ``records`` and collect global tallies.

    Only completed orders add revenue; every non-cancelled order adds to the
    counts. Records that map to no bucket are left out of every figure and
    counted in ``skipped_records``. Orders without a table number still count
    toward the totals but are absent from ``tables``.
    """

    slots = {bucket.order_index: bucket for bucket in buckets}
    result = AggregationResult(buckets=buckets)

    for record in records:
        key = bucket_key(record.created_at)
        bucket = slots.get(key) if key is not None else None
        if bucket is None:
            result.skipped_records += 1
            logger.debug("Order %s at %s is outside the report window", record.id, record.created_at)
            continue

        result.status_counts[record.status] += 1
        if record.status is OrderStatus.CANCELLED:
            continue

        completed = record.status is OrderStatus.COMPLETED
        bucket.order_count += 1
        result.total_orders += 1
        if completed:
            bucket.revenue += record.total_amount
            result.total_revenue += record.total_amount

        if record.table_number is not None:
            table = result.tables.setdefault(record.table_number, TableAccumulator())
            table.order_count += 1
            if completed:
                table.revenue += record.total_amount

        for line in record.line_items:
            item = result.item_sales.setdefault(line.item_id, ItemAccumulator(name=line.item_name))
            item.quantity_sold += line.quantity
            if completed:
                item.revenue += line.unit_price * line.quantity

    return result


__all__ = [
    "AggregationResult",
    "BucketKey",
    "ItemAccumulator",
    "TableAccumulator",
    "aggregate_records",
]
