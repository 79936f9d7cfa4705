"""Rankings and distributions derived from aggregation results."""

from __future__ import annotations

from collections import Counter
from typing import Dict, List

from cafe_analytics.schemas import ItemSales, OrderStatus, StatusSlice, TablePerformance
from cafe_analytics.services.aggregation import ItemAccumulator, TableAccumulator

TOP_ITEMS_LIMIT = 5

STATUS_DISPLAY_ORDER = (
    (OrderStatus.COMPLETED, "Completed"),
    (OrderStatus.PREPARING, "Preparing"),
    (OrderStatus.PENDING, "Pending"),
    (OrderStatus.CANCELLED, "Cancelled"),
)


def top_items(item_sales: Dict[str, ItemAccumulator], limit: int = TOP_ITEMS_LIMIT) -> List[ItemSales]:
    """Best sellers by units sold; on ties the item seen first ranks higher."""

    ranked = sorted(item_sales.items(), key=lambda entry: -entry[1].quantity_sold)
    return [
        ItemSales(
            item_id=item_id,
            name=stats.name,
            quantity_sold=stats.quantity_sold,
            revenue=stats.revenue,
        )
        for item_id, stats in ranked[:limit]
    ]


def status_distribution(status_counts: Counter) -> List[StatusSlice]:
    return [
        StatusSlice(status=status, label=label, count=status_counts[status])
        for status, label in STATUS_DISPLAY_ORDER
        if status_counts.get(status, 0) > 0
    ]


def table_performance(tables: Dict[int, TableAccumulator]) -> List[TablePerformance]:
    ranked = sorted(tables.items(), key=lambda entry: -entry[1].revenue)
    return [
        TablePerformance(
            table_number=table_number,
            label=f"Table {table_number}",
            order_count=stats.order_count,
            revenue=stats.revenue,
        )
        for table_number, stats in ranked
    ]


__all__ = ["STATUS_DISPLAY_ORDER", "TOP_ITEMS_LIMIT", "status_distribution", "table_performance", "top_items"]
