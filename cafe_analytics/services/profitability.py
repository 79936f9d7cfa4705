"""Menu engineering matrix: popularity against contribution margin."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from cafe_analytics.schemas import (
    MenuItemRecord,
    OrderStatus,
    ProfitabilityPoint,
    ProfitabilityReport,
    Quadrant,
    TransactionRecord,
)
from cafe_analytics.services.aggregation import ItemAccumulator
from cafe_analytics.services.periods import ResolvedPeriod

ZERO = Decimal("0")


def collect_item_sales(
    records: Iterable[TransactionRecord],
    period: Optional[ResolvedPeriod] = None,
) -> Dict[str, ItemAccumulator]:
    """Units and revenue per menu item over completed orders."""

    sales: Dict[str, ItemAccumulator] = {}
    for record in records:
        if record.status is not OrderStatus.COMPLETED:
            continue
        if period is not None and not period.contains(record.created_at):
            continue
        for line in record.line_items:
            item = sales.setdefault(line.item_id, ItemAccumulator(name=line.item_name))
            item.quantity_sold += line.quantity
            item.revenue += line.unit_price * line.quantity
    return sales


def build_profitability_points(
    menu_items: Iterable[MenuItemRecord],
    sales: Dict[str, ItemAccumulator],
) -> List[ProfitabilityPoint]:
    """Join catalog prices with sales; items that never sold are left out."""

    points: List[ProfitabilityPoint] = []
    for item in menu_items:
        sold = sales.get(item.id)
        if sold is None or sold.quantity_sold <= 0:
            continue
        points.append(
            ProfitabilityPoint(
                item_id=item.id,
                name=item.name,
                price=item.price,
                cost_price=item.cost_price,
                quantity_sold=sold.quantity_sold,
                revenue=sold.revenue,
                profit=sold.revenue - item.cost_price * sold.quantity_sold,
                margin_per_item=item.price - item.cost_price,
            )
        )
    return points


def classify_quadrant(
    quantity_sold: int,
    margin: Decimal,
    avg_popularity: Decimal,
    avg_margin: Decimal,
) -> Quadrant:
    # Points sitting exactly on a mean count as high on that axis.
    popular = quantity_sold >= avg_popularity
    profitable = margin >= avg_margin
    if popular and profitable:
        return Quadrant.STAR
    if popular:
        return Quadrant.PLOWHORSE
    if profitable:
        return Quadrant.PUZZLE
    return Quadrant.DOG


def classify_points(points: List[ProfitabilityPoint]) -> Tuple[List[ProfitabilityPoint], Decimal, Decimal]:
    """Tag each point with its quadrant.

    Returns the tagged points with the popularity and margin means used as
    thresholds. Both means are zero for an empty input.
    """

    included = [point for point in points if point.quantity_sold > 0]
    if not included:
        return [], ZERO, ZERO

    count = Decimal(len(included))
    avg_popularity = Decimal(sum(point.quantity_sold for point in included)) / count
    avg_margin = sum((point.margin_per_item for point in included), ZERO) / count

    classified = [
        point.model_copy(
            update={
                "quadrant": classify_quadrant(
                    point.quantity_sold,
                    point.margin_per_item,
                    avg_popularity,
                    avg_margin,
                )
            }
        )
        for point in included
    ]
    return classified, avg_popularity, avg_margin


def build_profitability_report(
    menu_items: Iterable[MenuItemRecord],
    records: Iterable[TransactionRecord],
    period: Optional[ResolvedPeriod] = None,
) -> ProfitabilityReport:
    sales = collect_item_sales(records, period)
    points = build_profitability_points(menu_items, sales)
    classified, avg_popularity, avg_margin = classify_points(points)
    return ProfitabilityReport(points=classified, avg_popularity=avg_popularity, avg_margin=avg_margin)


__all__ = [
    "build_profitability_points",
    "build_profitability_report",
    "classify_points",
    "classify_quadrant",
    "collect_item_sales",
]
