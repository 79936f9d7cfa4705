from datetime import date, datetime, timezone
from decimal import Decimal

from cafe_analytics.schemas import Granularity, LineItem, MenuItemRecord, Quadrant, TransactionRecord
from cafe_analytics.services.periods import resolve_period
from cafe_analytics.services.profitability import (
    build_profitability_report,
    classify_points,
    collect_item_sales,
)


def _menu_item(item_id, price, cost):
    return MenuItemRecord(id=item_id, name=item_id.title(), price=Decimal(str(price)), cost_price=Decimal(str(cost)))


def _sale(order_id, lines, status="completed", when=datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)):
    return TransactionRecord(
        id=order_id,
        created_at=when,
        status=status,
        line_items=[
            LineItem(item_id=item_id, item_name=item_id.title(), quantity=qty, unit_price=Decimal(str(price)))
            for item_id, qty, price in lines
        ],
    )


def test_items_on_both_means_are_stars() -> None:
    menu = [_menu_item("alpha", 8, 3), _menu_item("beta", 8, 3)]
    records = [_sale("o1", [("alpha", 10, 8), ("beta", 10, 8)])]

    report = build_profitability_report(menu, records)

    assert report.avg_popularity == Decimal("10")
    assert report.avg_margin == Decimal("5")
    assert [point.quadrant for point in report.points] == [Quadrant.STAR, Quadrant.STAR]


def test_each_sold_item_lands_in_exactly_one_quadrant() -> None:
    menu = [
        _menu_item("star", 10, 2),
        _menu_item("plowhorse", 10, 8),
        _menu_item("puzzle", 10, 2),
        _menu_item("dog", 10, 8),
        _menu_item("unsold", 10, 1),
    ]
    records = [
        _sale("o1", [("star", 20, 10), ("plowhorse", 20, 10), ("puzzle", 2, 10), ("dog", 2, 10)]),
    ]

    report = build_profitability_report(menu, records)
    quadrants = {point.item_id: point.quadrant for point in report.points}

    assert quadrants == {
        "star": Quadrant.STAR,
        "plowhorse": Quadrant.PLOWHORSE,
        "puzzle": Quadrant.PUZZLE,
        "dog": Quadrant.DOG,
    }
    assert report.avg_popularity == Decimal("11")
    assert report.avg_margin == Decimal("5")


def test_profit_and_margin_figures() -> None:
    menu = [_menu_item("latte", 4.5, 1.2)]
    records = [
        _sale("o1", [("latte", 3, 4.5)]),
        _sale("o2", [("latte", 5, 4.5)], status="pending"),
    ]

    point = build_profitability_report(menu, records).points[0]

    assert point.quantity_sold == 3
    assert point.revenue == Decimal("13.5")
    assert point.profit == Decimal("9.9")
    assert point.margin_per_item == Decimal("3.3")


def test_no_sales_gives_empty_matrix_with_zero_means() -> None:
    report = build_profitability_report([_menu_item("latte", 4, 1)], [])

    assert report.points == []
    assert report.avg_popularity == 0
    assert report.avg_margin == 0
    assert classify_points([]) == ([], Decimal("0"), Decimal("0"))


def test_item_sales_can_be_scoped_to_a_window() -> None:
    period = resolve_period(Granularity.HOUR_OF_DAY, date(2024, 3, 5), "UTC")
    records = [
        _sale("o1", [("latte", 2, 4)]),
        _sale("o2", [("latte", 7, 4)], when=datetime(2024, 3, 6, 9, 0, tzinfo=timezone.utc)),
    ]

    assert collect_item_sales(records, period)["latte"].quantity_sold == 2
    assert collect_item_sales(records)["latte"].quantity_sold == 9
