"""Normalization of raw PostgREST rows into validated records."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from cafe_analytics.schemas import MenuItemRecord, TenantRecord, TransactionRecord

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ORDER_COLUMNS = (
    "id,cafe_id,created_at,total_amount,status,table_number,"
    "order_items(quantity,price,menu_item_id,menu_items(name))"
)
TENANT_COLUMNS = "id,name,subscription_plan,created_at"
MENU_ITEM_COLUMNS = "id,name,price,cost_price"


def normalize_order_row(row: Dict[str, Any]) -> Dict[str, Any]:
    line_items = []
    for entry in row.get("order_items") or []:
        if not isinstance(entry, dict) or not entry.get("menu_item_id"):
            continue
        menu_item = entry.get("menu_items") or {}
        line_items.append(
            {
                "item_id": str(entry["menu_item_id"]),
                "item_name": menu_item.get("name") or "Unknown Item",
                "quantity": entry.get("quantity") or 0,
                "unit_price": entry.get("price") or 0,
            }
        )
    return {
        "id": str(row.get("id") or ""),
        "created_at": row.get("created_at"),
        "total_amount": row.get("total_amount") or 0,
        "status": row.get("status"),
        "table_number": row.get("table_number"),
        "tenant_id": str(row["cafe_id"]) if row.get("cafe_id") else None,
        "line_items": line_items,
    }


def normalize_tenant_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id") or ""),
        "name": row.get("name") or "",
        "plan": row.get("subscription_plan") or row.get("plan"),
        "created_at": row.get("created_at"),
    }


def parse_rows(model: Type[ModelT], rows: Iterable[Dict[str, Any]], *, label: str) -> Tuple[List[ModelT], int]:
    """Validate ``rows`` against ``model``, dropping the ones that do not fit.

    Returns the parsed records and the number of rows that were rejected.
    """

    parsed: List[ModelT] = []
    rejected = 0
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            rejected += 1
            logger.debug("Dropping malformed %s row %s: %s", label, row.get("id"), exc)
    if rejected:
        logger.warning("Dropped %s malformed %s row(s)", rejected, label)
    return parsed, rejected


def parse_orders(rows: Iterable[Dict[str, Any]]) -> Tuple[List[TransactionRecord], int]:
    return parse_rows(TransactionRecord, (normalize_order_row(row) for row in rows), label="order")


def parse_tenants(rows: Iterable[Dict[str, Any]]) -> Tuple[List[TenantRecord], int]:
    return parse_rows(TenantRecord, (normalize_tenant_row(row) for row in rows), label="tenant")


def parse_menu_items(rows: Iterable[Dict[str, Any]]) -> Tuple[List[MenuItemRecord], int]:
    return parse_rows(MenuItemRecord, rows, label="menu item")


__all__ = [
    "MENU_ITEM_COLUMNS",
    "ORDER_COLUMNS",
    "TENANT_COLUMNS",
    "normalize_order_row",
    "normalize_tenant_row",
    "parse_menu_items",
    "parse_orders",
    "parse_rows",
    "parse_tenants",
]
