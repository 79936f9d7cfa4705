"""Business logic powering the analytics API."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from cafe_analytics.schemas import (
    Granularity,
    OrderStatus,
    OverviewReport,
    PlatformReport,
    ProfitabilityReport,
    ReportQuery,
    SalesReport,
)
from cafe_analytics.services.periods import ResolvedPeriod, resolve_period, resolve_trailing_days, resolve_zone
from cafe_analytics.services.platform import build_platform_report
from cafe_analytics.services.postgrest_client import fetch_rows, fetch_service_rows, token_email
from cafe_analytics.services.profitability import build_profitability_report
from cafe_analytics.services.records import (
    MENU_ITEM_COLUMNS,
    ORDER_COLUMNS,
    TENANT_COLUMNS,
    parse_menu_items,
    parse_orders,
    parse_tenants,
)
from cafe_analytics.services.report_cache import report_cache
from cafe_analytics.services.reports import build_overview, build_sales_report

logger = logging.getLogger(__name__)


def local_today() -> date:
    return datetime.now(resolve_zone()).date()


async def get_sales_report(
    access_token: str,
    cafe_id: str,
    granularity: Granularity,
    reference_date: Optional[date] = None,
) -> SalesReport:
    """Bucketed revenue, rankings and distributions for one cafe."""

    reference = reference_date or local_today()
    await ensure_cafe_access(access_token, cafe_id)
    query = ReportQuery(scope="sales", tenant_id=cafe_id, granularity=granularity, reference_date=reference)

    async def _build() -> SalesReport:
        period = resolve_period(granularity, reference)
        rows = await fetch_orders(access_token, cafe_id, period)
        records, malformed = parse_orders(rows)
        report = build_sales_report(records, granularity, reference)
        _log_skipped("sales", cafe_id, report.skipped_records, malformed)
        return report.model_copy(update={"skipped_records": report.skipped_records + malformed})

    return await report_cache.get_or_build(query.cache_key(), _build)


async def get_profitability_report(
    access_token: str,
    cafe_id: str,
    granularity: Optional[Granularity] = None,
    reference_date: Optional[date] = None,
) -> ProfitabilityReport:
    """Menu engineering matrix, all-time unless a granularity scopes it."""

    reference = (reference_date or local_today()) if granularity else None
    await ensure_cafe_access(access_token, cafe_id)
    query = ReportQuery(scope="profitability", tenant_id=cafe_id, granularity=granularity, reference_date=reference)

    async def _build() -> ProfitabilityReport:
        period = resolve_period(granularity, reference) if granularity else None
        order_rows = await fetch_orders(access_token, cafe_id, period, status=OrderStatus.COMPLETED)
        menu_rows = await fetch_rows(
            access_token,
            lambda client: client.table("menu_items").select(MENU_ITEM_COLUMNS).eq("cafe_id", cafe_id),
            context="menu items lookup",
        )
        records, _ = parse_orders(order_rows)
        menu_items, _ = parse_menu_items(menu_rows)
        return build_profitability_report(menu_items, records, period)

    return await report_cache.get_or_build(query.cache_key(), _build)


async def get_overview(
    access_token: str,
    cafe_id: str,
    reference_date: Optional[date] = None,
) -> OverviewReport:
    reference = reference_date or local_today()
    await ensure_cafe_access(access_token, cafe_id)
    query = ReportQuery(scope="overview", tenant_id=cafe_id, reference_date=reference)

    async def _build() -> OverviewReport:
        period = resolve_trailing_days(reference)
        rows = await fetch_orders(access_token, cafe_id, period)
        records, _ = parse_orders(rows)
        return build_overview(records, reference)

    return await report_cache.get_or_build(query.cache_key(), _build)


async def get_platform_report(
    access_token: str,
    granularity: Granularity,
    reference_date: Optional[date] = None,
    cafe_id: Optional[str] = None,
) -> PlatformReport:
    """Admin figures across every tenant, or scoped to ``cafe_id``."""

    reference = reference_date or local_today()
    await ensure_platform_admin(access_token)
    query = ReportQuery(scope="platform", tenant_id=cafe_id, granularity=granularity, reference_date=reference)

    async def _build() -> PlatformReport:
        period = resolve_period(granularity, reference)
        tenant_rows = await fetch_service_rows(
            lambda client: client.table("cafes").select(TENANT_COLUMNS),
            context="tenant directory lookup",
        )
        order_rows = await fetch_platform_orders(period, cafe_id)
        tenants, _ = parse_tenants(tenant_rows)
        records, malformed = parse_orders(order_rows)
        report = build_platform_report(tenants, records, granularity, reference, tenant_id=cafe_id)
        _log_skipped("platform", cafe_id or "*", report.skipped_records, malformed)
        return report.model_copy(update={"skipped_records": report.skipped_records + malformed})

    return await report_cache.get_or_build(query.cache_key(), _build)


async def ensure_cafe_access(access_token: str, cafe_id: str) -> None:
    """Ensure the caller can see the requested cafe before reading its orders."""

    rows = await fetch_rows(
        access_token,
        lambda client: client.table("cafes").select("id").eq("id", cafe_id).limit(1),
        context="cafe access check",
    )
    if not rows:
        raise HTTPException(status_code=403, detail="Access to this cafe is denied.")


async def ensure_platform_admin(access_token: str) -> None:
    """Only callers listed in ``super_admins`` may read platform-wide figures.

    The lookup runs with the caller's token, so a forged token never reaches
    the service-role queries.
    """

    email = token_email(access_token)
    if email is None:
        raise HTTPException(status_code=403, detail="Platform administrators only.")
    rows = await fetch_rows(
        access_token,
        lambda client: client.table("super_admins").select("email").eq("email", email).limit(1),
        context="platform admin check",
    )
    if not rows:
        logger.warning("Platform report refused for %s", email)
        raise HTTPException(status_code=403, detail="Platform administrators only.")


async def fetch_orders(
    access_token: str,
    cafe_id: str,
    period: Optional[ResolvedPeriod],
    *,
    status: Optional[OrderStatus] = None,
) -> List[Dict[str, Any]]:
    def _build(client: Any) -> Any:
        query = client.table("orders").select(ORDER_COLUMNS).eq("cafe_id", cafe_id)
        if status is not None:
            query = query.eq("status", status.value)
        return _within(query, period).order("created_at", desc=False)

    return await fetch_rows(access_token, _build, context="orders lookup")


async def fetch_platform_orders(period: ResolvedPeriod, cafe_id: Optional[str] = None) -> List[Dict[str, Any]]:
    def _build(client: Any) -> Any:
        query = client.table("orders").select("id,cafe_id,created_at,total_amount,status,table_number")
        if cafe_id:
            query = query.eq("cafe_id", cafe_id)
        return _within(query, period)

    return await fetch_service_rows(_build, context="platform orders lookup")


def _within(query: Any, period: Optional[ResolvedPeriod]) -> Any:
    if period is None:
        return query
    return query.gte("created_at", _format_supabase_timestamp(period.start)).lt(
        "created_at", _format_supabase_timestamp(period.end)
    )


def _format_supabase_timestamp(value: datetime) -> str:
    normalized = value.astimezone(timezone.utc).replace(microsecond=0)
    return normalized.isoformat().replace("+00:00", "Z")


def _log_skipped(scope: str, cafe_id: str, outside_window: int, malformed: int) -> None:
    if outside_window or malformed:
        logger.warning(
            "%s report for %s skipped %s out-of-window and %s malformed order(s)",
            scope,
            cafe_id,
            outside_window,
            malformed,
        )


__all__ = [
    "ensure_cafe_access",
    "ensure_platform_admin",
    "get_overview",
    "get_platform_report",
    "get_profitability_report",
    "get_sales_report",
    "local_today",
]
