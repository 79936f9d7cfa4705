"""Analytics endpoints consumed by the cafe dashboard and the admin console."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query

from cafe_analytics.schemas import (
    Granularity,
    OverviewReport,
    PlatformReport,
    ProfitabilityReport,
    SalesReport,
)
from cafe_analytics.services import analytics_service
from cafe_analytics.services.postgrest_client import extract_bearer_token

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])
admin_router = APIRouter(prefix="/api/admin", tags=["Admin"])


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


@router.get("/sales", response_model=SalesReport)
async def sales_report_endpoint(
    cafe_id: str = Query(..., min_length=1),
    granularity: Granularity = Query(default=Granularity.DAY_OF_MONTH),
    reference_date: Optional[date] = Query(default=None, alias="date"),
    access_token: str = Depends(get_access_token),
) -> SalesReport:
    return await analytics_service.get_sales_report(access_token, cafe_id, granularity, reference_date)


@router.get("/profitability", response_model=ProfitabilityReport)
async def profitability_report_endpoint(
    cafe_id: str = Query(..., min_length=1),
    granularity: Optional[Granularity] = Query(default=None),
    reference_date: Optional[date] = Query(default=None, alias="date"),
    access_token: str = Depends(get_access_token),
) -> ProfitabilityReport:
    return await analytics_service.get_profitability_report(access_token, cafe_id, granularity, reference_date)


@router.get("/overview", response_model=OverviewReport)
async def overview_endpoint(
    cafe_id: str = Query(..., min_length=1),
    reference_date: Optional[date] = Query(default=None, alias="date"),
    access_token: str = Depends(get_access_token),
) -> OverviewReport:
    return await analytics_service.get_overview(access_token, cafe_id, reference_date)


@admin_router.get("/platform", response_model=PlatformReport)
async def platform_report_endpoint(
    granularity: Granularity = Query(default=Granularity.DAY_OF_MONTH),
    reference_date: Optional[date] = Query(default=None, alias="date"),
    cafe_id: Optional[str] = Query(default=None),
    access_token: str = Depends(get_access_token),
) -> PlatformReport:
    return await analytics_service.get_platform_report(access_token, granularity, reference_date, cafe_id)


__all__ = ["admin_router", "router"]
