"""HTTP routers exposed by the analytics API."""

from fastapi import APIRouter

from cafe_analytics.api.routes.analytics import admin_router, router as analytics_router

router = APIRouter()
router.include_router(analytics_router)
router.include_router(admin_router)

__all__ = ["router"]
