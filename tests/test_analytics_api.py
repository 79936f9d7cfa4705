import asyncio
import base64
import json
from decimal import Decimal

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from cafe_analytics.config import supabase_client
from cafe_analytics.main import app
from cafe_analytics.services import analytics_service
from cafe_analytics.services.postgrest_client import fetch_service_rows
from cafe_analytics.services.report_cache import report_cache

AUTH = {"Authorization": "Bearer test-token"}


def _jwt(email):
    payload = base64.urlsafe_b64encode(json.dumps({"sub": "user-1", "email": email}).encode()).decode().rstrip("=")
    return f"header.{payload}.signature"


ADMIN_TOKEN = _jwt("Owner@Example.com")
MEMBER_TOKEN = _jwt("staff@example.com")

ORDER_ROWS = [
    {
        "id": "o1",
        "cafe_id": "cafe-1",
        "created_at": "2024-03-05T09:15:00Z",
        "total_amount": 10,
        "status": "completed",
        "table_number": 1,
        "order_items": [{"quantity": 2, "price": 5, "menu_item_id": "latte", "menu_items": {"name": "Latte"}}],
    },
    {
        "id": "o2",
        "cafe_id": "cafe-1",
        "created_at": "2024-03-05T09:40:00Z",
        "total_amount": 15,
        "status": "completed",
        "table_number": 2,
        "order_items": [{"quantity": 1, "price": 15, "menu_item_id": "cake", "menu_items": {"name": "Cake"}}],
    },
    {
        "id": "o3",
        "cafe_id": "cafe-1",
        "created_at": "2024-03-05T14:00:00Z",
        "total_amount": 20,
        "status": "completed",
        "table_number": 1,
        "order_items": [{"quantity": 4, "price": 5, "menu_item_id": "latte", "menu_items": {"name": "Latte"}}],
    },
    {
        "id": "o4",
        "cafe_id": "cafe-1",
        "created_at": "2024-03-05T15:00:00Z",
        "total_amount": 50,
        "status": "cancelled",
        "table_number": 3,
        "order_items": [],
    },
    {"id": "broken", "cafe_id": "cafe-1", "status": "completed"},
]

MENU_ROWS = [
    {"id": "latte", "name": "Latte", "price": 5, "cost_price": 1},
    {"id": "cake", "name": "Cake", "price": 15, "cost_price": 9},
    {"id": "muffin", "name": "Muffin", "price": 3, "cost_price": 1},
]


class FakeStore:
    def __init__(self, visible_cafes=("cafe-1",), admin_tokens=(ADMIN_TOKEN,)) -> None:
        self.visible_cafes = set(visible_cafes)
        self.admin_tokens = set(admin_tokens)
        self.calls = []

    async def fetch_rows(self, access_token, build, *, context):
        self.calls.append(context)
        if context == "cafe access check":
            return [{"id": cafe_id} for cafe_id in self.visible_cafes]
        if context == "platform admin check":
            return [{"email": "owner@example.com"}] if access_token in self.admin_tokens else []
        if context == "orders lookup":
            return ORDER_ROWS
        if context == "menu items lookup":
            return MENU_ROWS
        raise AssertionError(f"unexpected query {context}")

    async def fetch_service_rows(self, build, *, context):
        self.calls.append(context)
        if context == "tenant directory lookup":
            return [
                {"id": "cafe-1", "name": "Corner", "subscription_plan": "pro", "created_at": "2024-03-05T08:00:00Z"},
                {"id": "cafe-2", "name": "Harbor", "subscription_plan": "basic", "created_at": "2023-01-01T08:00:00Z"},
            ]
        if context == "platform orders lookup":
            return ORDER_ROWS
        raise AssertionError(f"unexpected query {context}")


@pytest.fixture(autouse=True)
def _fresh_cache():
    report_cache.clear()
    yield
    report_cache.clear()


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    monkeypatch.setattr(analytics_service, "fetch_rows", fake.fetch_rows)
    monkeypatch.setattr(analytics_service, "fetch_service_rows", fake.fetch_service_rows)
    return fake


@pytest.fixture
def client():
    return TestClient(app)


def test_sales_report_for_one_day(client, store) -> None:
    response = client.get(
        "/api/analytics/sales",
        params={"cafe_id": "cafe-1", "granularity": "day", "date": "2024-03-05"},
        headers=AUTH,
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["buckets"]) == 24
    assert body["buckets"][9]["label"] == "09:00"
    assert Decimal(body["buckets"][9]["revenue"]) == Decimal("25")
    assert body["buckets"][9]["order_count"] == 2
    assert Decimal(body["total_revenue"]) == Decimal("45")
    assert body["total_orders"] == 3
    assert body["skipped_records"] == 1
    assert [item["name"] for item in body["top_items"]] == ["Latte", "Cake"]
    assert [entry["status"] for entry in body["status_distribution"]] == ["completed", "cancelled"]
    assert [entry["table_number"] for entry in body["table_performance"]] == [1, 2]


def test_repeated_requests_are_served_from_cache(client, store) -> None:
    params = {"cafe_id": "cafe-1", "granularity": "month", "date": "2024-03-05"}

    first = client.get("/api/analytics/sales", params=params, headers=AUTH)
    second = client.get("/api/analytics/sales", params=params, headers=AUTH)

    assert first.json() == second.json()
    assert store.calls.count("orders lookup") == 1
    assert store.calls.count("cafe access check") == 2


def test_profitability_report(client, store) -> None:
    response = client.get("/api/analytics/profitability", params={"cafe_id": "cafe-1"}, headers=AUTH)

    assert response.status_code == 200
    body = response.json()
    quadrants = {point["item_id"]: point["quadrant"] for point in body["points"]}
    assert quadrants == {"latte": "plowhorse", "cake": "puzzle"}
    assert Decimal(body["avg_popularity"]) == Decimal("3.5")
    assert Decimal(body["avg_margin"]) == Decimal("5")


def test_overview(client, store) -> None:
    response = client.get(
        "/api/analytics/overview",
        params={"cafe_id": "cafe-1", "date": "2024-03-07"},
        headers=AUTH,
    )

    assert response.status_code == 200
    body = response.json()
    assert [bucket["label"] for bucket in body["buckets"]] == ["Fri", "Sat", "Sun", "Mon", "Tue", "Wed", "Thu"]
    assert Decimal(body["buckets"][4]["revenue"]) == Decimal("45")
    assert body["total_orders"] == 4
    assert body["active_orders"] == 0
    assert [order["id"] for order in body["recent_orders"]] == ["o4", "o3", "o2", "o1"]


def test_platform_report(client, store) -> None:
    response = client.get(
        "/api/admin/platform",
        params={"granularity": "year", "date": "2024-03-05"},
        headers={"Authorization": f"Bearer {ADMIN_TOKEN}"},
    )

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["subscription_revenue"]) == Decimal("7000")
    assert Decimal(body["period_revenue"]) == Decimal("45")
    assert body["period_orders"] == 3
    assert body["signups"][2]["count"] == 1
    assert store.calls[0] == "platform admin check"


def test_platform_report_is_refused_to_non_admins(client, store) -> None:
    response = client.get(
        "/api/admin/platform",
        params={"granularity": "year", "date": "2024-03-05"},
        headers={"Authorization": f"Bearer {MEMBER_TOKEN}"},
    )

    assert response.status_code == 403
    assert store.calls == ["platform admin check"]


def test_platform_report_rejects_opaque_tokens(client, store) -> None:
    response = client.get(
        "/api/admin/platform",
        params={"granularity": "year"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401
    assert store.calls == []


def test_admin_check_runs_before_cached_platform_report(client, store) -> None:
    params = {"granularity": "year", "date": "2024-03-05"}
    assert client.get("/api/admin/platform", params=params, headers={"Authorization": f"Bearer {ADMIN_TOKEN}"}).status_code == 200

    response = client.get("/api/admin/platform", params=params, headers={"Authorization": f"Bearer {MEMBER_TOKEN}"})

    assert response.status_code == 403
    assert store.calls.count("tenant directory lookup") == 1


def test_missing_token_is_rejected(client, store) -> None:
    response = client.get("/api/analytics/sales", params={"cafe_id": "cafe-1"})

    assert response.status_code == 401


def test_unknown_granularity_is_rejected(client, store) -> None:
    response = client.get(
        "/api/analytics/sales",
        params={"cafe_id": "cafe-1", "granularity": "week"},
        headers=AUTH,
    )

    assert response.status_code == 422


def test_foreign_cafe_is_forbidden(client, monkeypatch) -> None:
    fake = FakeStore(visible_cafes=())
    monkeypatch.setattr(analytics_service, "fetch_rows", fake.fetch_rows)

    response = client.get("/api/analytics/sales", params={"cafe_id": "cafe-9"}, headers=AUTH)

    assert response.status_code == 403
    assert "orders lookup" not in fake.calls


def test_service_queries_require_configuration(monkeypatch) -> None:
    monkeypatch.setattr(supabase_client, "SUPABASE_URL", None)
    supabase_client.get_supabase_client.cache_clear()

    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(fetch_service_rows(lambda client: client.table("cafes"), context="tenant directory lookup"))

    assert excinfo.value.status_code == 500
    supabase_client.get_supabase_client.cache_clear()


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
