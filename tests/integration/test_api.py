"""
Integration Tests - HTTP API

Runs the FastAPI app against an in-memory SQLite database. Redis is not
initialised, so every report is computed from storage.
"""
import pytest
import requests
from sqlalchemy import event
from sqlalchemy.orm import Session

from seller_analytics.ingestion.marketplace_client import MarketplaceClient
from seller_analytics.serving.api.routes import expenses as expenses_routes
from seller_analytics.serving.api.routes import sync as sync_routes
from seller_analytics.serving.api.routes.sync import get_marketplace_client

pytestmark = pytest.mark.integration

DAILY_STATS = [
    {
        "fullDate": "2025-01-10T00:00:00.000Z",
        "orders_count": 2,
        "revenue": 10000,
        "cost": 4000,
        "advertising": 500,
        "commissions": 1250,
        "tax": 400,
        "delivery_cost": 300,
        "products": [
            {"product_code": "SKU-A", "product_name": "Phone case", "quantity": 3, "total": 6000, "cost_price": 2400},
            {"product_code": "SKU-B", "product_name": "Charger", "quantity": 1, "total": 4000, "cost_price": 1600},
        ],
    },
    {
        "fullDate": "2025-01-11T00:00:00.000Z",
        "orders_count": 1,
        "revenue": 5000,
        "cost": 2000,
        "commissions": 625,
        "tax": 200,
        "delivery_cost": 150,
        "products": [
            {"product_code": "SKU-A", "product_name": "Phone case", "quantity": 2, "total": 5000, "cost_price": 2000},
        ],
    },
]

EXPENSE = {"name": "Warehouse", "amount": 300, "startDate": "2025-01-10", "endDate": "2025-01-11"}


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.content = b"{}"

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, outcomes):
        self.headers = {}
        self._outcomes = outcomes

    def request(self, method, url, params=None, timeout=None):
        return self._outcomes.pop(0)

    def close(self):
        pass


def _override_marketplace(app, outcomes):
    app.dependency_overrides[get_marketplace_client] = lambda: MarketplaceClient(
        base_url="http://marketplace.test/api",
        session_factory=lambda: FakeSession(outcomes),
    )


class TestHealth:
    async def test_liveness(self, client):
        response = await client.get("/api/v1/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}
        assert "X-Request-ID" in response.headers


class TestStoreReport:
    """Write through the sync endpoints, then read the report"""

    async def _seed(self, client):
        response = await client.put("/api/v1/stores/store-1/daily-stats", json=DAILY_STATS)
        assert response.status_code == 200
        assert response.json()["upserted"] == 2

        response = await client.put(
            "/api/v1/stores/store-1/products",
            json=[{"sku": "SKU-A", "adCost": 100, "productGroup": "accessories"}],
        )
        assert response.status_code == 200

        response = await client.post("/api/v1/stores/store-1/expenses", json=EXPENSE)
        assert response.status_code == 201

    async def test_two_day_report(self, client, store):
        await self._seed(client)

        response = await client.get(
            "/api/v1/stores/store-1/report",
            params={"start_date": "2025-01-10", "end_date": "2025-01-11"},
        )

        assert response.status_code == 200
        report = response.json()
        assert report["granularity"] == "day"
        assert report["total_revenue"] == pytest.approx(15000.0)
        assert report["total_orders"] == 3
        assert report["total_profit"] == pytest.approx(5575.0)
        assert report["total_operational"] == pytest.approx(300.0)
        assert report["avg_order_value"] == pytest.approx(5000.0)
        assert [row["label"] for row in report["daily_data"]] == ["10.01", "11.01"]
        assert report["top_products"][0]["sku"] == "SKU-A"
        assert report["top_products"][0]["commission"] == pytest.approx(1375.0)
        assert report["top_products"][0]["ad_cost"] == pytest.approx(100.0)
        assert report["warnings"] == []

    async def test_resync_replaces_day(self, client, store):
        await self._seed(client)
        day = dict(DAILY_STATS[1], revenue=7000, products=[
            {"product_code": "SKU-A", "product_name": "Phone case", "quantity": 2, "total": 7000, "cost_price": 2000},
        ])

        await client.put("/api/v1/stores/store-1/daily-stats", json=[day])
        response = await client.get(
            "/api/v1/stores/store-1/report",
            params={"start_date": "2025-01-10", "end_date": "2025-01-11"},
        )

        assert response.json()["total_revenue"] == pytest.approx(17000.0)

    async def test_marketing_cost_override(self, client, store):
        await self._seed(client)

        response = await client.get(
            "/api/v1/stores/store-1/report",
            params={"start_date": "2025-01-10", "end_date": "2025-01-11", "marketing_cost": 900},
        )

        assert response.json()["total_advertising"] == pytest.approx(900.0)

    async def test_unknown_store(self, client):
        response = await client.get("/api/v1/stores/missing/report")

        assert response.status_code == 404

    async def test_inverted_period(self, client, store):
        response = await client.get(
            "/api/v1/stores/store-1/report",
            params={"start_date": "2025-02-01", "end_date": "2025-01-01"},
        )

        assert response.status_code == 422

    async def test_invalid_sort_key(self, client, store):
        response = await client.get("/api/v1/stores/store-1/report", params={"sort_by": "popularity"})

        assert response.status_code == 422


class TestExpenses:
    async def test_create_list_delete(self, client, store):
        created = await client.post("/api/v1/stores/store-1/expenses", json=EXPENSE)
        expense = created.json()
        assert expense["total_days"] == 2
        assert expense["daily_rate"] == pytest.approx(150.0)

        listed = await client.get("/api/v1/stores/store-1/expenses")
        assert [item["id"] for item in listed.json()] == [expense["id"]]

        deleted = await client.delete(f"/api/v1/stores/store-1/expenses/{expense['id']}")
        assert deleted.status_code == 204

        again = await client.delete(f"/api/v1/stores/store-1/expenses/{expense['id']}")
        assert again.status_code == 404

    async def test_expense_for_unknown_store(self, client):
        response = await client.post("/api/v1/stores/missing/expenses", json=EXPENSE)

        assert response.status_code == 404

    async def test_invalid_amount(self, client, store):
        response = await client.post("/api/v1/stores/store-1/expenses", json=dict(EXPENSE, amount=-5))

        assert response.status_code == 422


class TestInlineReport:
    async def test_inline_payload(self, client):
        response = await client.post("/api/v1/analytics/report", json={
            "dailyData": DAILY_STATS,
            "expenses": [EXPENSE],
            "storeSettings": {"commissionRate": 0.125, "taxRate": 0.04},
            "marketing": {"totalCost": 900, "totalGmv": 15000, "roas": 16.7},
            "activity": {"statusCounts": {"completed": 8, "returned": 2}},
            "startDate": "2025-01-10",
            "endDate": "2025-01-11",
            "comparePrevious": True,
        })

        assert response.status_code == 200
        report = response.json()
        assert report["total_advertising"] == pytest.approx(900.0)
        assert report["total_operational"] == pytest.approx(300.0)
        assert report["return_percent"] == pytest.approx(20.0)
        assert report["order_statuses"]["delivered"] == 8
        assert report["comparison"]["previous_start"] == "2025-01-08"
        assert report["comparison"]["revenue_growth"] == 0.0

    async def test_unknown_sort_key_maps_to_422(self, client):
        response = await client.post("/api/v1/analytics/report", json={"sortBy": "popularity"})

        assert response.status_code == 422
        assert "popularity" in response.json()["detail"]

    async def test_inverted_period_maps_to_422(self, client):
        response = await client.post(
            "/api/v1/analytics/report",
            json={"startDate": "2025-02-01", "endDate": "2025-01-01"},
        )

        assert response.status_code == 422


class TestMarketplaceSync:
    async def test_sync_writes_days_and_orders(self, client, store):
        from seller_analytics.main import app

        _override_marketplace(app, [FakeResponse(payload={
            "dailyStats": DAILY_STATS,
            "products": [{"sku": "SKU-A", "adCost": 100}],
            "orders": [
                {"orderId": "1", "status": "COMPLETED", "deliveryMode": "pickup", "source": "organic",
                 "createdAt": "2025-01-10T09:00:00"},
                {"orderId": "2", "status": "returned", "deliveryMode": "intercity", "source": "ads",
                 "createdAt": "2025-01-11T12:00:00"},
            ],
        })])

        response = await client.post(
            "/api/v1/stores/store-1/sync",
            params={"start_date": "2025-01-10", "end_date": "2025-01-11"},
        )

        assert response.status_code == 200
        assert response.json()["days_upserted"] == 2
        assert response.json()["orders_upserted"] == 2

        report = (await client.get(
            "/api/v1/stores/store-1/report",
            params={"start_date": "2025-01-10", "end_date": "2025-01-11"},
        )).json()
        assert report["total_revenue"] == pytest.approx(15000.0)
        assert report["return_percent"] == pytest.approx(50.0)
        assert report["delivery_modes"]["pickup"] == pytest.approx(50.0)
        assert report["sales_sources"]["organic"] == 1
        assert report["sales_sources"]["advertising"] == 1

    async def test_sync_failure_maps_to_502(self, client, store):
        from seller_analytics.main import app

        _override_marketplace(app, [FakeResponse(503), FakeResponse(503)])

        response = await client.post("/api/v1/stores/store-1/sync")

        assert response.status_code == 502


class TestReportCacheInvalidation:
    """Cached reports are dropped only once the write is committed"""

    @pytest.fixture
    def events(self, store, monkeypatch):
        events = []

        def on_commit(session):
            events.append("commit")

        async def record_invalidation(store_id):
            events.append("invalidate")
            return 0

        event.listen(Session, "after_commit", on_commit)
        monkeypatch.setattr(expenses_routes, "invalidate_store_reports", record_invalidation)
        monkeypatch.setattr(sync_routes, "invalidate_store_reports", record_invalidation)
        yield events
        event.remove(Session, "after_commit", on_commit)

    async def test_expense_created(self, client, events):
        await client.post("/api/v1/stores/store-1/expenses", json=EXPENSE)

        assert events[:2] == ["commit", "invalidate"]

    async def test_expense_deleted(self, client, events):
        expense = (await client.post("/api/v1/stores/store-1/expenses", json=EXPENSE)).json()
        events.clear()

        await client.delete(f"/api/v1/stores/store-1/expenses/{expense['id']}")

        assert events[:2] == ["commit", "invalidate"]

    async def test_daily_stats_upserted(self, client, events):
        await client.put("/api/v1/stores/store-1/daily-stats", json=DAILY_STATS)

        assert events[:2] == ["commit", "invalidate"]
