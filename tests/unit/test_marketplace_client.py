"""
Unit Tests - Marketplace Client
"""
from datetime import date
from typing import List

import pytest
import requests

from seller_analytics.ingestion.marketplace_client import (
    MarketplaceClient,
    MarketplaceUnavailableError,
)


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.content = b"{}"

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self._payload


class FakeSession:
    """Records calls and replays a shared queue of outcomes"""

    def __init__(self, outcomes: List, sessions: List):
        self.headers = {}
        self.closed = False
        self._outcomes = outcomes
        sessions.append(self)

    def request(self, method, url, params=None, timeout=None):
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def _client(outcomes: List, sessions: List) -> MarketplaceClient:
    return MarketplaceClient(
        base_url="http://marketplace.test/api",
        api_token="secret",
        timeout=1,
        session_factory=lambda: FakeSession(outcomes, sessions),
    )


class TestMarketplaceClient:
    def test_success_first_try(self):
        sessions = []
        client = _client([FakeResponse(payload={"ok": True})], sessions)

        assert client.request("GET", "ping") == {"ok": True}
        assert len(sessions) == 1
        assert sessions[0].headers["Authorization"] == "Bearer secret"

    def test_retries_once_on_fresh_session(self):
        sessions = []
        client = _client([requests.ConnectionError("reset"), FakeResponse(payload={"ok": True})], sessions)

        assert client.request("GET", "ping") == {"ok": True}
        assert len(sessions) == 2
        assert sessions[0].closed

    def test_second_failure_raises(self):
        sessions = []
        client = _client([requests.Timeout("slow"), requests.Timeout("slow")], sessions)

        with pytest.raises(MarketplaceUnavailableError):
            client.request("GET", "ping")
        assert len(sessions) == 2

    def test_http_error_keeps_status(self):
        sessions = []
        client = _client([FakeResponse(503), FakeResponse(503)], sessions)

        with pytest.raises(MarketplaceUnavailableError) as exc_info:
            client.request("GET", "ping")
        assert exc_info.value.status_code == 503

    def test_fetch_store_batch(self):
        payload = {
            "dailyStats": [{"date": "2025-01-10", "orders": 2, "revenue": 100}],
            "products": [{"sku": "A", "adCost": 5}],
            "orders": [{"orderId": "1", "status": "completed", "createdAt": "2025-01-10T09:00:00"}],
        }
        client = _client([FakeResponse(payload=payload)], [])

        batch = client.fetch_store_batch("store-1", date(2025, 1, 1), date(2025, 1, 31))

        assert batch.daily_stats[0].revenue == 100.0
        assert batch.products[0].ad_cost == 5.0
        assert batch.orders[0].order_id == "1"

    def test_invalid_payload_raises(self):
        client = _client([FakeResponse(payload={"dailyStats": [{"orders": 1}]})], [])

        with pytest.raises(MarketplaceUnavailableError):
            client.fetch_store_batch("store-1", date(2025, 1, 1), date(2025, 1, 31))
