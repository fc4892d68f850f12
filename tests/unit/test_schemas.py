"""
Unit Tests - Collaborator Payloads
"""
from datetime import date

import pytest
from pydantic import ValidationError

from seller_analytics.engine import build_report
from seller_analytics.ingestion.schemas import (
    DailyStatPayload,
    ExpensePayload,
    MarketingPayload,
    OrderPayload,
    ProductMetaPayload,
    ReportRequest,
)
from seller_analytics.serving.api.routes.analytics import ReportResponse


class TestDailyStatPayload:
    def test_marketplace_spelling(self):
        """camelCase names and ISO timestamps from the sync collaborator"""
        payload = DailyStatPayload.model_validate({
            "fullDate": "2025-01-10T00:00:00.000Z",
            "orders_count": 2,
            "revenue": 10000,
            "delivery_cost": 300,
            "products": [
                {"product_code": "SKU-A", "product_name": "Phone case", "quantity": 3, "total": 6000, "costPrice": 2400},
            ],
        })

        record = payload.to_record()

        assert record.date == date(2025, 1, 10)
        assert record.orders == 2
        assert record.delivery == 300.0
        assert record.products[0].code == "SKU-A"
        assert record.products[0].qty == 3
        assert record.products[0].revenue == 6000.0
        assert record.products[0].cost_price == 2400.0

    def test_snake_case_spelling(self):
        payload = DailyStatPayload.model_validate({
            "date": "2025-01-10",
            "orders": 1,
            "delivery": 50,
            "products": [{"code": "X", "name": "X", "qty": 1, "revenue": 10, "cost_price": 4}],
        })

        assert payload.to_record().products[0].key == "X"

    def test_negative_orders_rejected(self):
        with pytest.raises(ValidationError):
            DailyStatPayload.model_validate({"date": "2025-01-10", "orders": -1})


class TestExpensePayload:
    def test_camel_case_and_scope(self):
        payload = ExpensePayload.model_validate({
            "id": "exp-7",
            "name": "Packaging",
            "amount": 1200,
            "startDate": "2025-02-01",
            "endDate": "2025-02-28T23:59:59",
            "productGroup": "cases",
        })

        expense = payload.to_expense()

        assert expense.id == "exp-7"
        assert expense.end_date == date(2025, 2, 28)
        assert expense.product_group == "cases"
        assert expense.product_id is None
        assert not expense.is_shared

    def test_default_id(self):
        payload = ExpensePayload(name="Rent", amount=10, start_date=date(2025, 1, 1), end_date=date(2025, 1, 1))

        assert payload.to_expense(default_id="inline-0").id == "inline-0"

    def test_inverted_window_accepted(self):
        """Inverted windows are clamped by the engine, not rejected here"""
        payload = ExpensePayload(name="Typo", amount=10, start_date="2025-01-05", end_date="2025-01-01")

        assert payload.start_date > payload.end_date

    def test_missing_name_rejected(self):
        with pytest.raises(ValidationError):
            ExpensePayload.model_validate({"amount": 1, "start_date": "2025-01-01", "end_date": "2025-01-02"})


class TestOtherPayloads:
    def test_marketing_summary(self):
        summary = MarketingPayload.model_validate({"totalCost": 900, "totalGmv": 5000, "roas": 5.5}).to_summary()

        assert summary.total_cost == 900.0
        assert summary.roas == 5.5

    def test_product_meta(self):
        meta = ProductMetaPayload.model_validate({"product_code": "A", "adCost": 15, "productGroup": "g"}).to_meta()

        assert (meta.sku, meta.ad_cost, meta.group) == ("A", 15.0, "g")

    def test_order_status_normalised(self):
        order = OrderPayload.model_validate({
            "orderId": "100",
            "status": " COMPLETED ",
            "deliveryMode": "Pickup",
            "createdAt": "2025-01-10T10:00:00",
        })

        assert order.status == "completed"
        assert order.delivery_mode == "pickup"

    def test_report_request(self):
        request = ReportRequest.model_validate({
            "dailyData": [{"date": "2025-01-10", "revenue": 10}],
            "startDate": "2025-01-01",
            "endDate": "2025-01-31",
            "sortBy": "margin",
        })

        assert request.start_date == date(2025, 1, 1)
        assert request.sort_by == "margin"
        assert len(request.daily_stats) == 1
        assert request.marketing is None


class TestReportResponse:
    """Response models carry a ``date`` field next to ``datetime.date`` values"""

    def test_period_rows_keep_dates(self, two_day_records, day1, day2):
        report = build_report(two_day_records, day1, day2, compare_previous=True)

        response = ReportResponse.from_report(report)

        assert [row.date for row in response.daily_data] == [day1, day2]
        assert response.comparison.previous_end == date(2025, 1, 9)
        assert response.model_dump(mode="json")["daily_data"][0]["date"] == "2025-01-10"

    def test_daily_stat_date_field(self):
        payload = DailyStatPayload(date=date(2025, 1, 10), orders=1)

        assert payload.date == date(2025, 1, 10)
        assert "date" in DailyStatPayload.model_fields
