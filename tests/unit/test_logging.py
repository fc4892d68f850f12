"""
Unit Tests - Logging Context
"""
import pytest
import structlog

from seller_analytics.config.logging import add_service_context, bind_store_context


@pytest.fixture(autouse=True)
def clean_contextvars():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


class TestLoggingContext:
    def test_service_context_added(self, test_settings, monkeypatch):
        monkeypatch.setattr("seller_analytics.config.logging.get_settings", lambda: test_settings)

        event_dict = add_service_context(None, "info", {"event": "Report built"})

        assert event_dict["service"] == test_settings.app_name
        assert event_dict["environment"] == "testing"

    def test_explicit_values_kept(self):
        event_dict = add_service_context(None, "info", {"event": "x", "service": "worker"})

        assert event_dict["service"] == "worker"

    def test_store_id_bound_to_context(self):
        bind_store_context("store-1")

        merged = structlog.contextvars.merge_contextvars(None, "info", {"event": "Expense created"})

        assert merged["store_id"] == "store-1"
