"""
Unit Tests - Period Filter
"""
from datetime import date, datetime, timedelta

import pytest

from seller_analytics.engine import DailyRecord, Granularity, InvalidPeriodError, filter_period, previous_period
from seller_analytics.engine.period_filter import (
    bucket_by_month,
    month_label,
    span_days,
    to_period_record,
)


def _daily_history(start: date, days: int, revenue: float = 100.0):
    return [
        DailyRecord(date=start + timedelta(days=offset), orders=1, revenue=revenue, cost=40.0)
        for offset in range(days)
    ]


class TestFilterPeriod:
    """Tests for window selection"""

    def test_no_bounds_returns_everything_sorted(self):
        """Missing bounds disable filtering"""
        history = list(reversed(_daily_history(date(2025, 1, 1), 5)))

        selection = filter_period(history, None, date(2025, 1, 3))

        assert len(selection.daily) == 5
        assert [r.date for r in selection.daily] == sorted(r.date for r in history)
        assert selection.granularity == Granularity.DAY
        assert selection.start is None

    def test_inclusive_bounds(self):
        """Both the start and the end day are selected"""
        history = _daily_history(date(2025, 1, 1), 10)

        selection = filter_period(history, date(2025, 1, 3), date(2025, 1, 5))

        assert [r.date for r in selection.daily] == [date(2025, 1, 3), date(2025, 1, 4), date(2025, 1, 5)]
        assert [row.label for row in selection.records] == ["03.01", "04.01", "05.01"]

    def test_datetime_bounds_use_whole_days(self):
        """A late-evening start still selects that day"""
        history = _daily_history(date(2025, 1, 1), 10)

        selection = filter_period(history, datetime(2025, 1, 3, 23, 0), datetime(2025, 1, 4, 1, 0))

        assert [r.date for r in selection.daily] == [date(2025, 1, 3), date(2025, 1, 4)]

    def test_start_after_end_raises(self):
        with pytest.raises(InvalidPeriodError):
            filter_period([], date(2025, 2, 1), date(2025, 1, 1))

    def test_empty_window(self):
        """No records in range gives an empty selection, not an error"""
        selection = filter_period(_daily_history(date(2025, 1, 1), 3), date(2025, 3, 1), date(2025, 3, 5))

        assert selection.daily == []
        assert selection.records == []

    def test_derived_fields_recomputed(self):
        """Chart rows expose profit computed from components"""
        record = DailyRecord(
            date=date(2025, 1, 1), revenue=1000.0, cost=300.0, advertising=50.0,
            commissions=125.0, tax=40.0, delivery=25.0,
        )

        row = to_period_record(record)

        assert row.total_expenses == pytest.approx(540.0)
        assert row.profit == pytest.approx(460.0)


class TestMonthBucketing:
    """Tests for the day/month granularity switch"""

    def test_span_of_31_days_stays_daily(self):
        start = date(2025, 1, 1)
        end = start + timedelta(days=31)
        history = _daily_history(start, 40)

        selection = filter_period(history, start, end)

        assert span_days(start, end) == 31
        assert selection.granularity == Granularity.DAY
        assert len(selection.records) == 32

    def test_span_of_32_days_switches_to_months(self):
        start = date(2025, 1, 1)
        end = start + timedelta(days=32)
        history = _daily_history(start, 40)

        selection = filter_period(history, start, end)

        assert selection.granularity == Granularity.MONTH
        assert [row.date for row in selection.records] == [date(2025, 1, 1), date(2025, 2, 1)]
        assert all(row.granularity == Granularity.MONTH for row in selection.records)

    def test_buckets_sum_their_days(self):
        """Each bucket is the field-wise sum of its days"""
        start = date(2025, 1, 15)
        end = date(2025, 3, 10)
        history = _daily_history(start, 60, revenue=10.0)

        selection = filter_period(history, start, end)

        january, february, march = selection.records
        assert january.revenue == pytest.approx(170.0)
        assert january.orders == 17
        assert february.revenue == pytest.approx(280.0)
        assert march.revenue == pytest.approx(100.0)
        assert sum(row.revenue for row in selection.records) == pytest.approx(
            sum(r.revenue for r in selection.daily)
        )

    def test_bucket_labels(self):
        rows = [to_period_record(r) for r in _daily_history(date(2024, 12, 30), 4)]

        buckets = bucket_by_month(rows, locale="en")

        assert [row.label for row in buckets] == ["Dec 24", "Jan 25"]

    def test_russian_month_label(self):
        assert month_label(date(2025, 5, 1), locale="ru") == "май 25"

    def test_custom_threshold(self):
        history = _daily_history(date(2025, 1, 1), 10)

        selection = filter_period(history, date(2025, 1, 1), date(2025, 1, 8), threshold_days=5)

        assert selection.granularity == Granularity.MONTH

    def test_bucketing_empty_rows(self):
        assert bucket_by_month([]) == []


class TestPreviousPeriod:
    """Tests for the comparison window"""

    def test_same_length_ending_before_start(self):
        assert previous_period(date(2025, 1, 11), date(2025, 1, 20)) == (date(2025, 1, 1), date(2025, 1, 10))

    def test_single_day(self):
        assert previous_period(date(2025, 3, 1), date(2025, 3, 1)) == (date(2025, 2, 28), date(2025, 2, 28))

    def test_inverted_window_raises(self):
        with pytest.raises(InvalidPeriodError):
            previous_period(date(2025, 3, 2), date(2025, 3, 1))
