"""
Period Filter

Selects the daily records that fall inside a reporting window and, for
windows longer than a month, rolls them up into calendar-month buckets.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import polars as pl
import structlog

from seller_analytics.config import get_settings
from .errors import InvalidPeriodError
from .models import (
    COMPONENT_FIELDS,
    DailyRecord,
    Granularity,
    PeriodRecord,
    PeriodSelection,
)

logger = structlog.get_logger(__name__)
settings = get_settings()

DateLike = Union[date, datetime]

MONTH_ABBREVIATIONS = {
    "en": ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
    "ru": ("янв", "фев", "мар", "апр", "май", "июн",
           "июл", "авг", "сен", "окт", "ноя", "дек"),
}

_BUCKET_COLUMNS = COMPONENT_FIELDS + ("operational",)

_BUCKET_SCHEMA = {
    "date": pl.Date,
    "orders": pl.Int64,
    **{name: pl.Float64 for name in _BUCKET_COLUMNS},
}


def as_date(value: DateLike) -> date:
    """Strip the time part of a datetime, pass dates through"""
    if isinstance(value, datetime):
        return value.date()
    return value


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def span_days(start: DateLike, end: DateLike) -> int:
    """Whole days between start and end, rounded up"""
    delta = _as_datetime(end) - _as_datetime(start)
    return math.ceil(delta.total_seconds() / 86400)


def day_label(day: date) -> str:
    return day.strftime("%d.%m")


def month_label(day: date, locale: Optional[str] = None) -> str:
    """Short month + two-digit year, e.g. 'Jan 25'"""
    locale = locale or settings.analytics.month_label_locale
    names = MONTH_ABBREVIATIONS.get(locale, MONTH_ABBREVIATIONS["en"])
    return f"{names[day.month - 1]} {day:%y}"


def to_period_record(record: DailyRecord) -> PeriodRecord:
    """Daily chart row with derived fields recomputed from components"""
    day = as_date(record.date)
    return PeriodRecord(
        date=day,
        label=day_label(day),
        granularity=Granularity.DAY,
        orders=record.orders,
        revenue=record.revenue,
        cost=record.cost,
        advertising=record.advertising,
        commissions=record.commissions,
        tax=record.tax,
        delivery=record.delivery,
    )


def bucket_by_month(
    rows: Sequence[PeriodRecord],
    locale: Optional[str] = None,
) -> List[PeriodRecord]:
    """
    Roll daily rows up into calendar-month buckets.

    Each bucket is the field-wise sum of its days and is dated on the
    first of the month. Buckets are returned in chronological order.
    """
    if not rows:
        return []

    frame = pl.DataFrame(
        {
            "date": [row.date for row in rows],
            "orders": [row.orders for row in rows],
            **{name: [float(getattr(row, name)) for row in rows] for name in _BUCKET_COLUMNS},
        },
        schema=_BUCKET_SCHEMA,
    )

    monthly = (
        frame.with_columns(pl.col("date").dt.truncate("1mo").alias("bucket"))
        .group_by("bucket", maintain_order=True)
        .agg([pl.col("orders").sum()] + [pl.col(name).sum() for name in _BUCKET_COLUMNS])
        .sort("bucket")
    )

    return [
        PeriodRecord(
            date=row["bucket"],
            label=month_label(row["bucket"], locale),
            granularity=Granularity.MONTH,
            orders=row["orders"],
            **{name: row[name] for name in _BUCKET_COLUMNS},
        )
        for row in monthly.iter_rows(named=True)
    ]


def select_window(
    records: Iterable[DailyRecord],
    start: DateLike,
    end: DateLike,
) -> List[DailyRecord]:
    """
    Records whose date, taken at midday, lies within the window.

    The window runs from ``start`` at 00:00:00 to ``end`` at 23:59:59.999999.
    """
    window_start = datetime.combine(as_date(start), time.min)
    window_end = datetime.combine(as_date(end), time.max)

    selected = [
        record for record in records
        if window_start <= datetime.combine(as_date(record.date), time(12)) <= window_end
    ]
    return sorted(selected, key=lambda record: as_date(record.date))


def resolve_granularity(
    start: Optional[DateLike],
    end: Optional[DateLike],
    threshold_days: Optional[int] = None,
) -> Granularity:
    """Monthly buckets once the window spans more than the threshold"""
    if start is None or end is None:
        return Granularity.DAY
    threshold = threshold_days if threshold_days is not None else settings.analytics.month_bucket_threshold_days
    if span_days(start, end) > threshold:
        return Granularity.MONTH
    return Granularity.DAY


def filter_period(
    records: Iterable[DailyRecord],
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    threshold_days: Optional[int] = None,
    locale: Optional[str] = None,
) -> PeriodSelection:
    """
    Select a reporting window from the full daily history.

    Args:
        records: Full daily history for a store, in any order
        start: Inclusive window start; ``None`` disables filtering
        end: Inclusive window end; ``None`` disables filtering
        threshold_days: Span above which rows are bucketed by month
        locale: Month label locale ('en' or 'ru')

    Returns:
        PeriodSelection with the chart rows and the selected daily records

    Raises:
        InvalidPeriodError: If start falls after end
    """
    if start is None or end is None:
        daily = sorted(records, key=lambda record: as_date(record.date))
        return PeriodSelection(
            records=[to_period_record(record) for record in daily],
            daily=daily,
            granularity=Granularity.DAY,
        )

    if as_date(start) > as_date(end):
        raise InvalidPeriodError(as_date(start), as_date(end))

    daily = select_window(records, start, end)
    granularity = resolve_granularity(start, end, threshold_days)

    rows = [to_period_record(record) for record in daily]
    if granularity == Granularity.MONTH:
        rows = bucket_by_month(rows, locale)

    logger.debug(
        "Period filtered",
        start=str(as_date(start)),
        end=str(as_date(end)),
        selected_days=len(daily),
        granularity=granularity.value,
    )

    return PeriodSelection(
        records=rows,
        daily=daily,
        granularity=granularity,
        start=as_date(start),
        end=as_date(end),
    )


def previous_period(start: DateLike, end: DateLike) -> Tuple[date, date]:
    """Window of the same length ending the day before ``start``"""
    start_day, end_day = as_date(start), as_date(end)
    if start_day > end_day:
        raise InvalidPeriodError(start_day, end_day)
    length = (end_day - start_day).days + 1
    previous_end = start_day - timedelta(days=1)
    previous_start = previous_end - timedelta(days=length - 1)
    return previous_start, previous_end
