"""
Expense Proration Engine

Spreads operational expenses linearly over the days of their validity
window and attributes them to products, product groups or the whole store.

The daily rate of an expense is fixed by its own window:
``amount / total_expense_days``. A sub-window always receives
``daily_rate * overlap_days``; the rate is never recomputed over the
sub-window.
"""

from datetime import date
from typing import Iterable, Optional, Protocol

import structlog

from .models import OperationalExpense
from .period_filter import DateLike, as_date

logger = structlog.get_logger(__name__)


class RevenueEntity(Protocol):
    """Anything expenses can be attributed to: a product line or a day"""
    sku: str
    group: Optional[str]
    revenue: float


def effective_end_date(expense: OperationalExpense) -> date:
    """End of the expense window, pulled back to the start when inverted"""
    start = as_date(expense.start_date)
    end = as_date(expense.end_date)
    if end < start:
        logger.warning(
            "Inverted expense window clamped to one day",
            expense_id=expense.id,
            start_date=str(expense.start_date),
            end_date=str(expense.end_date),
        )
        return start
    return end


def total_expense_days(expense: OperationalExpense) -> int:
    """
    Inclusive length of the expense window, never less than one day.

    Inverted windows are a caller error; they are clamped to the single
    day ``start_date`` and logged.
    """
    return (effective_end_date(expense) - as_date(expense.start_date)).days + 1


def daily_rate(expense: OperationalExpense) -> float:
    return expense.amount / total_expense_days(expense)


def overlap_days(
    expense: OperationalExpense,
    window_start: DateLike,
    window_end: DateLike,
) -> int:
    """Days shared by the expense window and the query window (0 if disjoint)"""
    start = max(as_date(expense.start_date), as_date(window_start))
    end = min(effective_end_date(expense), as_date(window_end))
    return max(0, (end - start).days + 1)


def prorated_amount(
    expense: OperationalExpense,
    window_start: DateLike,
    window_end: DateLike,
) -> float:
    """Part of the expense attributable to the query window"""
    days = overlap_days(expense, window_start, window_end)
    if days == 0:
        return 0.0
    return daily_rate(expense) * days


def operational_total(
    expenses: Iterable[OperationalExpense],
    window_start: DateLike,
    window_end: DateLike,
) -> float:
    """Whole-window operational expenses regardless of product scope"""
    return sum(
        (prorated_amount(expense, window_start, window_end) for expense in expenses),
        0.0,
    )


def operational_for_day(expenses: Iterable[OperationalExpense], day: date) -> float:
    """Operational expenses falling on a single day"""
    return operational_total(expenses, day, day)


def _share(amount: float, part: float, whole: float) -> float:
    if whole == 0:
        return 0.0
    return amount * (part / whole)


def allocate_to_entity(
    expense: OperationalExpense,
    entity: RevenueEntity,
    window_start: DateLike,
    window_end: DateLike,
    group_total_revenue: float,
    period_total_revenue: float,
) -> float:
    """
    Part of a prorated expense attributable to a single entity.

    - Expense scoped to this product: the full prorated amount.
    - Expense scoped to the entity's group: revenue-weighted share within
      the group.
    - Store-wide expense: revenue-weighted share of the period revenue.
    - Expense scoped to another product or group: nothing.

    Args:
        expense: Expense to attribute
        entity: Product line with ``sku``, ``group`` and ``revenue``
        window_start: Inclusive query window start
        window_end: Inclusive query window end
        group_total_revenue: Revenue of all entities in ``entity.group``
        period_total_revenue: Revenue of the whole filtered period
    """
    amount = prorated_amount(expense, window_start, window_end)
    if amount == 0:
        return 0.0

    if expense.product_id and expense.product_id == entity.sku:
        return amount

    if expense.product_group and expense.product_group == entity.group:
        return _share(amount, entity.revenue, group_total_revenue)

    if expense.is_shared:
        return _share(amount, entity.revenue, period_total_revenue)

    return 0.0
