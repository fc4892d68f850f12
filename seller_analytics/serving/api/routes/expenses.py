"""
Operational Expense Endpoints

Sellers create and delete expenses; every change drops the store's cached
report snapshots.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from seller_analytics.config.logging import bind_store_context
from seller_analytics.database.connection import get_db_dependency
from seller_analytics.database.models import OperationalExpenseRecord
from seller_analytics.engine.proration import daily_rate, total_expense_days
from seller_analytics.ingestion.schemas import ExpensePayload
from seller_analytics.ingestion.sync import get_store
from seller_analytics.serving.cache import invalidate_store_reports

router = APIRouter()
logger = structlog.get_logger(__name__)


class ExpenseResponse(BaseModel):
    """Stored operational expense"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    amount: float
    start_date: date
    end_date: date
    product_id: Optional[str]
    product_group: Optional[str]
    total_days: int
    daily_rate: float

    @classmethod
    def from_record(cls, record: OperationalExpenseRecord) -> "ExpenseResponse":
        expense = record.to_expense()
        return cls(
            id=expense.id,
            name=expense.name,
            amount=expense.amount,
            start_date=expense.start_date,
            end_date=expense.end_date,
            product_id=expense.product_id,
            product_group=expense.product_group,
            total_days=total_expense_days(expense),
            daily_rate=daily_rate(expense),
        )


async def _require_store(db: AsyncSession, store_id: str) -> None:
    bind_store_context(store_id)
    if await get_store(db, store_id) is None:
        raise HTTPException(status_code=404, detail="Store not found")


@router.get("/stores/{store_id}/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    store_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> List[ExpenseResponse]:
    """List a store's expenses, newest window first."""
    await _require_store(db, store_id)

    result = await db.execute(
        select(OperationalExpenseRecord)
        .where(OperationalExpenseRecord.store_id == store_id)
        .order_by(OperationalExpenseRecord.start_date.desc())
    )
    return [ExpenseResponse.from_record(record) for record in result.scalars()]


@router.post("/stores/{store_id}/expenses", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    store_id: str,
    payload: ExpensePayload,
    db: AsyncSession = Depends(get_db_dependency),
) -> ExpenseResponse:
    """
    Create an expense.

    ``amount`` is the total for the whole inclusive window. A window that
    ends before it starts is stored as given and prorated as a single day.
    """
    await _require_store(db, store_id)

    record = OperationalExpenseRecord(
        store_id=store_id,
        name=payload.name,
        amount=payload.amount,
        start_date=payload.start_date,
        end_date=payload.end_date,
        product_id=payload.product_id,
        product_group=payload.product_group,
    )
    if payload.id:
        record.id = payload.id
    db.add(record)
    await db.commit()
    await invalidate_store_reports(store_id)
    logger.info("Expense created", store_id=store_id, expense_id=record.id, amount=record.amount)
    return ExpenseResponse.from_record(record)


@router.delete("/stores/{store_id}/expenses/{expense_id}", status_code=204)
async def delete_expense(
    store_id: str,
    expense_id: str,
    db: AsyncSession = Depends(get_db_dependency),
) -> Response:
    bind_store_context(store_id)
    result = await db.execute(
        select(OperationalExpenseRecord).where(
            OperationalExpenseRecord.store_id == store_id,
            OperationalExpenseRecord.id == expense_id,
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise HTTPException(status_code=404, detail="Expense not found")

    await db.delete(record)
    await db.commit()
    await invalidate_store_reports(store_id)
    logger.info("Expense deleted", store_id=store_id, expense_id=expense_id)
    return Response(status_code=204)
