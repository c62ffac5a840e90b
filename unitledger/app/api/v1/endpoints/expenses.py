"""
Direct Expense API Endpoints.

Expenses paid straight from unit funds. Each one is posted as it is recorded
and reversed when it is deleted.
"""

from datetime import date
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from unitledger.app.db.session import get_db
from unitledger.app.core.dependencies import get_actor
from unitledger.app.core.exceptions import ResourceNotFoundError, raise_for_result
from unitledger.app.domain.ledger.posting_rules import PostingRules
from unitledger.app.schemas.expense import ExpenseCreate, ExpenseRead
from unitledger.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/expenses", tags=["Expenses"])


@router.post("", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
async def record_expense(
    data: ExpenseCreate,
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Record and post a direct expense.
    """
    expense = raise_for_result(await PostingRules.record_direct_expense(db, data), "Account")
    response = ExpenseRead.from_expense(expense)

    await log_event(
        db=db,
        action=AuditAction.EXPENSE_RECORDED,
        entity_type="expense",
        entity_id=response.id,
        actor_username=actor,
        metadata={"amount": str(response.amount), "transaction_id": response.transaction_id}
    )
    return response


@router.get("", response_model=List[ExpenseRead])
async def list_expenses(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    direct_only: bool = Query(False, description="Exclude expenses that belong to claims"),
    meeting_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    return await PostingRules.list_expenses(db, date_from, date_to, direct_only, meeting_id)


@router.get("/{expense_id}", response_model=ExpenseRead)
async def get_expense(
    expense_id: int = Path(..., description="Expense ID"),
    db: AsyncSession = Depends(get_db)
):
    expense = await PostingRules.get_expense(db, expense_id)
    if not expense:
        raise ResourceNotFoundError("Expense", expense_id)
    return expense


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: int = Path(..., description="Expense ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a direct expense and reverse its ledger posting.

    Claim expenses are rejected with 409; remove them through the claim instead.
    """
    reversed_id = raise_for_result(await PostingRules.delete_direct_expense(db, expense_id), "Expense")

    await log_event(
        db=db,
        action=AuditAction.EXPENSE_DELETED,
        entity_type="expense",
        entity_id=expense_id,
        actor_username=actor,
        metadata={"transaction_id": reversed_id},
    )
    if reversed_id is not None:
        await log_event(
            db=db,
            action=AuditAction.TRANSACTION_REVERSED,
            entity_type="transaction",
            entity_id=reversed_id,
            actor_username=actor,
            metadata={"expense_id": expense_id},
        )
