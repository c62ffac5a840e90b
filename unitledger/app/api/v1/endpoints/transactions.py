"""
Ledger Transaction API Endpoints.

Manual journal entries and ledger browsing.
"""

from datetime import date
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from unitledger.app.db.session import get_db
from unitledger.app.core.dependencies import get_actor
from unitledger.app.core.exceptions import ResourceNotFoundError, raise_for_result
from unitledger.app.domain.ledger.ledger_engine import LedgerEngine
from unitledger.app.schemas.transaction import TransactionCreate, TransactionRead
from unitledger.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post("", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: TransactionCreate,
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a balanced journal entry.

    Rejected with 400 if unbalanced or malformed, 404 if an account is unknown.
    """
    txn = raise_for_result(
        await LedgerEngine.create_transaction(
            db, data.description, data.lines, txn_date=data.date, payment_id=data.payment_id
        ),
        "Account",
    )
    response = TransactionRead.from_transaction(txn)

    await log_event(
        db=db,
        action=AuditAction.TRANSACTION_POSTED,
        entity_type="transaction",
        entity_id=response.id,
        actor_username=actor,
        metadata={"amount": str(response.total_debits), "lines": len(response.lines)}
    )
    return response


@router.get("", response_model=List[TransactionRead])
async def list_transactions(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Transactions in an inclusive date window, newest first.
    """
    return await LedgerEngine.list_transactions(db, date_from, date_to)


@router.get("/payment/{payment_id}", response_model=List[TransactionRead])
async def list_payment_transactions(
    payment_id: int = Path(..., description="Payment ID from the payments service"),
    db: AsyncSession = Depends(get_db)
):
    return await LedgerEngine.transactions_for_payment(db, payment_id)


@router.get("/{transaction_id}", response_model=TransactionRead)
async def get_transaction(
    transaction_id: int = Path(..., description="Transaction ID"),
    db: AsyncSession = Depends(get_db)
):
    txn = await LedgerEngine.get_transaction(db, transaction_id)
    if not txn:
        raise ResourceNotFoundError("Transaction", transaction_id)
    return txn
