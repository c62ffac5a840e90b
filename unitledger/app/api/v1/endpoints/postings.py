"""
Posting API Endpoints.

Business events raised by the rest of the unit-administration system:
payments received and bank deposits.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from unitledger.app.db.session import get_db
from unitledger.app.core.dependencies import get_actor, get_member_directory
from unitledger.app.core.exceptions import raise_for_result
from unitledger.app.domain.ledger.posting_rules import PostingRules
from unitledger.app.schemas.transaction import BankDepositCreate, PaymentEntryCreate, TransactionRead
from unitledger.app.services.audit import log_event, AuditAction
from unitledger.app.services.collaborators import MemberDirectory, describe_payment

router = APIRouter(prefix="/postings", tags=["Postings"])


@router.post("/payments", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def post_payment(
    data: PaymentEntryCreate,
    actor: Optional[str] = Depends(get_actor),
    members: MemberDirectory = Depends(get_member_directory),
    db: AsyncSession = Depends(get_db)
):
    """
    Record the ledger side of a received payment.

    If no description is given, one is built from the payer's name and the
    payment reference.
    """
    description = data.description
    if not description or not description.strip():
        description = await describe_payment(members, data.membership_number, data.reference, data.payment_id)

    txn = raise_for_result(
        await PostingRules.record_payment_entry(
            db,
            payment_id=data.payment_id,
            amount=data.amount,
            payment_method=data.payment_method,
            payment_type=data.payment_type,
            description=description,
            txn_date=data.date,
        ),
        "Account",
    )
    response = TransactionRead.from_transaction(txn)

    await log_event(
        db=db,
        action=AuditAction.PAYMENT_POSTED,
        entity_type="transaction",
        entity_id=response.id,
        actor_username=actor,
        metadata={
            "payment_id": data.payment_id,
            "amount": str(response.total_debits),
            "method": data.payment_method.value,
            "type": data.payment_type.value,
        }
    )
    return response


@router.post("/bank-deposits", response_model=TransactionRead, status_code=status.HTTP_201_CREATED)
async def post_bank_deposit(
    data: BankDepositCreate,
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Pay cash and/or cheques into the bank.

    Returns 409 if either amount exceeds what is currently held.
    """
    txn = raise_for_result(
        await PostingRules.bank_deposit(
            db, data.cash_amount, data.cheque_amount, txn_date=data.date, notes=data.notes
        ),
        "Account",
    )
    response = TransactionRead.from_transaction(txn)

    await log_event(
        db=db,
        action=AuditAction.BANK_DEPOSIT_POSTED,
        entity_type="transaction",
        entity_id=response.id,
        actor_username=actor,
        metadata={"cash": str(data.cash_amount), "cheques": str(data.cheque_amount)}
    )
    return response
