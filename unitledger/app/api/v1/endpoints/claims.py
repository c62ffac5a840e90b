"""
Reimbursement Claim API Endpoints.

A leader collects receipts on a DRAFT claim, submits it, and the treasurer
settles it with one aggregated ledger posting.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from unitledger.app.db.session import get_db
from unitledger.app.core.dependencies import get_actor
from unitledger.app.core.exceptions import ResourceNotFoundError, raise_for_result
from unitledger.app.domain.ledger.posting_rules import PostingRules
from unitledger.app.models.enums import ExpenseClaimStatus
from unitledger.app.schemas.expense import (
    ClaimSettleRequest, ExpenseClaimCreate, ExpenseClaimRead, ExpenseCreate, ExpenseRead,
)
from unitledger.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/claims", tags=["Expense Claims"])


@router.post("", response_model=ExpenseClaimRead, status_code=status.HTTP_201_CREATED)
async def create_claim(
    data: ExpenseClaimCreate,
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    claim = raise_for_result(await PostingRules.create_expense_claim(db, data), "Expense claim")
    response = ExpenseClaimRead.from_claim(claim)

    await log_event(
        db=db,
        action=AuditAction.CLAIM_CREATED,
        entity_type="expense_claim",
        entity_id=response.id,
        actor_username=actor,
        metadata={"claimed_by": response.claimed_by}
    )
    return response


@router.get("", response_model=List[ExpenseClaimRead])
async def list_claims(
    claim_status: Optional[ExpenseClaimStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db)
):
    """
    List claims, most recently submitted first.
    """
    claims = await PostingRules.list_claims(db, claim_status)
    return [ExpenseClaimRead.from_claim(c) for c in claims]


@router.get("/{claim_id}", response_model=ExpenseClaimRead)
async def get_claim(
    claim_id: int = Path(..., description="Claim ID"),
    db: AsyncSession = Depends(get_db)
):
    claim = await PostingRules.fetch_claim(db, claim_id)
    if not claim:
        raise ResourceNotFoundError("Expense claim", claim_id)
    return ExpenseClaimRead.from_claim(claim)


@router.post("/{claim_id}/expenses", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
async def add_claim_expense(
    data: ExpenseCreate,
    claim_id: int = Path(..., description="Claim ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a receipt to a DRAFT claim. Nothing is posted until the claim is settled.
    """
    expense = raise_for_result(
        await PostingRules.add_expense_to_claim(db, claim_id, data), "Expense claim"
    )
    response = ExpenseRead.from_expense(expense)

    await log_event(
        db=db,
        action=AuditAction.CLAIM_EXPENSE_ADDED,
        entity_type="expense_claim",
        entity_id=claim_id,
        actor_username=actor,
        metadata={"expense_id": response.id, "amount": str(response.amount)}
    )
    return response


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_claim_expense(
    expense_id: int = Path(..., description="Expense ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    raise_for_result(await PostingRules.remove_expense_from_claim(db, expense_id), "Expense")

    await log_event(
        db=db,
        action=AuditAction.CLAIM_EXPENSE_REMOVED,
        entity_type="expense",
        entity_id=expense_id,
        actor_username=actor,
    )


@router.post("/{claim_id}/submit", response_model=ExpenseClaimRead)
async def submit_claim(
    claim_id: int = Path(..., description="Claim ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    claim = raise_for_result(await PostingRules.submit_expense_claim(db, claim_id), "Expense claim")
    response = ExpenseClaimRead.from_claim(claim)

    await log_event(
        db=db,
        action=AuditAction.CLAIM_SUBMITTED,
        entity_type="expense_claim",
        entity_id=claim_id,
        actor_username=actor,
        metadata={"total": str(response.total_amount)}
    )
    return response


@router.post("/{claim_id}/settle", response_model=ExpenseClaimRead)
async def settle_claim(
    data: ClaimSettleRequest,
    claim_id: int = Path(..., description="Claim ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Pay the claimant back and post one transaction for the whole claim.

    Returns 409 if the claim is already settled.
    """
    claim = raise_for_result(
        await PostingRules.settle_expense_claim(
            db,
            claim_id,
            paid_from_account_id=data.paid_from_account_id,
            payment_method=data.payment_method,
            settled_date=data.settled_date,
        ),
        "Expense claim",
    )
    response = ExpenseClaimRead.from_claim(claim)

    await log_event(
        db=db,
        action=AuditAction.CLAIM_SETTLED,
        entity_type="expense_claim",
        entity_id=claim_id,
        actor_username=actor,
        metadata={"total": str(response.total_amount), "transaction_id": response.transaction_id}
    )
    return response


@router.delete("/{claim_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_claim(
    claim_id: int = Path(..., description="Claim ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete an unsettled claim with its receipts.
    """
    raise_for_result(await PostingRules.delete_expense_claim(db, claim_id), "Expense claim")

    await log_event(
        db=db,
        action=AuditAction.CLAIM_DELETED,
        entity_type="expense_claim",
        entity_id=claim_id,
        actor_username=actor,
    )
