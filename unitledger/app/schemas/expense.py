"""
Expense and Reimbursement Claim Schemas.
"""

import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from unitledger.app.models.enums import ExpenseClaimStatus, PaymentMethod
from unitledger.app.models.expense import Expense, ExpenseClaim


class ExpenseCreate(BaseModel):
    """
    Schema for recording an expense.

    paid_from_account_id is required for a direct expense and ignored when the
    expense is added to a claim.
    """
    date: datetime.date
    amount: Decimal
    expense_account_id: int
    description: str = Field("", max_length=500)
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    meeting_id: Optional[int] = None
    paid_from_account_id: Optional[int] = None


class ExpenseRead(BaseModel):
    """Schema for displaying an expense."""
    id: int
    date: datetime.date
    amount: Decimal
    expense_account_id: int
    expense_account_code: str
    expense_account_name: str
    description: str
    reference: Optional[str]
    notes: Optional[str]
    meeting_id: Optional[int]
    paid_from_account_id: Optional[int]
    transaction_id: Optional[int]
    expense_claim_id: Optional[int]

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseRead":
        return cls(
            id=expense.id,
            date=expense.date,
            amount=expense.amount,
            expense_account_id=expense.expense_account_id,
            expense_account_code=expense.expense_account.code,
            expense_account_name=expense.expense_account.name,
            description=expense.description,
            reference=expense.reference,
            notes=expense.notes,
            meeting_id=expense.meeting_id,
            paid_from_account_id=expense.paid_from_account_id,
            transaction_id=expense.transaction_id,
            expense_claim_id=expense.expense_claim_id,
        )


class ExpenseClaimCreate(BaseModel):
    """Schema for opening a reimbursement claim."""
    claimed_by: str = Field(..., max_length=200)
    submitted_date: datetime.date
    notes: Optional[str] = None


class ClaimSettleRequest(BaseModel):
    """Schema for paying a leader back."""
    paid_from_account_id: int
    payment_method: PaymentMethod
    settled_date: datetime.date


class ExpenseClaimRead(BaseModel):
    """Schema for displaying a claim and its receipts."""
    id: int
    claimed_by: str
    submitted_date: datetime.date
    status: ExpenseClaimStatus
    notes: Optional[str]
    settled_date: Optional[datetime.date]
    paid_from_account_id: Optional[int]
    payment_method: Optional[PaymentMethod]
    transaction_id: Optional[int]
    total_amount: Decimal
    expenses: List[ExpenseRead]

    @classmethod
    def from_claim(cls, claim: ExpenseClaim) -> "ExpenseClaimRead":
        return cls(
            id=claim.id,
            claimed_by=claim.claimed_by,
            submitted_date=claim.submitted_date,
            status=claim.status,
            notes=claim.notes,
            settled_date=claim.settled_date,
            paid_from_account_id=claim.paid_from_account_id,
            payment_method=claim.payment_method,
            transaction_id=claim.transaction_id,
            total_amount=claim.total_amount,
            expenses=[ExpenseRead.from_expense(e) for e in claim.expenses],
        )
