"""
Ledger Transaction Schemas.
"""

import datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional

from unitledger.app.models.enums import PaymentMethod, PaymentType
from unitledger.app.models.transaction import Transaction, TransactionLine


class TransactionLineCreate(BaseModel):
    """One line of a manual journal entry. Exactly one side should be nonzero."""
    account_id: int
    debit: Decimal = Decimal("0.00")
    credit: Decimal = Decimal("0.00")


class TransactionCreate(BaseModel):
    """Schema for posting a manual journal entry."""
    description: str = Field(..., max_length=500)
    date: datetime.date
    payment_id: Optional[int] = None
    lines: List[TransactionLineCreate] = []


class TransactionLineRead(BaseModel):
    """Line with the account it touches."""
    id: int
    account_id: int
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal

    @classmethod
    def from_line(cls, line: TransactionLine) -> "TransactionLineRead":
        return cls(
            id=line.id,
            account_id=line.account_id,
            account_code=line.account.code,
            account_name=line.account.name,
            debit=line.debit,
            credit=line.credit,
        )


class TransactionRead(BaseModel):
    """Committed transaction with its lines."""
    id: int
    date: datetime.date
    description: str
    payment_id: Optional[int]
    lines: List[TransactionLineRead]
    total_debits: Decimal
    total_credits: Decimal

    @classmethod
    def from_transaction(cls, txn: Transaction) -> "TransactionRead":
        return cls(
            id=txn.id,
            date=txn.date,
            description=txn.description,
            payment_id=txn.payment_id,
            lines=[TransactionLineRead.from_line(line) for line in txn.lines],
            total_debits=txn.total_debits,
            total_credits=txn.total_credits,
        )


class PaymentEntryCreate(BaseModel):
    """Posting request sent by the payments service when a payment is recorded."""
    payment_id: int
    amount: Decimal
    payment_method: PaymentMethod
    payment_type: PaymentType
    date: datetime.date
    description: Optional[str] = Field(None, max_length=500)
    membership_number: Optional[str] = Field(None, max_length=50)
    reference: Optional[str] = Field(None, max_length=200)


class BankDepositCreate(BaseModel):
    """Schema for paying cash and/or cheques into the bank."""
    cash_amount: Decimal = Decimal("0.00")
    cheque_amount: Decimal = Decimal("0.00")
    date: datetime.date
    notes: Optional[str] = Field(None, max_length=500)
