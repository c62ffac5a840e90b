"""
Chart of Accounts Schemas.
"""

from decimal import Decimal
from pydantic import BaseModel, Field
from unitledger.app.models.enums import AccountType


class AccountRead(BaseModel):
    """Detached snapshot of an account, balance included."""
    id: int
    code: str
    name: str
    type: AccountType
    is_system: bool
    balance: Decimal

    class Config:
        from_attributes = True


class ExpenseAccountCreate(BaseModel):
    """Schema for creating an expense category (code is assigned automatically)."""
    name: str = Field(..., max_length=100)


class ExpenseAccountUpdate(BaseModel):
    """Schema for renaming an expense category."""
    name: str = Field(..., max_length=100)
