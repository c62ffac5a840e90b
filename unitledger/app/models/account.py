"""
Account database model.

One row per entry in the chart of accounts.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Boolean, Numeric, Enum
from unitledger.app.db.session import Base
from unitledger.app.models.enums import AccountType


class Account(Base):
    """
    Account model.

    The running balance is owned by the ledger engine: it must always equal the
    signed sum of every posted line that references this account.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(Enum(AccountType), nullable=False, index=True)

    # System accounts cannot be renamed or deleted
    is_system = Column(Boolean, default=False, nullable=False)

    balance = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    def __repr__(self):
        return f"<Account(code='{self.code}', type='{self.type.value}', balance={self.balance})>"
