"""
Transaction and TransactionLine database models.

A transaction is one balanced journal entry; its lines carry the debits and credits.
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from unitledger.app.db.session import Base


class Transaction(Base):
    """
    Transaction model.

    Sum of line debits must equal sum of line credits.
    Never updated in place: the only way to undo one is a full reversal.
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    date = Column(Date, nullable=False, index=True)
    description = Column(String(500), nullable=False)

    # Payment record in the payments service that caused this entry (not a FK)
    payment_id = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    lines = relationship(
        "TransactionLine",
        back_populates="transaction",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TransactionLine.id",
        lazy="selectin",
    )

    @property
    def total_debits(self):
        return sum((line.debit for line in self.lines), start=Decimal("0.00"))

    @property
    def total_credits(self):
        return sum((line.credit for line in self.lines), start=Decimal("0.00"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    def __repr__(self):
        return f"<Transaction(id={self.id}, date={self.date}, description='{self.description}')>"


class TransactionLine(Base):
    """Single debit or credit against one account."""
    __tablename__ = "transaction_lines"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    debit = Column(Numeric(12, 2), nullable=False, default=0)
    credit = Column(Numeric(12, 2), nullable=False, default=0)

    transaction = relationship("Transaction", back_populates="lines")
    account = relationship("Account", lazy="joined")

    def __repr__(self):
        return f"<TransactionLine(account_id={self.account_id}, debit={self.debit}, credit={self.credit})>"
