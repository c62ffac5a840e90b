"""
Expense and ExpenseClaim database models.

Expenses are either paid directly from unit funds (posted one by one) or collected
on a reimbursement claim (posted once, when the claim is settled).
"""

from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from unitledger.app.db.session import Base
from unitledger.app.models.enums import ExpenseClaimStatus, PaymentMethod


class Expense(Base):
    """
    Expense model.

    Exactly one of paid_from_account_id (direct expense) or expense_claim_id
    (reimbursement) is set. transaction_id stays NULL while a claimed expense is unsettled.
    """
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    reference = Column(String(100), nullable=True)  # Receipt / invoice number
    notes = Column(Text, nullable=True)

    # Event link for per-event reporting (meetings live in another service)
    meeting_id = Column(Integer, nullable=True, index=True)

    # Direct expense
    paid_from_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Reimbursement
    expense_claim_id = Column(
        Integer, ForeignKey("expense_claims.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    expense_account = relationship("Account", foreign_keys=[expense_account_id], lazy="joined")
    paid_from_account = relationship("Account", foreign_keys=[paid_from_account_id], lazy="joined")
    claim = relationship("ExpenseClaim", back_populates="expenses")

    @property
    def is_direct(self) -> bool:
        return self.expense_claim_id is None

    def __repr__(self):
        return f"<Expense(id={self.id}, amount={self.amount}, claim_id={self.expense_claim_id})>"


class ExpenseClaim(Base):
    """
    Expense claim model.

    Lifecycle: DRAFT -> (SUBMITTED) -> SETTLED. Settlement is one-way and
    posts a single aggregated transaction.
    """
    __tablename__ = "expense_claims"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    claimed_by = Column(String(200), nullable=False)
    submitted_date = Column(Date, nullable=False)
    status = Column(Enum(ExpenseClaimStatus), default=ExpenseClaimStatus.DRAFT, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Settlement fields (populated when status = SETTLED)
    settled_date = Column(Date, nullable=True)
    paid_from_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    expenses = relationship(
        "Expense",
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="Expense.id",
        lazy="selectin",
    )

    @property
    def total_amount(self) -> Decimal:
        return sum((e.amount for e in self.expenses), start=Decimal("0.00"))

    def __repr__(self):
        return f"<ExpenseClaim(id={self.id}, status='{self.status.value}', total={self.total_amount})>"
