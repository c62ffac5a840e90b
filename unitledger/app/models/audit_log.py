"""
Audit Log Database Model.

Tracks every committed change to the ledger and the chart of accounts.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from unitledger.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for bookkeeping actions.

    Events logged:
    - TRANSACTION_POSTED / TRANSACTION_REVERSED
    - EXPENSE_ACCOUNT_CREATED / UPDATED / DELETED
    - EXPENSE_RECORDED / EXPENSE_DELETED
    - CLAIM_CREATED / CLAIM_SUBMITTED / CLAIM_SETTLED / CLAIM_DELETED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (supplied by the identity layer; None for system actions)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Which record it touched
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
