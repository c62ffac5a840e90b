"""
Audit logging service for ledger changes.

Provides centralized recording of bookkeeping actions for the treasurer's audit trail.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from unitledger.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Ledger
    TRANSACTION_POSTED = "TRANSACTION_POSTED"
    TRANSACTION_REVERSED = "TRANSACTION_REVERSED"
    PAYMENT_POSTED = "PAYMENT_POSTED"
    BANK_DEPOSIT_POSTED = "BANK_DEPOSIT_POSTED"

    # Chart of accounts
    DEFAULT_ACCOUNTS_SEEDED = "DEFAULT_ACCOUNTS_SEEDED"
    EXPENSE_ACCOUNT_CREATED = "EXPENSE_ACCOUNT_CREATED"
    EXPENSE_ACCOUNT_UPDATED = "EXPENSE_ACCOUNT_UPDATED"
    EXPENSE_ACCOUNT_DELETED = "EXPENSE_ACCOUNT_DELETED"

    # Expenses & claims
    EXPENSE_RECORDED = "EXPENSE_RECORDED"
    EXPENSE_DELETED = "EXPENSE_DELETED"
    CLAIM_CREATED = "CLAIM_CREATED"
    CLAIM_EXPENSE_ADDED = "CLAIM_EXPENSE_ADDED"
    CLAIM_EXPENSE_REMOVED = "CLAIM_EXPENSE_REMOVED"
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_SETTLED = "CLAIM_SETTLED"
    CLAIM_DELETED = "CLAIM_DELETED"


async def log_event(
    db: AsyncSession,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Record a bookkeeping event in the audit log.

    Called after the ledger operation itself has committed, so a failure
    here never undoes a posting.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        entity_type: Kind of record touched ("transaction", "account", ...)
        entity_id: ID of the record touched
        actor_username: Username supplied by the identity layer
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_username=actor_username,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_type: Filter by kind of record
        entity_id: Filter by record ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
