"""
Chart of Accounts API Endpoints.

Read access to every account and management of user-defined expense categories.
"""

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from unitledger.app.db.session import get_db
from unitledger.app.core.dependencies import get_actor
from unitledger.app.core.exceptions import ResourceNotFoundError, raise_for_result
from unitledger.app.domain.ledger.account_registry import AccountRegistry
from unitledger.app.models.enums import AccountType
from unitledger.app.schemas.account import AccountRead, ExpenseAccountCreate, ExpenseAccountUpdate
from unitledger.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("", response_model=List[AccountRead])
async def list_accounts(
    account_type: Optional[AccountType] = Query(None, alias="type"),
    db: AsyncSession = Depends(get_db)
):
    """
    List the chart of accounts ordered by code, optionally filtered by type.
    """
    return await AccountRegistry.list_accounts(db, account_type)


@router.get("/expense", response_model=List[AccountRead])
async def list_expense_accounts(db: AsyncSession = Depends(get_db)):
    """
    List expense categories.
    """
    return await AccountRegistry.list_expense_accounts(db)


@router.post("/expense", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
async def create_expense_account(
    data: ExpenseAccountCreate,
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Create an expense category. The next free code in the expense band is assigned.
    """
    account = raise_for_result(await AccountRegistry.create_expense_account(db, data.name), "Account")

    await log_event(
        db=db,
        action=AuditAction.EXPENSE_ACCOUNT_CREATED,
        entity_type="account",
        entity_id=account.id,
        actor_username=actor,
        metadata={"code": account.code, "name": account.name}
    )
    return account


@router.put("/expense/{account_id}", response_model=AccountRead)
async def update_expense_account(
    data: ExpenseAccountUpdate,
    account_id: int = Path(..., description="Account ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Rename an expense category. System accounts are read-only.
    """
    account = raise_for_result(
        await AccountRegistry.update_expense_account(db, account_id, data.name), "Account"
    )

    await log_event(
        db=db,
        action=AuditAction.EXPENSE_ACCOUNT_UPDATED,
        entity_type="account",
        entity_id=account.id,
        actor_username=actor,
        metadata={"name": account.name}
    )
    return account


@router.delete("/expense/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense_account(
    account_id: int = Path(..., description="Account ID"),
    actor: Optional[str] = Depends(get_actor),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete an expense category that has never been used.
    """
    raise_for_result(await AccountRegistry.delete_expense_account(db, account_id), "Account")

    await log_event(
        db=db,
        action=AuditAction.EXPENSE_ACCOUNT_DELETED,
        entity_type="account",
        entity_id=account_id,
        actor_username=actor,
    )


@router.get("/code/{code}", response_model=AccountRead)
async def get_account_by_code(
    code: str = Path(..., description="Account code, e.g. 1001"),
    db: AsyncSession = Depends(get_db)
):
    account = await AccountRegistry.get_by_code(db, code)
    if not account:
        raise ResourceNotFoundError("Account", code)
    return account


@router.get("/{account_id}", response_model=AccountRead)
async def get_account(
    account_id: int = Path(..., description="Account ID"),
    db: AsyncSession = Depends(get_db)
):
    account = await AccountRegistry.get_by_id(db, account_id)
    if not account:
        raise ResourceNotFoundError("Account", account_id)
    return account
