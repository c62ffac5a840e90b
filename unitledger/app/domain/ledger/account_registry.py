"""
Account Registry (Domain Logic).

Owns the chart of accounts: seeds the fixed system accounts and the default
expense taxonomy, and manages user-defined expense categories. Balances are
read here but only ever written by the ledger engine.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from unitledger.app.core.config import Settings, settings
from unitledger.app.domain.ledger.results import LedgerResult
from unitledger.app.domain.ledger.sign_rules import ZERO
from unitledger.app.domain.ledger.unit_of_work import atomic
from unitledger.app.models.account import Account
from unitledger.app.models.enums import AccountType
from unitledger.app.models.expense import Expense
from unitledger.app.models.transaction import TransactionLine
from unitledger.app.schemas.account import AccountRead

logger = logging.getLogger("unitledger.accounts")

# System account codes
CASH_ON_HAND_CODE = "1001"
CHEQUES_PENDING_CODE = "1002"
BANK_ACCOUNT_CODE = "1003"
SUBS_INCOME_CODE = "4001"
ACTIVITY_INCOME_CODE = "4002"

# Default expense categories
SUPPLIES_EXPENSE_CODE = "5001"
EQUIPMENT_EXPENSE_CODE = "5002"
VENUE_HIRE_EXPENSE_CODE = "5003"
ACTIVITIES_EXPENSE_CODE = "5004"
BADGES_AWARDS_EXPENSE_CODE = "5005"
OTHER_EXPENSE_CODE = "5099"

DEFAULT_ACCOUNTS = [
    (CASH_ON_HAND_CODE, "Cash on Hand", AccountType.ASSET, True),
    (CHEQUES_PENDING_CODE, "Cheques Pending", AccountType.ASSET, True),
    (BANK_ACCOUNT_CODE, "Bank Account", AccountType.ASSET, True),
    (SUBS_INCOME_CODE, "Subscription Income", AccountType.INCOME, True),
    (ACTIVITY_INCOME_CODE, "Activity Income", AccountType.INCOME, True),
    (SUPPLIES_EXPENSE_CODE, "Supplies", AccountType.EXPENSE, False),
    (EQUIPMENT_EXPENSE_CODE, "Equipment", AccountType.EXPENSE, False),
    (VENUE_HIRE_EXPENSE_CODE, "Venue Hire", AccountType.EXPENSE, False),
    (ACTIVITIES_EXPENSE_CODE, "Activities & Events", AccountType.EXPENSE, False),
    (BADGES_AWARDS_EXPENSE_CODE, "Badges & Awards", AccountType.EXPENSE, False),
    (OTHER_EXPENSE_CODE, "Other Expenses", AccountType.EXPENSE, False),
]


class AccountRegistry:

    # ===== Setup =====

    @staticmethod
    async def ensure_default_accounts(db: AsyncSession) -> List[str]:
        """
        Insert any missing default account. Safe to call on every startup.

        Returns:
            Codes that were created by this call (empty once seeded)
        """
        result = await db.execute(select(Account.code))
        existing_codes = set(result.scalars().all())

        created = []
        for code, name, account_type, is_system in DEFAULT_ACCOUNTS:
            if code in existing_codes:
                continue
            db.add(Account(
                code=code,
                name=name,
                type=account_type,
                is_system=is_system,
                balance=ZERO,
            ))
            created.append(code)

        if created:
            await db.commit()
            logger.info("Seeded default accounts: %s", ", ".join(created))

        return created

    # ===== Reads (detached snapshots) =====

    @staticmethod
    async def list_accounts(db: AsyncSession, account_type: Optional[AccountType] = None) -> List[AccountRead]:
        query = select(Account).order_by(Account.code)
        if account_type:
            query = query.where(Account.type == account_type)
        result = await db.execute(query)
        return [AccountRead.model_validate(a) for a in result.scalars().all()]

    @staticmethod
    async def list_expense_accounts(db: AsyncSession) -> List[AccountRead]:
        return await AccountRegistry.list_accounts(db, AccountType.EXPENSE)

    @staticmethod
    async def get_by_id(db: AsyncSession, account_id: int) -> Optional[AccountRead]:
        account = await AccountRegistry.fetch_by_id(db, account_id)
        return AccountRead.model_validate(account) if account else None

    @staticmethod
    async def get_by_code(db: AsyncSession, code: str) -> Optional[AccountRead]:
        account = await AccountRegistry.fetch_by_code(db, code)
        return AccountRead.model_validate(account) if account else None

    @staticmethod
    async def balance_of(db: AsyncSession, code: str) -> Decimal:
        account = await AccountRegistry.get_by_code(db, code)
        return account.balance if account else ZERO

    @staticmethod
    async def cash_on_hand(db: AsyncSession) -> Decimal:
        return await AccountRegistry.balance_of(db, CASH_ON_HAND_CODE)

    @staticmethod
    async def cheques_pending(db: AsyncSession) -> Decimal:
        return await AccountRegistry.balance_of(db, CHEQUES_PENDING_CODE)

    @staticmethod
    async def bank_balance(db: AsyncSession) -> Decimal:
        return await AccountRegistry.balance_of(db, BANK_ACCOUNT_CODE)

    # ===== Live rows for ledger internals =====

    @staticmethod
    async def fetch_by_id(db: AsyncSession, account_id: int) -> Optional[Account]:
        """Attached ORM row. Only the ledger engine may change its balance."""
        result = await db.execute(select(Account).where(Account.id == account_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def fetch_by_code(db: AsyncSession, code: str) -> Optional[Account]:
        """Attached ORM row. Only the ledger engine may change its balance."""
        result = await db.execute(select(Account).where(Account.code == code))
        return result.scalar_one_or_none()

    # ===== Expense categories =====

    @staticmethod
    async def next_expense_code(db: AsyncSession, config: Settings = settings) -> Optional[str]:
        """
        Next free code in the expense band, skipping the reserved code.

        Continues after the highest code in use; falls back to the lowest gap
        once the top of the band is reached. None when the band is full.
        """
        result = await db.execute(select(Account.code).where(Account.type == AccountType.EXPENSE))
        used = {int(code) for code in result.scalars().all() if code.isdigit()}
        used.add(config.expense_code_reserved)

        in_band = [c for c in used if config.expense_code_start <= c <= config.expense_code_end]
        highest = max((c for c in in_band if c != config.expense_code_reserved), default=config.expense_code_start - 1)

        candidates = list(range(highest + 1, config.expense_code_end + 1)) + \
            list(range(config.expense_code_start, highest + 1))
        for candidate in candidates:
            if candidate not in used:
                return str(candidate)
        return None

    @staticmethod
    @atomic
    async def create_expense_account(
        db: AsyncSession, name: str, config: Settings = settings
    ) -> LedgerResult[AccountRead]:
        """Create an expense category with an auto-assigned code."""
        if not name or not name.strip():
            return LedgerResult.invalid("Account name is required.")

        code = await AccountRegistry.next_expense_code(db, config)
        if code is None:
            return LedgerResult.conflict("No expense account codes are available.")

        account = Account(
            code=code,
            name=name.strip(),
            type=AccountType.EXPENSE,
            is_system=False,
            balance=ZERO,
        )
        db.add(account)
        await db.flush()

        logger.info("Created expense account %s '%s'", code, account.name)
        return LedgerResult.ok(AccountRead.model_validate(account))

    @staticmethod
    async def _editable_expense_account(db: AsyncSession, account_id: int) -> LedgerResult[Account]:
        account = await AccountRegistry.fetch_by_id(db, account_id)
        if not account:
            return LedgerResult.not_found("Account not found.")
        if account.is_system:
            return LedgerResult.conflict("System accounts cannot be modified.")
        if account.type != AccountType.EXPENSE:
            return LedgerResult.conflict("Only expense accounts can be modified.")
        return LedgerResult.ok(account)

    @staticmethod
    @atomic
    async def update_expense_account(db: AsyncSession, account_id: int, name: str) -> LedgerResult[AccountRead]:
        """Rename an expense category."""
        if not name or not name.strip():
            return LedgerResult.invalid("Account name is required.")

        found = await AccountRegistry._editable_expense_account(db, account_id)
        if not found:
            return found

        account = found.payload
        account.name = name.strip()
        await db.flush()
        return LedgerResult.ok(AccountRead.model_validate(account))

    @staticmethod
    @atomic
    async def delete_expense_account(db: AsyncSession, account_id: int) -> LedgerResult[None]:
        """Delete an unused expense category. Accounts with history are kept."""
        found = await AccountRegistry._editable_expense_account(db, account_id)
        if not found:
            return found

        line_count = (await db.execute(
            select(func.count(TransactionLine.id)).where(TransactionLine.account_id == account_id)
        )).scalar() or 0
        if line_count:
            return LedgerResult.conflict("Cannot delete an account that has transactions.")

        expense_count = (await db.execute(
            select(func.count(Expense.id)).where(
                (Expense.expense_account_id == account_id) | (Expense.paid_from_account_id == account_id)
            )
        )).scalar() or 0
        if expense_count:
            return LedgerResult.conflict("Cannot delete an account that has expenses recorded against it.")

        await db.delete(found.payload)
        logger.info("Deleted expense account %s", found.payload.code)
        return LedgerResult.ok()
