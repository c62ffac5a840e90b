"""
Database seeding script for the chart of accounts.

Creates the tables and the default system and expense accounts.
Run this script after the database is configured and before first use.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from unitledger.app.db.session import AsyncSessionLocal, Base, engine
from unitledger.app.domain.ledger.account_registry import AccountRegistry, DEFAULT_ACCOUNTS
from unitledger.app.services.audit import log_event, AuditAction

# Register models with Base
from unitledger.app.models.account import Account
from unitledger.app.models.transaction import Transaction, TransactionLine
from unitledger.app.models.expense import Expense, ExpenseClaim
from unitledger.app.models.audit_log import AuditLog


async def seed_accounts():
    """
    Seed the default chart of accounts.

    Creates any of these that are missing:
    - 3 system ASSET accounts (cash, cheques pending, bank)
    - 2 system INCOME accounts (subscriptions, activities)
    - 6 default EXPENSE categories
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting account seeding...")

        created = await AccountRegistry.ensure_default_accounts(db)
        if not created:
            print("ℹ️  Default accounts already exist, skipping seeding")
            return

        await log_event(
            db=db,
            action=AuditAction.DEFAULT_ACCOUNTS_SEEDED,
            entity_type="account",
            metadata={"codes": created}
        )

        names = {code: name for code, name, _, _ in DEFAULT_ACCOUNTS}
        for code in created:
            print(f"✅ Created account {code} {names[code]}")

        print("\n🎉 Account seeding completed!")


if __name__ == "__main__":
    asyncio.run(seed_accounts())
