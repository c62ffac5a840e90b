"""
Ledger Engine (Domain Logic).

Validates and commits balanced transactions. This is the only code that
changes Account.balance: every posting applies the sign rule to each line,
and every reversal applies its inverse.

Flow for a posting:
1. Description present
2. At least one line
3. Each line well-formed (non-negative, whole pence, exactly one side)
4. Every referenced account exists
5. Debits equal credits, exactly
6. Persist transaction + lines and apply balance deltas in one unit of work
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from unitledger.app.domain.ledger.results import LedgerResult
from unitledger.app.domain.ledger.sign_rules import (
    ZERO, balance_delta, format_money, has_cent_precision, to_money,
)
from unitledger.app.domain.ledger.unit_of_work import atomic
from unitledger.app.models.account import Account
from unitledger.app.models.transaction import Transaction, TransactionLine
from unitledger.app.schemas.reports import BalanceMismatch, LedgerIntegrityReport
from unitledger.app.schemas.transaction import TransactionRead

logger = logging.getLogger("unitledger.ledger")


@dataclass(frozen=True)
class PostingLine:
    """A line waiting to be posted."""
    account_id: int
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @classmethod
    def debit_to(cls, account_id: int, amount: Decimal) -> "PostingLine":
        return cls(account_id=account_id, debit=amount, credit=ZERO)

    @classmethod
    def credit_to(cls, account_id: int, amount: Decimal) -> "PostingLine":
        return cls(account_id=account_id, debit=ZERO, credit=amount)


def _check_line_shape(debit: Decimal, credit: Decimal) -> Optional[str]:
    if debit < 0 or credit < 0:
        return "Debit and credit amounts cannot be negative."
    if not has_cent_precision(debit) or not has_cent_precision(credit):
        return "Amounts cannot have more than two decimal places."
    if debit > 0 and credit > 0:
        return "Each line must have either a debit or a credit, not both."
    if debit == 0 and credit == 0:
        return "Each line must have a debit or a credit amount."
    return None


class LedgerEngine:

    # ===== Posting =====

    @staticmethod
    async def post(
        db: AsyncSession,
        description: str,
        lines: Iterable,
        txn_date: Optional[date] = None,
        payment_id: Optional[int] = None,
    ) -> LedgerResult[Transaction]:
        """
        Validate and stage a transaction on the session without committing.

        Posting rules call this inside their own unit of work so that the
        transaction, its balance changes and their own row updates commit together.

        Args:
            db: Database session
            description: Narrative shown in the ledger
            lines: Objects with account_id, debit and credit
            txn_date: Transaction date (defaults to today)
            payment_id: Originating payment, if any

        Returns:
            Result carrying the flushed Transaction
        """
        if not description or not description.strip():
            return LedgerResult.invalid("Transaction description is required.")

        lines = list(lines or [])
        if not lines:
            return LedgerResult.invalid("Transaction must have at least one line.")

        amounts = []
        for line in lines:
            try:
                debit, credit = to_money(line.debit), to_money(line.credit)
            except ValueError as e:
                return LedgerResult.invalid(str(e))
            problem = _check_line_shape(debit, credit)
            if problem:
                return LedgerResult.invalid(problem)
            amounts.append((line.account_id, debit, credit))

        account_ids = {account_id for account_id, _, _ in amounts}
        result = await db.execute(select(Account).where(Account.id.in_(account_ids)))
        accounts: Dict[int, Account] = {a.id: a for a in result.scalars().all()}
        if len(accounts) != len(account_ids):
            return LedgerResult.not_found("One or more accounts do not exist.")

        total_debits = sum((d for _, d, _ in amounts), start=ZERO)
        total_credits = sum((c for _, _, c in amounts), start=ZERO)
        if total_debits != total_credits:
            return LedgerResult.invalid(
                f"Transaction is not balanced. Debits ({format_money(total_debits)}) "
                f"must equal credits ({format_money(total_credits)})."
            )

        txn = Transaction(
            date=txn_date or date.today(),
            description=description.strip(),
            payment_id=payment_id,
            lines=[
                TransactionLine(account_id=account_id, account=accounts[account_id], debit=debit, credit=credit)
                for account_id, debit, credit in amounts
            ],
        )
        db.add(txn)

        for account_id, debit, credit in amounts:
            account = accounts[account_id]
            account.balance = (account.balance or ZERO) + balance_delta(account.type, debit, credit)

        await db.flush()

        logger.info(
            "Posted transaction %s '%s' (%s lines, %s)",
            txn.id, txn.description, len(amounts), format_money(total_debits),
        )
        return LedgerResult.ok(txn)

    @staticmethod
    @atomic
    async def create_transaction(
        db: AsyncSession,
        description: str,
        lines: Iterable,
        txn_date: Optional[date] = None,
        payment_id: Optional[int] = None,
    ) -> LedgerResult[Transaction]:
        """Post and commit a balanced transaction. See post() for validation order."""
        return await LedgerEngine.post(db, description, lines, txn_date, payment_id)

    # ===== Reversal =====

    @staticmethod
    async def reverse(db: AsyncSession, txn: Transaction) -> None:
        """
        Undo a transaction's balance effects and delete it with its lines.

        Runs inside the caller's unit of work; the caller commits.
        """
        for line in txn.lines:
            account = line.account
            account.balance = account.balance - balance_delta(account.type, line.debit, line.credit)

        await db.delete(txn)
        await db.flush()
        logger.info("Reversed transaction %s '%s'", txn.id, txn.description)

    # ===== Queries =====

    @staticmethod
    async def fetch(db: AsyncSession, transaction_id: int) -> Optional[Transaction]:
        result = await db.execute(select(Transaction).where(Transaction.id == transaction_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_transaction(db: AsyncSession, transaction_id: int) -> Optional[TransactionRead]:
        txn = await LedgerEngine.fetch(db, transaction_id)
        return TransactionRead.from_transaction(txn) if txn else None

    @staticmethod
    async def list_transactions(
        db: AsyncSession,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[TransactionRead]:
        """Transactions in an inclusive date window, newest first (ties: highest id first)."""
        query = select(Transaction)
        if date_from:
            query = query.where(Transaction.date >= date_from)
        if date_to:
            query = query.where(Transaction.date <= date_to)
        query = query.order_by(desc(Transaction.date), desc(Transaction.id))

        result = await db.execute(query)
        return [TransactionRead.from_transaction(t) for t in result.scalars().all()]

    @staticmethod
    async def transactions_for_payment(db: AsyncSession, payment_id: int) -> List[TransactionRead]:
        result = await db.execute(
            select(Transaction)
            .where(Transaction.payment_id == payment_id)
            .order_by(desc(Transaction.date), desc(Transaction.id))
        )
        return [TransactionRead.from_transaction(t) for t in result.scalars().all()]

    @staticmethod
    async def lines_in_window(db: AsyncSession, date_from: date, date_to: date) -> List[TransactionLine]:
        result = await db.execute(
            select(TransactionLine)
            .join(Transaction, Transaction.id == TransactionLine.transaction_id)
            .where(Transaction.date >= date_from, Transaction.date <= date_to)
        )
        return list(result.scalars().all())

    # ===== Integrity =====

    @staticmethod
    async def verify_balances(db: AsyncSession) -> LedgerIntegrityReport:
        """
        Replay every line against the stored balances.

        Stored balances are a cache of the line history; any difference here
        means a balance was changed outside the engine.
        """
        accounts = (await db.execute(select(Account).order_by(Account.code))).scalars().all()
        lines = (await db.execute(select(TransactionLine))).scalars().all()

        by_id = {a.id: a for a in accounts}
        expected: Dict[int, Decimal] = defaultdict(lambda: ZERO)
        debits: Dict[int, Decimal] = defaultdict(lambda: ZERO)
        credits: Dict[int, Decimal] = defaultdict(lambda: ZERO)

        for line in lines:
            account = by_id[line.account_id]
            expected[account.id] += balance_delta(account.type, line.debit, line.credit)
            debits[line.transaction_id] += line.debit
            credits[line.transaction_id] += line.credit

        mismatches = [
            BalanceMismatch(
                account_id=a.id,
                account_code=a.code,
                stored_balance=a.balance,
                expected_balance=expected[a.id],
            )
            for a in accounts
            if a.balance != expected[a.id]
        ]
        unbalanced = sorted(t for t in debits if debits[t] != credits[t])

        if mismatches or unbalanced:
            logger.error("Ledger drift: %s mismatched accounts, %s unbalanced transactions",
                         len(mismatches), len(unbalanced))

        return LedgerIntegrityReport(
            accounts_checked=len(accounts),
            transactions_checked=len(debits),
            unbalanced_transaction_ids=unbalanced,
            mismatches=mismatches,
        )
