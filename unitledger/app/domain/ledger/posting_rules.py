"""
Posting Rules (Domain Logic).

Translate business events into exactly one balanced ledger transaction each:

- Payment received:   Dr asset (by payment method)  / Cr income (by payment type)
- Bank deposit:       Dr bank (total)               / Cr cash, Cr cheques
- Direct expense:     Dr expense category           / Cr asset paid from
- Claim settlement:   Dr each category (aggregated) / Cr asset paid from (claim total)

Also owns the expense and reimbursement-claim rows those postings refer to.
"""

import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from unitledger.app.domain.ledger.account_registry import (
    AccountRegistry,
    ACTIVITY_INCOME_CODE,
    BANK_ACCOUNT_CODE,
    CASH_ON_HAND_CODE,
    CHEQUES_PENDING_CODE,
    SUBS_INCOME_CODE,
)
from unitledger.app.domain.ledger.ledger_engine import LedgerEngine, PostingLine
from unitledger.app.domain.ledger.results import LedgerResult
from unitledger.app.domain.ledger.sign_rules import ZERO, format_money, has_cent_precision, to_money
from unitledger.app.domain.ledger.unit_of_work import atomic
from unitledger.app.models.account import Account
from unitledger.app.models.enums import AccountType, ExpenseClaimStatus, PaymentMethod, PaymentType
from unitledger.app.models.expense import Expense, ExpenseClaim
from unitledger.app.models.transaction import Transaction
from unitledger.app.schemas.expense import ExpenseClaimCreate, ExpenseCreate, ExpenseRead

logger = logging.getLogger("unitledger.postings")

ASSET_ACCOUNT_FOR_METHOD = {
    PaymentMethod.CASH: CASH_ON_HAND_CODE,
    PaymentMethod.CHEQUE: CHEQUES_PENDING_CODE,
    PaymentMethod.BANK_TRANSFER: BANK_ACCOUNT_CODE,
}

INCOME_ACCOUNT_FOR_TYPE = {
    PaymentType.SUBS: SUBS_INCOME_CODE,
    PaymentType.ACTIVITY: ACTIVITY_INCOME_CODE,
}

MISSING_DEFAULTS = "Required accounts not found. Please ensure default accounts have been created."


class PostingRules:

    # ===== Payments =====

    @staticmethod
    @atomic
    async def record_payment_entry(
        db: AsyncSession,
        payment_id: int,
        amount,
        payment_method: PaymentMethod,
        payment_type: PaymentType,
        description: str,
        txn_date: date,
    ) -> LedgerResult[Transaction]:
        """Post a received payment: debit the asset it arrived in, credit the income it earns."""
        try:
            amount = to_money(amount)
        except ValueError as e:
            return LedgerResult.invalid(str(e))
        if amount <= 0:
            return LedgerResult.invalid("Amount must be greater than zero.")

        asset_account = await AccountRegistry.fetch_by_code(db, ASSET_ACCOUNT_FOR_METHOD[payment_method])
        income_account = await AccountRegistry.fetch_by_code(db, INCOME_ACCOUNT_FOR_TYPE[payment_type])
        if not asset_account or not income_account:
            return LedgerResult.not_found(MISSING_DEFAULTS)

        return await LedgerEngine.post(
            db,
            description,
            [
                PostingLine.debit_to(asset_account.id, amount),
                PostingLine.credit_to(income_account.id, amount),
            ],
            txn_date=txn_date,
            payment_id=payment_id,
        )

    # ===== Banking =====

    @staticmethod
    @atomic
    async def bank_deposit(
        db: AsyncSession,
        cash_amount,
        cheque_amount,
        txn_date: date,
        notes: Optional[str] = None,
    ) -> LedgerResult[Transaction]:
        """
        Pay cash and/or cheques into the bank.

        Both source balances are checked against the current ledger; you cannot
        deposit money that is not on hand.
        """
        try:
            cash_amount, cheque_amount = to_money(cash_amount), to_money(cheque_amount)
        except ValueError as e:
            return LedgerResult.invalid(str(e))
        if cash_amount < 0 or cheque_amount < 0:
            return LedgerResult.invalid("Amounts cannot be negative.")
        if cash_amount == 0 and cheque_amount == 0:
            return LedgerResult.invalid("At least one amount must be greater than zero.")

        cash_account = await AccountRegistry.fetch_by_code(db, CASH_ON_HAND_CODE)
        cheque_account = await AccountRegistry.fetch_by_code(db, CHEQUES_PENDING_CODE)
        bank_account = await AccountRegistry.fetch_by_code(db, BANK_ACCOUNT_CODE)
        if not cash_account or not cheque_account or not bank_account:
            return LedgerResult.not_found(MISSING_DEFAULTS)

        # Read-then-write with no lock: safe only while there is a single writer
        if cash_amount > 0 and cash_account.balance < cash_amount:
            return LedgerResult.conflict(
                f"Insufficient cash on hand. Available: {format_money(cash_account.balance)}"
            )
        if cheque_amount > 0 and cheque_account.balance < cheque_amount:
            return LedgerResult.conflict(
                f"Insufficient cheques pending. Available: {format_money(cheque_account.balance)}"
            )

        lines = [PostingLine.debit_to(bank_account.id, cash_amount + cheque_amount)]
        if cash_amount > 0:
            lines.append(PostingLine.credit_to(cash_account.id, cash_amount))
        if cheque_amount > 0:
            lines.append(PostingLine.credit_to(cheque_account.id, cheque_amount))

        description = notes.strip() if notes and notes.strip() else (
            f"Bank deposit - Cash: {format_money(cash_amount)}, Cheques: {format_money(cheque_amount)}"
        )
        return await LedgerEngine.post(db, description, lines, txn_date=txn_date)

    # ===== Expenses =====

    @staticmethod
    async def _validate_expense(
        db: AsyncSession, data: ExpenseCreate, direct: bool
    ) -> LedgerResult[Tuple[Account, Optional[Account]]]:
        try:
            amount = to_money(data.amount)
        except ValueError as e:
            return LedgerResult.invalid(str(e))
        if amount <= 0:
            return LedgerResult.invalid("Amount must be greater than zero.")
        if not has_cent_precision(amount):
            return LedgerResult.invalid("Amounts cannot have more than two decimal places.")
        if not data.description or not data.description.strip():
            return LedgerResult.invalid("Description is required.")

        category = await AccountRegistry.fetch_by_id(db, data.expense_account_id)
        if not category:
            return LedgerResult.not_found("Expense category not found.")
        if category.type != AccountType.EXPENSE:
            return LedgerResult.invalid("Selected category is not an expense account.")

        if not direct:
            return LedgerResult.ok((category, None))

        if data.paid_from_account_id is None:
            return LedgerResult.invalid("A paid-from account is required for a direct expense.")
        paid_from = await AccountRegistry.fetch_by_id(db, data.paid_from_account_id)
        if not paid_from:
            return LedgerResult.not_found("Paid-from account not found.")
        if paid_from.type != AccountType.ASSET:
            return LedgerResult.invalid("Expenses must be paid from an asset account.")

        return LedgerResult.ok((category, paid_from))

    @staticmethod
    @atomic
    async def record_direct_expense(db: AsyncSession, data: ExpenseCreate) -> LedgerResult[Expense]:
        """Record an expense paid straight from unit funds and post it immediately."""
        checked = await PostingRules._validate_expense(db, data, direct=True)
        if not checked:
            return checked
        category, paid_from = checked.payload
        amount = to_money(data.amount)
        description = data.description.strip()

        posted = await LedgerEngine.post(
            db,
            f"Expense: {description}",
            [
                PostingLine.debit_to(category.id, amount),
                PostingLine.credit_to(paid_from.id, amount),
            ],
            txn_date=data.date,
        )
        if not posted:
            return posted

        expense = Expense(
            date=data.date,
            amount=amount,
            expense_account_id=category.id,
            expense_account=category,
            description=description,
            reference=data.reference,
            notes=data.notes,
            meeting_id=data.meeting_id,
            paid_from_account_id=paid_from.id,
            paid_from_account=paid_from,
            transaction_id=posted.payload.id,
        )
        db.add(expense)
        await db.flush()

        logger.info("Recorded direct expense %s (%s) as transaction %s",
                    expense.id, format_money(amount), expense.transaction_id)
        return LedgerResult.ok(expense)

    @staticmethod
    async def fetch_expense(db: AsyncSession, expense_id: int) -> Optional[Expense]:
        result = await db.execute(select(Expense).where(Expense.id == expense_id))
        return result.scalar_one_or_none()

    @staticmethod
    @atomic
    async def delete_direct_expense(db: AsyncSession, expense_id: int) -> LedgerResult[Optional[int]]:
        """
        Remove a direct expense and reverse its posting in the same unit of work.

        The payload is the id of the reversed transaction, or None if the
        expense had never been posted.
        """
        expense = await PostingRules.fetch_expense(db, expense_id)
        if not expense:
            return LedgerResult.not_found("Expense not found.")
        if expense.expense_claim_id is not None:
            return LedgerResult.conflict(
                "This expense is part of a claim. Remove it from the claim instead."
            )

        txn = None
        if expense.transaction_id is not None:
            txn = await LedgerEngine.fetch(db, expense.transaction_id)
        reversed_id = txn.id if txn else None

        await db.delete(expense)
        await db.flush()
        if txn:
            await LedgerEngine.reverse(db, txn)

        logger.info("Deleted direct expense %s", expense_id)
        return LedgerResult.ok(reversed_id)

    @staticmethod
    async def get_expense(db: AsyncSession, expense_id: int) -> Optional[ExpenseRead]:
        expense = await PostingRules.fetch_expense(db, expense_id)
        return ExpenseRead.from_expense(expense) if expense else None

    @staticmethod
    async def list_expenses(
        db: AsyncSession,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        direct_only: bool = False,
        meeting_id: Optional[int] = None,
    ) -> List[ExpenseRead]:
        query = select(Expense)
        if date_from:
            query = query.where(Expense.date >= date_from)
        if date_to:
            query = query.where(Expense.date <= date_to)
        if direct_only:
            query = query.where(Expense.expense_claim_id.is_(None))
        if meeting_id is not None:
            query = query.where(Expense.meeting_id == meeting_id)
        query = query.order_by(desc(Expense.date), desc(Expense.id))

        result = await db.execute(query)
        return [ExpenseRead.from_expense(e) for e in result.scalars().all()]

    # ===== Reimbursement claims =====

    @staticmethod
    async def fetch_claim(db: AsyncSession, claim_id: int) -> Optional[ExpenseClaim]:
        result = await db.execute(
            select(ExpenseClaim)
            .where(ExpenseClaim.id == claim_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_claims(
        db: AsyncSession, status: Optional[ExpenseClaimStatus] = None
    ) -> List[ExpenseClaim]:
        query = select(ExpenseClaim).execution_options(populate_existing=True)
        if status:
            query = query.where(ExpenseClaim.status == status)
        query = query.order_by(desc(ExpenseClaim.submitted_date), desc(ExpenseClaim.id))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    @atomic
    async def create_expense_claim(db: AsyncSession, data: ExpenseClaimCreate) -> LedgerResult[ExpenseClaim]:
        """Open a new reimbursement claim in DRAFT."""
        if not data.claimed_by or not data.claimed_by.strip():
            return LedgerResult.invalid("Claimant name is required.")

        claim = ExpenseClaim(
            claimed_by=data.claimed_by.strip(),
            submitted_date=data.submitted_date,
            status=ExpenseClaimStatus.DRAFT,
            notes=data.notes,
            expenses=[],
        )
        db.add(claim)
        await db.flush()
        return LedgerResult.ok(claim)

    @staticmethod
    @atomic
    async def add_expense_to_claim(
        db: AsyncSession, claim_id: int, data: ExpenseCreate
    ) -> LedgerResult[Expense]:
        """Attach a receipt to a draft claim. Nothing is posted until settlement."""
        claim = await PostingRules.fetch_claim(db, claim_id)
        if not claim:
            return LedgerResult.not_found("Expense claim not found.")
        if claim.status != ExpenseClaimStatus.DRAFT:
            return LedgerResult.conflict("Expenses can only be added to a draft claim.")

        checked = await PostingRules._validate_expense(db, data, direct=False)
        if not checked:
            return checked
        category, _ = checked.payload

        expense = Expense(
            date=data.date,
            amount=to_money(data.amount),
            expense_account_id=category.id,
            expense_account=category,
            description=data.description.strip(),
            reference=data.reference,
            notes=data.notes,
            meeting_id=data.meeting_id,
            paid_from_account_id=None,
            paid_from_account=None,
            transaction_id=None,
        )
        claim.expenses.append(expense)
        await db.flush()
        return LedgerResult.ok(expense)

    @staticmethod
    @atomic
    async def remove_expense_from_claim(db: AsyncSession, expense_id: int) -> LedgerResult[None]:
        """Drop a receipt from a draft claim."""
        expense = await PostingRules.fetch_expense(db, expense_id)
        if not expense:
            return LedgerResult.not_found("Expense not found.")
        if expense.expense_claim_id is None:
            return LedgerResult.conflict("Expense is not part of a claim.")

        claim = await PostingRules.fetch_claim(db, expense.expense_claim_id)
        if claim.status != ExpenseClaimStatus.DRAFT:
            return LedgerResult.conflict("Expenses can only be removed from a draft claim.")

        claim.expenses.remove(expense)
        await db.flush()
        return LedgerResult.ok()

    @staticmethod
    @atomic
    async def submit_expense_claim(db: AsyncSession, claim_id: int) -> LedgerResult[ExpenseClaim]:
        """Mark a draft claim as ready for settlement."""
        claim = await PostingRules.fetch_claim(db, claim_id)
        if not claim:
            return LedgerResult.not_found("Expense claim not found.")
        if claim.status != ExpenseClaimStatus.DRAFT:
            return LedgerResult.conflict(f"Only draft claims can be submitted (claim is {claim.status.value}).")
        if not claim.expenses:
            return LedgerResult.invalid("Cannot submit a claim with no expenses.")

        claim.status = ExpenseClaimStatus.SUBMITTED
        await db.flush()
        return LedgerResult.ok(claim)

    @staticmethod
    @atomic
    async def settle_expense_claim(
        db: AsyncSession,
        claim_id: int,
        paid_from_account_id: int,
        payment_method: PaymentMethod,
        settled_date: date,
    ) -> LedgerResult[ExpenseClaim]:
        """
        Pay a leader back with one aggregated posting.

        Receipts are grouped by category: one debit per distinct category for
        its total, one credit for the whole claim against the paying account.
        Five receipts over three categories post as a single four-line transaction.
        """
        claim = await PostingRules.fetch_claim(db, claim_id)
        if not claim:
            return LedgerResult.not_found("Expense claim not found.")
        if claim.status == ExpenseClaimStatus.SETTLED:
            return LedgerResult.conflict("This claim has already been settled.")
        if not claim.expenses:
            return LedgerResult.invalid("Cannot settle a claim with no expenses.")

        paid_from = await AccountRegistry.fetch_by_id(db, paid_from_account_id)
        if not paid_from:
            return LedgerResult.not_found("Paid-from account not found.")
        if paid_from.type != AccountType.ASSET:
            return LedgerResult.invalid("Claims must be paid from an asset account.")

        per_category: "OrderedDict[int, Decimal]" = OrderedDict()
        for expense in sorted(claim.expenses, key=lambda e: (e.expense_account.code, e.id)):
            per_category[expense.expense_account_id] = (
                per_category.get(expense.expense_account_id, ZERO) + expense.amount
            )
        total = sum(per_category.values(), start=ZERO)

        lines = [PostingLine.debit_to(account_id, amount) for account_id, amount in per_category.items()]
        lines.append(PostingLine.credit_to(paid_from.id, total))

        posted = await LedgerEngine.post(
            db,
            f"Expense claim #{claim.id} - {claim.claimed_by}",
            lines,
            txn_date=settled_date,
        )
        if not posted:
            return posted

        claim.status = ExpenseClaimStatus.SETTLED
        claim.settled_date = settled_date
        claim.paid_from_account_id = paid_from.id
        claim.payment_method = payment_method
        claim.transaction_id = posted.payload.id
        for expense in claim.expenses:
            expense.transaction_id = posted.payload.id
        await db.flush()

        logger.info("Settled claim %s for %s across %s categories (transaction %s)",
                    claim.id, format_money(total), len(per_category), posted.payload.id)
        return LedgerResult.ok(claim)

    @staticmethod
    @atomic
    async def delete_expense_claim(db: AsyncSession, claim_id: int) -> LedgerResult[None]:
        """Delete an unsettled claim and its receipts. Settled claims are permanent."""
        claim = await PostingRules.fetch_claim(db, claim_id)
        if not claim:
            return LedgerResult.not_found("Expense claim not found.")
        if claim.status == ExpenseClaimStatus.SETTLED:
            return LedgerResult.conflict("Cannot delete a claim that has been settled.")

        await db.delete(claim)
        await db.flush()
        return LedgerResult.ok()
