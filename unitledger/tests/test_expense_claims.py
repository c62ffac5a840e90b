"""
Tests for the reimbursement claim lifecycle.

DRAFT -> SUBMITTED -> SETTLED, with one aggregated posting at settlement.
"""

import pytest
from datetime import date
from decimal import Decimal

from unitledger.app.domain.ledger.account_registry import AccountRegistry
from unitledger.app.domain.ledger.ledger_engine import LedgerEngine
from unitledger.app.domain.ledger.posting_rules import PostingRules
from unitledger.app.domain.ledger.results import ErrorKind
from unitledger.app.models.enums import ExpenseClaimStatus, PaymentMethod, PaymentType
from unitledger.app.schemas.expense import ExpenseClaimCreate, ExpenseCreate


async def _balance(db, code):
    return (await AccountRegistry.get_by_code(db, code)).balance


async def _open_claim(db, claimed_by="Tawny Owl"):
    ok, error, claim = await PostingRules.create_expense_claim(
        db, ExpenseClaimCreate(claimed_by=claimed_by, submitted_date=date(2024, 10, 1))
    )
    assert ok, error
    return claim


async def _add(db, claim_id, account_id, amount, description="Receipt"):
    ok, error, expense = await PostingRules.add_expense_to_claim(db, claim_id, ExpenseCreate(
        date=date(2024, 9, 28),
        amount=Decimal(amount),
        expense_account_id=account_id,
        description=description,
    ))
    assert ok, error
    return expense


@pytest.fixture
async def funded(db_session, accounts):
    """Put 100.00 in the bank so claims can be paid back."""
    ok, error, _ = await PostingRules.record_payment_entry(
        db_session, 1, Decimal("100.00"), PaymentMethod.BANK_TRANSFER, PaymentType.SUBS,
        "Subs", date(2024, 9, 1)
    )
    assert ok, error
    return accounts


# TEST 1: Building a claim
@pytest.mark.asyncio
async def test_new_claim_is_draft_and_empty(db_session, accounts):
    claim = await _open_claim(db_session)
    assert claim.status == ExpenseClaimStatus.DRAFT
    assert claim.total_amount == Decimal("0.00")
    assert claim.transaction_id is None


@pytest.mark.asyncio
async def test_claim_requires_claimant(db_session, accounts):
    ok, error, _ = await PostingRules.create_expense_claim(
        db_session, ExpenseClaimCreate(claimed_by="  ", submitted_date=date(2024, 10, 1))
    )
    assert not ok
    assert "Claimant" in error


@pytest.mark.asyncio
async def test_adding_expenses_posts_nothing(db_session, accounts):
    claim = await _open_claim(db_session)
    expense = await _add(db_session, claim.id, accounts["5001"].id, "10.00")

    assert expense.expense_claim_id == claim.id
    assert expense.transaction_id is None
    assert expense.paid_from_account_id is None
    assert await _balance(db_session, "5001") == Decimal("0.00")
    assert await LedgerEngine.list_transactions(db_session) == []

    claim = await PostingRules.fetch_claim(db_session, claim.id)
    assert claim.total_amount == Decimal("10.00")


@pytest.mark.asyncio
async def test_add_to_unknown_claim(db_session, accounts):
    result = await PostingRules.add_expense_to_claim(db_session, 999, ExpenseCreate(
        date=date(2024, 9, 28), amount=Decimal("1.00"),
        expense_account_id=accounts["5001"].id, description="x",
    ))
    assert result.error_kind == ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_remove_expense_from_draft_claim(db_session, accounts):
    claim = await _open_claim(db_session)
    keep = await _add(db_session, claim.id, accounts["5001"].id, "10.00")
    drop = await _add(db_session, claim.id, accounts["5002"].id, "4.00")

    ok, error, _ = await PostingRules.remove_expense_from_claim(db_session, drop.id)
    assert ok, error

    claim = await PostingRules.fetch_claim(db_session, claim.id)
    assert [e.id for e in claim.expenses] == [keep.id]
    assert await PostingRules.get_expense(db_session, drop.id) is None


@pytest.mark.asyncio
async def test_remove_direct_expense_from_claim_rejected(db_session, funded):
    ok, _, expense = await PostingRules.record_direct_expense(db_session, ExpenseCreate(
        date=date(2024, 9, 2), amount=Decimal("5.00"), expense_account_id=funded["5001"].id,
        description="Glue", paid_from_account_id=funded["1003"].id,
    ))
    assert ok

    result = await PostingRules.remove_expense_from_claim(db_session, expense.id)
    assert result.error_kind == ErrorKind.STATE_CONFLICT


# TEST 2: Submission
@pytest.mark.asyncio
async def test_submit_claim(db_session, accounts):
    claim = await _open_claim(db_session)
    await _add(db_session, claim.id, accounts["5001"].id, "10.00")

    ok, error, submitted = await PostingRules.submit_expense_claim(db_session, claim.id)
    assert ok, error
    assert submitted.status == ExpenseClaimStatus.SUBMITTED

    # Submitted claims are frozen
    result = await PostingRules.add_expense_to_claim(db_session, claim.id, ExpenseCreate(
        date=date(2024, 9, 28), amount=Decimal("1.00"),
        expense_account_id=accounts["5001"].id, description="Late receipt",
    ))
    assert result.error_kind == ErrorKind.STATE_CONFLICT
    assert "draft" in result.error_message

    ok, error, _ = await PostingRules.submit_expense_claim(db_session, claim.id)
    assert not ok


@pytest.mark.asyncio
async def test_submit_empty_claim_rejected(db_session, accounts):
    claim = await _open_claim(db_session)
    ok, error, _ = await PostingRules.submit_expense_claim(db_session, claim.id)
    assert not ok
    assert "no expenses" in error


# TEST 3: Settlement
@pytest.mark.asyncio
async def test_settlement_aggregates_by_category(db_session, funded):
    """Scenario E: 10 + 15 in one category and 5 in another settle as 2 debits and 1 credit."""
    claim = await _open_claim(db_session)
    await _add(db_session, claim.id, funded["5003"].id, "10.00", "Hall deposit")
    await _add(db_session, claim.id, funded["5001"].id, "5.00", "Paint")
    await _add(db_session, claim.id, funded["5003"].id, "15.00", "Hall balance")

    ok, error, settled = await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["1003"].id, PaymentMethod.BANK_TRANSFER, date(2024, 10, 5)
    )
    assert ok, error

    assert settled.status == ExpenseClaimStatus.SETTLED
    assert settled.settled_date == date(2024, 10, 5)
    assert settled.paid_from_account_id == funded["1003"].id
    assert settled.payment_method == PaymentMethod.BANK_TRANSFER
    assert all(e.transaction_id == settled.transaction_id for e in settled.expenses)

    txn = await LedgerEngine.get_transaction(db_session, settled.transaction_id)
    debits = [(l.account_code, l.debit) for l in txn.lines if l.debit > 0]
    credits = [(l.account_code, l.credit) for l in txn.lines if l.credit > 0]
    assert debits == [("5001", Decimal("5.00")), ("5003", Decimal("25.00"))]
    assert credits == [("1003", Decimal("30.00"))]
    assert txn.date == date(2024, 10, 5)
    assert "Tawny Owl" in txn.description

    assert await _balance(db_session, "1003") == Decimal("70.00")
    assert await _balance(db_session, "5003") == Decimal("25.00")
    assert (await LedgerEngine.verify_balances(db_session)).is_consistent


@pytest.mark.asyncio
async def test_draft_claim_can_be_settled_directly(db_session, funded):
    claim = await _open_claim(db_session)
    await _add(db_session, claim.id, funded["5002"].id, "20.00")

    ok, error, settled = await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["1003"].id, PaymentMethod.BANK_TRANSFER, date(2024, 10, 5)
    )
    assert ok, error
    assert settled.status == ExpenseClaimStatus.SETTLED


@pytest.mark.asyncio
async def test_settling_twice_rejected(db_session, funded):
    claim = await _open_claim(db_session)
    await _add(db_session, claim.id, funded["5001"].id, "10.00")
    ok, _, _ = await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["1003"].id, PaymentMethod.BANK_TRANSFER, date(2024, 10, 5)
    )
    assert ok

    result = await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["1003"].id, PaymentMethod.BANK_TRANSFER, date(2024, 10, 6)
    )
    assert result.error_kind == ErrorKind.STATE_CONFLICT
    assert "settled" in result.error_message
    assert len(await LedgerEngine.list_transactions(db_session)) == 2
    assert await _balance(db_session, "1003") == Decimal("90.00")


@pytest.mark.asyncio
async def test_settling_empty_claim_rejected(db_session, funded):
    claim = await _open_claim(db_session)
    ok, error, _ = await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["1003"].id, PaymentMethod.CASH, date(2024, 10, 5)
    )
    assert not ok
    assert "no expenses" in error


@pytest.mark.asyncio
async def test_settle_from_non_asset_rejected(db_session, funded):
    claim = await _open_claim(db_session)
    await _add(db_session, claim.id, funded["5001"].id, "10.00")

    ok, error, _ = await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["4001"].id, PaymentMethod.CASH, date(2024, 10, 5)
    )
    assert not ok
    assert "asset account" in error

    claim = await PostingRules.fetch_claim(db_session, claim.id)
    assert claim.status == ExpenseClaimStatus.DRAFT


@pytest.mark.asyncio
async def test_settled_claim_is_frozen(db_session, funded):
    claim = await _open_claim(db_session)
    expense = await _add(db_session, claim.id, funded["5001"].id, "10.00")
    await PostingRules.settle_expense_claim(
        db_session, claim.id, funded["1003"].id, PaymentMethod.BANK_TRANSFER, date(2024, 10, 5)
    )

    result = await PostingRules.remove_expense_from_claim(db_session, expense.id)
    assert result.error_kind == ErrorKind.STATE_CONFLICT

    ok, error, _ = await PostingRules.delete_expense_claim(db_session, claim.id)
    assert not ok
    assert "settled" in error


# TEST 4: Deletion and listing
@pytest.mark.asyncio
async def test_delete_unsettled_claim_removes_expenses(db_session, accounts):
    claim = await _open_claim(db_session)
    expense = await _add(db_session, claim.id, accounts["5001"].id, "10.00")

    ok, error, _ = await PostingRules.delete_expense_claim(db_session, claim.id)
    assert ok, error

    assert await PostingRules.fetch_claim(db_session, claim.id) is None
    assert await PostingRules.get_expense(db_session, expense.id) is None


@pytest.mark.asyncio
async def test_list_claims_by_status(db_session, funded):
    draft = await _open_claim(db_session, "Draft Leader")
    settled = await _open_claim(db_session, "Settled Leader")
    await _add(db_session, settled.id, funded["5001"].id, "3.00")
    await PostingRules.settle_expense_claim(
        db_session, settled.id, funded["1003"].id, PaymentMethod.BANK_TRANSFER, date(2024, 10, 5)
    )

    assert len(await PostingRules.list_claims(db_session)) == 2
    drafts = await PostingRules.list_claims(db_session, ExpenseClaimStatus.DRAFT)
    assert [c.id for c in drafts] == [draft.id]
    assert (await PostingRules.list_claims(db_session, ExpenseClaimStatus.SETTLED))[0].claimed_by == "Settled Leader"
