"""
Reporting Projections (Domain Logic).

Read-only aggregations over committed ledger state. Nothing here writes.
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from unitledger.app.domain.ledger.account_registry import (
    AccountRegistry,
    ACTIVITY_INCOME_CODE,
    SUBS_INCOME_CODE,
)
from unitledger.app.domain.ledger.ledger_engine import LedgerEngine
from unitledger.app.domain.ledger.sign_rules import ZERO
from unitledger.app.models.enums import ExpenseClaimStatus
from unitledger.app.models.expense import Expense, ExpenseClaim
from unitledger.app.schemas.reports import (
    DashboardStats, EventExpenseLine, EventFinancialSummary,
    ExpenseReport, ExpenseReportLine, IncomeReport, IncomeReportLine,
)
from unitledger.app.services.collaborators import MeetingDirectory, TermWindow


def _accounted_for():
    # Direct expenses carry a transaction; claim expenses count once the claim is settled
    return or_(
        Expense.transaction_id.isnot(None),
        Expense.expense_claim_id.in_(
            select(ExpenseClaim.id).where(ExpenseClaim.status == ExpenseClaimStatus.SETTLED)
        ),
    )


def _by_category(expenses: Iterable[Expense]) -> "OrderedDict[int, dict]":
    groups: "OrderedDict[int, dict]" = OrderedDict()
    for expense in sorted(expenses, key=lambda e: (e.expense_account.code, e.id)):
        group = groups.setdefault(expense.expense_account_id, {
            "account": expense.expense_account,
            "amount": ZERO,
            "count": 0,
        })
        group["amount"] += expense.amount
        group["count"] += 1
    return groups


class ReportingService:

    @staticmethod
    async def income_report(db: AsyncSession, date_from: date, date_to: date) -> IncomeReport:
        """Subscription and activity income (credits less debits) for an inclusive window."""
        subs_account = await AccountRegistry.get_by_code(db, SUBS_INCOME_CODE)
        activity_account = await AccountRegistry.get_by_code(db, ACTIVITY_INCOME_CODE)

        subs_income = ZERO
        activity_income = ZERO
        for line in await LedgerEngine.lines_in_window(db, date_from, date_to):
            if subs_account and line.account_id == subs_account.id:
                subs_income += line.credit - line.debit
            elif activity_account and line.account_id == activity_account.id:
                activity_income += line.credit - line.debit

        return IncomeReport(
            date_from=date_from,
            date_to=date_to,
            subs_income=subs_income,
            activity_income=activity_income,
            lines=[
                IncomeReportLine(
                    account_code=SUBS_INCOME_CODE,
                    account_name=subs_account.name if subs_account else "Subscription Income",
                    amount=subs_income,
                ),
                IncomeReportLine(
                    account_code=ACTIVITY_INCOME_CODE,
                    account_name=activity_account.name if activity_account else "Activity Income",
                    amount=activity_income,
                ),
            ],
        )

    @staticmethod
    async def expense_report(db: AsyncSession, date_from: date, date_to: date) -> ExpenseReport:
        """
        Accounted-for spend per category for an inclusive window on expense date.

        Receipts sitting in draft or submitted claims are excluded until the
        claim is settled.
        """
        result = await db.execute(
            select(Expense).where(
                Expense.date >= date_from,
                Expense.date <= date_to,
                _accounted_for(),
            )
        )
        groups = _by_category(result.scalars().all())

        lines = [
            ExpenseReportLine(
                account_id=account_id,
                account_code=group["account"].code,
                account_name=group["account"].name,
                amount=group["amount"],
                transaction_count=group["count"],
            )
            for account_id, group in groups.items()
        ]
        return ExpenseReport(
            date_from=date_from,
            date_to=date_to,
            total_expenses=sum((line.amount for line in lines), start=ZERO),
            lines=lines,
        )

    @staticmethod
    async def dashboard_stats(db: AsyncSession, term: Optional[TermWindow] = None) -> DashboardStats:
        """All-time balances, plus term income and spend when a term window is known."""
        stats = DashboardStats(
            cash_on_hand=await AccountRegistry.cash_on_hand(db),
            cheques_pending=await AccountRegistry.cheques_pending(db),
            bank_balance=await AccountRegistry.bank_balance(db),
        )

        if term:
            income = await ReportingService.income_report(db, term.start, term.end)
            expenses = await ReportingService.expense_report(db, term.start, term.end)
            stats.term_start = term.start
            stats.term_end = term.end
            stats.subs_income_this_term = income.subs_income
            stats.activity_income_this_term = income.activity_income
            stats.total_expenses_this_term = expenses.total_expenses

        outstanding = (await db.execute(
            select(ExpenseClaim).where(ExpenseClaim.status != ExpenseClaimStatus.SETTLED)
        )).scalars().all()
        stats.pending_claims_count = len(outstanding)
        stats.pending_claims_amount = sum((c.total_amount for c in outstanding), start=ZERO)

        return stats

    @staticmethod
    async def event_financial_summary(
        db: AsyncSession, meeting_id: int, meetings: MeetingDirectory
    ) -> Optional[EventFinancialSummary]:
        """Income, accounted-for spend and net position for one meeting. None if the meeting is unknown."""
        meeting = await meetings.get_meeting(meeting_id)
        if not meeting:
            return None

        result = await db.execute(
            select(Expense).where(Expense.meeting_id == meeting_id, _accounted_for())
        )
        groups = _by_category(result.scalars().all())
        breakdown: List[EventExpenseLine] = [
            EventExpenseLine(
                account_code=group["account"].code,
                account_name=group["account"].name,
                amount=group["amount"],
            )
            for group in groups.values()
        ]

        income: Decimal = await meetings.paid_income(meeting_id)
        return EventFinancialSummary(
            meeting_id=meeting_id,
            meeting_title=meeting.title,
            meeting_date=meeting.date,
            total_income=income,
            total_expenses=sum((line.amount for line in breakdown), start=ZERO),
            expense_breakdown=breakdown,
        )
