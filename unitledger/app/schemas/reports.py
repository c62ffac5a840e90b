"""
Reporting Schemas.

Read-only projections over the ledger.
"""

import datetime
from decimal import Decimal
from pydantic import BaseModel, computed_field
from typing import List, Optional


class IncomeReportLine(BaseModel):
    """Income for one account in the window."""
    account_code: str
    account_name: str
    amount: Decimal


class IncomeReport(BaseModel):
    """Subscription and activity income for a date window."""
    date_from: datetime.date
    date_to: datetime.date
    subs_income: Decimal
    activity_income: Decimal
    lines: List[IncomeReportLine]

    @computed_field
    @property
    def total_income(self) -> Decimal:
        return self.subs_income + self.activity_income


class ExpenseReportLine(BaseModel):
    """Spend for one expense category in the window."""
    account_id: int
    account_code: str
    account_name: str
    amount: Decimal
    transaction_count: int


class ExpenseReport(BaseModel):
    """Accounted-for expenses for a date window, grouped by category."""
    date_from: datetime.date
    date_to: datetime.date
    total_expenses: Decimal
    lines: List[ExpenseReportLine]


class DashboardStats(BaseModel):
    """Treasurer's dashboard figures."""
    cash_on_hand: Decimal
    cheques_pending: Decimal
    bank_balance: Decimal
    term_start: Optional[datetime.date] = None
    term_end: Optional[datetime.date] = None
    subs_income_this_term: Decimal = Decimal("0.00")
    activity_income_this_term: Decimal = Decimal("0.00")
    total_expenses_this_term: Decimal = Decimal("0.00")
    pending_claims_count: int = 0
    pending_claims_amount: Decimal = Decimal("0.00")

    @computed_field
    @property
    def total_assets(self) -> Decimal:
        return self.cash_on_hand + self.cheques_pending + self.bank_balance

    @computed_field
    @property
    def total_income_this_term(self) -> Decimal:
        return self.subs_income_this_term + self.activity_income_this_term


class EventExpenseLine(BaseModel):
    """Spend on one category for an event."""
    account_code: str
    account_name: str
    amount: Decimal


class EventFinancialSummary(BaseModel):
    """Profit and loss for a single meeting or event."""
    meeting_id: int
    meeting_title: str
    meeting_date: Optional[datetime.date]
    total_income: Decimal
    total_expenses: Decimal
    expense_breakdown: List[EventExpenseLine]

    @computed_field
    @property
    def net_position(self) -> Decimal:
        return self.total_income - self.total_expenses


class BalanceMismatch(BaseModel):
    """An account whose stored balance disagrees with its line history."""
    account_id: int
    account_code: str
    stored_balance: Decimal
    expected_balance: Decimal


class LedgerIntegrityReport(BaseModel):
    """Result of replaying every line against the stored balances."""
    accounts_checked: int
    transactions_checked: int
    unbalanced_transaction_ids: List[int]
    mismatches: List[BalanceMismatch]

    @computed_field
    @property
    def is_consistent(self) -> bool:
        return not self.mismatches and not self.unbalanced_transaction_ids
