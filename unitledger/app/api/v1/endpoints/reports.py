"""
Reporting API Endpoints.

Read-only views for the treasurer: income, spend, dashboard and per-event totals.
"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from unitledger.app.db.session import get_db
from unitledger.app.core.dependencies import get_meeting_directory, get_term_calendar
from unitledger.app.core.exceptions import ResourceNotFoundError
from unitledger.app.domain.ledger.reporting import ReportingService
from unitledger.app.schemas.reports import (
    DashboardStats, EventFinancialSummary, ExpenseReport, IncomeReport,
)
from unitledger.app.services.collaborators import MeetingDirectory, TermCalendar

router = APIRouter(prefix="/reports", tags=["Reports"])


def _check_window(date_from: date, date_to: date):
    if date_to < date_from:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_to must not be before date_from"
        )


@router.get("/income", response_model=IncomeReport)
async def income_report(
    date_from: date = Query(...),
    date_to: date = Query(...),
    db: AsyncSession = Depends(get_db)
):
    _check_window(date_from, date_to)
    return await ReportingService.income_report(db, date_from, date_to)


@router.get("/expenses", response_model=ExpenseReport)
async def expense_report(
    date_from: date = Query(...),
    date_to: date = Query(...),
    db: AsyncSession = Depends(get_db)
):
    """
    Spend per category. Receipts on unsettled claims are not counted.
    """
    _check_window(date_from, date_to)
    return await ReportingService.expense_report(db, date_from, date_to)


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    terms: TermCalendar = Depends(get_term_calendar),
    db: AsyncSession = Depends(get_db)
):
    """
    Current balances, plus this term's income and spend when a term is configured.
    """
    term = await terms.current_term()
    return await ReportingService.dashboard_stats(db, term)


@router.get("/events/{meeting_id}", response_model=EventFinancialSummary)
async def event_summary(
    meeting_id: int = Path(..., description="Meeting ID"),
    meetings: MeetingDirectory = Depends(get_meeting_directory),
    db: AsyncSession = Depends(get_db)
):
    summary = await ReportingService.event_financial_summary(db, meeting_id, meetings)
    if not summary:
        raise ResourceNotFoundError("Meeting", meeting_id)
    return summary
