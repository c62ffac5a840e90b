"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from unitledger.app.api.v1.endpoints import (
    accounts, transactions, postings,
    expenses, claims,
    reports, ledger
)

router = APIRouter()

# Chart of accounts
router.include_router(accounts.router)

# Ledger postings
router.include_router(transactions.router)
router.include_router(postings.router)

# Expenses and reimbursement claims
router.include_router(expenses.router)
router.include_router(claims.router)

# Read-only reporting
router.include_router(reports.router)
router.include_router(ledger.router)
