"""
Ledger Maintenance API Endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unitledger.app.db.session import get_db
from unitledger.app.domain.ledger.ledger_engine import LedgerEngine
from unitledger.app.schemas.reports import LedgerIntegrityReport

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("/integrity", response_model=LedgerIntegrityReport)
async def ledger_integrity(db: AsyncSession = Depends(get_db)):
    """
    Replay every transaction line and compare with stored account balances.
    """
    return await LedgerEngine.verify_balances(db)
