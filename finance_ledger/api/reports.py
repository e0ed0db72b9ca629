"""
Reporting API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from finance_ledger.api.deps import get_request_context
from finance_ledger.context import RequestContext
from finance_ledger.errors import LedgerError
from finance_ledger.models.base import get_db
from finance_ledger.schemas.ledger import IntegrityReport
from finance_ledger.schemas.reconciliation import TrialBalanceResponse
from finance_ledger.services.ledger_service import LedgerService
from finance_ledger.services.trial_balance_service import TrialBalanceService

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/trial-balance", response_model=TrialBalanceResponse)
def trial_balance(
    as_of: date | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Debits, credits and balance per account, from postings up to as_of."""
    service = TrialBalanceService(db, context)
    try:
        return service.compute(as_of=as_of)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/ledger-integrity", response_model=IntegrityReport)
def ledger_integrity(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Ledger-wide debit/credit check plus any unbalanced sources."""
    service = LedgerService(db, context)
    try:
        return service.check_integrity()
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
