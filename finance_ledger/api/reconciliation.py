"""
Bank reconciliation API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from finance_ledger.api.deps import get_request_context
from finance_ledger.context import RequestContext
from finance_ledger.errors import LedgerError
from finance_ledger.models.base import get_db
from finance_ledger.schemas.banking import BankTransactionResponse
from finance_ledger.schemas.reconciliation import (
    ClearedBalanceUpdate,
    ReconciliationComplete,
    ReconciliationResponse,
    ReconciliationStart,
)
from finance_ledger.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/reconciliations", tags=["Reconciliation"])


@router.post("", response_model=ReconciliationResponse, status_code=201)
def start_reconciliation(
    request: ReconciliationStart,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """
    Open a reconciliation for a statement.

    Returns 409 if the bank account already has one in progress.
    """
    service = ReconciliationService(db, context)
    try:
        reconciliation = service.start(request)
        db.commit()
        return reconciliation
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("", response_model=list[ReconciliationResponse])
def list_reconciliations(
    bank_account_id: int | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ReconciliationService(db, context)
    try:
        return service.list_reconciliations(bank_account_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get(
    "/eligible-transactions",
    response_model=list[BankTransactionResponse],
)
def list_eligible_transactions(
    bank_account_id: int,
    statement_date: date,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Posted, unreconciled transactions on or before the statement date."""
    service = ReconciliationService(db, context)
    try:
        return service.list_eligible_transactions(bank_account_id, statement_date)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{reconciliation_id}", response_model=ReconciliationResponse)
def get_reconciliation(
    reconciliation_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ReconciliationService(db, context)
    try:
        return service.get_reconciliation(reconciliation_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch(
    "/{reconciliation_id}/cleared-balance",
    response_model=ReconciliationResponse,
)
def update_cleared_balance(
    reconciliation_id: int,
    request: ClearedBalanceUpdate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ReconciliationService(db, context)
    try:
        reconciliation = service.update_cleared_balance(
            reconciliation_id, request.cleared_balance
        )
        db.commit()
        return reconciliation
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/{reconciliation_id}/complete",
    response_model=ReconciliationResponse,
)
def complete_reconciliation(
    reconciliation_id: int,
    request: ReconciliationComplete,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """
    Complete the reconciliation and claim the cleared transactions.

    Returns 400 unless the difference is zero.
    """
    service = ReconciliationService(db, context)
    try:
        reconciliation = service.complete(
            reconciliation_id, request.cleared_transaction_ids
        )
        db.commit()
        return reconciliation
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{reconciliation_id}/void", response_model=ReconciliationResponse)
def void_reconciliation(
    reconciliation_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ReconciliationService(db, context)
    try:
        reconciliation = service.void(reconciliation_id)
        db.commit()
        return reconciliation
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
