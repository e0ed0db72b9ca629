"""
Chart of accounts API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from finance_ledger.api.deps import get_request_context
from finance_ledger.context import RequestContext
from finance_ledger.errors import LedgerError
from finance_ledger.models.base import get_db
from finance_ledger.schemas.account import (
    AccountCreate,
    AccountImportRequest,
    AccountResponse,
    AccountUpdate,
    CoaTemplate,
)
from finance_ledger.schemas.ledger import AccountBalanceResponse, LedgerPostingResponse
from finance_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from finance_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/accounts", tags=["Chart of Accounts"])


@router.post("", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Create an account. Normal balance is derived from the type."""
    service = ChartOfAccountsService(db, context)
    try:
        account = service.create_account(request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("", response_model=list[AccountResponse])
def list_accounts(
    active_only: bool = False,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ChartOfAccountsService(db, context)
    try:
        return service.list_accounts(active_only=active_only)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/import", response_model=list[AccountResponse], status_code=201)
def import_accounts(
    request: AccountImportRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ChartOfAccountsService(db, context)
    try:
        accounts = service.import_accounts(request.accounts)
        db.commit()
        return accounts
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/templates", response_model=list[AccountResponse], status_code=201)
def apply_template(
    template: CoaTemplate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Bulk-create the accounts of a caller-supplied template."""
    service = ChartOfAccountsService(db, context)
    try:
        accounts = service.apply_template(template)
        db.commit()
        return accounts
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/templates/{name}",
    response_model=list[AccountResponse],
    status_code=201,
)
def apply_builtin_template(
    name: str,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ChartOfAccountsService(db, context)
    try:
        accounts = service.apply_builtin_template(name)
        db.commit()
        return accounts
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ChartOfAccountsService(db, context)
    try:
        return service.get_account(account_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    request: AccountUpdate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ChartOfAccountsService(db, context)
    try:
        account = service.update_account(account_id, request)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{account_id}/deactivate", response_model=AccountResponse)
def deactivate_account(
    account_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = ChartOfAccountsService(db, context)
    try:
        account = service.deactivate_account(account_id)
        db.commit()
        return account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{account_id}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    account_id: int,
    as_of: date | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """
    Balance calculated from postings, not from the cached column.
    """
    coa = ChartOfAccountsService(db, context)
    ledger = LedgerService(db, context)
    try:
        account = coa.get_account(account_id)
        balance = ledger.get_account_balance(account_id, as_of=as_of)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return AccountBalanceResponse(
        account_id=account.id,
        account_number=account.account_number,
        account_type=account.account_type,
        balance=balance,
        as_of=as_of,
    )


@router.get("/{account_id}/postings", response_model=list[LedgerPostingResponse])
def get_account_postings(
    account_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """All postings for an account, newest first."""
    service = LedgerService(db, context)
    try:
        return service.get_postings_by_account(account_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
