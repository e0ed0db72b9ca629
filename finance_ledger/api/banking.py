"""
Bank account and bank transaction API endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from finance_ledger.api.deps import get_request_context
from finance_ledger.context import RequestContext
from finance_ledger.errors import LedgerError
from finance_ledger.models.base import get_db
from finance_ledger.models.enums import BankTransactionStatus
from finance_ledger.schemas.banking import (
    BankAccountCreate,
    BankAccountResponse,
    BankAccountUpdate,
    BankTransactionFilter,
    BankTransactionResponse,
    CategorizeRequest,
    CsvImportRequest,
    CsvImportResponse,
    ImportBatchRequest,
    ImportResult,
    MapToCoaRequest,
)
from finance_ledger.services.bank_account_service import BankAccountService
from finance_ledger.services.bank_transaction_service import BankTransactionService

router = APIRouter(tags=["Banking"])


# --- Bank Account Endpoints ---

@router.post("/bank-accounts", response_model=BankAccountResponse, status_code=201)
def create_bank_account(
    request: BankAccountCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankAccountService(db, context)
    try:
        bank_account = service.create_bank_account(request)
        db.commit()
        return bank_account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/bank-accounts", response_model=list[BankAccountResponse])
def list_bank_accounts(
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankAccountService(db, context)
    try:
        return service.list_bank_accounts()
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/bank-accounts/{bank_account_id}", response_model=BankAccountResponse)
def get_bank_account(
    bank_account_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankAccountService(db, context)
    try:
        return service.get_bank_account(bank_account_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/bank-accounts/{bank_account_id}", response_model=BankAccountResponse)
def update_bank_account(
    bank_account_id: int,
    request: BankAccountUpdate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankAccountService(db, context)
    try:
        bank_account = service.update_bank_account(bank_account_id, request)
        db.commit()
        return bank_account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-accounts/{bank_account_id}/map",
    response_model=BankAccountResponse,
)
def map_to_coa(
    bank_account_id: int,
    request: MapToCoaRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Link a bank account to its chart-of-accounts account."""
    service = BankAccountService(db, context)
    try:
        bank_account = service.map_to_coa(bank_account_id, request.finance_account_id)
        db.commit()
        return bank_account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-accounts/{bank_account_id}/deactivate",
    response_model=BankAccountResponse,
)
def deactivate_bank_account(
    bank_account_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankAccountService(db, context)
    try:
        bank_account = service.deactivate_bank_account(bank_account_id)
        db.commit()
        return bank_account
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


# --- Import Endpoints ---

@router.post(
    "/bank-accounts/{bank_account_id}/transactions/import",
    response_model=ImportResult,
    status_code=201,
)
def import_transactions(
    bank_account_id: int,
    request: ImportBatchRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """
    Import statement rows. Rows already imported for this account
    are skipped, so re-sending a batch is safe.
    """
    service = BankTransactionService(db, context)
    try:
        result = service.import_batch(bank_account_id, request.rows)
        db.commit()
        return result
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-accounts/{bank_account_id}/transactions/import-csv",
    response_model=CsvImportResponse,
    status_code=201,
)
def import_csv(
    bank_account_id: int,
    request: CsvImportRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Parse and import a statement CSV; unparseable rows come back as errors."""
    service = BankTransactionService(db, context)
    try:
        result, errors = service.import_csv(
            bank_account_id, request.content, request.mapping
        )
        db.commit()
        return CsvImportResponse(**result.model_dump(), errors=errors)
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


# --- Bank Transaction Endpoints ---

@router.get("/bank-transactions", response_model=list[BankTransactionResponse])
def list_transactions(
    bank_account_id: int | None = None,
    status: BankTransactionStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankTransactionService(db, context)
    try:
        return service.list_transactions(BankTransactionFilter(
            bank_account_id=bank_account_id,
            status=status,
            date_from=date_from,
            date_to=date_to,
            search=search,
        ))
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get(
    "/bank-transactions/{transaction_id}",
    response_model=BankTransactionResponse,
)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankTransactionService(db, context)
    try:
        return service.get_transaction(transaction_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-transactions/{transaction_id}/categorize",
    response_model=BankTransactionResponse,
)
def categorize_transaction(
    transaction_id: int,
    request: CategorizeRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankTransactionService(db, context)
    try:
        txn = service.categorize(transaction_id, request)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-transactions/{transaction_id}/post",
    response_model=BankTransactionResponse,
)
def post_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankTransactionService(db, context)
    try:
        txn = service.post(transaction_id)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-transactions/{transaction_id}/unpost",
    response_model=BankTransactionResponse,
)
def unpost_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankTransactionService(db, context)
    try:
        txn = service.unpost(transaction_id)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post(
    "/bank-transactions/{transaction_id}/exclude",
    response_model=BankTransactionResponse,
)
def exclude_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = BankTransactionService(db, context)
    try:
        txn = service.exclude(transaction_id)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
