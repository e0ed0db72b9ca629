"""
Journal entry API endpoints.

The API layer is thin: it maps domain errors to status codes and
commits on success. All lifecycle rules live in JournalService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from finance_ledger.api.deps import get_request_context
from finance_ledger.context import RequestContext
from finance_ledger.errors import LedgerError
from finance_ledger.models.base import get_db
from finance_ledger.models.enums import JournalEntryStatus, SourceType
from finance_ledger.schemas.journal import (
    JournalEntryCreate,
    JournalEntryFilter,
    JournalEntryResponse,
    JournalEntryUpdate,
    JournalEntryVoid,
)
from finance_ledger.schemas.ledger import LedgerPostingResponse
from finance_ledger.services.journal_service import JournalService
from finance_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/journal-entries", tags=["Journal Entries"])


@router.post("", response_model=JournalEntryResponse, status_code=201)
def create_entry(
    request: JournalEntryCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Create a draft entry. Drafts may be unbalanced."""
    service = JournalService(db, context)
    try:
        entry = service.create_entry(request)
        db.commit()
        return entry
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("", response_model=list[JournalEntryResponse])
def list_entries(
    status: JournalEntryStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = JournalService(db, context)
    try:
        return service.list_entries(JournalEntryFilter(
            status=status, date_from=date_from, date_to=date_to, search=search,
        ))
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{entry_id}", response_model=JournalEntryResponse)
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = JournalService(db, context)
    try:
        return service.get_entry(entry_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/{entry_id}", response_model=JournalEntryResponse)
def update_entry(
    entry_id: int,
    request: JournalEntryUpdate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """Replace a draft's header and lines."""
    service = JournalService(db, context)
    try:
        entry = service.update_entry(entry_id, request)
        db.commit()
        return entry
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{entry_id}/post", response_model=JournalEntryResponse)
def post_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """
    Post a balanced draft to the ledger.

    Returns 400 if the entry is unbalanced and 409 if it is not
    a draft.
    """
    service = JournalService(db, context)
    try:
        entry = service.post_entry(entry_id)
        db.commit()
        return entry
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{entry_id}/void", response_model=JournalEntryResponse)
def void_entry(
    entry_id: int,
    request: JournalEntryVoid | None = None,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    service = JournalService(db, context)
    try:
        entry = service.void_entry(entry_id, reason=request.reason if request else None)
        db.commit()
        return entry
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{entry_id}/postings", response_model=list[LedgerPostingResponse])
def get_entry_postings(
    entry_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    """The ledger postings an entry produced; empty unless posted."""
    journal = JournalService(db, context)
    ledger = LedgerService(db, context)
    try:
        entry = journal.get_entry(entry_id)
        return ledger.get_postings(SourceType.JOURNAL_ENTRY, entry.id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
