"""
Pydantic schemas for journal entries.

Line-level rules (at least two lines, debit XOR credit) are
checked by the JournalService so that every caller, HTTP or
in-process, gets the same error.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from finance_ledger.models.enums import JournalEntryStatus


# --- Request Schemas ---

class JournalEntryLineInput(BaseModel):
    account_id: int
    description: str | None = Field(default=None, max_length=255)
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class JournalEntryCreate(BaseModel):
    entry_date: date
    memo: str | None = None
    lines: list[JournalEntryLineInput]
    reference_type: str | None = Field(default=None, max_length=50)
    reference_id: str | None = Field(default=None, max_length=64)


class JournalEntryUpdate(BaseModel):
    entry_date: date
    memo: str | None = None
    lines: list[JournalEntryLineInput]


class JournalEntryVoid(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class JournalEntryFilter(BaseModel):
    status: JournalEntryStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None


# --- Response Schemas ---

class JournalEntryLineResponse(BaseModel):
    id: int
    account_id: int
    description: str | None
    debit_amount: Decimal
    credit_amount: Decimal
    line_order: int

    model_config = {"from_attributes": True}


class JournalEntryResponse(BaseModel):
    id: int
    entry_number: str
    entry_date: date
    posting_date: date | None
    memo: str | None
    status: JournalEntryStatus
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool
    reference_type: str | None
    reference_id: str | None
    created_by: str | None
    posted_by: str | None
    posted_at: datetime | None
    voided_by: str | None
    voided_at: datetime | None
    void_reason: str | None
    created_at: datetime
    lines: list[JournalEntryLineResponse] = []

    model_config = {"from_attributes": True}
