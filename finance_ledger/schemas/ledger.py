"""
Pydantic schemas for ledger postings and balances.

These define the API contract, what data comes in and what data
goes out. They are separate from the database models because the
API shape and the storage shape are often different.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from finance_ledger.models.enums import AccountType, SourceType


# --- Request Schemas ---

class PostingLineCreate(BaseModel):
    """A single debit or credit to be written to the ledger."""
    account_id: int
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0)

    @model_validator(mode="after")
    def exactly_one_side(self) -> "PostingLineCreate":
        if (self.debit_amount > 0) == (self.credit_amount > 0):
            raise ValueError(
                "posting must have either a debit or a credit amount"
            )
        return self


# --- Response Schemas ---

class LedgerPostingResponse(BaseModel):
    id: int
    source_type: SourceType
    source_id: int
    posting_date: date
    account_id: int
    debit_amount: Decimal
    credit_amount: Decimal
    memo: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    """Response for an account balance query."""
    account_id: int
    account_number: str | None
    account_type: AccountType
    balance: Decimal
    as_of: date | None = None


class UnbalancedSource(BaseModel):
    source_type: SourceType
    source_id: int
    total_debits: Decimal
    total_credits: Decimal


class IntegrityReport(BaseModel):
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    is_balanced: bool
    unbalanced_sources: list[UnbalancedSource] = []
