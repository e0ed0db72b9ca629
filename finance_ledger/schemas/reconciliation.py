"""
Pydantic schemas for bank reconciliations and reports.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from finance_ledger.models.enums import AccountType, ReconciliationStatus


class ReconciliationStart(BaseModel):
    bank_account_id: int
    statement_date: date
    statement_ending_balance: Decimal = Field(decimal_places=2)
    notes: str | None = None


class ClearedBalanceUpdate(BaseModel):
    cleared_balance: Decimal = Field(decimal_places=2)


class ReconciliationComplete(BaseModel):
    cleared_transaction_ids: list[int] = []


class ReconciliationResponse(BaseModel):
    id: int
    bank_account_id: int
    statement_date: date
    statement_ending_balance: Decimal
    cleared_balance: Decimal | None
    difference: Decimal | None
    status: ReconciliationStatus
    notes: str | None
    started_at: datetime
    completed_at: datetime | None
    completed_by: str | None
    voided_at: datetime | None
    voided_by: str | None
    created_by: str | None

    model_config = {"from_attributes": True}


# --- Trial Balance ---

class TrialBalanceRow(BaseModel):
    account_id: int
    account_number: str | None
    account_name: str
    account_type: AccountType
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal


class TrialBalanceResponse(BaseModel):
    as_of: date | None
    rows: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool
    # assets - (liabilities + equity + income - expense); zero when healthy
    equation_difference: Decimal
