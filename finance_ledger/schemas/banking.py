"""
Pydantic schemas for bank accounts and bank transactions.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from finance_ledger.models.enums import BankTransactionStatus


# --- Bank Account Schemas ---

class BankAccountCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    institution_name: str | None = Field(default=None, max_length=100)
    account_mask: str | None = Field(default=None, max_length=8)
    account_type: str = Field(default="checking", max_length=30)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    current_balance: Decimal = Field(default=Decimal("0"), decimal_places=2)
    finance_account_id: int | None = None


class BankAccountUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    institution_name: str | None = Field(default=None, max_length=100)
    account_mask: str | None = Field(default=None, max_length=8)
    account_type: str | None = Field(default=None, max_length=30)
    current_balance: Decimal | None = Field(default=None, decimal_places=2)


class MapToCoaRequest(BaseModel):
    finance_account_id: int


class BankAccountResponse(BaseModel):
    id: int
    name: str
    institution_name: str | None
    account_mask: str | None
    account_type: str
    currency: str
    current_balance: Decimal
    finance_account_id: int | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Bank Transaction Schemas ---

class BankTransactionRow(BaseModel):
    """One statement line to import. Positive amount = money in."""
    transaction_date: date
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal = Field(decimal_places=2)


class ImportBatchRequest(BaseModel):
    rows: list[BankTransactionRow]


class ImportResult(BaseModel):
    imported: int
    skipped: int
    import_batch_id: str | None = None


class CsvColumnMapping(BaseModel):
    """
    Which CSV columns hold which field.

    Give either amount_column (signed) or both debit_column and
    credit_column (amount = credit - debit).
    """
    date_column: str
    description_column: str
    amount_column: str | None = None
    debit_column: str | None = None
    credit_column: str | None = None


class CsvImportRequest(BaseModel):
    content: str = Field(min_length=1)
    mapping: CsvColumnMapping


class CsvImportResponse(ImportResult):
    errors: list[str] = []


class CategorizeRequest(BaseModel):
    matched_account_id: int
    matched_vendor_id: str | None = Field(default=None, max_length=64)
    matched_crm_client_id: str | None = Field(default=None, max_length=64)
    notes: str | None = None


class BankTransactionFilter(BaseModel):
    bank_account_id: int | None = None
    status: BankTransactionStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = None


class BankTransactionResponse(BaseModel):
    id: int
    bank_account_id: int
    transaction_date: date
    posted_date: date | None
    description: str
    amount: Decimal
    status: BankTransactionStatus
    matched_account_id: int | None
    matched_vendor_id: str | None
    matched_crm_client_id: str | None
    notes: str | None
    reconciliation_id: int | None
    import_batch_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
