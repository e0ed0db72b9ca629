"""
Pydantic schemas for the chart of accounts.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from finance_ledger.models.enums import AccountType, NormalBalance


class AccountCreate(BaseModel):
    account_number: str | None = Field(default=None, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType
    account_subtype: str | None = Field(default=None, max_length=50)
    description: str | None = None
    parent_account_id: int | None = None
    is_active: bool = True
    is_system: bool = False


class AccountUpdate(BaseModel):
    """Partial update: only the fields that were sent are applied."""
    account_number: str | None = Field(default=None, max_length=20)
    name: str | None = Field(default=None, min_length=1, max_length=100)
    account_type: AccountType | None = None
    account_subtype: str | None = Field(default=None, max_length=50)
    description: str | None = None
    parent_account_id: int | None = None
    is_active: bool | None = None


class AccountResponse(BaseModel):
    id: int
    account_number: str | None
    name: str
    account_type: AccountType
    account_subtype: str | None
    description: str | None
    parent_account_id: int | None
    normal_balance: NormalBalance
    current_balance: Decimal
    display_order: int
    is_active: bool
    is_system: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Templates and bulk import ---

class CoaTemplateItem(BaseModel):
    account_number: str | None = Field(default=None, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType
    description: str | None = None


class CoaTemplate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    accounts: list[CoaTemplateItem] = Field(min_length=1)


class AccountImportRequest(BaseModel):
    accounts: list[AccountCreate] = Field(min_length=1)
