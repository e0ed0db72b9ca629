"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


# Trial balance and account listings are ordered this way
ACCOUNT_TYPE_ORDER = [
    AccountType.ASSET,
    AccountType.LIABILITY,
    AccountType.EQUITY,
    AccountType.INCOME,
    AccountType.EXPENSE,
]


class NormalBalance(str, enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"


def normal_balance_for(account_type: AccountType) -> NormalBalance:
    """Assets and expenses grow on the debit side, everything else on credit."""
    if account_type in (AccountType.ASSET, AccountType.EXPENSE):
        return NormalBalance.DEBIT
    return NormalBalance.CREDIT


class JournalEntryStatus(str, enum.Enum):
    DRAFT = "draft"
    POSTED = "posted"
    VOIDED = "voided"


class SourceType(str, enum.Enum):
    """Which writer owns a ledger posting."""
    JOURNAL_ENTRY = "journal_entry"
    BANK_TXN = "bank_txn"


class BankTransactionStatus(str, enum.Enum):
    UNMATCHED = "unmatched"
    MATCHED = "matched"
    POSTED = "posted"
    EXCLUDED = "excluded"


class ReconciliationStatus(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VOIDED = "voided"
