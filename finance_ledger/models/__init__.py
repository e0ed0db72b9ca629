"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from finance_ledger.models.base import Base
from finance_ledger.models.enums import (
    AccountType,
    NormalBalance,
    JournalEntryStatus,
    SourceType,
    BankTransactionStatus,
    ReconciliationStatus,
)
from finance_ledger.models.audit_log import AuditLog
from finance_ledger.models.account import Account
from finance_ledger.models.journal_entry import (
    JournalEntry,
    JournalEntryLine,
    EntrySequence,
)
from finance_ledger.models.ledger_posting import LedgerPosting
from finance_ledger.models.bank_account import BankAccount
from finance_ledger.models.bank_reconciliation import BankReconciliation
from finance_ledger.models.bank_transaction import BankTransaction

__all__ = [
    "Base",
    "AccountType",
    "NormalBalance",
    "JournalEntryStatus",
    "SourceType",
    "BankTransactionStatus",
    "ReconciliationStatus",
    "AuditLog",
    "Account",
    "JournalEntry",
    "JournalEntryLine",
    "EntrySequence",
    "LedgerPosting",
    "BankAccount",
    "BankReconciliation",
    "BankTransaction",
]
