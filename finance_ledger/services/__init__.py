"""Business logic services."""

from finance_ledger.services.ledger_service import LedgerService
from finance_ledger.services.chart_of_accounts_service import ChartOfAccountsService
from finance_ledger.services.journal_service import JournalService
from finance_ledger.services.bank_account_service import BankAccountService
from finance_ledger.services.bank_transaction_service import BankTransactionService
from finance_ledger.services.reconciliation_service import ReconciliationService
from finance_ledger.services.trial_balance_service import TrialBalanceService

__all__ = [
    "LedgerService",
    "ChartOfAccountsService",
    "JournalService",
    "BankAccountService",
    "BankTransactionService",
    "ReconciliationService",
    "TrialBalanceService",
]
