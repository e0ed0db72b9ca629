"""
Bank transaction service: import, categorize, post, exclude.

Lifecycle:

    unmatched --categorize--> matched --post--> posted
    unmatched/matched --exclude--> excluded
    posted --unpost--> matched   (only while unreconciled)

Posting writes a two-line group to the ledger:

    Money in  (amount > 0):  DR bank COA account, CR matched account
    Money out (amount < 0):  DR matched account, CR bank COA account

Both lines carry |amount|.
"""

import logging
import time
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update, or_

from finance_ledger.errors import ConflictError, NotFoundError, ValidationError
from finance_ledger.models.account import Account
from finance_ledger.models.bank_transaction import BankTransaction
from finance_ledger.models.enums import BankTransactionStatus, SourceType
from finance_ledger.schemas.banking import (
    BankTransactionFilter,
    BankTransactionRow,
    CategorizeRequest,
    CsvColumnMapping,
    ImportResult,
)
from finance_ledger.schemas.ledger import PostingLineCreate
from finance_ledger.services.bank_account_service import BankAccountService
from finance_ledger.services.base import TenantScopedService
from finance_ledger.services.csv_import import parse_statement_csv
from finance_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


def dedup_hash(transaction_date: date, amount: Decimal, description: str) -> str:
    """Content key used to skip statement lines that were already imported."""
    amount_text = format(Decimal(amount).normalize(), "f")
    return f"{transaction_date.isoformat()}|{amount_text}|{description[:50]}"


class BankTransactionService(TenantScopedService):

    def __init__(self, db, context, authorizer=None, audit=None):
        super().__init__(db, context, authorizer, audit)
        self.ledger_service = LedgerService(db, context, self.authorizer, self.audit)
        self.bank_accounts = BankAccountService(db, context, self.authorizer, self.audit)

    # --- Import ---

    def import_batch(
        self, bank_account_id: int, rows: list[BankTransactionRow]
    ) -> ImportResult:
        """
        Import statement rows for one bank account.

        Rows whose content matches a transaction already stored for
        the account are skipped. Every new row shares one batch id
        and starts unmatched.
        """
        self._authorize("bank_transaction.import", "bank_transaction")
        bank_account = self.bank_accounts.get_bank_account(bank_account_id)

        existing = set(self.db.execute(
            select(BankTransaction.dedup_hash).where(
                BankTransaction.tenant_id == self.tenant_id,
                BankTransaction.bank_account_id == bank_account.id,
            )
        ).scalars().all())

        batch_id = f"csv-{int(time.time() * 1000)}"
        imported = 0
        skipped = 0
        for row in rows:
            key = dedup_hash(row.transaction_date, row.amount, row.description)
            if key in existing:
                skipped += 1
                continue
            self.db.add(BankTransaction(
                tenant_id=self.tenant_id,
                bank_account_id=bank_account.id,
                transaction_date=row.transaction_date,
                description=row.description,
                original_description=row.description,
                amount=row.amount,
                status=BankTransactionStatus.UNMATCHED,
                import_batch_id=batch_id,
                dedup_hash=key,
            ))
            imported += 1

        self.db.flush()
        logger.info(
            "Imported %d transactions into bank account %s (%d skipped, batch %s)",
            imported, bank_account.id, skipped, batch_id,
        )
        self._audit("bank_transaction.imported", "bank_account", bank_account.id, {
            "imported": imported,
            "skipped": skipped,
            "import_batch_id": batch_id,
        })
        return ImportResult(
            imported=imported,
            skipped=skipped,
            import_batch_id=batch_id,
        )

    def import_csv(
        self, bank_account_id: int, content: str, mapping: CsvColumnMapping
    ) -> tuple[ImportResult, list[str]]:
        """Parse a statement CSV and import the rows that parsed cleanly."""
        rows, errors = parse_statement_csv(content, mapping)
        if errors:
            logger.warning(
                "CSV import for bank account %s had %d bad rows",
                bank_account_id, len(errors),
            )
        return self.import_batch(bank_account_id, rows), errors

    # --- Categorize / post ---

    def categorize(self, transaction_id: int, request: CategorizeRequest) -> BankTransaction:
        """Assign the COA account (and optional vendor/client) a transaction books to."""
        self._authorize("bank_transaction.categorize", "bank_transaction")
        txn = self.get_transaction(transaction_id)

        if txn.status not in (
            BankTransactionStatus.UNMATCHED, BankTransactionStatus.MATCHED
        ):
            raise ConflictError(
                f"Cannot categorize a {txn.status.value} transaction"
            )

        account = self.db.execute(
            select(Account).where(
                Account.id == request.matched_account_id,
                Account.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not account:
            raise NotFoundError(f"Account {request.matched_account_id} not found")
        if not account.is_active:
            raise ValidationError(f"Account {account.id} is inactive")

        self._transition(
            txn,
            expected=txn.status,
            status=BankTransactionStatus.MATCHED,
            matched_account_id=account.id,
            matched_vendor_id=request.matched_vendor_id,
            matched_crm_client_id=request.matched_crm_client_id,
            notes=request.notes,
        )

        self._audit("bank_transaction.categorized", "bank_transaction", txn.id, {
            "matched_account_id": account.id,
        })
        return txn

    def post(self, transaction_id: int) -> BankTransaction:
        """Post a categorized transaction to the ledger."""
        self._authorize("bank_transaction.post", "bank_transaction")
        txn = self.get_transaction(transaction_id)

        if txn.status in (BankTransactionStatus.POSTED, BankTransactionStatus.EXCLUDED):
            raise ConflictError(f"Transaction is already {txn.status.value}")
        if txn.status != BankTransactionStatus.MATCHED or txn.matched_account_id is None:
            raise ValidationError("Transaction must be categorized before posting")

        bank_account = self.bank_accounts.get_bank_account(txn.bank_account_id)
        if bank_account.finance_account_id is None:
            raise ValidationError(
                "Bank account must be mapped to a COA account before posting"
            )
        if txn.amount == 0:
            raise ValidationError("Zero-amount transactions cannot be posted")

        magnitude = abs(txn.amount)
        bank_coa_id = bank_account.finance_account_id
        if txn.amount > 0:
            debit_account, credit_account = bank_coa_id, txn.matched_account_id
        else:
            debit_account, credit_account = txn.matched_account_id, bank_coa_id

        postings = [
            PostingLineCreate(account_id=debit_account, debit_amount=magnitude),
            PostingLineCreate(account_id=credit_account, credit_amount=magnitude),
        ]
        self.ledger_service.check_postings(SourceType.BANK_TXN, txn.id, postings)

        self._transition(
            txn,
            expected=BankTransactionStatus.MATCHED,
            status=BankTransactionStatus.POSTED,
            posted_date=date.today(),
        )
        self.ledger_service.write_postings(
            SourceType.BANK_TXN,
            txn.id,
            txn.transaction_date,
            postings,
            memo=txn.description,
        )
        self.ledger_service.refresh_balances({debit_account, credit_account})

        logger.info("Posted bank transaction %s (%s)", txn.id, txn.amount)
        self._audit("bank_transaction.posted", "bank_transaction", txn.id, {
            "amount": txn.amount,
            "matched_account_id": txn.matched_account_id,
        })
        return txn

    def exclude(self, transaction_id: int) -> BankTransaction:
        """Exclude a transaction from the books for good."""
        self._authorize("bank_transaction.exclude", "bank_transaction")
        txn = self.get_transaction(transaction_id)

        if not txn.can_transition_to(BankTransactionStatus.EXCLUDED):
            raise ConflictError(f"Cannot exclude a {txn.status.value} transaction")

        self._transition(txn, expected=txn.status, status=BankTransactionStatus.EXCLUDED)
        logger.info("Excluded bank transaction %s", txn.id)
        self._audit("bank_transaction.excluded", "bank_transaction", txn.id)
        return txn

    def unpost(self, transaction_id: int) -> BankTransaction:
        """
        Take a posted transaction back out of the ledger.

        Refused once a reconciliation has claimed it; void the
        reconciliation first.
        """
        self._authorize("bank_transaction.unpost", "bank_transaction")
        txn = self.get_transaction(transaction_id)

        if txn.status != BankTransactionStatus.POSTED:
            raise ConflictError(f"Cannot unpost a {txn.status.value} transaction")
        if txn.reconciliation_id is not None:
            raise ConflictError(
                f"Transaction is claimed by reconciliation {txn.reconciliation_id}"
            )

        result = self.db.execute(
            update(BankTransaction)
            .where(
                BankTransaction.id == txn.id,
                BankTransaction.tenant_id == self.tenant_id,
                BankTransaction.status == BankTransactionStatus.POSTED,
                BankTransaction.reconciliation_id.is_(None),
            )
            .values(status=BankTransactionStatus.MATCHED, posted_date=None)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ConflictError(f"Bank transaction {txn.id} was modified concurrently")
        self.db.refresh(txn)

        touched = self.ledger_service.delete_postings(SourceType.BANK_TXN, txn.id)
        self.ledger_service.refresh_balances(touched)

        logger.info("Unposted bank transaction %s", txn.id)
        self._audit("bank_transaction.unposted", "bank_transaction", txn.id)
        return txn

    # --- Reads ---

    def get_transaction(self, transaction_id: int) -> BankTransaction:
        self._require_context()
        txn = self.db.execute(
            select(BankTransaction).where(
                BankTransaction.id == transaction_id,
                BankTransaction.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not txn:
            raise NotFoundError(f"Bank transaction {transaction_id} not found")
        return txn

    def list_transactions(
        self, filter: BankTransactionFilter | None = None
    ) -> list[BankTransaction]:
        """Transactions newest first, optionally filtered."""
        self._require_context()
        filter = filter or BankTransactionFilter()

        query = select(BankTransaction).where(
            BankTransaction.tenant_id == self.tenant_id
        )
        if filter.bank_account_id is not None:
            query = query.where(BankTransaction.bank_account_id == filter.bank_account_id)
        if filter.status:
            query = query.where(BankTransaction.status == filter.status)
        if filter.date_from:
            query = query.where(BankTransaction.transaction_date >= filter.date_from)
        if filter.date_to:
            query = query.where(BankTransaction.transaction_date <= filter.date_to)
        if filter.search:
            pattern = f"%{filter.search}%"
            query = query.where(or_(
                BankTransaction.description.ilike(pattern),
                BankTransaction.notes.ilike(pattern),
            ))

        transactions = self.db.execute(
            query.order_by(
                BankTransaction.transaction_date.desc(), BankTransaction.id.desc()
            )
        ).scalars().all()
        return list(transactions)

    def _transition(
        self, txn: BankTransaction, expected: BankTransactionStatus, **values
    ) -> None:
        result = self.db.execute(
            update(BankTransaction)
            .where(
                BankTransaction.id == txn.id,
                BankTransaction.tenant_id == self.tenant_id,
                BankTransaction.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ConflictError(f"Bank transaction {txn.id} was modified concurrently")
        self.db.refresh(txn)
