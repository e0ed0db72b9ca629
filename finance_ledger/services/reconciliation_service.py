"""
Reconciliation service.

A reconciliation records a bank statement's ending balance, tracks
the user's cleared balance against it, and on completion claims
the cleared transactions by writing its id onto them:

    in_progress --complete--> completed
    in_progress/completed --void--> voided   (claims released)

Completion is gated on a zero difference between the statement
and the cleared balance, within BALANCE_EPSILON.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from finance_ledger.errors import ConflictError, NotFoundError, ValidationError
from finance_ledger.models.base import utcnow
from finance_ledger.models.bank_reconciliation import BankReconciliation
from finance_ledger.models.bank_transaction import BankTransaction
from finance_ledger.models.enums import BankTransactionStatus, ReconciliationStatus
from finance_ledger.schemas.reconciliation import ReconciliationStart
from finance_ledger.services.bank_account_service import BankAccountService
from finance_ledger.services.base import BALANCE_EPSILON, TenantScopedService

logger = logging.getLogger(__name__)

OPEN_RECONCILIATION_MESSAGE = "There is already an open reconciliation for this account"


class ReconciliationService(TenantScopedService):

    def __init__(self, db, context, authorizer=None, audit=None):
        super().__init__(db, context, authorizer, audit)
        self.bank_accounts = BankAccountService(db, context, self.authorizer, self.audit)

    def start(self, request: ReconciliationStart) -> BankReconciliation:
        """
        Open a reconciliation for a bank statement.

        The pre-check gives a friendly error; the partial unique
        index catches the race where two requests pass it together.
        """
        self._authorize("reconciliation.start", "reconciliation")
        bank_account = self.bank_accounts.get_bank_account(request.bank_account_id)

        if self._find_open_reconciliation(bank_account.id) is not None:
            logger.warning(
                "Rejected second open reconciliation for bank account %s", bank_account.id
            )
            raise ConflictError(OPEN_RECONCILIATION_MESSAGE)

        reconciliation = BankReconciliation(
            tenant_id=self.tenant_id,
            bank_account_id=bank_account.id,
            statement_date=request.statement_date,
            statement_ending_balance=request.statement_ending_balance,
            cleared_balance=None,
            difference=None,
            status=ReconciliationStatus.IN_PROGRESS,
            notes=request.notes,
            created_by=self.actor_id,
        )
        try:
            with self.db.begin_nested():
                self.db.add(reconciliation)
                self.db.flush()
        except IntegrityError as exc:
            logger.warning(
                "Concurrent open reconciliation for bank account %s", bank_account.id
            )
            raise ConflictError(OPEN_RECONCILIATION_MESSAGE) from exc

        logger.info(
            "Started reconciliation %s for bank account %s (statement %s)",
            reconciliation.id, bank_account.id, reconciliation.statement_date,
        )
        self._audit("reconciliation.started", "reconciliation", reconciliation.id, {
            "bank_account_id": bank_account.id,
            "statement_date": reconciliation.statement_date.isoformat(),
            "statement_ending_balance": reconciliation.statement_ending_balance,
        })
        return reconciliation

    def update_cleared_balance(
        self, reconciliation_id: int, cleared_balance: Decimal
    ) -> BankReconciliation:
        """Record the cleared balance; difference = statement - cleared."""
        self._authorize("reconciliation.update", "reconciliation")
        reconciliation = self.get_reconciliation(reconciliation_id)

        if reconciliation.status != ReconciliationStatus.IN_PROGRESS:
            raise ConflictError(
                f"Reconciliation is {reconciliation.status.value}, not in progress"
            )

        self._transition(
            reconciliation,
            expected=ReconciliationStatus.IN_PROGRESS,
            cleared_balance=cleared_balance,
            difference=reconciliation.statement_ending_balance - cleared_balance,
        )
        return reconciliation

    def list_eligible_transactions(
        self, bank_account_id: int, statement_date: date
    ) -> list[BankTransaction]:
        """Posted, unclaimed transactions dated on or before the statement date."""
        self._require_context()
        bank_account = self.bank_accounts.get_bank_account(bank_account_id)
        transactions = self.db.execute(
            select(BankTransaction)
            .where(
                BankTransaction.tenant_id == self.tenant_id,
                BankTransaction.bank_account_id == bank_account.id,
                BankTransaction.status == BankTransactionStatus.POSTED,
                BankTransaction.reconciliation_id.is_(None),
                BankTransaction.transaction_date <= statement_date,
            )
            .order_by(
                BankTransaction.transaction_date.desc(), BankTransaction.id.desc()
            )
        ).scalars().all()
        return list(transactions)

    def complete(
        self, reconciliation_id: int, cleared_transaction_ids: list[int]
    ) -> BankReconciliation:
        """
        Complete the reconciliation and claim the cleared transactions.

        Any failing check leaves every transaction unclaimed.
        """
        self._authorize("reconciliation.complete", "reconciliation")
        reconciliation = self.get_reconciliation(reconciliation_id)

        if reconciliation.status != ReconciliationStatus.IN_PROGRESS:
            raise ConflictError(
                f"Reconciliation is {reconciliation.status.value}, not in progress"
            )

        difference = reconciliation.difference
        if difference is None or abs(difference) > BALANCE_EPSILON:
            logger.warning(
                "Rejected completion of reconciliation %s: difference=%s",
                reconciliation.id, difference,
            )
            raise ValidationError(
                "Cannot complete reconciliation - difference must be zero"
            )

        ids = sorted(set(cleared_transaction_ids))
        self._check_cleared_transactions(reconciliation, ids)

        if ids:
            result = self.db.execute(
                update(BankTransaction)
                .where(
                    BankTransaction.id.in_(ids),
                    BankTransaction.tenant_id == self.tenant_id,
                    BankTransaction.reconciliation_id.is_(None),
                )
                .values(reconciliation_id=reconciliation.id)
                .execution_options(synchronize_session="fetch")
            )
            if result.rowcount != len(ids):
                raise ConflictError(
                    "Some transactions were claimed by another reconciliation"
                )

        self._transition(
            reconciliation,
            expected=ReconciliationStatus.IN_PROGRESS,
            status=ReconciliationStatus.COMPLETED,
            completed_by=self.actor_id,
            completed_at=utcnow(),
        )

        logger.info(
            "Completed reconciliation %s with %d cleared transactions",
            reconciliation.id, len(ids),
        )
        self._audit("reconciliation.completed", "reconciliation", reconciliation.id, {
            "bank_account_id": reconciliation.bank_account_id,
            "cleared_count": len(ids),
        })
        return reconciliation

    def void(self, reconciliation_id: int) -> BankReconciliation:
        """Void the reconciliation and release every transaction it claimed."""
        self._authorize("reconciliation.void", "reconciliation")
        reconciliation = self.get_reconciliation(reconciliation_id)

        if not reconciliation.can_transition_to(ReconciliationStatus.VOIDED):
            raise ConflictError("Reconciliation is already voided")

        released = self.db.execute(
            update(BankTransaction)
            .where(
                BankTransaction.tenant_id == self.tenant_id,
                BankTransaction.reconciliation_id == reconciliation.id,
            )
            .values(reconciliation_id=None)
            .execution_options(synchronize_session="fetch")
        ).rowcount

        self._transition(
            reconciliation,
            expected=reconciliation.status,
            status=ReconciliationStatus.VOIDED,
            voided_by=self.actor_id,
            voided_at=utcnow(),
        )

        logger.info(
            "Voided reconciliation %s, released %d transactions",
            reconciliation.id, released,
        )
        self._audit("reconciliation.voided", "reconciliation", reconciliation.id, {
            "released_count": released,
        })
        return reconciliation

    def get_reconciliation(self, reconciliation_id: int) -> BankReconciliation:
        self._require_context()
        reconciliation = self.db.execute(
            select(BankReconciliation).where(
                BankReconciliation.id == reconciliation_id,
                BankReconciliation.tenant_id == self.tenant_id,
            )
        ).scalar_one_or_none()
        if not reconciliation:
            raise NotFoundError(f"Reconciliation {reconciliation_id} not found")
        return reconciliation

    def list_reconciliations(
        self, bank_account_id: int | None = None
    ) -> list[BankReconciliation]:
        """Reconciliations, latest statement first."""
        self._require_context()
        query = select(BankReconciliation).where(
            BankReconciliation.tenant_id == self.tenant_id
        )
        if bank_account_id is not None:
            query = query.where(BankReconciliation.bank_account_id == bank_account_id)
        reconciliations = self.db.execute(
            query.order_by(
                BankReconciliation.statement_date.desc(), BankReconciliation.id.desc()
            )
        ).scalars().all()
        return list(reconciliations)

    # --- Helpers ---

    def _find_open_reconciliation(self, bank_account_id: int) -> int | None:
        return self.db.execute(
            select(BankReconciliation.id).where(
                BankReconciliation.tenant_id == self.tenant_id,
                BankReconciliation.bank_account_id == bank_account_id,
                BankReconciliation.status == ReconciliationStatus.IN_PROGRESS,
            )
        ).scalar_one_or_none()

    def _check_cleared_transactions(
        self, reconciliation: BankReconciliation, ids: list[int]
    ) -> None:
        if not ids:
            return

        transactions = self.db.execute(
            select(BankTransaction).where(
                BankTransaction.tenant_id == self.tenant_id,
                BankTransaction.id.in_(ids),
            )
        ).scalars().all()
        by_id = {t.id: t for t in transactions}

        missing = [i for i in ids if i not in by_id]
        if missing:
            raise NotFoundError(f"Bank transactions not found: {missing}")

        for txn_id in ids:
            txn = by_id[txn_id]
            if txn.bank_account_id != reconciliation.bank_account_id:
                raise ValidationError(
                    f"Transaction {txn.id} belongs to a different bank account"
                )
            if txn.status != BankTransactionStatus.POSTED:
                raise ValidationError(
                    f"Transaction {txn.id} is {txn.status.value}, only posted "
                    "transactions can be reconciled"
                )
            if txn.transaction_date > reconciliation.statement_date:
                raise ValidationError(
                    f"Transaction {txn.id} is dated after the statement date"
                )
            if txn.reconciliation_id is not None:
                raise ConflictError(
                    f"Transaction {txn.id} is already claimed by "
                    f"reconciliation {txn.reconciliation_id}"
                )

    def _transition(
        self,
        reconciliation: BankReconciliation,
        expected: ReconciliationStatus,
        **values,
    ) -> None:
        result = self.db.execute(
            update(BankReconciliation)
            .where(
                BankReconciliation.id == reconciliation.id,
                BankReconciliation.tenant_id == self.tenant_id,
                BankReconciliation.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"Reconciliation {reconciliation.id} was modified concurrently"
            )
        self.db.refresh(reconciliation)
