"""
Ledger service, the core of the bookkeeping system.

This service enforces the fundamental rules:
1. Every group of postings must balance (debits = credits)
2. Postings are immutable (append-only, deleted only as a group)
3. Accounts must exist in the tenant and be active
4. A source (journal entry or bank transaction) is posted once

No other service writes to ledger_postings directly. The journal
engine and the bank transaction poster both go through here.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, delete, func

from finance_ledger.errors import ConflictError, NotFoundError, ValidationError
from finance_ledger.models.account import Account
from finance_ledger.models.bank_account import BankAccount
from finance_ledger.models.enums import NormalBalance, SourceType
from finance_ledger.models.ledger_posting import LedgerPosting
from finance_ledger.schemas.ledger import (
    IntegrityReport,
    PostingLineCreate,
    UnbalancedSource,
)
from finance_ledger.services.base import TenantScopedService, to_decimal

logger = logging.getLogger(__name__)


def signed_balance(
    normal_balance: NormalBalance, debits: Decimal, credits: Decimal
) -> Decimal:
    """
    Net balance on the account's normal side.

    For debit-normal accounts (assets, expenses): debits - credits
    For credit-normal accounts (liabilities, equity, income): credits - debits
    """
    if normal_balance == NormalBalance.DEBIT:
        return debits - credits
    return credits - debits


class LedgerService(TenantScopedService):
    """
    All ledger writes and balance reads pass through this service.

    The caller is responsible for calling db.commit() after a
    write returns successfully.
    """

    def check_postings(
        self,
        source_type: SourceType,
        source_id: int,
        lines: list[PostingLineCreate],
    ) -> Decimal:
        """
        Run every check write_postings runs, without writing.

        Callers that change a source's status before writing its
        postings call this first, so a rejected post leaves the
        source untouched. Returns the debit total, which equals the
        credit total.
        """
        self._require_context()

        if len(lines) < 2:
            raise ValidationError("A posting group needs at least two lines")

        # --- A source is only ever posted once ---
        existing = self.db.execute(
            select(LedgerPosting.id).where(
                LedgerPosting.tenant_id == self.tenant_id,
                LedgerPosting.source_type == source_type,
                LedgerPosting.source_id == source_id,
            ).limit(1)
        ).scalar_one_or_none()

        if existing is not None:
            raise ConflictError(
                f"Postings already exist for {source_type.value} {source_id}"
            )

        # --- Validate all accounts ---
        accounts_by_id = self._load_accounts({line.account_id for line in lines})

        for account in accounts_by_id.values():
            if not account.is_active:
                raise ValidationError(
                    f"Account {account.account_number or account.name} is not active"
                )

        # --- Enforce balance rule ---
        total_debits = sum((line.debit_amount for line in lines), Decimal("0"))
        total_credits = sum((line.credit_amount for line in lines), Decimal("0"))

        if total_debits != total_credits:
            raise ValidationError(
                f"Postings do not balance: "
                f"debits={total_debits}, credits={total_credits}"
            )
        return total_debits

    def write_postings(
        self,
        source_type: SourceType,
        source_id: int,
        posting_date: date,
        lines: list[PostingLineCreate],
        memo: str | None = None,
    ) -> list[LedgerPosting]:
        """
        Write a balanced group of postings for one source.

        If any check fails, nothing is written.
        """
        total_debits = self.check_postings(source_type, source_id, lines)

        # --- Create postings ---
        postings = []
        for line in lines:
            posting = LedgerPosting(
                tenant_id=self.tenant_id,
                source_type=source_type,
                source_id=source_id,
                posting_date=posting_date,
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                memo=memo,
            )
            self.db.add(posting)
            postings.append(posting)

        self.db.flush()
        logger.info(
            "Wrote %d postings for %s %s (total %s)",
            len(postings), source_type.value, source_id, total_debits,
        )
        return postings

    def delete_postings(self, source_type: SourceType, source_id: int) -> list[int]:
        """
        Remove every posting of one source, as a unit.

        Returns the ids of the accounts that were touched so the
        caller can refresh their cached balances.
        """
        self._require_context()
        postings = self.get_postings(source_type, source_id)
        account_ids = sorted({p.account_id for p in postings})

        self.db.execute(
            delete(LedgerPosting).where(
                LedgerPosting.tenant_id == self.tenant_id,
                LedgerPosting.source_type == source_type,
                LedgerPosting.source_id == source_id,
            ).execution_options(synchronize_session="fetch")
        )
        self.db.flush()
        logger.info(
            "Deleted %d postings for %s %s",
            len(postings), source_type.value, source_id,
        )
        return account_ids

    def get_postings(
        self, source_type: SourceType, source_id: int
    ) -> list[LedgerPosting]:
        """Return all postings for one source."""
        self._require_context()
        postings = self.db.execute(
            select(LedgerPosting)
            .where(
                LedgerPosting.tenant_id == self.tenant_id,
                LedgerPosting.source_type == source_type,
                LedgerPosting.source_id == source_id,
            )
            .order_by(LedgerPosting.id)
        ).scalars().all()
        return list(postings)

    def get_postings_by_account(self, account_id: int) -> list[LedgerPosting]:
        """Return all postings for an account, newest first."""
        self._require_context()
        self._load_accounts({account_id})
        postings = self.db.execute(
            select(LedgerPosting)
            .where(
                LedgerPosting.tenant_id == self.tenant_id,
                LedgerPosting.account_id == account_id,
            )
            .order_by(LedgerPosting.posting_date.desc(), LedgerPosting.id.desc())
        ).scalars().all()
        return list(postings)

    def get_account_balance(
        self, account_id: int, as_of: date | None = None
    ) -> Decimal:
        """
        Calculate an account's balance from its postings.

        The postings are the source of truth; Account.current_balance
        is only a cache of this number.
        """
        self._require_context()
        account = self._load_accounts({account_id})[account_id]

        query = select(
            func.coalesce(func.sum(LedgerPosting.debit_amount), 0),
            func.coalesce(func.sum(LedgerPosting.credit_amount), 0),
        ).where(
            LedgerPosting.tenant_id == self.tenant_id,
            LedgerPosting.account_id == account_id,
        )
        if as_of is not None:
            query = query.where(LedgerPosting.posting_date <= as_of)

        total_debits, total_credits = self.db.execute(query).one()
        return signed_balance(
            account.normal_balance,
            to_decimal(total_debits),
            to_decimal(total_credits),
        )

    def refresh_balances(self, account_ids) -> None:
        """
        Recompute cached balances from postings.

        Updates Account.current_balance for each account and
        BankAccount.current_balance for bank accounts linked to them.
        """
        self._require_context()
        account_ids = set(account_ids)
        if not account_ids:
            return

        totals = dict.fromkeys(account_ids, (Decimal("0"), Decimal("0")))
        rows = self.db.execute(
            select(
                LedgerPosting.account_id,
                func.sum(LedgerPosting.debit_amount),
                func.sum(LedgerPosting.credit_amount),
            )
            .where(
                LedgerPosting.tenant_id == self.tenant_id,
                LedgerPosting.account_id.in_(account_ids),
            )
            .group_by(LedgerPosting.account_id)
        ).all()
        for account_id, debits, credits in rows:
            totals[account_id] = (to_decimal(debits), to_decimal(credits))

        accounts = self.db.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id.in_(account_ids),
            )
        ).scalars().all()

        balances = {}
        for account in accounts:
            debits, credits = totals[account.id]
            account.current_balance = signed_balance(
                account.normal_balance, debits, credits
            )
            balances[account.id] = account.current_balance

        bank_accounts = self.db.execute(
            select(BankAccount).where(
                BankAccount.tenant_id == self.tenant_id,
                BankAccount.finance_account_id.in_(account_ids),
            )
        ).scalars().all()
        for bank_account in bank_accounts:
            bank_account.current_balance = balances[bank_account.finance_account_id]

        self.db.flush()

    def check_integrity(self) -> IntegrityReport:
        """
        Verify the ledger as a whole.

        Total debits across every posting must equal total credits,
        and so must each individual source group.
        """
        self._require_context()
        rows = self.db.execute(
            select(
                LedgerPosting.source_type,
                LedgerPosting.source_id,
                func.sum(LedgerPosting.debit_amount),
                func.sum(LedgerPosting.credit_amount),
            )
            .where(LedgerPosting.tenant_id == self.tenant_id)
            .group_by(LedgerPosting.source_type, LedgerPosting.source_id)
        ).all()

        grand_debits = Decimal("0")
        grand_credits = Decimal("0")
        unbalanced = []
        for source_type, source_id, debits, credits in rows:
            debits, credits = to_decimal(debits), to_decimal(credits)
            grand_debits += debits
            grand_credits += credits
            if debits != credits:
                unbalanced.append(UnbalancedSource(
                    source_type=source_type,
                    source_id=source_id,
                    total_debits=debits,
                    total_credits=credits,
                ))

        if unbalanced:
            logger.warning("Ledger has %d unbalanced sources", len(unbalanced))

        return IntegrityReport(
            total_debits=grand_debits,
            total_credits=grand_credits,
            difference=grand_debits - grand_credits,
            is_balanced=grand_debits == grand_credits and not unbalanced,
            unbalanced_sources=unbalanced,
        )

    def _load_accounts(self, account_ids: set[int]) -> dict[int, Account]:
        accounts = self.db.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id.in_(account_ids),
            )
        ).scalars().all()
        accounts_by_id = {a.id: a for a in accounts}

        missing = set(account_ids) - set(accounts_by_id)
        if missing:
            raise NotFoundError(f"Accounts not found: {sorted(missing)}")
        return accounts_by_id
